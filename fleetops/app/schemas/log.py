"""
Vehicle log schemas (fuel and maintenance).
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fleetops.app.models.fleet_enums import LogType
from fleetops.app.schemas.analytics import LogSummary


class LogCreate(BaseModel):
    vehicle_id: int
    type: LogType
    cost: float = Field(..., gt=0)
    liters: Optional[float] = Field(None, description="Required and positive for Fuel logs")


class LogUpdate(BaseModel):
    """The log date is immutable."""
    type: Optional[LogType] = None
    cost: Optional[float] = Field(None, gt=0)
    liters: Optional[float] = None


class LogResponse(BaseModel):
    id: int
    vehicle_id: int
    type: LogType
    cost: float
    liters: Optional[float]
    date: datetime

    class Config:
        from_attributes = True


class LogListResponse(BaseModel):
    logs: List[LogResponse]
    summary: LogSummary


class LogDeleteResponse(BaseModel):
    id: int
    type: LogType
    vehicle_id: int
    vehicle_restored: bool

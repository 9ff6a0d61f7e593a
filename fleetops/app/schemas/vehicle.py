"""
Vehicle schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fleetops.app.models.fleet_enums import LogType, TripStatus, VehicleStatus, VehicleType


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle."""
    license_plate: str = Field(..., min_length=1, max_length=50, description="Unique license plate")
    model: str = Field(..., min_length=1, max_length=100)
    type: VehicleType = Field(..., description="Truck, Van or Bike")
    max_load: float = Field(..., gt=0, description="Maximum cargo weight in kg")
    acquisition_cost: Optional[float] = Field(None, ge=0)


class VehicleUpdate(BaseModel):
    """Schema for patching a vehicle. Status is not patchable."""
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[VehicleType] = None
    max_load: Optional[float] = Field(None, gt=0)
    acquisition_cost: Optional[float] = Field(None, ge=0)
    odometer: Optional[float] = Field(None, ge=0, description="Can only increase")


class VehicleResponse(BaseModel):
    id: int
    license_plate: str
    model: str
    type: VehicleType
    max_load: float
    odometer: float
    acquisition_cost: float
    status: VehicleStatus
    is_retired: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleTripSummary(BaseModel):
    id: int
    status: TripStatus
    cargo_weight: float
    start_odo: Optional[float] = None
    end_odo: Optional[float] = None
    revenue: Optional[float] = None

    class Config:
        from_attributes = True


class VehicleLogSummary(BaseModel):
    id: int
    type: LogType
    cost: float
    liters: Optional[float] = None
    date: datetime

    class Config:
        from_attributes = True


class VehicleDetailResponse(VehicleResponse):
    """Vehicle with its trips and logs."""
    trips: List[VehicleTripSummary] = []
    logs: List[VehicleLogSummary] = []

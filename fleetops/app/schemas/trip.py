"""
Trip schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from fleetops.app.models.fleet_enums import DriverStatus, TripStatus, VehicleStatus


class TripCreate(BaseModel):
    """Schema for creating a Draft trip."""
    vehicle_id: int
    driver_id: int
    cargo_weight: float = Field(..., gt=0, description="Cargo weight in kg")


class TripUpdate(BaseModel):
    """Draft trips only."""
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    cargo_weight: Optional[float] = Field(None, gt=0)


class TripDispatch(BaseModel):
    start_odo: float = Field(..., ge=0, description="Odometer reading at departure")


class TripComplete(BaseModel):
    end_odo: float = Field(..., ge=0, description="Odometer reading at arrival")
    revenue: Optional[float] = Field(None, ge=0)


class TripVehicle(BaseModel):
    id: int
    license_plate: str
    model: str
    max_load: float
    status: VehicleStatus

    class Config:
        from_attributes = True


class TripDriver(BaseModel):
    id: int
    name: str
    status: DriverStatus

    class Config:
        from_attributes = True


class TripResponse(BaseModel):
    """Schema for trip response, with its vehicle and driver."""
    id: int
    vehicle_id: int
    driver_id: Optional[int]
    cargo_weight: float
    status: TripStatus
    start_odo: Optional[float]
    end_odo: Optional[float]
    revenue: Optional[float]
    created_at: datetime
    updated_at: datetime
    dispatched_at: Optional[datetime]
    completed_at: Optional[datetime]
    vehicle: Optional[TripVehicle] = None
    driver: Optional[TripDriver] = None

    class Config:
        from_attributes = True

"""
Driver schemas.

License status and days until expiry are derived on every read.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from fleetops.app.domain.lifecycle import rules
from fleetops.app.models.fleet_enums import DriverStatus, LicenseStatus


class DriverCreate(BaseModel):
    """Schema for onboarding a driver."""
    name: str = Field(..., min_length=2, max_length=100)
    license_expiry: date = Field(..., description="Must be after today")


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    license_expiry: Optional[date] = None
    safety_score: Optional[float] = Field(None, description="0 to 100")


class DriverStatusUpdate(BaseModel):
    status: str = Field(..., description="On Duty, Off Duty or Suspended")


class DriverResponse(BaseModel):
    id: int
    name: str
    license_expiry: date
    status: DriverStatus
    safety_score: float
    license_status: LicenseStatus
    days_until_expiry: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_driver(cls, driver, today: Optional[date] = None) -> "DriverResponse":
        return cls(
            id=driver.id,
            name=driver.name,
            license_expiry=driver.license_expiry,
            status=driver.status,
            safety_score=driver.safety_score,
            license_status=rules.classify_license(driver.license_expiry, today),
            days_until_expiry=rules.days_until_expiry(driver.license_expiry, today),
            created_at=driver.created_at,
            updated_at=driver.updated_at,
        )


class DriverRenewalResponse(BaseModel):
    """A driver whose license expires within the renewal window."""
    id: int
    name: str
    license_expiry: date
    status: DriverStatus
    days_until_expiry: int

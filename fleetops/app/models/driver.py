"""
Driver database model.

Drivers are onboarded by Safety Officers. License status is derived on read.
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum
from sqlalchemy.sql import func
from fleetops.app.db.session import Base
from fleetops.app.models.fleet_enums import DriverStatus, enum_values


class Driver(Base):
    """
    Driver model.

    A driver is On Duty exactly while assigned to a Dispatched trip.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    license_expiry = Column(Date, nullable=False, index=True)

    status = Column(
        Enum(DriverStatus, name="driver_status", values_callable=enum_values),
        default=DriverStatus.OFF_DUTY,
        nullable=False,
        index=True,
    )
    safety_score = Column(Float, default=100.0, nullable=False)  # 0-100

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', status='{self.status.value}')>"

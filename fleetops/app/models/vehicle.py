"""
Vehicle database model.

Vehicles are registered by Fleet Managers and move between statuses
only through trip, maintenance and retirement operations.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetops.app.db.session import Base
from fleetops.app.models.fleet_enums import VehicleType, VehicleStatus, enum_values


class Vehicle(Base):
    """
    Vehicle model.

    Invariant: a retired vehicle is always Out of Service.
    Vehicles are never hard-deleted; deletion retires them.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identification
    license_plate = Column(String(50), unique=True, nullable=False, index=True)
    model = Column(String(100), nullable=False)
    type = Column(Enum(VehicleType, name="vehicle_type", values_callable=enum_values), nullable=False)

    # Capacity and usage
    max_load = Column(Float, nullable=False)  # kg
    odometer = Column(Float, default=0.0, nullable=False)  # km, never decreases
    acquisition_cost = Column(Float, default=0.0, nullable=False)

    # Status
    status = Column(
        Enum(VehicleStatus, name="vehicle_status", values_callable=enum_values),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    is_retired = Column(Boolean, default=False, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    trips = relationship("Trip", back_populates="vehicle", lazy="raise", passive_deletes=True)
    logs = relationship("VehicleLog", back_populates="vehicle", lazy="raise", passive_deletes=True)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', status='{self.status.value}')>"

"""
Trip database model.

Trips follow Draft -> Dispatched -> Completed, with Cancelled reachable
from Draft and Dispatched.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetops.app.db.session import Base
from fleetops.app.models.fleet_enums import TripStatus, enum_values


class Trip(Base):
    """
    Trip model.

    A trip moves one cargo load with one vehicle and one driver.
    The driver reference is nulled if the driver record is deleted,
    so completed trips keep contributing to analytics.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Assignment
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True, index=True)

    cargo_weight = Column(Float, nullable=False)  # kg

    # Status
    status = Column(
        Enum(TripStatus, name="trip_status", values_callable=enum_values),
        default=TripStatus.DRAFT,
        nullable=False,
        index=True,
    )

    # Odometer readings and outcome
    start_odo = Column(Float, nullable=True)
    end_odo = Column(Float, nullable=True)
    revenue = Column(Float, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)

    vehicle = relationship("Vehicle", back_populates="trips", lazy="selectin")
    driver = relationship("Driver", lazy="selectin")

    def __repr__(self):
        return f"<Trip(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"

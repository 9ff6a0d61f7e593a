"""
Vehicle log database model.

Fuel and maintenance entries. A Maintenance log puts its vehicle In Shop.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from fleetops.app.db.session import Base
from fleetops.app.models.fleet_enums import LogType, enum_values


class VehicleLog(Base):
    """
    Vehicle log model.

    `liters` is set for Fuel logs only. `date` is fixed at creation.
    """
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    type = Column(Enum(LogType, name="log_type", values_callable=enum_values), nullable=False, index=True)
    cost = Column(Float, nullable=False)
    liters = Column(Float, nullable=True)

    date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    vehicle = relationship("Vehicle", back_populates="logs", lazy="selectin")

    def __repr__(self):
        return f"<VehicleLog(id={self.id}, vehicle_id={self.vehicle_id}, type='{self.type.value}', cost={self.cost})>"

"""
Lookup helpers shared by the lifecycle services.

Loaders raise ResourceNotFoundError instead of returning None.
"""

from typing import Iterable, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.exceptions import ResourceNotFoundError
from fleetops.app.models.driver import Driver
from fleetops.app.models.fleet_enums import LogType, TripStatus
from fleetops.app.models.trip import Trip
from fleetops.app.models.vehicle import Vehicle
from fleetops.app.models.vehicle_log import VehicleLog


async def get_vehicle_or_404(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id, populate_existing=True)
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def get_driver_or_404(db: AsyncSession, driver_id: int) -> Driver:
    driver = await db.get(Driver, driver_id, populate_existing=True)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)
    return driver


async def get_trip_or_404(db: AsyncSession, trip_id: int) -> Trip:
    """Load a trip with its vehicle and driver, bypassing any stale identity-map copy."""
    result = await db.execute(
        select(Trip)
        .where(Trip.id == trip_id)
        .execution_options(populate_existing=True)
    )
    trip = result.scalar_one_or_none()
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)
    return trip


async def get_log_or_404(db: AsyncSession, log_id: int) -> VehicleLog:
    log = await db.get(VehicleLog, log_id, populate_existing=True)
    if not log:
        raise ResourceNotFoundError("Log", log_id)
    return log


async def count_vehicle_trips(
    db: AsyncSession,
    vehicle_id: int,
    statuses: Iterable[TripStatus],
    exclude_trip_id: Optional[int] = None
) -> int:
    """
    Count trips on a vehicle in any of the given statuses.

    Args:
        db: Database session
        vehicle_id: Vehicle to check
        statuses: Trip statuses to count
        exclude_trip_id: Trip to leave out (the one being changed)

    Returns:
        Number of matching trips
    """
    stmt = select(func.count(Trip.id)).where(
        Trip.vehicle_id == vehicle_id,
        Trip.status.in_(list(statuses))
    )
    if exclude_trip_id is not None:
        stmt = stmt.where(Trip.id != exclude_trip_id)
    result = await db.execute(stmt)
    return result.scalar() or 0


async def count_driver_dispatched_trips(
    db: AsyncSession,
    driver_id: int,
    exclude_trip_id: Optional[int] = None
) -> int:
    """
    Count how many Dispatched trips a driver has.

    Should be 0 or 1 (dispatch refuses a driver who is already on the road).
    """
    stmt = select(func.count(Trip.id)).where(
        Trip.driver_id == driver_id,
        Trip.status == TripStatus.DISPATCHED
    )
    if exclude_trip_id is not None:
        stmt = stmt.where(Trip.id != exclude_trip_id)
    result = await db.execute(stmt)
    return result.scalar() or 0


async def count_maintenance_logs(db: AsyncSession, vehicle_id: int) -> int:
    result = await db.execute(
        select(func.count(VehicleLog.id)).where(
            VehicleLog.vehicle_id == vehicle_id,
            VehicleLog.type == LogType.MAINTENANCE
        )
    )
    return result.scalar() or 0

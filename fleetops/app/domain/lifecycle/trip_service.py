"""
Trip Service (Domain Logic).

Drives the trip lifecycle: Draft -> Dispatched -> Completed, plus
cancellation from Draft or Dispatched. All guards run before the write
transaction opens; every multi-entity change commits as one unit.
"""

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.exceptions import (
    ActiveTripConflictError,
    InvalidStateTransitionError,
    ValidationFailedError,
    VehicleUnavailableError,
)
from fleetops.app.db.session import atomic
from fleetops.app.domain.lifecycle import rules
from fleetops.app.domain.lifecycle.queries import (
    count_driver_dispatched_trips,
    get_driver_or_404,
    get_trip_or_404,
    get_vehicle_or_404,
)
from fleetops.app.models.driver import Driver
from fleetops.app.models.fleet_enums import DriverStatus, TripStatus, VehicleStatus
from fleetops.app.models.trip import Trip
from fleetops.app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)


async def _claim_trip(
    db: AsyncSession,
    trip_id: int,
    expected: TripStatus,
    target: TripStatus,
    **values
) -> None:
    """
    Move a trip's status only if it is still `expected`.

    A concurrent request that already moved the trip leaves zero matching
    rows, which surfaces as InvalidStateTransitionError and rolls back the
    surrounding transaction.
    """
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.status == expected)
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateTransitionError(
            f'Trip {trip_id} is no longer "{expected.value}"',
            details={"trip_id": trip_id, "expected_status": expected.value, "requested_status": target.value},
        )


async def _reload_trip(db: AsyncSession, trip_id: int) -> Trip:
    """
    Reload a trip after bulk UPDATEs, refreshing the vehicle and driver it
    carries as well, since those rows were changed behind the identity map.
    """
    trip = await get_trip_or_404(db, trip_id)
    if trip.vehicle is not None:
        await db.refresh(trip.vehicle)
    if trip.driver is not None:
        await db.refresh(trip.driver)
    return trip


class TripService:

    @staticmethod
    async def create(
        db: AsyncSession,
        vehicle_id: int,
        driver_id: int,
        cargo_weight: float,
        today: Optional[date] = None
    ) -> Trip:
        """
        Create a trip in Draft status.

        Validates:
        - Vehicle exists, is not retired and is Available
        - Cargo weight fits the vehicle's maximum load
        - Driver exists, license not expired, not suspended

        The trip's start odometer is a snapshot of the vehicle odometer.
        No other record changes.
        """
        vehicle = await get_vehicle_or_404(db, vehicle_id)
        rules.ensure_vehicle_assignable(vehicle)
        rules.ensure_capacity(cargo_weight, vehicle.max_load)

        driver = await get_driver_or_404(db, driver_id)
        rules.ensure_driver_compliant(driver, today)

        async with atomic(db):
            trip = Trip(
                vehicle_id=vehicle.id,
                driver_id=driver.id,
                cargo_weight=cargo_weight,
                status=TripStatus.DRAFT,
                start_odo=vehicle.odometer,
            )
            db.add(trip)
            await db.flush()
            trip_id = trip.id

        logger.info("Trip %s created (vehicle=%s, driver=%s, cargo=%s)", trip_id, vehicle.id, driver.id, cargo_weight)
        return await get_trip_or_404(db, trip_id)

    @staticmethod
    async def update(
        db: AsyncSession,
        trip_id: int,
        cargo_weight: Optional[float] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        today: Optional[date] = None
    ) -> Trip:
        """
        Reassign or resize a Draft trip.

        Capacity is checked against the effective vehicle (new one if given).
        A new vehicle must be Available; a new driver must be compliant.
        """
        trip = await get_trip_or_404(db, trip_id)
        rules.ensure_trip_editable(trip.id, trip.status)

        values = {}
        vehicle = trip.vehicle

        if vehicle_id is not None and vehicle_id != trip.vehicle_id:
            vehicle = await get_vehicle_or_404(db, vehicle_id)
            rules.ensure_vehicle_assignable(vehicle)
            values["vehicle_id"] = vehicle.id
            values["start_odo"] = vehicle.odometer

        if cargo_weight is not None or "vehicle_id" in values:
            effective_cargo = cargo_weight if cargo_weight is not None else trip.cargo_weight
            rules.ensure_capacity(effective_cargo, vehicle.max_load)
            if cargo_weight is not None:
                values["cargo_weight"] = cargo_weight

        if driver_id is not None and driver_id != trip.driver_id:
            driver = await get_driver_or_404(db, driver_id)
            rules.ensure_driver_compliant(driver, today)
            values["driver_id"] = driver.id

        if values:
            async with atomic(db):
                await _claim_trip(db, trip.id, TripStatus.DRAFT, TripStatus.DRAFT, **values)
            logger.info("Trip %s updated: %s", trip.id, sorted(values))

        return await _reload_trip(db, trip.id)

    @staticmethod
    async def dispatch(
        db: AsyncSession,
        trip_id: int,
        start_odo: float,
        today: Optional[date] = None
    ) -> Trip:
        """
        Dispatch a Draft trip.

        Re-validates the driver (license and suspension may have changed
        since creation), the vehicle's availability and that the driver is
        not already on another trip. The start odometer may not be below
        the vehicle's current reading.

        Actions (one transaction):
        - Vehicle -> On Trip
        - Driver -> On Duty
        - Trip -> Dispatched with the given start odometer
        """
        trip = await get_trip_or_404(db, trip_id)
        rules.ensure_trip_transition(trip.id, trip.status, TripStatus.DISPATCHED)

        if trip.driver_id is None:
            raise ValidationFailedError(
                "Trip has no driver; reassign one before dispatch",
                details={"trip_id": trip.id},
            )
        driver = await get_driver_or_404(db, trip.driver_id)
        rules.ensure_driver_compliant(driver, today)

        vehicle = await get_vehicle_or_404(db, trip.vehicle_id)
        rules.ensure_vehicle_assignable(vehicle)
        rules.ensure_start_odometer(vehicle.odometer, start_odo)

        if await count_driver_dispatched_trips(db, driver.id, exclude_trip_id=trip.id) > 0:
            raise ActiveTripConflictError(
                "Driver is already on an active trip",
                details={"driver_id": driver.id},
            )

        async with atomic(db):
            await _claim_trip(
                db, trip.id, TripStatus.DRAFT, TripStatus.DISPATCHED,
                start_odo=start_odo,
                dispatched_at=datetime.utcnow(),
            )

            vehicle_result = await db.execute(
                update(Vehicle)
                .where(
                    Vehicle.id == vehicle.id,
                    Vehicle.status == VehicleStatus.AVAILABLE,
                    Vehicle.is_retired == False  # noqa: E712
                )
                .values(status=VehicleStatus.ON_TRIP)
                .execution_options(synchronize_session=False)
            )
            if vehicle_result.rowcount != 1:
                raise VehicleUnavailableError(
                    f"Vehicle {vehicle.id} was taken by another request",
                    details={"vehicle_id": vehicle.id},
                )

            await db.execute(
                update(Driver)
                .where(Driver.id == driver.id)
                .values(status=DriverStatus.ON_DUTY)
                .execution_options(synchronize_session=False)
            )

        logger.info("Trip %s dispatched (vehicle=%s on trip, driver=%s on duty)", trip.id, vehicle.id, driver.id)
        return await _reload_trip(db, trip.id)

    @staticmethod
    async def complete(
        db: AsyncSession,
        trip_id: int,
        end_odo: float,
        revenue: Optional[float] = None
    ) -> Trip:
        """
        Complete a Dispatched trip.

        Actions (one transaction):
        - Vehicle -> Available, odometer set to the end reading
        - Driver -> Off Duty
        - Trip -> Completed with end odometer and revenue (kept if not given)
        """
        trip = await get_trip_or_404(db, trip_id)
        rules.ensure_trip_transition(trip.id, trip.status, TripStatus.COMPLETED)
        rules.ensure_odometer_progress(trip.start_odo, end_odo)

        values = {"end_odo": end_odo, "completed_at": datetime.utcnow()}
        if revenue is not None:
            values["revenue"] = revenue

        async with atomic(db):
            await _claim_trip(db, trip.id, TripStatus.DISPATCHED, TripStatus.COMPLETED, **values)

            await db.execute(
                update(Vehicle)
                .where(Vehicle.id == trip.vehicle_id)
                .values(status=VehicleStatus.AVAILABLE, odometer=end_odo)
                .execution_options(synchronize_session=False)
            )
            if trip.driver_id is not None:
                await db.execute(
                    update(Driver)
                    .where(Driver.id == trip.driver_id)
                    .values(status=DriverStatus.OFF_DUTY)
                    .execution_options(synchronize_session=False)
                )

        logger.info("Trip %s completed (end_odo=%s, revenue=%s)", trip.id, end_odo, revenue)
        return await _reload_trip(db, trip.id)

    @staticmethod
    async def cancel(db: AsyncSession, trip_id: int) -> Trip:
        """
        Cancel a Draft or Dispatched trip.

        A Dispatched trip releases its vehicle (Available) and driver
        (Off Duty). The odometer is not touched.
        """
        trip = await get_trip_or_404(db, trip_id)
        rules.ensure_trip_transition(trip.id, trip.status, TripStatus.CANCELLED)
        was_dispatched = trip.status == TripStatus.DISPATCHED

        async with atomic(db):
            await _claim_trip(db, trip.id, trip.status, TripStatus.CANCELLED)

            if was_dispatched:
                await db.execute(
                    update(Vehicle)
                    .where(Vehicle.id == trip.vehicle_id)
                    .values(status=VehicleStatus.AVAILABLE)
                    .execution_options(synchronize_session=False)
                )
                if trip.driver_id is not None:
                    await db.execute(
                        update(Driver)
                        .where(Driver.id == trip.driver_id)
                        .values(status=DriverStatus.OFF_DUTY)
                        .execution_options(synchronize_session=False)
                    )

        logger.info("Trip %s cancelled (was dispatched: %s)", trip.id, was_dispatched)
        return await _reload_trip(db, trip.id)

    @staticmethod
    async def delete(db: AsyncSession, trip_id: int) -> int:
        """
        Hard-delete a Draft or Cancelled trip.

        Returns:
            The deleted trip's ID
        """
        trip = await get_trip_or_404(db, trip_id)
        rules.ensure_trip_deletable(trip.id, trip.status)

        async with atomic(db):
            result = await db.execute(
                delete(Trip)
                .where(Trip.id == trip.id, Trip.status == trip.status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateTransitionError(
                    f"Trip {trip.id} changed while being deleted",
                    details={"trip_id": trip.id},
                )

        db.expunge(trip)
        logger.info("Trip %s deleted", trip_id)
        return trip_id

    @staticmethod
    async def get(db: AsyncSession, trip_id: int) -> Trip:
        return await get_trip_or_404(db, trip_id)

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[TripStatus] = None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None
    ) -> List[Trip]:
        """List trips, newest first, with optional filters."""
        stmt = select(Trip)
        if status:
            stmt = stmt.where(Trip.status == status)
        if vehicle_id:
            stmt = stmt.where(Trip.vehicle_id == vehicle_id)
        if driver_id:
            stmt = stmt.where(Trip.driver_id == driver_id)
        stmt = stmt.order_by(Trip.id.desc()).execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return list(result.scalars().all())

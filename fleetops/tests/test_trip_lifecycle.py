"""
Trip lifecycle tests against the services.

Rule-level checks run with the service layer and an in-memory database;
after a rejected operation entities are re-read, since the rollback expires
everything the session holds.
"""

from datetime import date, timedelta

import pytest

from fleetops.app.core.exceptions import (
    ActiveTripConflictError,
    CapacityExceededError,
    DriverSuspendedError,
    InvalidStateTransitionError,
    LicenseExpiredError,
    OdometerRegressionError,
    ResourceNotFoundError,
    ValidationFailedError,
    VehicleUnavailableError,
)
from fleetops.app.domain.lifecycle import rules
from fleetops.app.domain.lifecycle.driver_service import DriverService
from fleetops.app.domain.lifecycle.log_service import LogService
from fleetops.app.domain.lifecycle.queries import get_driver_or_404, get_trip_or_404, get_vehicle_or_404
from fleetops.app.domain.lifecycle.trip_service import TripService
from fleetops.app.domain.lifecycle.vehicle_service import VehicleService
from fleetops.app.models.fleet_enums import (
    DriverStatus,
    LogType,
    TripStatus,
    VehicleStatus,
    VehicleType,
)


@pytest.mark.asyncio
async def test_create_trip_is_draft_and_snapshots_odometer(db_session, vehicle, driver):
    await VehicleService.update(db_session, vehicle.id, {"odometer": 1200.0})

    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)

    assert trip.status == TripStatus.DRAFT
    assert trip.start_odo == 1200.0
    assert trip.vehicle.id == vehicle.id
    assert trip.driver.id == driver.id

    vehicle = await get_vehicle_or_404(db_session, vehicle.id)
    driver = await get_driver_or_404(db_session, driver.id)
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert driver.status == DriverStatus.OFF_DUTY


@pytest.mark.asyncio
async def test_capacity_boundary_on_create(db_session, driver):
    truck = await VehicleService.create(
        db_session, license_plate="TRK-11", model="Volvo FH16", type=VehicleType.TRUCK, max_load=5000
    )

    trip = await TripService.create(db_session, truck.id, driver.id, cargo_weight=5000)
    assert trip.cargo_weight == 5000

    with pytest.raises(CapacityExceededError):
        await TripService.create(db_session, truck.id, driver.id, cargo_weight=6000)

    assert len(await TripService.list(db_session)) == 1


@pytest.mark.asyncio
async def test_create_rejects_missing_entities(db_session, vehicle, driver):
    with pytest.raises(ResourceNotFoundError):
        await TripService.create(db_session, 999, driver.id, cargo_weight=10)
    with pytest.raises(ResourceNotFoundError):
        await TripService.create(db_session, vehicle.id, 999, cargo_weight=10)


@pytest.mark.asyncio
async def test_license_expiring_today_is_accepted(db_session, vehicle):
    today = date.today()
    driver = await DriverService.create(db_session, "Sam Rivera", today + timedelta(days=5))
    later = today + timedelta(days=5)

    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=100, today=later)
    assert trip.status == TripStatus.DRAFT

    with pytest.raises(LicenseExpiredError):
        await TripService.create(
            db_session, vehicle.id, driver.id, cargo_weight=100, today=later + timedelta(days=1)
        )


@pytest.mark.asyncio
async def test_suspended_driver_cannot_take_trip(db_session, vehicle, driver):
    await DriverService.change_status(db_session, driver.id, DriverStatus.SUSPENDED)

    with pytest.raises(DriverSuspendedError):
        await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=100)


@pytest.mark.asyncio
async def test_retired_or_busy_vehicle_cannot_take_trip(db_session, vehicle, driver):
    vehicle_id = vehicle.id
    await LogService.create(db_session, vehicle_id, LogType.MAINTENANCE, cost=300)

    with pytest.raises(VehicleUnavailableError):
        await TripService.create(db_session, vehicle_id, driver.id, cargo_weight=100)

    van = await VehicleService.create(
        db_session, license_plate="VAN-06", model="Sprinter", type=VehicleType.VAN, max_load=800
    )
    await VehicleService.toggle_retirement(db_session, van.id)

    with pytest.raises(VehicleUnavailableError):
        await TripService.create(db_session, van.id, driver.id, cargo_weight=100)


@pytest.mark.asyncio
async def test_dispatch_moves_vehicle_and_driver(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)

    trip = await TripService.dispatch(db_session, trip.id, start_odo=1000)

    assert trip.status == TripStatus.DISPATCHED
    assert trip.start_odo == 1000
    assert trip.dispatched_at is not None
    assert trip.vehicle.status == VehicleStatus.ON_TRIP
    assert trip.driver.status == DriverStatus.ON_DUTY


@pytest.mark.asyncio
async def test_dispatch_rechecks_driver(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    trip_id, vehicle_id = trip.id, vehicle.id
    await DriverService.change_status(db_session, driver.id, DriverStatus.SUSPENDED)

    with pytest.raises(DriverSuspendedError):
        await TripService.dispatch(db_session, trip_id, start_odo=1000)

    trip = await get_trip_or_404(db_session, trip_id)
    vehicle = await get_vehicle_or_404(db_session, vehicle_id)
    assert trip.status == TripStatus.DRAFT
    assert vehicle.status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_dispatch_refuses_driver_already_on_the_road(db_session, vehicle, driver):
    second_van = await VehicleService.create(
        db_session, license_plate="VAN-07", model="Vivaro", type=VehicleType.VAN, max_load=700
    )
    first = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=100)
    second = await TripService.create(db_session, second_van.id, driver.id, cargo_weight=100)
    second_id = second.id

    await TripService.dispatch(db_session, first.id, start_odo=0)

    with pytest.raises(ActiveTripConflictError):
        await TripService.dispatch(db_session, second_id, start_odo=0)

    second = await get_trip_or_404(db_session, second_id)
    assert second.status == TripStatus.DRAFT


@pytest.mark.asyncio
async def test_dispatch_is_all_or_nothing(db_session, vehicle, driver, mocker):
    """If the vehicle write fails, the trip and driver writes are rolled back too."""
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=100)
    trip_id, vehicle_id, driver_id = trip.id, vehicle.id, driver.id
    await LogService.create(db_session, vehicle_id, LogType.MAINTENANCE, cost=250)

    # Let the pre-check pass so the conditional vehicle update is what fails
    mocker.patch.object(rules, "ensure_vehicle_assignable")

    with pytest.raises(VehicleUnavailableError):
        await TripService.dispatch(db_session, trip_id, start_odo=10)

    trip = await get_trip_or_404(db_session, trip_id)
    vehicle = await get_vehicle_or_404(db_session, vehicle_id)
    driver = await get_driver_or_404(db_session, driver_id)
    assert trip.status == TripStatus.DRAFT
    assert trip.dispatched_at is None
    assert vehicle.status == VehicleStatus.IN_SHOP
    assert driver.status == DriverStatus.OFF_DUTY


@pytest.mark.asyncio
async def test_complete_updates_odometer_and_releases(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    await TripService.dispatch(db_session, trip.id, start_odo=1000)

    trip = await TripService.complete(db_session, trip.id, end_odo=1120, revenue=1000)

    assert trip.status == TripStatus.COMPLETED
    assert trip.end_odo == 1120
    assert trip.revenue == 1000
    assert trip.completed_at is not None
    assert trip.vehicle.status == VehicleStatus.AVAILABLE
    assert trip.vehicle.odometer == 1120
    assert trip.driver.status == DriverStatus.OFF_DUTY


@pytest.mark.asyncio
async def test_complete_rejects_odometer_regression(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    trip_id = trip.id
    await TripService.dispatch(db_session, trip_id, start_odo=1000)

    with pytest.raises(OdometerRegressionError):
        await TripService.complete(db_session, trip_id, end_odo=900)

    trip = await get_trip_or_404(db_session, trip_id)
    assert trip.status == TripStatus.DISPATCHED


@pytest.mark.asyncio
async def test_dispatch_rejects_start_below_vehicle_odometer(db_session, vehicle, driver):
    vehicle_id = vehicle.id
    await VehicleService.update(db_session, vehicle_id, {"odometer": 1000.0})
    trip = await TripService.create(db_session, vehicle_id, driver.id, cargo_weight=450)
    trip_id = trip.id

    with pytest.raises(OdometerRegressionError):
        await TripService.dispatch(db_session, trip_id, start_odo=0)

    trip = await get_trip_or_404(db_session, trip_id)
    vehicle = await get_vehicle_or_404(db_session, vehicle_id)
    assert trip.status == TripStatus.DRAFT
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer == 1000.0

    # Starting from the current reading is fine
    await TripService.dispatch(db_session, trip_id, start_odo=1000)
    trip = await TripService.complete(db_session, trip_id, end_odo=1040)
    assert trip.vehicle.odometer == 1040


@pytest.mark.asyncio
async def test_dispatch_without_driver_asks_for_reassignment(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=100)
    trip_id = trip.id
    await DriverService.delete(db_session, driver.id)

    with pytest.raises(ValidationFailedError) as exc_info:
        await TripService.dispatch(db_session, trip_id, start_odo=0)
    assert exc_info.value.details == {"trip_id": trip_id}

    replacement = await DriverService.create(
        db_session, name="Sam Reyes", license_expiry=date.today() + timedelta(days=200)
    )
    await TripService.update(db_session, trip_id, driver_id=replacement.id)
    trip = await TripService.dispatch(db_session, trip_id, start_odo=0)
    assert trip.status == TripStatus.DISPATCHED
    assert trip.driver.id == replacement.id


@pytest.mark.asyncio
async def test_complete_requires_dispatched(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)

    with pytest.raises(InvalidStateTransitionError):
        await TripService.complete(db_session, trip.id, end_odo=10)


@pytest.mark.asyncio
async def test_cancel_dispatched_trip_keeps_odometer(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    await TripService.dispatch(db_session, trip.id, start_odo=1000)

    trip = await TripService.cancel(db_session, trip.id)

    assert trip.status == TripStatus.CANCELLED
    assert trip.vehicle.status == VehicleStatus.AVAILABLE
    assert trip.vehicle.odometer == 0
    assert trip.driver.status == DriverStatus.OFF_DUTY


@pytest.mark.asyncio
async def test_cancel_twice_is_rejected(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    trip_id = trip.id
    await TripService.cancel(db_session, trip_id)

    with pytest.raises(InvalidStateTransitionError):
        await TripService.cancel(db_session, trip_id)


@pytest.mark.asyncio
async def test_cancel_completed_trip_is_rejected(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=450)
    await TripService.dispatch(db_session, trip.id, start_odo=0)
    await TripService.complete(db_session, trip.id, end_odo=50)

    with pytest.raises(InvalidStateTransitionError):
        await TripService.cancel(db_session, trip.id)


@pytest.mark.asyncio
async def test_update_draft_trip_reassigns_vehicle(db_session, vehicle, driver):
    bigger = await VehicleService.create(
        db_session, license_plate="TRK-20", model="Actros", type=VehicleType.TRUCK, max_load=5000
    )
    await VehicleService.update(db_session, bigger.id, {"odometer": 880.0})
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=400)

    # 2000 kg does not fit the van, but fits the truck it moves to
    trip = await TripService.update(db_session, trip.id, cargo_weight=2000, vehicle_id=bigger.id)

    assert trip.vehicle_id == bigger.id
    assert trip.cargo_weight == 2000
    assert trip.start_odo == 880.0


@pytest.mark.asyncio
async def test_update_rechecks_capacity(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=400)
    trip_id = trip.id

    with pytest.raises(CapacityExceededError):
        await TripService.update(db_session, trip_id, cargo_weight=501)

    trip = await get_trip_or_404(db_session, trip_id)
    assert trip.cargo_weight == 400


@pytest.mark.asyncio
async def test_update_only_in_draft(db_session, vehicle, driver):
    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=400)
    await TripService.dispatch(db_session, trip.id, start_odo=0)

    with pytest.raises(InvalidStateTransitionError):
        await TripService.update(db_session, trip.id, cargo_weight=100)


@pytest.mark.asyncio
async def test_delete_rules(db_session, vehicle, driver):
    draft = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=10)
    assert await TripService.delete(db_session, draft.id) == draft.id
    with pytest.raises(ResourceNotFoundError):
        await TripService.get(db_session, draft.id)

    dispatched = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=10)
    dispatched_id = dispatched.id
    await TripService.dispatch(db_session, dispatched_id, start_odo=0)
    with pytest.raises(InvalidStateTransitionError):
        await TripService.delete(db_session, dispatched_id)

    await TripService.complete(db_session, dispatched_id, end_odo=10)
    with pytest.raises(InvalidStateTransitionError):
        await TripService.delete(db_session, dispatched_id)

    cancelled = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=10)
    await TripService.cancel(db_session, cancelled.id)
    assert await TripService.delete(db_session, cancelled.id) == cancelled.id


@pytest.mark.asyncio
async def test_list_filters(db_session, vehicle, driver):
    first = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=10)
    second = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=20)
    await TripService.cancel(db_session, first.id)

    trips = await TripService.list(db_session)
    assert [t.id for t in trips] == [second.id, first.id]

    drafts = await TripService.list(db_session, status=TripStatus.DRAFT)
    assert [t.id for t in drafts] == [second.id]

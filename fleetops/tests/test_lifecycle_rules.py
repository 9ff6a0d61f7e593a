"""
Unit tests for the pure lifecycle guards.

No database: entities are plain stand-ins with the attributes the guards read.
"""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from fleetops.app.core.exceptions import (
    CapacityExceededError,
    DriverSuspendedError,
    InvalidExpiryError,
    InvalidStateTransitionError,
    LicenseExpiredError,
    OdometerRegressionError,
    OutOfRangeError,
    ValidationFailedError,
    VehicleUnavailableError,
)
from fleetops.app.domain.lifecycle import rules
from fleetops.app.models.fleet_enums import (
    DriverStatus,
    LicenseStatus,
    LogType,
    TripStatus,
    VehicleStatus,
)

TODAY = date(2025, 6, 15)


def make_vehicle(status=VehicleStatus.AVAILABLE, is_retired=False):
    return SimpleNamespace(id=1, status=status, is_retired=is_retired)


def make_driver(expiry=TODAY + timedelta(days=100), status=DriverStatus.OFF_DUTY):
    return SimpleNamespace(id=7, license_expiry=expiry, status=status)


@pytest.mark.parametrize("current,target", [
    (TripStatus.DRAFT, TripStatus.DISPATCHED),
    (TripStatus.DRAFT, TripStatus.CANCELLED),
    (TripStatus.DISPATCHED, TripStatus.COMPLETED),
    (TripStatus.DISPATCHED, TripStatus.CANCELLED),
])
def test_allowed_trip_transitions(current, target):
    assert rules.can_transition(current, target)
    rules.ensure_trip_transition(1, current, target)


@pytest.mark.parametrize("current,target", [
    (TripStatus.DRAFT, TripStatus.COMPLETED),
    (TripStatus.COMPLETED, TripStatus.CANCELLED),
    (TripStatus.COMPLETED, TripStatus.DISPATCHED),
    (TripStatus.CANCELLED, TripStatus.CANCELLED),
    (TripStatus.CANCELLED, TripStatus.DISPATCHED),
    (TripStatus.DISPATCHED, TripStatus.DISPATCHED),
])
def test_rejected_trip_transitions(current, target):
    with pytest.raises(InvalidStateTransitionError) as exc:
        rules.ensure_trip_transition(1, current, target)
    assert exc.value.error_code == "ERR_INVALID_STATE_TRANSITION"
    assert exc.value.details["current_status"] == current.value


def test_only_draft_trips_are_editable():
    rules.ensure_trip_editable(1, TripStatus.DRAFT)
    for status in (TripStatus.DISPATCHED, TripStatus.COMPLETED, TripStatus.CANCELLED):
        with pytest.raises(InvalidStateTransitionError):
            rules.ensure_trip_editable(1, status)


def test_completed_and_dispatched_trips_cannot_be_deleted():
    rules.ensure_trip_deletable(1, TripStatus.DRAFT)
    rules.ensure_trip_deletable(1, TripStatus.CANCELLED)
    for status in (TripStatus.DISPATCHED, TripStatus.COMPLETED):
        with pytest.raises(InvalidStateTransitionError):
            rules.ensure_trip_deletable(1, status)


def test_capacity_boundary():
    # Equal to max load is fine, one kg more is not
    rules.ensure_capacity(5000, 5000)
    with pytest.raises(CapacityExceededError):
        rules.ensure_capacity(6000, 5000)
    with pytest.raises(CapacityExceededError):
        rules.ensure_capacity(500.5, 500)


@pytest.mark.parametrize("vehicle", [
    make_vehicle(status=VehicleStatus.ON_TRIP),
    make_vehicle(status=VehicleStatus.IN_SHOP),
    make_vehicle(status=VehicleStatus.OUT_OF_SERVICE, is_retired=True),
])
def test_unavailable_vehicles_are_rejected(vehicle):
    with pytest.raises(VehicleUnavailableError):
        rules.ensure_vehicle_assignable(vehicle)


def test_available_vehicle_is_assignable():
    rules.ensure_vehicle_assignable(make_vehicle())


def test_license_valid_through_expiry_day():
    rules.ensure_driver_compliant(make_driver(expiry=TODAY), today=TODAY)
    assert not rules.is_license_expired(TODAY, today=TODAY)

    with pytest.raises(LicenseExpiredError):
        rules.ensure_driver_compliant(make_driver(expiry=TODAY - timedelta(days=1)), today=TODAY)


def test_suspended_driver_is_not_compliant():
    with pytest.raises(DriverSuspendedError):
        rules.ensure_driver_compliant(make_driver(status=DriverStatus.SUSPENDED), today=TODAY)


def test_expired_license_is_reported_before_suspension():
    driver = make_driver(expiry=TODAY - timedelta(days=3), status=DriverStatus.SUSPENDED)
    with pytest.raises(LicenseExpiredError):
        rules.ensure_driver_compliant(driver, today=TODAY)


def test_odometer_must_not_go_backwards():
    rules.ensure_odometer_progress(1000, 1000)
    rules.ensure_odometer_progress(None, 5)
    with pytest.raises(OdometerRegressionError):
        rules.ensure_odometer_progress(1000, 999.9)
    rules.ensure_start_odometer(1000, 1000)
    with pytest.raises(OdometerRegressionError):
        rules.ensure_start_odometer(1000, 0)


def test_new_license_expiry_must_be_after_today():
    rules.ensure_future_expiry(TODAY + timedelta(days=1), today=TODAY)
    for expiry in (TODAY, TODAY - timedelta(days=30)):
        with pytest.raises(InvalidExpiryError):
            rules.ensure_future_expiry(expiry, today=TODAY)


@pytest.mark.parametrize("score", [-0.1, 100.1, 250])
def test_safety_score_out_of_range(score):
    with pytest.raises(OutOfRangeError):
        rules.ensure_safety_score(score)


def test_safety_score_bounds_are_inclusive():
    rules.ensure_safety_score(0)
    rules.ensure_safety_score(100)


@pytest.mark.parametrize("offset,expected", [
    (-1, LicenseStatus.EXPIRED),
    (0, LicenseStatus.EXPIRING_SOON),
    (29, LicenseStatus.EXPIRING_SOON),
    (30, LicenseStatus.VALID),
    (400, LicenseStatus.VALID),
])
def test_classify_license(offset, expected):
    assert rules.classify_license(TODAY + timedelta(days=offset), today=TODAY) == expected


def test_needs_renewal_window():
    assert rules.needs_renewal(TODAY + timedelta(days=1), today=TODAY)
    assert rules.needs_renewal(TODAY + timedelta(days=30), today=TODAY)
    assert not rules.needs_renewal(TODAY, today=TODAY)
    assert not rules.needs_renewal(TODAY + timedelta(days=31), today=TODAY)


def test_fuel_log_requires_positive_liters():
    assert rules.validate_log_payload(LogType.FUEL, 120.0, 40.0) == 40.0
    with pytest.raises(ValidationFailedError):
        rules.validate_log_payload(LogType.FUEL, 120.0, None)
    with pytest.raises(ValidationFailedError):
        rules.validate_log_payload(LogType.FUEL, 120.0, 0)


def test_maintenance_log_drops_liters():
    assert rules.validate_log_payload(LogType.MAINTENANCE, 300.0, 12.0) is None


def test_log_cost_must_be_positive():
    with pytest.raises(ValidationFailedError):
        rules.validate_log_payload(LogType.MAINTENANCE, 0, None)

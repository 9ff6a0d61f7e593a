"""
Lifecycle Rules (Domain Logic).

Pure guard functions for vehicles, drivers, trips and logs. Nothing here
touches the database: callers load the entities, run these checks, and only
then open the write transaction. Every failed guard raises a FleetRuleError
subclass.
"""

from datetime import date
from typing import Dict, FrozenSet, Optional

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
from fleetops.app.models.fleet_enums import (
    DriverStatus,
    LicenseStatus,
    LogType,
    TripStatus,
    VehicleStatus,
)

EXPIRING_SOON_DAYS = 30
MIN_SAFETY_SCORE = 0.0
MAX_SAFETY_SCORE = 100.0

TRIP_TRANSITIONS: Dict[TripStatus, FrozenSet[TripStatus]] = {
    TripStatus.DRAFT: frozenset({TripStatus.DISPATCHED, TripStatus.CANCELLED}),
    TripStatus.DISPATCHED: frozenset({TripStatus.COMPLETED, TripStatus.CANCELLED}),
    TripStatus.COMPLETED: frozenset(),
    TripStatus.CANCELLED: frozenset(),
}

# Trips that still hold on to their vehicle
OPEN_TRIP_STATUSES = (TripStatus.DRAFT, TripStatus.DISPATCHED)

# Trips that may be hard-deleted
DELETABLE_TRIP_STATUSES = (TripStatus.DRAFT, TripStatus.CANCELLED)


def can_transition(current: TripStatus, target: TripStatus) -> bool:
    return target in TRIP_TRANSITIONS[current]


def ensure_trip_transition(trip_id: Optional[int], current: TripStatus, target: TripStatus) -> None:
    """
    Validate a requested trip status change.

    Raises:
        InvalidStateTransitionError: if `target` is not reachable from `current`
    """
    if not can_transition(current, target):
        allowed = sorted(s.value for s in TRIP_TRANSITIONS[current]) or ["none (terminal state)"]
        raise InvalidStateTransitionError(
            f'Cannot move trip from "{current.value}" to "{target.value}"',
            details={
                "trip_id": trip_id,
                "current_status": current.value,
                "requested_status": target.value,
                "allowed": allowed,
            },
        )


def ensure_trip_editable(trip_id: Optional[int], current: TripStatus) -> None:
    """Only Draft trips accept cargo, vehicle or driver changes."""
    if current != TripStatus.DRAFT:
        raise InvalidStateTransitionError(
            f'Can only update trips in Draft status, current status: "{current.value}"',
            details={"trip_id": trip_id, "current_status": current.value},
        )


def ensure_trip_deletable(trip_id: Optional[int], current: TripStatus) -> None:
    """Dispatched trips are active and Completed trips are financial history."""
    if current not in DELETABLE_TRIP_STATUSES:
        raise InvalidStateTransitionError(
            f'Cannot delete a trip with status "{current.value}"',
            details={"trip_id": trip_id, "current_status": current.value},
        )


def ensure_vehicle_assignable(vehicle) -> None:
    """
    A vehicle can take a new trip only when it is in service and Available.

    Raises:
        VehicleUnavailableError: if the vehicle is retired or busy
    """
    if vehicle.is_retired:
        raise VehicleUnavailableError(
            "Cannot assign a retired vehicle to a trip",
            details={"vehicle_id": vehicle.id, "status": vehicle.status.value},
        )
    if vehicle.status != VehicleStatus.AVAILABLE:
        raise VehicleUnavailableError(
            f"Vehicle is not available. Current status: {vehicle.status.value}",
            details={"vehicle_id": vehicle.id, "status": vehicle.status.value},
        )


def ensure_capacity(cargo_weight: float, max_load: float) -> None:
    """Cargo equal to the maximum load is accepted."""
    if cargo_weight > max_load:
        raise CapacityExceededError(
            f"Cargo weight ({cargo_weight}kg) exceeds vehicle capacity ({max_load}kg)",
            details={"cargo_weight": cargo_weight, "max_load": max_load},
        )


def is_license_expired(license_expiry: date, today: Optional[date] = None) -> bool:
    """A license is valid through its expiry day."""
    today = today or date.today()
    return license_expiry < today


def ensure_driver_compliant(driver, today: Optional[date] = None) -> None:
    """
    Check a driver may be put on a trip.

    Applied identically at trip creation, reassignment and dispatch.

    Raises:
        LicenseExpiredError: license expired before today
        DriverSuspendedError: driver is suspended
    """
    if is_license_expired(driver.license_expiry, today):
        raise LicenseExpiredError(
            f"Cannot assign driver with expired license. License expired on {driver.license_expiry.isoformat()}",
            details={"driver_id": driver.id, "license_expiry": driver.license_expiry.isoformat()},
        )
    if driver.status == DriverStatus.SUSPENDED:
        raise DriverSuspendedError(
            "Cannot assign suspended driver to trip",
            details={"driver_id": driver.id},
        )


def ensure_odometer_progress(start_odo: Optional[float], end_odo: float) -> None:
    if start_odo is not None and end_odo < start_odo:
        raise OdometerRegressionError(
            "End odometer cannot be less than start odometer",
            details={"start_odo": start_odo, "end_odo": end_odo},
        )


def ensure_start_odometer(current: float, start_odo: float) -> None:
    """The dispatch reading may not be below the vehicle odometer."""
    if start_odo < current:
        raise OdometerRegressionError(
            "Start odometer cannot be less than the vehicle odometer",
            details={"current": current, "start_odo": start_odo},
        )


def ensure_future_expiry(license_expiry: date, today: Optional[date] = None) -> None:
    """New or renewed licenses must expire strictly after today."""
    today = today or date.today()
    if license_expiry <= today:
        raise InvalidExpiryError(
            "License expiry date must be in the future",
            details={"license_expiry": license_expiry.isoformat(), "today": today.isoformat()},
        )


def ensure_safety_score(score: float) -> None:
    if score < MIN_SAFETY_SCORE or score > MAX_SAFETY_SCORE:
        raise OutOfRangeError(
            "Safety score must be between 0 and 100",
            details={"safety_score": score},
        )


def days_until_expiry(license_expiry: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    return (license_expiry - today).days


def classify_license(license_expiry: date, today: Optional[date] = None) -> LicenseStatus:
    """
    Classify a license for display.

    Expired before today, Expiring Soon within the next 30 days
    (today included), Valid otherwise.
    """
    days = days_until_expiry(license_expiry, today)
    if days < 0:
        return LicenseStatus.EXPIRED
    if days < EXPIRING_SOON_DAYS:
        return LicenseStatus.EXPIRING_SOON
    return LicenseStatus.VALID


def needs_renewal(license_expiry: date, today: Optional[date] = None, window_days: int = EXPIRING_SOON_DAYS) -> bool:
    """True when the license expires after today but within the renewal window."""
    days = days_until_expiry(license_expiry, today)
    return 0 < days <= window_days


def validate_log_payload(log_type: LogType, cost: float, liters: Optional[float]) -> Optional[float]:
    """
    Check a log's cost and liters against its type.

    Returns:
        The liters value to store (None for Maintenance logs)

    Raises:
        ValidationFailedError: non-positive cost, or missing/non-positive liters on a Fuel log
    """
    if cost is None or cost <= 0:
        raise ValidationFailedError("Cost must be a positive number", details={"cost": cost})

    if log_type == LogType.FUEL:
        if liters is None or liters <= 0:
            raise ValidationFailedError(
                "Liters consumed must be provided for fuel logs",
                details={"liters": liters},
            )
        return liters

    return None

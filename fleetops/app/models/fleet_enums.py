"""
Fleet-related enumerations.

Values are the display strings stored in the database and returned by the API.
"""

import enum


class VehicleType(str, enum.Enum):
    """Vehicle type enumeration."""
    TRUCK = "Truck"
    VAN = "Van"
    BIKE = "Bike"


class VehicleStatus(str, enum.Enum):
    """Vehicle status enumeration."""
    AVAILABLE = "Available"  # Ready for a new trip
    ON_TRIP = "On Trip"  # Assigned to a Dispatched trip
    IN_SHOP = "In Shop"  # At least one Maintenance log is open
    OUT_OF_SERVICE = "Out of Service"  # Retired


class DriverStatus(str, enum.Enum):
    """Driver status enumeration."""
    ON_DUTY = "On Duty"  # Driving a Dispatched trip
    OFF_DUTY = "Off Duty"
    SUSPENDED = "Suspended"  # Blocked from trips by a Safety Officer


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    DRAFT = "Draft"  # Created, still editable
    DISPATCHED = "Dispatched"  # On the road
    COMPLETED = "Completed"  # Delivered, odometer recorded
    CANCELLED = "Cancelled"


class LogType(str, enum.Enum):
    """Vehicle log type enumeration."""
    FUEL = "Fuel"
    MAINTENANCE = "Maintenance"


class LicenseStatus(str, enum.Enum):
    """Derived driver license classification. Never persisted."""
    VALID = "Valid"
    EXPIRING_SOON = "Expiring Soon"
    EXPIRED = "Expired"


def enum_values(enum_cls):
    """values_callable for SQLAlchemy Enum columns so the value, not the member name, is stored."""
    return [member.value for member in enum_cls]

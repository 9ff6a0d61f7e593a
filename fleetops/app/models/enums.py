"""
User roles enumeration.

Defines the role types for the fleet management system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Supreme user with system-level access
        FLEET_MANAGER: Manages vehicles, maintenance and fuel logs
        DISPATCHER: Creates and dispatches trips
        SAFETY_OFFICER: Onboards drivers and manages compliance
        FINANCIAL_ANALYSTS: Read-only access to expenses and analytics (default role)
    """
    ADMIN = "ADMIN"
    FLEET_MANAGER = "FLEET_MANAGER"
    DISPATCHER = "DISPATCHER"
    SAFETY_OFFICER = "SAFETY_OFFICER"
    FINANCIAL_ANALYSTS = "FINANCIAL_ANALYSTS"

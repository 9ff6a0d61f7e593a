"""
Security guards for role-based access control.

The lifecycle rules take no role argument; who may call what is decided
here, at the route.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from fleetops.app.models.enums import UserRole
from fleetops.app.core.dependencies import get_current_user

# Role groups used by the routers
FLEET_ROLES = [UserRole.ADMIN, UserRole.FLEET_MANAGER]
SAFETY_ROLES = [UserRole.ADMIN, UserRole.SAFETY_OFFICER]
RENEWAL_ROLES = [UserRole.ADMIN, UserRole.SAFETY_OFFICER, UserRole.FLEET_MANAGER]
TRIP_CREATE_ROLES = [UserRole.ADMIN, UserRole.DISPATCHER]
TRIP_OPERATE_ROLES = [UserRole.ADMIN, UserRole.FLEET_MANAGER, UserRole.DISPATCHER]
ADMIN_ONLY = [UserRole.ADMIN]


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/vehicles")
        async def create_vehicle(current_user: dict = Depends(require_role(FLEET_ROLES))):
            ...

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker

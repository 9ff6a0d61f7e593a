"""
Audit logging service.

Records who changed which fleet record, for compliance review.
"""

from typing import Optional, Dict, Any, List
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetops.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    USER_REGISTERED = "USER_REGISTERED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    USER_REACTIVATED = "USER_REACTIVATED"

    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_RETIRED = "VEHICLE_RETIRED"
    VEHICLE_REACTIVATED = "VEHICLE_REACTIVATED"
    VEHICLE_DELETED = "VEHICLE_DELETED"

    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_STATUS_CHANGED = "DRIVER_STATUS_CHANGED"
    DRIVER_DELETED = "DRIVER_DELETED"

    TRIP_CREATED = "TRIP_CREATED"
    TRIP_UPDATED = "TRIP_UPDATED"
    TRIP_DISPATCHED = "TRIP_DISPATCHED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    TRIP_CANCELLED = "TRIP_CANCELLED"
    TRIP_DELETED = "TRIP_DELETED"

    LOG_CREATED = "LOG_CREATED"
    LOG_UPDATED = "LOG_UPDATED"
    LOG_DELETED = "LOG_DELETED"


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an event to the audit trail.

    Called after the operation it describes has committed, so a failed
    operation never leaves an audit row behind.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        target_type: Kind of record affected ("vehicle", "driver", "trip", "log")
        target_id: ID of the record affected
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_user_action(
    db: AsyncSession,
    current_user: dict,
    action: str,
    target_type: str,
    target_id: Optional[int],
    metadata: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
) -> AuditLog:
    """Log an action performed by the authenticated user in `current_user`."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        target_type=target_type,
        target_id=target_id,
        metadata=metadata,
        ip_address=client_ip(request)
    )


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log an authentication event (login success/failure, logout).
    """
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        target_type="user",
        target_id=user_id,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if target_type:
        query = query.where(AuditLog.target_type == target_type)

    if target_id:
        query = query.where(AuditLog.target_id == target_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())

"""
Log Service (Domain Logic).

Fuel and maintenance logs and their side effects on vehicle status:
a Maintenance log puts its vehicle In Shop, and removing the vehicle's
last Maintenance log brings it back to Available.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.exceptions import (
    ActiveTripConflictError,
    InvalidStateTransitionError,
    ValidationFailedError,
)
from fleetops.app.db.session import atomic
from fleetops.app.domain.lifecycle import rules
from fleetops.app.domain.lifecycle.queries import (
    count_maintenance_logs,
    count_vehicle_trips,
    get_log_or_404,
    get_vehicle_or_404,
)
from fleetops.app.models.fleet_enums import LogType, TripStatus, VehicleStatus
from fleetops.app.models.vehicle import Vehicle
from fleetops.app.models.vehicle_log import VehicleLog

logger = logging.getLogger(__name__)


async def _ensure_can_enter_shop(db: AsyncSession, vehicle: Vehicle) -> None:
    if vehicle.is_retired:
        raise InvalidStateTransitionError(
            "Cannot create maintenance log for a retired vehicle",
            details={"vehicle_id": vehicle.id, "status": vehicle.status.value},
        )
    if await count_vehicle_trips(db, vehicle.id, (TripStatus.DISPATCHED,)) > 0:
        raise ActiveTripConflictError(
            "Cannot create maintenance log for vehicle with active trip. Complete or cancel the trip first.",
            details={"vehicle_id": vehicle.id},
        )


async def _release_from_shop(db: AsyncSession, vehicle_id: int) -> bool:
    """
    Restore a vehicle to Available once it has no Maintenance logs left.

    Must run inside the caller's transaction, after the log change is flushed.

    Returns:
        True if the vehicle status was restored
    """
    if await count_maintenance_logs(db, vehicle_id) > 0:
        return False

    vehicle = await get_vehicle_or_404(db, vehicle_id)
    if vehicle.status != VehicleStatus.IN_SHOP:
        return False

    vehicle.status = VehicleStatus.AVAILABLE
    return True


class LogService:

    @staticmethod
    async def create(
        db: AsyncSession,
        vehicle_id: int,
        type: LogType,
        cost: float,
        liters: Optional[float] = None
    ) -> VehicleLog:
        """
        Record a fuel or maintenance log.

        Maintenance logs are refused for retired vehicles and vehicles on a
        Dispatched trip, and move the vehicle In Shop in the same transaction.

        Raises:
            ValidationFailedError: bad cost/liters for the log type
            InvalidStateTransitionError: vehicle is retired (Maintenance)
            ActiveTripConflictError: vehicle has a Dispatched trip (Maintenance)
        """
        vehicle = await get_vehicle_or_404(db, vehicle_id)
        log_type = LogType(type)
        stored_liters = rules.validate_log_payload(log_type, cost, liters)

        if log_type == LogType.MAINTENANCE:
            await _ensure_can_enter_shop(db, vehicle)

        log = VehicleLog(
            vehicle_id=vehicle.id,
            type=log_type,
            cost=cost,
            liters=stored_liters,
            date=datetime.utcnow(),
        )
        async with atomic(db):
            db.add(log)
            if log_type == LogType.MAINTENANCE:
                vehicle.status = VehicleStatus.IN_SHOP

        await db.refresh(log)
        logger.info("%s log %s created for vehicle %s (cost=%s)", log_type.value, log.id, vehicle.id, cost)
        return log

    @staticmethod
    async def update(
        db: AsyncSession,
        log_id: int,
        type: Optional[LogType] = None,
        cost: Optional[float] = None,
        liters: Optional[float] = None
    ) -> VehicleLog:
        """
        Patch a log's type, cost or liters. The date never changes.

        Changing the type replays the side effects: becoming a Maintenance
        log sends the vehicle to the shop, and ceasing to be one may release it.
        """
        log = await get_log_or_404(db, log_id)

        new_type = LogType(type) if type is not None else log.type
        new_cost = cost if cost is not None else log.cost
        new_liters = liters if liters is not None else log.liters
        if liters is not None and liters <= 0:
            raise ValidationFailedError("Liters must be a positive number", details={"liters": liters})
        stored_liters = rules.validate_log_payload(new_type, new_cost, new_liters)

        entering_shop = new_type == LogType.MAINTENANCE and log.type != LogType.MAINTENANCE
        leaving_shop = log.type == LogType.MAINTENANCE and new_type != LogType.MAINTENANCE

        vehicle = await get_vehicle_or_404(db, log.vehicle_id)
        if entering_shop:
            await _ensure_can_enter_shop(db, vehicle)

        async with atomic(db):
            log.type = new_type
            log.cost = new_cost
            log.liters = stored_liters
            await db.flush()

            if entering_shop:
                vehicle.status = VehicleStatus.IN_SHOP
            elif leaving_shop:
                await _release_from_shop(db, vehicle.id)

        await db.refresh(log)
        logger.info("Log %s updated (type=%s, cost=%s)", log.id, new_type.value, new_cost)
        return log

    @staticmethod
    async def delete(db: AsyncSession, log_id: int) -> dict:
        """
        Delete a log.

        Deleting a Maintenance log restores the vehicle to Available when it
        was the vehicle's last one; otherwise the vehicle stays In Shop.

        Returns:
            {"id", "type", "vehicle_id", "vehicle_restored"}
        """
        log = await get_log_or_404(db, log_id)
        info = {"id": log.id, "type": log.type, "vehicle_id": log.vehicle_id, "vehicle_restored": False}

        async with atomic(db):
            await db.delete(log)
            await db.flush()
            if log.type == LogType.MAINTENANCE:
                info["vehicle_restored"] = await _release_from_shop(db, log.vehicle_id)

        logger.info(
            "%s log %s deleted (vehicle %s restored: %s)",
            info["type"].value, info["id"], info["vehicle_id"], info["vehicle_restored"]
        )
        return info

    @staticmethod
    async def get(db: AsyncSession, log_id: int) -> VehicleLog:
        return await get_log_or_404(db, log_id)

    @staticmethod
    async def list(
        db: AsyncSession,
        vehicle_id: Optional[int] = None,
        type: Optional[LogType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[VehicleLog]:
        """List logs, newest first."""
        stmt = select(VehicleLog)
        if vehicle_id:
            stmt = stmt.where(VehicleLog.vehicle_id == vehicle_id)
        if type:
            stmt = stmt.where(VehicleLog.type == type)
        if start_date:
            stmt = stmt.where(VehicleLog.date >= start_date)
        if end_date:
            stmt = stmt.where(VehicleLog.date <= end_date)
        stmt = stmt.order_by(VehicleLog.date.desc(), VehicleLog.id.desc()).execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return list(result.scalars().all())

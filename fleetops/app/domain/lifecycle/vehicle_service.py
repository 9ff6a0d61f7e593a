"""
Vehicle Service (Domain Logic).

Registration, edits and retirement. Status is never patched directly:
it moves through trips, maintenance logs and retirement only.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetops.app.core.exceptions import (
    ActiveTripConflictError,
    DuplicateKeyError,
    OdometerRegressionError,
    ResourceNotFoundError,
)
from fleetops.app.db.session import atomic
from fleetops.app.domain.lifecycle.queries import count_maintenance_logs, count_vehicle_trips, get_vehicle_or_404
from fleetops.app.domain.lifecycle.rules import OPEN_TRIP_STATUSES
from fleetops.app.models.fleet_enums import VehicleStatus, VehicleType
from fleetops.app.models.vehicle import Vehicle

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("license_plate", "model", "type", "max_load", "acquisition_cost", "odometer")


async def _ensure_plate_free(db: AsyncSession, license_plate: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Vehicle.id).where(Vehicle.license_plate == license_plate)
    if exclude_id is not None:
        stmt = stmt.where(Vehicle.id != exclude_id)
    existing = (await db.execute(stmt)).scalar_one_or_none()
    if existing is not None:
        raise DuplicateKeyError(
            "Vehicle with this license plate already exists",
            details={"license_plate": license_plate, "vehicle_id": existing},
        )


async def _ensure_no_open_trips(db: AsyncSession, vehicle: Vehicle, action: str) -> None:
    open_trips = await count_vehicle_trips(db, vehicle.id, OPEN_TRIP_STATUSES)
    if open_trips > 0:
        raise ActiveTripConflictError(
            f"Cannot {action} vehicle with active trips",
            details={"vehicle_id": vehicle.id, "open_trips": open_trips},
        )


class VehicleService:

    @staticmethod
    async def create(
        db: AsyncSession,
        license_plate: str,
        model: str,
        type: VehicleType,
        max_load: float,
        acquisition_cost: Optional[float] = None
    ) -> Vehicle:
        """
        Register a vehicle.

        New vehicles start Available, not retired, with a zero odometer.

        Raises:
            DuplicateKeyError: license plate already registered
        """
        await _ensure_plate_free(db, license_plate)

        vehicle = Vehicle(
            license_plate=license_plate,
            model=model,
            type=type,
            max_load=max_load,
            acquisition_cost=acquisition_cost or 0.0,
            status=VehicleStatus.AVAILABLE,
            odometer=0.0,
            is_retired=False,
        )
        try:
            async with atomic(db):
                db.add(vehicle)
        except IntegrityError:
            # Lost a race with a concurrent registration of the same plate
            raise DuplicateKeyError(
                "Vehicle with this license plate already exists",
                details={"license_plate": license_plate},
            )

        await db.refresh(vehicle)
        logger.info("Vehicle %s registered (plate=%s)", vehicle.id, vehicle.license_plate)
        return vehicle

    @staticmethod
    async def update(db: AsyncSession, vehicle_id: int, changes: dict) -> Vehicle:
        """
        Patch vehicle details.

        Args:
            db: Database session
            vehicle_id: Vehicle to update
            changes: Subset of PATCHABLE_FIELDS; None values are ignored

        Raises:
            DuplicateKeyError: new plate belongs to another vehicle
            OdometerRegressionError: odometer would go backwards
        """
        vehicle = await get_vehicle_or_404(db, vehicle_id)
        changes = {k: v for k, v in changes.items() if k in PATCHABLE_FIELDS and v is not None}

        plate = changes.get("license_plate")
        if plate and plate != vehicle.license_plate:
            await _ensure_plate_free(db, plate, exclude_id=vehicle.id)

        odometer = changes.get("odometer")
        if odometer is not None and odometer < vehicle.odometer:
            raise OdometerRegressionError(
                "Odometer reading cannot decrease",
                details={"current": vehicle.odometer, "requested": odometer},
            )

        if changes:
            try:
                async with atomic(db):
                    for field, value in changes.items():
                        setattr(vehicle, field, value)
            except IntegrityError:
                raise DuplicateKeyError(
                    "Vehicle with this license plate already exists",
                    details={"license_plate": plate},
                )
            await db.refresh(vehicle)
            logger.info("Vehicle %s updated: %s", vehicle.id, sorted(changes))

        return vehicle

    @staticmethod
    async def toggle_retirement(db: AsyncSession, vehicle_id: int) -> Vehicle:
        """
        Retire an in-service vehicle, or reactivate a retired one.

        Retiring sets Out of Service and is refused while the vehicle has
        Draft or Dispatched trips. Reactivating sets In Shop when a
        Maintenance log is still open, Available otherwise.
        """
        vehicle = await get_vehicle_or_404(db, vehicle_id)

        if vehicle.is_retired:
            in_shop = await count_maintenance_logs(db, vehicle.id) > 0
            async with atomic(db):
                vehicle.is_retired = False
                vehicle.status = VehicleStatus.IN_SHOP if in_shop else VehicleStatus.AVAILABLE
            logger.info("Vehicle %s reactivated (%s)", vehicle.id, vehicle.status.value)
        else:
            await _ensure_no_open_trips(db, vehicle, "retire")
            async with atomic(db):
                vehicle.is_retired = True
                vehicle.status = VehicleStatus.OUT_OF_SERVICE
            logger.info("Vehicle %s retired", vehicle.id)

        await db.refresh(vehicle)
        return vehicle

    @staticmethod
    async def delete(db: AsyncSession, vehicle_id: int) -> Vehicle:
        """
        Soft-delete a vehicle by retiring it.

        Vehicles are never hard-deleted: trips and logs keep referring to them.

        Raises:
            ActiveTripConflictError: vehicle has Draft or Dispatched trips
        """
        vehicle = await get_vehicle_or_404(db, vehicle_id)
        await _ensure_no_open_trips(db, vehicle, "delete")

        async with atomic(db):
            vehicle.is_retired = True
            vehicle.status = VehicleStatus.OUT_OF_SERVICE

        await db.refresh(vehicle)
        logger.info("Vehicle %s deleted (retired)", vehicle.id)
        return vehicle

    @staticmethod
    async def get(db: AsyncSession, vehicle_id: int) -> Vehicle:
        """Load a vehicle with its trips and logs."""
        result = await db.execute(
            select(Vehicle)
            .options(selectinload(Vehicle.trips), selectinload(Vehicle.logs))
            .where(Vehicle.id == vehicle_id)
            .execution_options(populate_existing=True)
        )
        vehicle = result.scalar_one_or_none()
        if not vehicle:
            raise ResourceNotFoundError("Vehicle", vehicle_id)
        return vehicle

    @staticmethod
    async def list(
        db: AsyncSession,
        status: Optional[VehicleStatus] = None,
        type: Optional[VehicleType] = None,
        is_retired: Optional[bool] = None
    ) -> List[Vehicle]:
        stmt = select(Vehicle)
        if status:
            stmt = stmt.where(Vehicle.status == status)
        if type:
            stmt = stmt.where(Vehicle.type == type)
        if is_retired is not None:
            stmt = stmt.where(Vehicle.is_retired == is_retired)
        stmt = stmt.order_by(Vehicle.id.asc()).execution_options(populate_existing=True)

        result = await db.execute(stmt)
        return list(result.scalars().all())

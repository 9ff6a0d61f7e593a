"""
Vehicle API Endpoints.

Registry of vehicles. Status moves only through trips, maintenance logs
and retirement; it cannot be patched directly.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.core.guards import FLEET_ROLES, require_role
from fleetops.app.db.session import get_db
from fleetops.app.domain.lifecycle.vehicle_service import VehicleService
from fleetops.app.models.fleet_enums import VehicleStatus, VehicleType
from fleetops.app.schemas.common import ApiResponse, ok
from fleetops.app.schemas.vehicle import (
    VehicleCreate,
    VehicleDetailResponse,
    VehicleResponse,
    VehicleUpdate,
)
from fleetops.app.services.audit import AuditAction, log_user_action

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.post("", response_model=ApiResponse[VehicleResponse], status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    request: Request,
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Register a vehicle. It starts Available with a zero odometer."""
    vehicle = await VehicleService.create(
        db,
        license_plate=vehicle_data.license_plate,
        model=vehicle_data.model,
        type=vehicle_data.type,
        max_load=vehicle_data.max_load,
        acquisition_cost=vehicle_data.acquisition_cost,
    )
    data = VehicleResponse.model_validate(vehicle)

    await log_user_action(
        db, current_user, AuditAction.VEHICLE_CREATED, "vehicle", vehicle.id,
        metadata={"license_plate": vehicle.license_plate, "max_load": vehicle.max_load},
        request=request,
    )
    return ok(data, "Vehicle created successfully")


@router.get("", response_model=ApiResponse[List[VehicleResponse]])
async def list_vehicles(
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    type: Optional[VehicleType] = Query(None),
    is_retired: Optional[bool] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    vehicles = await VehicleService.list(db, status=status_filter, type=type, is_retired=is_retired)
    return ok(
        [VehicleResponse.model_validate(v) for v in vehicles],
        "Vehicles retrieved successfully",
    )


@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleDetailResponse])
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Vehicle with its trips and logs."""
    vehicle = await VehicleService.get(db, vehicle_id)
    return ok(VehicleDetailResponse.model_validate(vehicle), "Vehicle retrieved successfully")


@router.patch("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def update_vehicle(
    vehicle_data: VehicleUpdate,
    request: Request,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    changes = vehicle_data.model_dump(exclude_unset=True)
    vehicle = await VehicleService.update(db, vehicle_id, changes)
    data = VehicleResponse.model_validate(vehicle)

    await log_user_action(
        db, current_user, AuditAction.VEHICLE_UPDATED, "vehicle", vehicle.id,
        metadata={"fields": sorted(changes)},
        request=request,
    )
    return ok(data, "Vehicle updated successfully")


@router.patch("/{vehicle_id}/retire", response_model=ApiResponse[VehicleResponse])
async def toggle_vehicle_retirement(
    request: Request,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Retire an in-service vehicle, or reactivate a retired one."""
    vehicle = await VehicleService.toggle_retirement(db, vehicle_id)
    data = VehicleResponse.model_validate(vehicle)

    action = AuditAction.VEHICLE_RETIRED if vehicle.is_retired else AuditAction.VEHICLE_REACTIVATED
    await log_user_action(db, current_user, action, "vehicle", vehicle.id, request=request)

    message = "Vehicle retired successfully" if vehicle.is_retired else "Vehicle reactivated successfully"
    return ok(data, message)


@router.delete("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def delete_vehicle(
    request: Request,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete: the vehicle is retired and kept for history."""
    vehicle = await VehicleService.delete(db, vehicle_id)
    data = VehicleResponse.model_validate(vehicle)

    await log_user_action(db, current_user, AuditAction.VEHICLE_DELETED, "vehicle", vehicle.id, request=request)
    return ok(data, "Vehicle deleted successfully")

"""
Vehicle Log API Endpoints.

Fuel and maintenance records. Maintenance logs move their vehicle In Shop.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.core.guards import FLEET_ROLES, require_role
from fleetops.app.db.session import get_db
from fleetops.app.domain.lifecycle.log_service import LogService
from fleetops.app.models.fleet_enums import LogType
from fleetops.app.schemas.analytics import FuelEfficiency
from fleetops.app.schemas.common import ApiResponse, ok
from fleetops.app.schemas.log import (
    LogCreate,
    LogDeleteResponse,
    LogListResponse,
    LogResponse,
    LogUpdate,
)
from fleetops.app.services.analytics import ExpenseService
from fleetops.app.services.audit import AuditAction, log_user_action

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.post("", response_model=ApiResponse[LogResponse], status_code=status.HTTP_201_CREATED)
async def create_log(
    log_data: LogCreate,
    request: Request,
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a fuel or maintenance log.

    Fuel logs need positive liters. A maintenance log sends the vehicle
    to the shop and is refused while the vehicle is on a Dispatched trip.
    """
    log = await LogService.create(
        db,
        vehicle_id=log_data.vehicle_id,
        type=log_data.type,
        cost=log_data.cost,
        liters=log_data.liters,
    )
    data = LogResponse.model_validate(log)

    await log_user_action(
        db, current_user, AuditAction.LOG_CREATED, "log", log.id,
        metadata={"vehicle_id": log.vehicle_id, "type": log.type.value, "cost": log.cost},
        request=request,
    )
    return ok(data, f"{log.type.value} log created successfully")


@router.get("", response_model=ApiResponse[LogListResponse])
async def list_logs(
    vehicle_id: Optional[int] = Query(None),
    type: Optional[LogType] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Logs, newest first, with cost totals."""
    logs = await LogService.list(db, vehicle_id=vehicle_id, type=type, start_date=start_date, end_date=end_date)
    data = LogListResponse(
        logs=[LogResponse.model_validate(log) for log in logs],
        summary=ExpenseService.summarize_logs(logs),
    )
    return ok(data, "Logs retrieved successfully")


@router.get("/fuel/efficiency", response_model=ApiResponse[FuelEfficiency])
async def get_fuel_efficiency(
    vehicle_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await ExpenseService.get_fuel_efficiency(
        db, vehicle_id=vehicle_id, start_date=start_date, end_date=end_date
    )
    return ok(data, "Fuel efficiency retrieved successfully")


@router.get("/{log_id}", response_model=ApiResponse[LogResponse])
async def get_log(
    log_id: int = Path(..., description="Log ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    log = await LogService.get(db, log_id)
    return ok(LogResponse.model_validate(log), "Log retrieved successfully")


@router.patch("/{log_id}", response_model=ApiResponse[LogResponse])
async def update_log(
    log_data: LogUpdate,
    request: Request,
    log_id: int = Path(..., description="Log ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    log = await LogService.update(db, log_id, type=log_data.type, cost=log_data.cost, liters=log_data.liters)
    data = LogResponse.model_validate(log)

    await log_user_action(
        db, current_user, AuditAction.LOG_UPDATED, "log", log.id,
        metadata={"fields": sorted(log_data.model_dump(exclude_unset=True))},
        request=request,
    )
    return ok(data, "Log updated successfully")


@router.delete("/{log_id}", response_model=ApiResponse[LogDeleteResponse])
async def delete_log(
    request: Request,
    log_id: int = Path(..., description="Log ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Delete a log. Removing a vehicle's last maintenance log brings it back to Available."""
    info = await LogService.delete(db, log_id)

    await log_user_action(
        db, current_user, AuditAction.LOG_DELETED, "log", info["id"],
        metadata={"vehicle_id": info["vehicle_id"], "vehicle_restored": info["vehicle_restored"]},
        request=request,
    )
    return ok(LogDeleteResponse(**info), "Log deleted successfully")

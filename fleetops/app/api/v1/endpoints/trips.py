"""
Trip API Endpoints.

Draft -> Dispatched -> Completed, with cancellation from Draft or
Dispatched. Each transition updates the vehicle and driver in the same
transaction.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.core.guards import FLEET_ROLES, TRIP_CREATE_ROLES, TRIP_OPERATE_ROLES, require_role
from fleetops.app.db.session import get_db
from fleetops.app.domain.lifecycle.trip_service import TripService
from fleetops.app.models.fleet_enums import TripStatus
from fleetops.app.schemas.common import ApiResponse, DeletedResponse, ok
from fleetops.app.schemas.trip import TripComplete, TripCreate, TripDispatch, TripResponse, TripUpdate
from fleetops.app.services.audit import AuditAction, log_user_action

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("", response_model=ApiResponse[TripResponse], status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    request: Request,
    current_user: dict = Depends(require_role(TRIP_CREATE_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a Draft trip.

    The vehicle must be Available and able to carry the cargo; the driver
    must hold a valid license and not be suspended.
    """
    trip = await TripService.create(
        db,
        vehicle_id=trip_data.vehicle_id,
        driver_id=trip_data.driver_id,
        cargo_weight=trip_data.cargo_weight,
    )
    data = TripResponse.model_validate(trip)

    await log_user_action(
        db, current_user, AuditAction.TRIP_CREATED, "trip", trip.id,
        metadata={"vehicle_id": trip.vehicle_id, "driver_id": trip.driver_id, "cargo_weight": trip.cargo_weight},
        request=request,
    )
    return ok(data, "Trip created successfully")


@router.get("", response_model=ApiResponse[List[TripResponse]])
async def list_trips(
    status_filter: Optional[TripStatus] = Query(None, alias="status"),
    vehicle_id: Optional[int] = Query(None),
    driver_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    trips = await TripService.list(db, status=status_filter, vehicle_id=vehicle_id, driver_id=driver_id)
    return ok([TripResponse.model_validate(t) for t in trips], "Trips retrieved successfully")


@router.get("/{trip_id}", response_model=ApiResponse[TripResponse])
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripService.get(db, trip_id)
    return ok(TripResponse.model_validate(trip), "Trip retrieved successfully")


@router.patch("/{trip_id}", response_model=ApiResponse[TripResponse])
async def update_trip(
    trip_data: TripUpdate,
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(TRIP_OPERATE_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Reassign or resize a Draft trip."""
    trip = await TripService.update(
        db,
        trip_id,
        cargo_weight=trip_data.cargo_weight,
        vehicle_id=trip_data.vehicle_id,
        driver_id=trip_data.driver_id,
    )
    data = TripResponse.model_validate(trip)

    await log_user_action(
        db, current_user, AuditAction.TRIP_UPDATED, "trip", trip.id,
        metadata={"fields": sorted(trip_data.model_dump(exclude_unset=True))},
        request=request,
    )
    return ok(data, "Trip updated successfully")


@router.patch("/{trip_id}/dispatch", response_model=ApiResponse[TripResponse])
async def dispatch_trip(
    dispatch_data: TripDispatch,
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(TRIP_OPERATE_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Dispatch a Draft trip: vehicle On Trip, driver On Duty."""
    trip = await TripService.dispatch(db, trip_id, start_odo=dispatch_data.start_odo)
    data = TripResponse.model_validate(trip)

    await log_user_action(
        db, current_user, AuditAction.TRIP_DISPATCHED, "trip", trip.id,
        metadata={"start_odo": trip.start_odo},
        request=request,
    )
    return ok(data, "Trip dispatched successfully")


@router.patch("/{trip_id}/complete", response_model=ApiResponse[TripResponse])
async def complete_trip(
    complete_data: TripComplete,
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(TRIP_OPERATE_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Complete a Dispatched trip: vehicle Available with the new odometer, driver Off Duty."""
    trip = await TripService.complete(
        db, trip_id, end_odo=complete_data.end_odo, revenue=complete_data.revenue
    )
    data = TripResponse.model_validate(trip)

    await log_user_action(
        db, current_user, AuditAction.TRIP_COMPLETED, "trip", trip.id,
        metadata={"end_odo": trip.end_odo, "revenue": trip.revenue},
        request=request,
    )
    return ok(data, "Trip completed successfully")


@router.patch("/{trip_id}/cancel", response_model=ApiResponse[TripResponse])
async def cancel_trip(
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripService.cancel(db, trip_id)
    data = TripResponse.model_validate(trip)

    await log_user_action(db, current_user, AuditAction.TRIP_CANCELLED, "trip", trip.id, request=request)
    return ok(data, "Trip cancelled successfully")


@router.delete("/{trip_id}", response_model=ApiResponse[DeletedResponse])
async def delete_trip(
    request: Request,
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(FLEET_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Hard-delete a Draft or Cancelled trip."""
    deleted_id = await TripService.delete(db, trip_id)

    await log_user_action(db, current_user, AuditAction.TRIP_DELETED, "trip", deleted_id, request=request)
    return ok(DeletedResponse(id=deleted_id), "Trip deleted successfully")

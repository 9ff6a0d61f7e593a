"""
Driver API Endpoints.

Onboarding, compliance edits, suspension and the license renewal report.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.core.guards import ADMIN_ONLY, RENEWAL_ROLES, SAFETY_ROLES, require_role
from fleetops.app.db.session import get_db
from fleetops.app.domain.lifecycle.driver_service import DriverService
from fleetops.app.models.fleet_enums import DriverStatus
from fleetops.app.schemas.common import ApiResponse, DeletedResponse, ok
from fleetops.app.schemas.driver import (
    DriverCreate,
    DriverRenewalResponse,
    DriverResponse,
    DriverStatusUpdate,
    DriverUpdate,
)
from fleetops.app.services.audit import AuditAction, log_user_action

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.post("", response_model=ApiResponse[DriverResponse], status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    request: Request,
    current_user: dict = Depends(require_role(SAFETY_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Onboard a driver (Off Duty, safety score 100)."""
    driver = await DriverService.create(db, name=driver_data.name, license_expiry=driver_data.license_expiry)
    data = DriverResponse.from_driver(driver)

    await log_user_action(
        db, current_user, AuditAction.DRIVER_CREATED, "driver", driver.id,
        metadata={"name": driver.name, "license_expiry": driver.license_expiry.isoformat()},
        request=request,
    )
    return ok(data, "Driver created successfully")


@router.get("", response_model=ApiResponse[List[DriverResponse]])
async def list_drivers(
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    suspended: Optional[bool] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    drivers = await DriverService.list(db, status=status_filter, suspended=suspended)
    return ok([DriverResponse.from_driver(d) for d in drivers], "Drivers retrieved successfully")


@router.get("/renewals", response_model=ApiResponse[List[DriverRenewalResponse]])
async def list_license_renewals(
    window_days: Optional[int] = Query(None, ge=1, le=365, description="Defaults to the configured window"),
    current_user: dict = Depends(require_role(RENEWAL_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Drivers whose license expires within the renewal window, soonest first."""
    pairs = await DriverService.needing_renewal(db, window_days=window_days)
    data = [
        DriverRenewalResponse(
            id=driver.id,
            name=driver.name,
            license_expiry=driver.license_expiry,
            status=driver.status,
            days_until_expiry=days,
        )
        for driver, days in pairs
    ]
    return ok(data, f"{len(data)} driver(s) need license renewal")


@router.get("/{driver_id}", response_model=ApiResponse[DriverResponse])
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    driver = await DriverService.get(db, driver_id)
    return ok(DriverResponse.from_driver(driver), "Driver retrieved successfully")


@router.patch("/{driver_id}", response_model=ApiResponse[DriverResponse])
async def update_driver(
    driver_data: DriverUpdate,
    request: Request,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_role(SAFETY_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    driver = await DriverService.update(
        db,
        driver_id,
        name=driver_data.name,
        license_expiry=driver_data.license_expiry,
        safety_score=driver_data.safety_score,
    )
    data = DriverResponse.from_driver(driver)

    await log_user_action(
        db, current_user, AuditAction.DRIVER_UPDATED, "driver", driver.id,
        metadata={"fields": sorted(driver_data.model_dump(exclude_unset=True))},
        request=request,
    )
    return ok(data, "Driver updated successfully")


@router.patch("/{driver_id}/status", response_model=ApiResponse[DriverResponse])
async def change_driver_status(
    status_data: DriverStatusUpdate,
    request: Request,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_role(SAFETY_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Suspend, reinstate or otherwise set a driver's status."""
    driver = await DriverService.change_status(db, driver_id, status_data.status)
    data = DriverResponse.from_driver(driver)

    await log_user_action(
        db, current_user, AuditAction.DRIVER_STATUS_CHANGED, "driver", driver.id,
        metadata={"status": driver.status.value},
        request=request,
    )
    return ok(data, "Driver status updated successfully")


@router.delete("/{driver_id}", response_model=ApiResponse[DeletedResponse])
async def delete_driver(
    request: Request,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_role(ADMIN_ONLY)),
    db: AsyncSession = Depends(get_db)
):
    """Remove a driver. Their past trips are kept without a driver reference."""
    deleted_id = await DriverService.delete(db, driver_id)

    await log_user_action(db, current_user, AuditAction.DRIVER_DELETED, "driver", deleted_id, request=request)
    return ok(DeletedResponse(id=deleted_id), "Driver deleted successfully")

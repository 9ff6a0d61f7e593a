"""
Expense API Endpoints.

Read-only cost reports over fuel and maintenance logs.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.db.session import get_db
from fleetops.app.schemas.analytics import (
    DriverExpenseSummary,
    ExpenseSummary,
    VehicleExpense,
    VehicleExpenseDetail,
)
from fleetops.app.schemas.common import ApiResponse, ok
from fleetops.app.services.analytics import ExpenseService

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.get("", response_model=ApiResponse[List[VehicleExpense]])
async def list_expenses(
    vehicle_id: Optional[int] = Query(None),
    driver_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Fuel and maintenance spend per vehicle."""
    data = await ExpenseService.list_vehicle_expenses(
        db, vehicle_id=vehicle_id, driver_id=driver_id, start_date=start_date, end_date=end_date
    )
    return ok(data, "Expenses retrieved successfully")


@router.get("/summary", response_model=ApiResponse[ExpenseSummary])
async def get_expense_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await ExpenseService.get_summary(db, month=month, year=year)
    return ok(data, "Expense summary retrieved successfully")


@router.get("/vehicle/{vehicle_id}", response_model=ApiResponse[VehicleExpenseDetail])
async def get_vehicle_expenses(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await ExpenseService.get_vehicle_expenses(db, vehicle_id, start_date=start_date, end_date=end_date)
    return ok(data, "Vehicle expenses retrieved successfully")


@router.get("/driver/{driver_id}", response_model=ApiResponse[DriverExpenseSummary])
async def get_driver_expenses(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await ExpenseService.get_driver_expenses(db, driver_id)
    return ok(data, "Driver expenses retrieved successfully")

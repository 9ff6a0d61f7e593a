"""
Analytics API Endpoints.

Read-only dashboard data for all authenticated roles. Figures are
recomputed from trips and logs on every request.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from fleetops.app.core.dependencies import get_current_user
from fleetops.app.db.session import get_db
from fleetops.app.schemas.analytics import (
    DriverPerformance,
    FinancialSummary,
    OverallAnalytics,
    TimeSeriesPoint,
    UtilizationSlice,
    VehicleCostStats,
)
from fleetops.app.schemas.common import ApiResponse, ok
from fleetops.app.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/overall", response_model=ApiResponse[OverallAnalytics])
async def get_overall_analytics(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revenue, costs, net profit and ROI over completed trips."""
    data = await AnalyticsService.get_overall(db, month=month, year=year)
    return ok(data, "Overall analytics retrieved successfully")


@router.get("/timeseries", response_model=ApiResponse[List[TimeSeriesPoint]])
async def get_time_series(
    time_range: str = Query("month", description="week, month or year"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await AnalyticsService.get_time_series(db, time_range=time_range)
    return ok(data, "Time series retrieved successfully")


@router.get("/vehicles", response_model=ApiResponse[List[VehicleCostStats]])
async def get_vehicle_costs(
    limit: int = Query(5, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Costliest vehicles first."""
    data = await AnalyticsService.get_vehicle_costs(db, limit=limit)
    return ok(data, "Vehicle analytics retrieved successfully")


@router.get("/drivers", response_model=ApiResponse[List[DriverPerformance]])
async def get_driver_performance(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await AnalyticsService.get_driver_performance(db)
    return ok(data, "Driver analytics retrieved successfully")


@router.get("/financial", response_model=ApiResponse[FinancialSummary])
async def get_financial_summary(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await AnalyticsService.get_financial_summary(db)
    return ok(data, "Financial summary retrieved successfully")


@router.get("/utilization", response_model=ApiResponse[List[UtilizationSlice]])
async def get_utilization(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    data = await AnalyticsService.get_utilization(db)
    return ok(data, "Utilization retrieved successfully")

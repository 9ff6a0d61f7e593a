"""
Analytics Service.

Handles data aggregation for dashboards and expense reports.
Focused on READ-ONLY operations; every figure is recomputed per request.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.exceptions import ValidationFailedError
from fleetops.app.domain.analytics import metrics
from fleetops.app.domain.lifecycle.queries import get_driver_or_404, get_vehicle_or_404
from fleetops.app.models.driver import Driver
from fleetops.app.models.fleet_enums import LogType, TripStatus
from fleetops.app.models.trip import Trip
from fleetops.app.models.vehicle import Vehicle
from fleetops.app.models.vehicle_log import VehicleLog
from fleetops.app.schemas.analytics import (
    DriverExpenseSummary,
    DriverPerformance,
    ExpenseSummary,
    FinancialSummary,
    FuelEfficiency,
    LogSummary,
    OverallAnalytics,
    TimeSeriesPoint,
    UtilizationSlice,
    VehicleCostStats,
    VehicleExpense,
    VehicleExpenseDetail,
)

DateRange = Tuple[Optional[datetime], Optional[datetime]]


def resolve_period(month: Optional[int], year: Optional[int]) -> Tuple[str, DateRange]:
    """Turn optional month/year filters into a label and a half-open date range."""
    if month and year:
        if not 1 <= month <= 12:
            raise ValidationFailedError("Month must be between 1 and 12", details={"month": month})
        return f"{month}/{year}", metrics.month_bounds(month, year)
    return "All Time", (None, None)


def _trip_window(start: Optional[datetime], end: Optional[datetime], end_inclusive: bool = False):
    clauses = [Trip.status == TripStatus.COMPLETED]
    if start:
        clauses.append(Trip.completed_at >= start)
    if end:
        clauses.append(Trip.completed_at <= end if end_inclusive else Trip.completed_at < end)
    return and_(*clauses)


def _log_window(log_type: LogType, start: Optional[datetime], end: Optional[datetime], end_inclusive: bool = False):
    clauses = [VehicleLog.type == log_type]
    if start:
        clauses.append(VehicleLog.date >= start)
    if end:
        clauses.append(VehicleLog.date <= end if end_inclusive else VehicleLog.date < end)
    return and_(*clauses)


async def _completed_revenues(db: AsyncSession, start=None, end=None, **filters) -> List[Tuple[int, Optional[float]]]:
    stmt = select(Trip.vehicle_id, Trip.revenue).where(_trip_window(start, end))
    if filters.get("vehicle_id"):
        stmt = stmt.where(Trip.vehicle_id == filters["vehicle_id"])
    if filters.get("driver_id"):
        stmt = stmt.where(Trip.driver_id == filters["driver_id"])
    return list((await db.execute(stmt)).all())


async def _log_costs(db: AsyncSession, log_type: LogType, start=None, end=None, vehicle_ids=None) -> List[float]:
    stmt = select(VehicleLog.cost).where(_log_window(log_type, start, end))
    if vehicle_ids is not None:
        stmt = stmt.where(VehicleLog.vehicle_id.in_(list(vehicle_ids)))
    return list((await db.execute(stmt)).scalars().all())


class AnalyticsService:

    @staticmethod
    async def get_overall(
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None
    ) -> OverallAnalytics:
        """Dashboard summary, optionally restricted to one calendar month."""
        period, (start, end) = resolve_period(month, year)

        trips = await _completed_revenues(db, start, end)
        fuel = await _log_costs(db, LogType.FUEL, start, end)
        maintenance = await _log_costs(db, LogType.MAINTENANCE, start, end)

        summary = metrics.summarize((r for _, r in trips), fuel, maintenance)
        return OverallAnalytics(
            period=period,
            unique_vehicles=len({vehicle_id for vehicle_id, _ in trips}),
            **summary
        )

    @staticmethod
    async def get_time_series(db: AsyncSession, time_range: str = "month") -> List[TimeSeriesPoint]:
        """Revenue and cost trend bucketed by week of month, month or year."""
        if time_range not in metrics.TIME_RANGES:
            raise ValidationFailedError(
                f"time_range must be one of: {', '.join(metrics.TIME_RANGES)}",
                details={"time_range": time_range},
            )

        trips = (await db.execute(
            select(Trip.completed_at, Trip.revenue)
            .where(_trip_window(None, None), Trip.completed_at.is_not(None))
            .order_by(Trip.completed_at.asc())
        )).all()
        fuel = (await db.execute(
            select(VehicleLog.date, VehicleLog.cost)
            .where(VehicleLog.type == LogType.FUEL)
            .order_by(VehicleLog.date.asc())
        )).all()
        maintenance = (await db.execute(
            select(VehicleLog.date, VehicleLog.cost)
            .where(VehicleLog.type == LogType.MAINTENANCE)
            .order_by(VehicleLog.date.asc())
        )).all()

        series = metrics.build_time_series(
            [tuple(row) for row in trips],
            [tuple(row) for row in fuel],
            [tuple(row) for row in maintenance],
            time_range,
        )
        return [TimeSeriesPoint(**point) for point in series]

    @staticmethod
    async def get_vehicle_costs(db: AsyncSession, limit: int = 5) -> List[VehicleCostStats]:
        """Costliest vehicles first, with revenue from their completed trips."""
        fuel_sq = (
            select(VehicleLog.vehicle_id, func.sum(VehicleLog.cost).label("fuel_cost"))
            .where(VehicleLog.type == LogType.FUEL)
            .group_by(VehicleLog.vehicle_id)
            .subquery()
        )
        maint_sq = (
            select(VehicleLog.vehicle_id, func.sum(VehicleLog.cost).label("maintenance_cost"))
            .where(VehicleLog.type == LogType.MAINTENANCE)
            .group_by(VehicleLog.vehicle_id)
            .subquery()
        )
        trips_sq = (
            select(
                Trip.vehicle_id,
                func.count(Trip.id).label("trip_count"),
                func.coalesce(func.sum(Trip.revenue), 0).label("revenue"),
            )
            .where(Trip.status == TripStatus.COMPLETED)
            .group_by(Trip.vehicle_id)
            .subquery()
        )

        stmt = (
            select(
                Vehicle.id,
                Vehicle.license_plate,
                Vehicle.model,
                func.coalesce(fuel_sq.c.fuel_cost, 0).label("fuel_cost"),
                func.coalesce(maint_sq.c.maintenance_cost, 0).label("maintenance_cost"),
                func.coalesce(trips_sq.c.trip_count, 0).label("trip_count"),
                func.coalesce(trips_sq.c.revenue, 0).label("revenue"),
            )
            .outerjoin(fuel_sq, fuel_sq.c.vehicle_id == Vehicle.id)
            .outerjoin(maint_sq, maint_sq.c.vehicle_id == Vehicle.id)
            .outerjoin(trips_sq, trips_sq.c.vehicle_id == Vehicle.id)
        )

        data = []
        for row in (await db.execute(stmt)).all():
            total_cost = float(row.fuel_cost) + float(row.maintenance_cost)
            data.append(VehicleCostStats(
                vehicle_id=row.id,
                license_plate=row.license_plate,
                model=row.model,
                fuel_cost=row.fuel_cost,
                maintenance_cost=row.maintenance_cost,
                total_cost=total_cost,
                trip_count=row.trip_count,
                revenue=row.revenue,
                net_profit=float(row.revenue) - total_cost,
            ))

        data.sort(key=lambda v: (-v.total_cost, v.vehicle_id))
        return data[:limit]

    @staticmethod
    async def get_driver_performance(db: AsyncSession) -> List[DriverPerformance]:
        """Completed trips and revenue per driver."""
        trips_sq = (
            select(
                Trip.driver_id,
                func.count(Trip.id).label("trip_count"),
                func.coalesce(func.sum(Trip.revenue), 0).label("revenue"),
            )
            .where(Trip.status == TripStatus.COMPLETED)
            .group_by(Trip.driver_id)
            .subquery()
        )
        stmt = (
            select(
                Driver,
                func.coalesce(trips_sq.c.trip_count, 0).label("trip_count"),
                func.coalesce(trips_sq.c.revenue, 0).label("revenue"),
            )
            .outerjoin(trips_sq, trips_sq.c.driver_id == Driver.id)
            .order_by(Driver.id.asc())
        )

        data = []
        for driver, trip_count, revenue in (await db.execute(stmt)).all():
            data.append(DriverPerformance(
                driver_id=driver.id,
                name=driver.name,
                trip_count=trip_count,
                total_revenue=revenue,
                average_revenue_per_trip=metrics.safe_ratio(float(revenue), trip_count),
                safety_score=driver.safety_score or 0,
                status=driver.status.value,
            ))
        return data

    @staticmethod
    async def get_financial_summary(db: AsyncSession) -> FinancialSummary:
        trips = await _completed_revenues(db)
        fuel = await _log_costs(db, LogType.FUEL)
        maintenance = await _log_costs(db, LogType.MAINTENANCE)

        summary = metrics.summarize((r for _, r in trips), fuel, maintenance)
        return FinancialSummary(
            total_revenue=summary["total_revenue"],
            total_fuel_cost=summary["total_fuel_cost"],
            total_maintenance_cost=summary["total_maintenance_cost"],
            total_expense=summary["total_expense"],
            net_profit=summary["net_profit"],
            profit_margin=summary["roi"],
        )

    @staticmethod
    async def get_utilization(db: AsyncSession) -> List[UtilizationSlice]:
        """Vehicles with at least one completed trip vs vehicles with none."""
        completed = (
            select(Trip.vehicle_id, func.count(Trip.id).label("completed"))
            .where(Trip.status == TripStatus.COMPLETED)
            .group_by(Trip.vehicle_id)
            .subquery()
        )
        counts = (await db.execute(
            select(func.coalesce(completed.c.completed, 0))
            .select_from(Vehicle)
            .outerjoin(completed, completed.c.vehicle_id == Vehicle.id)
        )).scalars().all()

        split = metrics.split_utilization(counts)
        return [
            UtilizationSlice(name="Utilized", value=split["utilized"], color="#10b981"),
            UtilizationSlice(name="Idle", value=split["idle"], color="#ef4444"),
        ]


class ExpenseService:

    @staticmethod
    async def list_vehicle_expenses(
        db: AsyncSession,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> List[VehicleExpense]:
        """
        Expense lines per vehicle that has logs or completed trips.

        Log costs honour the date range; trip counts honour the vehicle/driver filters.
        """
        trips = await _completed_revenues(db, vehicle_id=vehicle_id, driver_id=driver_id)

        log_stmt = select(VehicleLog.vehicle_id, VehicleLog.type, VehicleLog.cost)
        if vehicle_id:
            log_stmt = log_stmt.where(VehicleLog.vehicle_id == vehicle_id)
        if start_date:
            log_stmt = log_stmt.where(VehicleLog.date >= start_date)
        if end_date:
            log_stmt = log_stmt.where(VehicleLog.date <= end_date)
        logs = (await db.execute(log_stmt)).all()

        lines = {}

        def line(vid: int) -> dict:
            if vid not in lines:
                lines[vid] = {"fuel_cost": 0.0, "maintenance_cost": 0.0, "trips": 0}
            return lines[vid]

        for vid, log_type, cost in logs:
            key = "fuel_cost" if log_type == LogType.FUEL else "maintenance_cost"
            line(vid)[key] += cost
        for vid, _revenue in trips:
            line(vid)["trips"] += 1

        if not lines:
            return []

        vehicles = {
            v.id: v for v in (await db.execute(select(Vehicle).where(Vehicle.id.in_(list(lines))))).scalars().all()
        }
        return [
            VehicleExpense(
                vehicle_id=vid,
                license_plate=vehicles[vid].license_plate,
                model=vehicles[vid].model,
                fuel_cost=entry["fuel_cost"],
                maintenance_cost=entry["maintenance_cost"],
                total_expense=entry["fuel_cost"] + entry["maintenance_cost"],
                trips=entry["trips"],
            )
            for vid, entry in sorted(lines.items())
        ]

    @staticmethod
    async def get_vehicle_expenses(
        db: AsyncSession,
        vehicle_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> VehicleExpenseDetail:
        """Costs of one vehicle with cost per km over its lifetime odometer."""
        vehicle = await get_vehicle_or_404(db, vehicle_id)

        fuel = (await db.execute(
            select(VehicleLog.cost).where(
                VehicleLog.vehicle_id == vehicle.id,
                _log_window(LogType.FUEL, start_date, end_date, end_inclusive=True)
            )
        )).scalars().all()
        maintenance = (await db.execute(
            select(VehicleLog.cost).where(
                VehicleLog.vehicle_id == vehicle.id,
                _log_window(LogType.MAINTENANCE, start_date, end_date, end_inclusive=True)
            )
        )).scalars().all()
        trip_count = (await db.execute(
            select(func.count(Trip.id)).where(
                Trip.vehicle_id == vehicle.id,
                Trip.status == TripStatus.COMPLETED
            )
        )).scalar() or 0

        fuel_cost = sum(fuel)
        maintenance_cost = sum(maintenance)
        total = fuel_cost + maintenance_cost
        return VehicleExpenseDetail(
            vehicle_id=vehicle.id,
            license_plate=vehicle.license_plate,
            model=vehicle.model,
            odometer=vehicle.odometer,
            fuel_cost=fuel_cost,
            maintenance_cost=maintenance_cost,
            total_expense=total,
            trip_count=trip_count,
            cost_per_km=metrics.safe_ratio(total, vehicle.odometer),
        )

    @staticmethod
    async def get_driver_expenses(db: AsyncSession, driver_id: int) -> DriverExpenseSummary:
        """
        Revenue from a driver's completed trips against the running costs
        of every vehicle they drove.
        """
        driver = await get_driver_or_404(db, driver_id)
        trips = await _completed_revenues(db, driver_id=driver.id)

        vehicle_ids = {vid for vid, _ in trips}
        fuel_cost = maintenance_cost = 0.0
        if vehicle_ids:
            fuel_cost = sum(await _log_costs(db, LogType.FUEL, vehicle_ids=vehicle_ids))
            maintenance_cost = sum(await _log_costs(db, LogType.MAINTENANCE, vehicle_ids=vehicle_ids))

        total_revenue = sum(r or 0.0 for _, r in trips)
        return DriverExpenseSummary(
            driver_id=driver.id,
            name=driver.name,
            total_trips=len(trips),
            total_revenue=total_revenue,
            fuel_cost=fuel_cost,
            maintenance_cost=maintenance_cost,
            net_profit=total_revenue - (fuel_cost + maintenance_cost),
        )

    @staticmethod
    async def get_summary(
        db: AsyncSession,
        month: Optional[int] = None,
        year: Optional[int] = None
    ) -> ExpenseSummary:
        period, (start, end) = resolve_period(month, year)

        trips = await _completed_revenues(db, start, end)
        fuel = await _log_costs(db, LogType.FUEL, start, end)
        maintenance = await _log_costs(db, LogType.MAINTENANCE, start, end)

        summary = metrics.summarize((r for _, r in trips), fuel, maintenance)
        return ExpenseSummary(
            period=period,
            total_fuel_cost=summary["total_fuel_cost"],
            total_maintenance_cost=summary["total_maintenance_cost"],
            total_expense=summary["total_expense"],
            total_revenue=summary["total_revenue"],
            net_profit=summary["net_profit"],
            trip_count=summary["total_trips"],
        )

    @staticmethod
    def summarize_logs(logs: List[VehicleLog]) -> LogSummary:
        """Totals shown alongside a log listing."""
        fuel = [log for log in logs if log.type == LogType.FUEL]
        maintenance = [log for log in logs if log.type == LogType.MAINTENANCE]

        fuel_cost = sum(log.cost for log in fuel)
        fuel_liters = sum(log.liters or 0.0 for log in fuel)
        maintenance_cost = sum(log.cost for log in maintenance)
        return LogSummary(
            total_logs=len(logs),
            fuel_logs=len(fuel),
            maintenance_logs=len(maintenance),
            total_cost=round(fuel_cost + maintenance_cost, 2),
            fuel_cost=round(fuel_cost, 2),
            fuel_liters=round(fuel_liters, 2),
            maintenance_cost=round(maintenance_cost, 2),
            cost_per_liter=metrics.safe_ratio(fuel_cost, fuel_liters),
        )

    @staticmethod
    async def get_fuel_efficiency(
        db: AsyncSession,
        vehicle_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> FuelEfficiency:
        stmt = select(VehicleLog.cost, VehicleLog.liters).where(
            _log_window(LogType.FUEL, start_date, end_date, end_inclusive=True)
        )
        if vehicle_id:
            stmt = stmt.where(VehicleLog.vehicle_id == vehicle_id)
        rows = (await db.execute(stmt)).all()

        total_cost = sum(cost for cost, _ in rows)
        total_liters = sum(liters or 0.0 for _, liters in rows)
        return FuelEfficiency(
            total_fuel_cost=round(total_cost, 2),
            total_liters=round(total_liters, 2),
            average_cost_per_liter=metrics.safe_ratio(total_cost, total_liters),
            total_entries=len(rows),
            vehicle_id=vehicle_id,
        )

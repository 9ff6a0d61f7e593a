"""
Dashboard analytics and expense report tests.

One completed trip (revenue 1000) on VAN-05 plus a fuel log (200 for 100 L)
and a maintenance log (100). Dates are pinned so month filters are stable.
"""

from datetime import datetime

import pytest
from sqlalchemy import update

from fleetops.app.core.exceptions import ResourceNotFoundError, ValidationFailedError
from fleetops.app.domain.lifecycle.log_service import LogService
from fleetops.app.domain.lifecycle.trip_service import TripService
from fleetops.app.domain.lifecycle.vehicle_service import VehicleService
from fleetops.app.models.fleet_enums import LogType, VehicleType
from fleetops.app.models.trip import Trip
from fleetops.app.models.vehicle_log import VehicleLog
from fleetops.app.services.analytics import AnalyticsService, ExpenseService, resolve_period


@pytest.fixture
async def fleet_history(db_session, vehicle, driver):
    bike = await VehicleService.create(
        db_session, license_plate="BIK-02", model="Honda CB", type=VehicleType.BIKE, max_load=40
    )

    trip = await TripService.create(db_session, vehicle.id, driver.id, cargo_weight=300)
    await TripService.dispatch(db_session, trip.id, start_odo=0)
    await TripService.complete(db_session, trip.id, end_odo=100, revenue=1000)

    fuel = await LogService.create(db_session, vehicle.id, LogType.FUEL, cost=200.0, liters=100.0)
    repair = await LogService.create(db_session, vehicle.id, LogType.MAINTENANCE, cost=100.0)

    await db_session.execute(update(Trip).where(Trip.id == trip.id).values(completed_at=datetime(2025, 3, 10, 15, 0)))
    await db_session.execute(update(VehicleLog).where(VehicleLog.id == fuel.id).values(date=datetime(2025, 3, 12)))
    await db_session.execute(update(VehicleLog).where(VehicleLog.id == repair.id).values(date=datetime(2025, 4, 2)))
    await db_session.commit()

    return {"van_id": vehicle.id, "bike_id": bike.id, "driver_id": driver.id}


# --- Dashboard ---

@pytest.mark.asyncio
async def test_overall_all_time(db_session, fleet_history):
    overall = await AnalyticsService.get_overall(db_session)

    assert overall.period == "All Time"
    assert overall.total_trips == 1
    assert overall.total_revenue == 1000
    assert overall.total_expense == 300
    assert overall.net_profit == 700
    assert overall.roi == 70.0
    assert overall.unique_vehicles == 1
    assert overall.average_expense_per_trip == 300.0


@pytest.mark.asyncio
async def test_overall_month_filter(db_session, fleet_history):
    march = await AnalyticsService.get_overall(db_session, month=3, year=2025)
    assert march.period == "3/2025"
    assert march.total_revenue == 1000
    assert march.total_fuel_cost == 200
    assert march.total_maintenance_cost == 0
    assert march.roi == 80.0

    april = await AnalyticsService.get_overall(db_session, month=4, year=2025)
    assert april.total_trips == 0
    assert april.total_maintenance_cost == 100
    assert april.roi == 0.0

    # Month without year means no filter
    assert (await AnalyticsService.get_overall(db_session, month=4)).period == "All Time"


@pytest.mark.asyncio
async def test_invalid_month_is_rejected(db_session):
    with pytest.raises(ValidationFailedError):
        resolve_period(13, 2025)


@pytest.mark.asyncio
async def test_time_series_by_month(db_session, fleet_history):
    series = await AnalyticsService.get_time_series(db_session, "month")

    assert [p.period for p in series] == ["Mar", "Apr"]
    assert series[0].revenue == 1000
    assert series[0].fuel_cost == 200
    assert series[0].roi == 80
    assert series[1].maintenance_cost == 100
    assert series[1].roi == 0

    yearly = await AnalyticsService.get_time_series(db_session, "year")
    assert [(p.period, p.roi) for p in yearly] == [("2025", 70)]

    with pytest.raises(ValidationFailedError):
        await AnalyticsService.get_time_series(db_session, "decade")


@pytest.mark.asyncio
async def test_vehicle_costs_ranked(db_session, fleet_history):
    costs = await AnalyticsService.get_vehicle_costs(db_session)

    assert [c.vehicle_id for c in costs] == [fleet_history["van_id"], fleet_history["bike_id"]]
    van = costs[0]
    assert van.total_cost == 300
    assert van.trip_count == 1
    assert van.net_profit == 700
    assert costs[1].total_cost == 0

    assert len(await AnalyticsService.get_vehicle_costs(db_session, limit=1)) == 1


@pytest.mark.asyncio
async def test_driver_performance(db_session, fleet_history):
    [perf] = await AnalyticsService.get_driver_performance(db_session)

    assert perf.driver_id == fleet_history["driver_id"]
    assert perf.trip_count == 1
    assert perf.total_revenue == 1000
    assert perf.average_revenue_per_trip == 1000.0


@pytest.mark.asyncio
async def test_financial_summary_and_utilization(db_session, fleet_history):
    financial = await AnalyticsService.get_financial_summary(db_session)
    assert financial.profit_margin == 70.0
    assert financial.net_profit == 700

    utilization = await AnalyticsService.get_utilization(db_session)
    assert [(s.name, s.value) for s in utilization] == [("Utilized", 1), ("Idle", 1)]


@pytest.mark.asyncio
async def test_empty_fleet_reports_zeroes(db_session):
    overall = await AnalyticsService.get_overall(db_session)
    assert overall.total_trips == 0
    assert overall.roi == 0.0
    assert overall.average_revenue_per_trip == 0.0

    assert await AnalyticsService.get_time_series(db_session) == []
    assert await ExpenseService.list_vehicle_expenses(db_session) == []


# --- Expenses ---

@pytest.mark.asyncio
async def test_vehicle_expense_lines(db_session, fleet_history):
    [line] = await ExpenseService.list_vehicle_expenses(db_session)

    assert line.vehicle_id == fleet_history["van_id"]
    assert line.fuel_cost == 200
    assert line.maintenance_cost == 100
    assert line.total_expense == 300
    assert line.trips == 1

    march_only = await ExpenseService.list_vehicle_expenses(
        db_session, start_date=datetime(2025, 3, 1), end_date=datetime(2025, 3, 31)
    )
    assert march_only[0].maintenance_cost == 0


@pytest.mark.asyncio
async def test_vehicle_expense_detail(db_session, fleet_history):
    detail = await ExpenseService.get_vehicle_expenses(db_session, fleet_history["van_id"])

    assert detail.odometer == 100
    assert detail.total_expense == 300
    assert detail.cost_per_km == 3.0

    idle = await ExpenseService.get_vehicle_expenses(db_session, fleet_history["bike_id"])
    assert idle.cost_per_km == 0.0

    with pytest.raises(ResourceNotFoundError):
        await ExpenseService.get_vehicle_expenses(db_session, 999)


@pytest.mark.asyncio
async def test_driver_expenses(db_session, fleet_history):
    report = await ExpenseService.get_driver_expenses(db_session, fleet_history["driver_id"])

    assert report.total_trips == 1
    assert report.total_revenue == 1000
    assert report.fuel_cost == 200
    assert report.maintenance_cost == 100
    assert report.net_profit == 700


@pytest.mark.asyncio
async def test_expense_summary_and_fuel_efficiency(db_session, fleet_history):
    summary = await ExpenseService.get_summary(db_session, month=3, year=2025)
    assert summary.period == "3/2025"
    assert summary.total_expense == 200
    assert summary.trip_count == 1

    efficiency = await ExpenseService.get_fuel_efficiency(db_session, vehicle_id=fleet_history["van_id"])
    assert efficiency.total_liters == 100
    assert efficiency.average_cost_per_liter == 2.0
    assert efficiency.total_entries == 1


@pytest.mark.asyncio
async def test_log_listing_summary(db_session, vehicle):
    await LogService.create(db_session, vehicle.id, LogType.FUEL, cost=90.0, liters=45.0)
    await LogService.create(db_session, vehicle.id, LogType.MAINTENANCE, cost=310.0)

    summary = ExpenseService.summarize_logs(await LogService.list(db_session))

    assert summary.total_logs == 2
    assert summary.fuel_logs == 1
    assert summary.total_cost == 400.0
    assert summary.cost_per_liter == 2.0

"""
Analytics and expense report schemas.
"""

from pydantic import BaseModel
from typing import Optional


class OverallAnalytics(BaseModel):
    """Dashboard summary metrics."""
    period: str
    total_trips: int
    total_revenue: float
    total_fuel_cost: float
    total_maintenance_cost: float
    total_expense: float
    net_profit: float
    roi: float
    unique_vehicles: int
    average_revenue_per_trip: float
    average_expense_per_trip: float


class TimeSeriesPoint(BaseModel):
    """One bucket of the revenue/cost trend."""
    period: str
    fuel_cost: float
    maintenance_cost: float
    revenue: float
    roi: int


class VehicleCostStats(BaseModel):
    """Cost and revenue per vehicle."""
    vehicle_id: int
    license_plate: str
    model: str
    fuel_cost: float
    maintenance_cost: float
    total_cost: float
    trip_count: int
    revenue: float
    net_profit: float


class DriverPerformance(BaseModel):
    """Completed-trip performance per driver."""
    driver_id: int
    name: str
    trip_count: int
    total_revenue: float
    average_revenue_per_trip: float
    safety_score: float
    status: str


class FinancialSummary(BaseModel):
    """Overall profit and loss."""
    total_revenue: float
    total_fuel_cost: float
    total_maintenance_cost: float
    total_expense: float
    net_profit: float
    profit_margin: float


class UtilizationSlice(BaseModel):
    """Utilized vs idle vehicle counts (chart-ready)."""
    name: str
    value: int
    color: str


class VehicleExpense(BaseModel):
    """Expense line for one vehicle."""
    vehicle_id: int
    license_plate: str
    model: str
    fuel_cost: float
    maintenance_cost: float
    total_expense: float
    trips: int


class VehicleExpenseDetail(BaseModel):
    """Expense breakdown for a single vehicle."""
    vehicle_id: int
    license_plate: str
    model: str
    odometer: float
    fuel_cost: float
    maintenance_cost: float
    total_expense: float
    trip_count: int
    cost_per_km: float


class DriverExpenseSummary(BaseModel):
    """Revenue and vehicle costs attributed to a driver's completed trips."""
    driver_id: int
    name: str
    total_trips: int
    total_revenue: float
    fuel_cost: float
    maintenance_cost: float
    net_profit: float


class ExpenseSummary(BaseModel):
    """Period expense summary."""
    period: str
    total_fuel_cost: float
    total_maintenance_cost: float
    total_expense: float
    total_revenue: float
    net_profit: float
    trip_count: int


class LogSummary(BaseModel):
    """Totals over a list of logs."""
    total_logs: int
    fuel_logs: int
    maintenance_logs: int
    total_cost: float
    fuel_cost: float
    fuel_liters: float
    maintenance_cost: float
    cost_per_liter: float


class FuelEfficiency(BaseModel):
    """Fuel spend metrics."""
    total_fuel_cost: float
    total_liters: float
    average_cost_per_liter: float
    total_entries: int
    vehicle_id: Optional[int] = None

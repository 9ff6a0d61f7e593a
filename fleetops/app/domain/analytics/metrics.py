"""
Analytics metrics (pure functions).

Aggregations over completed trips and vehicle logs. Everything is
recomputed from the rows passed in; nothing is cached or stored.
"""

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

TIME_RANGES = ("week", "month", "year")


def compute_roi(revenue: float, expense: float) -> float:
    """
    Return on revenue, as a percentage rounded to 2 decimals.

    Returns 0 when there is no revenue.
    """
    if not revenue:
        return 0.0
    return round((revenue - expense) / revenue * 100, 2)


def safe_ratio(numerator: float, denominator: float, digits: int = 2) -> float:
    """numerator / denominator rounded, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator / denominator, digits)


def summarize(
    revenues: Iterable[Optional[float]],
    fuel_costs: Iterable[float],
    maintenance_costs: Iterable[float],
) -> Dict[str, float]:
    """
    Build the financial summary for a set of completed trips and logs.

    Missing trip revenue counts as 0.
    """
    revenue_list = [r or 0.0 for r in revenues]
    total_trips = len(revenue_list)
    total_revenue = sum(revenue_list)
    total_fuel = sum(fuel_costs)
    total_maintenance = sum(maintenance_costs)
    total_expense = total_fuel + total_maintenance
    net_profit = total_revenue - total_expense

    return {
        "total_trips": total_trips,
        "total_revenue": total_revenue,
        "total_fuel_cost": total_fuel,
        "total_maintenance_cost": total_maintenance,
        "total_expense": total_expense,
        "net_profit": net_profit,
        "roi": compute_roi(total_revenue, total_expense),
        "average_revenue_per_trip": safe_ratio(total_revenue, total_trips),
        "average_expense_per_trip": safe_ratio(total_expense, total_trips),
    }


def period_label(moment: datetime, time_range: str = "month") -> str:
    """
    Bucket label for a timestamp.

    week  -> "W1".."W5" (week of the month, days 1-7 are W1)
    month -> "Jan".."Dec"
    year  -> "2025"
    """
    if time_range == "week":
        return f"W{math.ceil(moment.day / 7)}"
    if time_range == "year":
        return str(moment.year)
    return MONTH_NAMES[moment.month - 1]


def _empty_bucket(period: str) -> Dict:
    return {"period": period, "fuel_cost": 0.0, "maintenance_cost": 0.0, "revenue": 0.0, "roi": 0}


def build_time_series(
    trips: Sequence[Tuple[datetime, Optional[float]]],
    fuel_logs: Sequence[Tuple[datetime, float]],
    maintenance_logs: Sequence[Tuple[datetime, float]],
    time_range: str = "month",
) -> List[Dict]:
    """
    Group revenue and costs into time buckets.

    Args:
        trips: (timestamp, revenue) of completed trips
        fuel_logs: (date, cost) of fuel logs
        maintenance_logs: (date, cost) of maintenance logs
        time_range: "week", "month" or "year"

    Returns:
        Buckets in first-seen order with an integer ROI percentage
    """
    buckets: Dict[str, Dict] = {}

    def bucket(moment: datetime) -> Dict:
        label = period_label(moment, time_range)
        if label not in buckets:
            buckets[label] = _empty_bucket(label)
        return buckets[label]

    for moment, revenue in trips:
        bucket(moment)["revenue"] += revenue or 0.0
    for moment, cost in fuel_logs:
        bucket(moment)["fuel_cost"] += cost
    for moment, cost in maintenance_logs:
        bucket(moment)["maintenance_cost"] += cost

    for entry in buckets.values():
        expense = entry["fuel_cost"] + entry["maintenance_cost"]
        entry["roi"] = round(compute_roi(entry["revenue"], expense))

    return list(buckets.values())


def split_utilization(completed_trip_counts: Iterable[int]) -> Dict[str, int]:
    """Vehicles with at least one completed trip are utilized; the rest are idle."""
    utilized = idle = 0
    for count in completed_trip_counts:
        if count > 0:
            utilized += 1
        else:
            idle += 1
    return {"utilized": utilized, "idle": idle}


def month_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    """[first day of month, first day of next month) as naive datetimes."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end

"""Expense forecast per item.

A naive linear forecast: the current period's daily spend projected over
a period of the same length, scaled by a demand multiplier (from sales
growth) and a seasonal multiplier (from a keyword/month table). Each
forecast carries a trend against the trailing 30-day average, a
confidence label and the list of adjustments that fired.
"""

from __future__ import annotations

import calendar
import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Literal

from .time_windows import FORECAST_HISTORY_DAYS

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import date

    from ..core.models import ExpenseRecord
    from .aggregator import ItemExpenses
    from .time_windows import DateRange

__all__ = [
    "SEASONAL_TABLE",
    "ExpenseForecast",
    "classify_trend",
    "forecast_confidence",
    "forecast_expenses",
    "forecast_month",
    "seasonal_multiplier",
]

Trend = Literal["up", "down", "stable"]
Confidence = Literal["high", "medium", "low"]

TREND_THRESHOLD = 10.0
SALES_SIGNAL_THRESHOLD = 5.0
DEMAND_SENSITIVITY = 0.3

# (keywords, {month: multiplier}); first group with a matching keyword wins.
# Ramadan falls in Feb-Apr for 2024-2027, which is when meat demand peaks.
SEASONAL_TABLE: tuple[tuple[tuple[str, ...], dict[int, float]], ...] = (
    (
        ("chicken", "mutton", "beef", "meat", "qeema", "keema"),
        {2: 1.3, 3: 1.4, 4: 1.3, 6: 1.2, 7: 1.2, 8: 1.1, 12: 1.1},
    ),
    (
        ("ice", "ice cream", "cold drink", "soft drink", "drink", "juice", "water", "cola", "lassi"),
        {4: 1.15, 5: 1.3, 6: 1.4, 7: 1.4, 8: 1.3, 9: 1.15},
    ),
    (
        ("tea", "chai", "coffee", "soup", "milk"),
        {11: 1.15, 12: 1.25, 1: 1.25, 2: 1.15},
    ),
)


@dataclass(frozen=True)
class ExpenseForecast:
    """Forecast for one expense item over the next equal-length period."""

    predicted_amount: int
    avg_per_day: float
    historical_avg_per_day: float
    trend_change_percent: float
    trend: Trend
    demand_multiplier: float
    seasonal_multiplier: float
    confidence: Confidence
    entries: int
    factors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "predictedAmount": self.predicted_amount,
            "avgPerDay": self.avg_per_day,
            "historicalAvgPerDay": self.historical_avg_per_day,
            "trendChangePercent": self.trend_change_percent,
            "trend": self.trend,
            "demandMultiplier": self.demand_multiplier,
            "seasonalMultiplier": self.seasonal_multiplier,
            "confidence": self.confidence,
            "entries": self.entries,
            "factors": list(self.factors),
        }


def _matches(keyword: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", name) is not None


def seasonal_multiplier(item: str, month: int) -> float:
    """Seasonal scalar for an item name in a calendar month (1.0 if none)."""
    name = item.lower()
    for keywords, by_month in SEASONAL_TABLE:
        if any(_matches(keyword, name) for keyword in keywords):
            return by_month.get(month, 1.0)
    return 1.0


def classify_trend(change_percent: float) -> Trend:
    if change_percent > TREND_THRESHOLD:
        return "up"
    if change_percent < -TREND_THRESHOLD:
        return "down"
    return "stable"


def forecast_confidence(entries: int, change_percent: float) -> Confidence:
    """high: >= 7 entries and a steady trend; low: < 3 entries or a wild trend."""
    if entries >= 7 and abs(change_percent) < 20:
        return "high"
    if entries < 3 or abs(change_percent) > 50:
        return "low"
    return "medium"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def forecast_month(period: DateRange) -> int:
    """Month the forecast period starts in (the day after ``period``)."""
    next_day: date = period.end + timedelta(days=1)
    return next_day.month


def forecast_expenses(
    by_item: Mapping[str, ItemExpenses],
    history: Iterable[ExpenseRecord],
    period: DateRange,
    sales_growth_rate: float,
    *,
    history_days: int = FORECAST_HISTORY_DAYS,
) -> dict[str, ExpenseForecast]:
    """Forecast every item that has spend in the current period.

    Parameters
    ----------
    by_item
        Current-period spend per item
    history
        Expenses from the ``history_days`` days before ``period``
    period
        Current range
    sales_growth_rate
        Percent change of gross sales vs the prior period
    history_days
        Length of the history window in days

    Returns
    -------
    dict[str, ExpenseForecast]
        Forecast per item, in the order of ``by_item``
    """
    history_totals: dict[str, float] = defaultdict(float)
    for expense in history:
        history_totals[expense.item] += expense.amount

    demand_multiplier = 1 + (sales_growth_rate / 100) * DEMAND_SENSITIVITY
    month = forecast_month(period)

    forecasts: dict[str, ExpenseForecast] = {}
    for item, spend in by_item.items():
        current_avg = spend.total / period.days
        if item in history_totals:
            historical_avg = history_totals[item] / history_days
        else:
            historical_avg = current_avg

        if historical_avg:
            change = (current_avg - historical_avg) / historical_avg * 100
        else:
            change = 0.0

        seasonal = seasonal_multiplier(item, month)
        predicted = _round_half_up(current_avg * period.days * demand_multiplier * seasonal)

        factors: list[str] = []
        if sales_growth_rate > SALES_SIGNAL_THRESHOLD:
            factors.append(f"Sales growth of {sales_growth_rate:.1f}% raises expected demand")
        elif sales_growth_rate < -SALES_SIGNAL_THRESHOLD:
            factors.append(f"Sales decline of {abs(sales_growth_rate):.1f}% lowers expected demand")
        if change > TREND_THRESHOLD:
            factors.append(f"Spending trending up {change:.1f}% vs {history_days}-day average")
        elif change < -TREND_THRESHOLD:
            factors.append(f"Spending trending down {abs(change):.1f}% vs {history_days}-day average")
        if seasonal != 1.0:
            factors.append(f"Seasonal adjustment x{seasonal:.2f} for {calendar.month_name[month]}")
        if spend.entries < 5:
            factors.append("Limited data points")

        forecasts[item] = ExpenseForecast(
            predicted_amount=predicted,
            avg_per_day=current_avg,
            historical_avg_per_day=historical_avg,
            trend_change_percent=change,
            trend=classify_trend(change),
            demand_multiplier=demand_multiplier,
            seasonal_multiplier=seasonal,
            confidence=forecast_confidence(spend.entries, change),
            entries=spend.entries,
            factors=factors,
        )

    return forecasts

"""Range summaries, daily series and expense forecasts."""

from .aggregator import (
    DailyBucket,
    ItemExpenses,
    PeriodSummary,
    PeriodTotals,
    compute_totals,
    daily_series,
    expenses_by_item,
    percent_change,
    summarize,
)
from .forecast import ExpenseForecast, forecast_expenses, seasonal_multiplier
from .time_windows import DateRange, forecast_history_window, named_range, parse_range, prior_period

__all__ = [
    # Time windows
    "DateRange",
    "forecast_history_window",
    "named_range",
    "parse_range",
    "prior_period",
    # Aggregation
    "DailyBucket",
    "ItemExpenses",
    "PeriodSummary",
    "PeriodTotals",
    "compute_totals",
    "daily_series",
    "expenses_by_item",
    "percent_change",
    "summarize",
    # Forecast
    "ExpenseForecast",
    "forecast_expenses",
    "seasonal_multiplier",
]

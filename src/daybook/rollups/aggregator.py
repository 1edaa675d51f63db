"""Sales and expense aggregation over a business-date range.

``summarize`` turns already-fetched sale and expense records into the KPI
summary the dashboard shows: per-source totals, commission-adjusted
profit, period-over-period changes, a zero-filled daily series, spend per
item and an expense forecast. It performs no I/O and never mutates its
inputs.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from ..core.models import SaleSource
from ..core.validation import validate_profit_rate
from ..observability.loguru_config import get_logger
from .forecast import ExpenseForecast, forecast_expenses
from .time_windows import FORECAST_HISTORY_DAYS, DateRange, forecast_history_window, parse_range, prior_period

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ..core.models import ExpenseRecord, SaleRecord

__all__ = [
    "DailyBucket",
    "ItemExpenses",
    "PeriodSummary",
    "PeriodTotals",
    "compute_totals",
    "daily_series",
    "expenses_by_item",
    "percent_change",
    "summarize",
]

log = get_logger("rollups")

CHANGE_METRICS = {
    "grossSales": "gross_sales_total",
    "foodpandaProfit": "foodpanda_profit_total",
    "spotSales": "spot_sales_total",
    "totalSales": "total_sales",
    "orders": "orders_total",
    "expenses": "expenses_total",
    "netProfit": "net_profit",
}


@dataclass(frozen=True)
class PeriodTotals:
    """KPI totals for one period.

    ``total_sales`` is on a profit basis: spot revenue in full plus the
    retained share of foodpanda revenue.
    """

    gross_sales_total: float = 0.0
    spot_sales_total: float = 0.0
    foodpanda_sales_total: float = 0.0
    foodpanda_profit_total: float = 0.0
    foodpanda_commission: float = 0.0
    total_sales: float = 0.0
    orders_total: int = 0
    expenses_total: float = 0.0
    net_profit: float = 0.0
    average_order_value: float = 0.0
    profit_margin: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "grossSalesTotal": self.gross_sales_total,
            "foodpandaProfitTotal": self.foodpanda_profit_total,
            "foodpandaSalesTotal": self.foodpanda_sales_total,
            "foodpandaCommission": self.foodpanda_commission,
            "spotSalesTotal": self.spot_sales_total,
            "totalSales": self.total_sales,
            "ordersTotal": self.orders_total,
            "expensesTotal": self.expenses_total,
            "netProfit": self.net_profit,
            "averageOrderValue": self.average_order_value,
            "profitMargin": self.profit_margin,
        }


@dataclass
class DailyBucket:
    """One day of the daily series."""

    date: date
    spot_sales: float = 0.0
    foodpanda_sales: float = 0.0
    expenses: float = 0.0
    net_profit: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "spotSales": self.spot_sales,
            "foodpandaSales": self.foodpanda_sales,
            "netProfit": self.net_profit,
            "expenses": self.expenses,
        }


@dataclass
class ItemExpenses:
    """Spend on one item within a period."""

    total: float = 0.0
    qty: float = 0.0
    unit: str = "units"
    entries: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "qty": self.qty, "unit": self.unit, "entries": self.entries}


@dataclass
class PeriodSummary:
    """Everything the dashboard needs for one range."""

    period: DateRange
    previous_period: DateRange
    profit_rate: float
    totals: PeriodTotals
    previous_totals: PeriodTotals
    changes: dict[str, float]
    daily: list[DailyBucket] = field(default_factory=list)
    by_item: dict[str, ItemExpenses] = field(default_factory=dict)
    forecast: dict[str, ExpenseForecast] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape the dashboard consumes."""
        return {
            "range": {**self.period.to_dict(), "days": self.period.days},
            "profitRate": self.profit_rate,
            "kpis": self.totals.to_dict(),
            "previousKpis": self.previous_totals.to_dict(),
            "changes": dict(self.changes),
            "previousPeriod": self.previous_period.to_dict(),
            "dailySeries": [bucket.to_dict() for bucket in self.daily],
            "expensesByItem": {item: spend.to_dict() for item, spend in self.by_item.items()},
            "expenseForecast": {item: fc.to_dict() for item, fc in self.forecast.items()},
        }


def percent_change(current: float, prior: float) -> float:
    """Percent change vs prior, divided by ``|prior|``; 0 when prior is 0.

    The absolute divisor keeps the sign meaningful when the prior value is
    negative (net profit can be).
    """
    if prior == 0:
        return 0.0
    return (current - prior) / abs(prior) * 100


def compute_totals(
    sales: Sequence[SaleRecord],
    expenses: Sequence[ExpenseRecord],
    profit_rate: float,
) -> PeriodTotals:
    """Totals for one period (already filtered to that period)."""
    spot = [s for s in sales if s.source == SaleSource.SPOT]
    foodpanda = [s for s in sales if s.source == SaleSource.FOODPANDA]

    gross_sales_total = sum(s.gross_amount for s in sales)
    spot_sales_total = sum(s.gross_amount for s in spot)
    foodpanda_sales_total = sum(s.gross_amount for s in foodpanda)
    foodpanda_profit_total = sum(s.gross_amount * profit_rate for s in foodpanda)
    foodpanda_commission = sum(s.gross_amount * (1 - profit_rate) for s in foodpanda)
    total_sales = spot_sales_total + foodpanda_profit_total

    orders_total = sum(s.orders for s in sales)
    expenses_total = sum(e.amount for e in expenses)
    net_profit = total_sales - expenses_total

    return PeriodTotals(
        gross_sales_total=gross_sales_total,
        spot_sales_total=spot_sales_total,
        foodpanda_sales_total=foodpanda_sales_total,
        foodpanda_profit_total=foodpanda_profit_total,
        foodpanda_commission=foodpanda_commission,
        total_sales=total_sales,
        orders_total=orders_total,
        expenses_total=expenses_total,
        net_profit=net_profit,
        average_order_value=gross_sales_total / orders_total if orders_total > 0 else 0.0,
        profit_margin=net_profit / total_sales * 100 if total_sales > 0 else 0.0,
    )


def daily_series(
    period: DateRange,
    sales: Iterable[SaleRecord],
    expenses: Iterable[ExpenseRecord],
    profit_rate: float,
) -> list[DailyBucket]:
    """One bucket per day in ``period``, date ascending, zero-filled."""
    buckets = {day: DailyBucket(date=day) for day in period.iter_days()}

    for sale in sales:
        bucket = buckets.get(sale.business_date)
        if bucket is None:
            continue
        if sale.source == SaleSource.SPOT:
            bucket.spot_sales += sale.gross_amount
        else:
            bucket.foodpanda_sales += sale.gross_amount

    for expense in expenses:
        bucket = buckets.get(expense.business_date)
        if bucket is not None:
            bucket.expenses += expense.amount

    for bucket in buckets.values():
        bucket.net_profit = bucket.spot_sales + bucket.foodpanda_sales * profit_rate - bucket.expenses

    return list(buckets.values())


def expenses_by_item(expenses: Iterable[ExpenseRecord]) -> dict[str, ItemExpenses]:
    """Group spend by item; the last unit seen for an item wins."""
    grouped: dict[str, ItemExpenses] = defaultdict(ItemExpenses)
    for expense in expenses:
        spend = grouped[expense.item]
        spend.total += expense.amount
        if expense.quantity:
            spend.qty += expense.quantity
        if expense.unit:
            spend.unit = expense.unit
        spend.entries += 1
    return dict(grouped)


def _within(records: list[Any], window: DateRange, label: str) -> list[Any]:
    kept = [r for r in records if window.contains(r.business_date)]
    dropped = len(records) - len(kept)
    if dropped:
        log.debug(f"Ignoring {dropped} {label} record(s) outside {window.start}..{window.end}")
    return kept


def summarize(
    sales: Iterable[SaleRecord],
    expenses: Iterable[ExpenseRecord],
    prior_sales: Iterable[SaleRecord],
    prior_expenses: Iterable[ExpenseRecord],
    range_start: date | str,
    range_end: date | str,
    profit_rate: float,
    *,
    historical_expenses: Iterable[ExpenseRecord] | None = None,
) -> PeriodSummary:
    """Summarize a business-date range against the prior period.

    Parameters
    ----------
    sales, expenses
        Records for ``[range_start, range_end]``
    prior_sales, prior_expenses
        Records for the equal-length range right before it
    range_start, range_end
        Inclusive bounds (date or ``YYYY-MM-DD``)
    profit_rate
        Share of foodpanda gross revenue kept after commission, in [0, 1]
    historical_expenses
        Expenses from the 30 days before ``range_start`` for the forecast.
        When omitted, whatever part of ``prior_expenses`` falls in that
        window is used, averaged over the days the prior period covers
        (at most 30).

    Returns
    -------
    PeriodSummary
        Complete summary; zeros throughout when there is no data

    Raises
    ------
    InvalidRange
        If the bounds are missing, malformed or reversed
    InvalidConfig
        If ``profit_rate`` is not a number in [0, 1]
    """
    period = parse_range(range_start, range_end)
    rate = validate_profit_rate(profit_rate)
    previous = prior_period(period)
    history_window = forecast_history_window(period)

    current_sales = _within(list(sales), period, "sale")
    current_expenses = _within(list(expenses), period, "expense")
    previous_sales = _within(list(prior_sales), previous, "prior sale")
    prior_expense_list = list(prior_expenses)
    previous_expenses = _within(prior_expense_list, previous, "prior expense")

    if historical_expenses is None:
        history = [e for e in prior_expense_list if history_window.contains(e.business_date)]
        # prior expenses only cover the part of the window the prior period overlaps
        history_days = min(FORECAST_HISTORY_DAYS, previous.days)
    else:
        history = _within(list(historical_expenses), history_window, "history expense")
        history_days = FORECAST_HISTORY_DAYS

    totals = compute_totals(current_sales, current_expenses, rate)
    previous_totals = compute_totals(previous_sales, previous_expenses, rate)
    changes = {
        key: percent_change(getattr(totals, attr), getattr(previous_totals, attr))
        for key, attr in CHANGE_METRICS.items()
    }

    by_item = expenses_by_item(current_expenses)
    forecast = forecast_expenses(by_item, history, period, changes["grossSales"], history_days=history_days)

    log.debug(
        f"Summarized {period.start}..{period.end}",
        sales=len(current_sales),
        expenses=len(current_expenses),
        items=len(by_item),
    )

    return PeriodSummary(
        period=period,
        previous_period=previous,
        profit_rate=rate,
        totals=totals,
        previous_totals=previous_totals,
        changes=changes,
        daily=daily_series(period, current_sales, current_expenses, rate),
        by_item=by_item,
        forecast=forecast,
    )

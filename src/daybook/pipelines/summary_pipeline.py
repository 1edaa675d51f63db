"""Summary Pipeline - thin orchestration for range summaries.

Fetches the rows a summary needs from the ledger (current range, the
equal-length prior range and the forecast history window), reads the
profit rate once, and hands everything to the pure aggregator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from ..observability.loguru_config import get_logger, timing_context
from ..rollups.aggregator import PeriodSummary, summarize
from ..rollups.time_windows import DateRange, forecast_history_window, named_range, parse_range, prior_period

if TYPE_CHECKING:
    from ..storage.ledger import Ledger

__all__ = [
    "SummaryPipeline",
    "SummaryRequest",
    "create_summary_pipeline",
]

log = get_logger("pipeline")


@dataclass(frozen=True)
class SummaryRequest:
    """Range to summarize, either named or explicit."""

    kind: str = "custom"
    start: date | str | None = None
    end: date | str | None = None

    def resolve(self, timezone_str: str) -> DateRange:
        return named_range(self.kind, start=self.start, end=self.end, timezone_str=timezone_str)  # type: ignore[arg-type]


class SummaryPipeline:
    """Thin orchestration pipeline for KPI summaries.

    Responsibilities:
    - Read the profit rate from the settings store (validated)
    - Fetch current, prior and history rows from the ledger
    - Call the aggregator; NO arithmetic here

    Example:
        >>> from daybook.storage.ledger import Ledger
        >>> pipeline = create_summary_pipeline(Ledger("daybook.db"))
        >>> summary = pipeline.summarize("2025-01-01", "2025-01-07")
        >>> summary.totals.net_profit
    """

    def __init__(self, ledger: Ledger, *, timezone_str: str = "Asia/Karachi") -> None:
        self.ledger = ledger
        self.timezone_str = timezone_str

    def summarize(self, start: date | str | None, end: date | str | None) -> PeriodSummary:
        """Summarize ``[start, end]``.

        Raises
        ------
        InvalidRange
            If bounds are missing, malformed or reversed
        InvalidConfig
            If the stored profit rate is outside [0, 1]
        """
        return self.summarize_range(parse_range(start, end))

    def summarize_named(self, kind: str, start: date | str | None = None, end: date | str | None = None) -> PeriodSummary:
        """Summarize a named range (today, thisWeek, ...)."""
        return self.summarize_range(SummaryRequest(kind, start, end).resolve(self.timezone_str))

    def summarize_range(self, period: DateRange) -> PeriodSummary:
        previous = prior_period(period)
        history = forecast_history_window(period)

        with timing_context("summary", component="pipeline", start=str(period.start), end=str(period.end)) as ctx:
            profit_rate = self.ledger.profit_rate()

            sales = self.ledger.list_sales(period.start, period.end)
            expenses = self.ledger.list_expenses(period.start, period.end)
            prior_sales = self.ledger.list_sales(previous.start, previous.end)
            prior_expenses = self.ledger.list_expenses(previous.start, previous.end)
            history_expenses = self.ledger.list_expenses(history.start, history.end)

            summary = summarize(
                sales,
                expenses,
                prior_sales,
                prior_expenses,
                period.start,
                period.end,
                profit_rate,
                historical_expenses=history_expenses,
            )
            ctx["sales"] = len(sales)
            ctx["expenses"] = len(expenses)

        log.info(
            f"Summary {period.start}..{period.end}",
            net_profit=summary.totals.net_profit,
            orders=summary.totals.orders_total,
        )
        return summary


def create_summary_pipeline(ledger: Ledger, *, timezone_str: str = "Asia/Karachi") -> SummaryPipeline:
    """Create summary pipeline."""
    return SummaryPipeline(ledger, timezone_str=timezone_str)

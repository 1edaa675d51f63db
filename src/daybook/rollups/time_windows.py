"""Date range calculations for summaries.

Compute inclusive business-date ranges: named dashboard ranges (today,
this week, ...), the equal-length prior period used for comparisons and
the trailing history window used by the expense forecast.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Literal

import pytz

from ..core.time import DEFAULT_TIMEZONE, iter_days, parse_date
from ..core.validation import InvalidConfig, InvalidRange

__all__ = [
    "FORECAST_HISTORY_DAYS",
    "DateRange",
    "RangeKind",
    "forecast_history_window",
    "get_week_start",
    "named_range",
    "parse_range",
    "prior_period",
]

RangeKind = Literal["today", "yesterday", "thisWeek", "lastWeek", "thisMonth", "custom"]

FORECAST_HISTORY_DAYS = 30


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of business dates.

    Attributes
    ----------
    start : date
        First day (inclusive)
    end : date
        Last day (inclusive)
    kind : str
        How the range was chosen ("custom" unless named)
    """

    start: date
    end: date
    kind: str = "custom"

    @property
    def days(self) -> int:
        """Number of calendar days in the range."""
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def iter_days(self):
        return iter_days(self.start, self.end)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def parse_range(start: date | str | None, end: date | str | None) -> DateRange:
    """Validate range bounds.

    Raises
    ------
    InvalidRange
        If a bound is missing or malformed, or end is before start
    """
    if start is None or end is None:
        raise InvalidRange("Start and end dates are required")
    start_date = parse_date(start, field="start")
    end_date = parse_date(end, field="end")
    if end_date < start_date:
        raise InvalidRange(f"End date {end_date} is before start date {start_date}")
    return DateRange(start_date, end_date)


def get_week_start(day: date, start_on: int = 0) -> date:
    """Get start of week for a date.

    Parameters
    ----------
    day
        Date to get week start for
    start_on
        Day of week to start on (0=Monday, 6=Sunday)
    """
    days_since_start = (day.weekday() - start_on) % 7
    return day - timedelta(days=days_since_start)


def _local_today(timezone_str: str) -> date:
    try:
        tz = pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError as exc:
        raise InvalidConfig(f"Invalid timezone: {timezone_str}") from exc
    return datetime.now(pytz.UTC).astimezone(tz).date()


def named_range(
    kind: RangeKind,
    *,
    today: date | None = None,
    start: date | str | None = None,
    end: date | str | None = None,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> DateRange:
    """Resolve a named dashboard range.

    Weeks are ISO weeks (Monday to Sunday).

    Parameters
    ----------
    kind
        One of today, yesterday, thisWeek, lastWeek, thisMonth, custom
    today
        Reference date (default: today in ``timezone_str``)
    start, end
        Bounds, required for ``custom``
    timezone_str
        Timezone name used to find today

    Raises
    ------
    InvalidRange
        If the kind is unknown or custom bounds are missing

    Examples
    --------
    >>> named_range("thisWeek", today=date(2025, 10, 8))
    DateRange(start=datetime.date(2025, 10, 6), end=datetime.date(2025, 10, 12), kind='thisWeek')
    """
    if kind == "custom":
        if start is None or end is None:
            raise InvalidRange("Custom date range requires start and end dates")
        bounds = parse_range(start, end)
        return DateRange(bounds.start, bounds.end, "custom")

    ref = today or _local_today(timezone_str)

    if kind == "today":
        return DateRange(ref, ref, kind)
    elif kind == "yesterday":
        day = ref - timedelta(days=1)
        return DateRange(day, day, kind)
    elif kind == "thisWeek":
        monday = get_week_start(ref)
        return DateRange(monday, monday + timedelta(days=6), kind)
    elif kind == "lastWeek":
        monday = get_week_start(ref) - timedelta(days=7)
        return DateRange(monday, monday + timedelta(days=6), kind)
    elif kind == "thisMonth":
        first = ref.replace(day=1)
        if first.month == 12:
            next_month = first.replace(year=first.year + 1, month=1)
        else:
            next_month = first.replace(month=first.month + 1)
        return DateRange(first, next_month - timedelta(days=1), kind)
    else:
        raise InvalidRange(f"Unknown date range kind: {kind}")


def prior_period(current: DateRange) -> DateRange:
    """Equal-length range ending the day before ``current`` starts."""
    end = current.start - timedelta(days=1)
    return DateRange(end - timedelta(days=current.days - 1), end, "prior")


def forecast_history_window(current: DateRange, days: int = FORECAST_HISTORY_DAYS) -> DateRange:
    """The ``days`` days immediately before ``current`` starts."""
    end = current.start - timedelta(days=1)
    return DateRange(end - timedelta(days=days - 1), end, "history")

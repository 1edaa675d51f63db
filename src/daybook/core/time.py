"""Time and timezone utilities for Daybook.

Provides consistent timezone handling across the system with:
- A single configured restaurant timezone (default Asia/Karachi)
- ISO-8601 parsing with UTC as the assumption for naive input
- Localization of instants into the restaurant timezone
- Inclusive calendar-day iteration for date ranges
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .validation import InvalidConfig, InvalidRange, InvalidTimestamp

__all__ = [
    "DEFAULT_TIMEZONE",
    "TimeConfig",
    "get_current_utc",
    "iter_days",
    "localize",
    "parse_date",
    "parse_timestamp",
    "resolve_timezone",
    "set_default_timezone",
    "today_in",
]

DEFAULT_TIMEZONE = "Asia/Karachi"


class TimeConfig:
    """Global time configuration."""

    _default_timezone = DEFAULT_TIMEZONE

    @classmethod
    def get_default_timezone_name(cls) -> str:
        """Get default timezone name.

        Returns
        -------
        str
            Timezone name (e.g., "Asia/Karachi")
        """
        return cls._default_timezone

    @classmethod
    def set_default_timezone_name(cls, timezone_name: str) -> None:
        """Set default timezone.

        Parameters
        ----------
        timezone_name
            IANA timezone name (e.g., "Asia/Karachi", "Europe/London")

        Raises
        ------
        InvalidConfig
            If timezone is unknown
        """
        resolve_timezone(timezone_name)
        cls._default_timezone = timezone_name


def resolve_timezone(tz: ZoneInfo | str | None = None) -> ZoneInfo:
    """Turn a timezone name (or None for the default) into a ZoneInfo.

    Raises
    ------
    InvalidConfig
        If the name is not a known IANA zone
    """
    if isinstance(tz, ZoneInfo):
        return tz
    name = tz or TimeConfig.get_default_timezone_name()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidConfig(f"Invalid timezone: {name}") from exc


def set_default_timezone(timezone_name: str) -> None:
    """Set default timezone for the system."""
    TimeConfig.set_default_timezone_name(timezone_name)


def get_current_utc() -> datetime:
    """Get current time in UTC with timezone info."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken as UTC. A trailing ``Z`` is accepted.

    Parameters
    ----------
    value
        ISO-8601 string or datetime

    Returns
    -------
    datetime
        Datetime in UTC

    Raises
    ------
    InvalidTimestamp
        If the value cannot be parsed

    Example
    -------
    >>> parse_timestamp("2025-01-15T14:30:00+05:00").hour
    9
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidTimestamp(f"Cannot parse timestamp: {value!r}") from exc
    else:
        raise InvalidTimestamp(f"Cannot parse timestamp: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def localize(value: datetime, tz: ZoneInfo | str | None = None) -> datetime:
    """Convert an aware datetime to the given (or default) timezone."""
    return value.astimezone(resolve_timezone(tz))


def today_in(tz: ZoneInfo | str | None = None, now: datetime | None = None) -> date:
    """Local calendar date in the restaurant timezone.

    Used as the default date for manual sale and expense entry.
    """
    current = now or get_current_utc()
    return localize(current, tz).date()


def parse_date(value: date | str, *, field: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` value.

    Raises
    ------
    InvalidRange
        If the value is missing or not a calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        raise InvalidRange(f"{field} is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidRange(f"Invalid {field}: {value!r}. Use YYYY-MM-DD") from exc


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in ``[start, end]``."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)

"""Business-day resolution.

A restaurant shift runs past midnight, so the trading day a sale belongs to
is not always the calendar day it happened on. Two rollover rules exist:

- ``CUTOFF_2AM``: before 02:00 local time belongs to the previous day.
- ``TRADING_WINDOW``: the trading day runs 14:00 to 02:00. Anything from
  02:00 to 13:59 belongs to the previous day, everything else to the
  local calendar day.

Every write path uses the single rule configured for the process
(``TRADING_WINDOW`` unless ``DAYBOOK_ROLLOVER_RULE`` says otherwise).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from .time import get_current_utc, localize, parse_timestamp, resolve_timezone
from .validation import InvalidConfig

if TYPE_CHECKING:
    from datetime import date
    from zoneinfo import ZoneInfo

__all__ = [
    "DEFAULT_ROLLOVER_RULE",
    "ROLLOVER_HOUR",
    "TRADING_OPEN_HOUR",
    "RolloverRule",
    "business_date_for",
    "parse_rollover_rule",
    "resolve_business_date",
]

ROLLOVER_HOUR = 2
TRADING_OPEN_HOUR = 14


class RolloverRule(str, Enum):
    """How a local wall-clock time maps to a trading day."""

    CUTOFF_2AM = "cutoff_2am"
    TRADING_WINDOW = "trading_window"


DEFAULT_ROLLOVER_RULE = RolloverRule.TRADING_WINDOW


def parse_rollover_rule(value: RolloverRule | str) -> RolloverRule:
    """Parse a rule name from configuration.

    Raises
    ------
    InvalidConfig
        If the name is not a known rule
    """
    if isinstance(value, RolloverRule):
        return value
    try:
        return RolloverRule(value.strip().lower())
    except (ValueError, AttributeError) as exc:
        choices = ", ".join(rule.value for rule in RolloverRule)
        raise InvalidConfig(f"Unknown rollover rule {value!r} (expected one of: {choices})") from exc


def _belongs_to_previous_day(hour: int, rule: RolloverRule) -> bool:
    if rule is RolloverRule.CUTOFF_2AM:
        return hour < ROLLOVER_HOUR
    return ROLLOVER_HOUR <= hour < TRADING_OPEN_HOUR


def business_date_for(local_dt: datetime, rule: RolloverRule = DEFAULT_ROLLOVER_RULE) -> date:
    """Trading day for a datetime already expressed in local time."""
    if _belongs_to_previous_day(local_dt.hour, rule):
        return local_dt.date() - timedelta(days=1)
    return local_dt.date()


def resolve_business_date(
    timestamp: str | datetime | None = None,
    tz: ZoneInfo | str | None = None,
    rule: RolloverRule | str = DEFAULT_ROLLOVER_RULE,
) -> str:
    """Map an instant to its business date string.

    Parameters
    ----------
    timestamp
        ISO-8601 string or datetime; None means now. Naive values are UTC.
    tz
        Restaurant timezone (name or ZoneInfo, None for the default)
    rule
        Rollover rule

    Returns
    -------
    str
        Business date as ``YYYY-MM-DD``

    Raises
    ------
    InvalidTimestamp
        If the timestamp cannot be parsed
    InvalidConfig
        If the timezone or rule is unknown

    Example
    -------
    >>> resolve_business_date("2025-01-15T05:00:00Z", "Asia/Karachi")  # 10:00 local
    '2025-01-14'
    >>> resolve_business_date("2025-01-15T05:00:00Z", "Asia/Karachi", "cutoff_2am")
    '2025-01-15'
    """
    instant = get_current_utc() if timestamp is None else parse_timestamp(timestamp)
    local_dt = localize(instant, resolve_timezone(tz))
    return business_date_for(local_dt, parse_rollover_rule(rule)).isoformat()

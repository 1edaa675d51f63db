"""Core types, time handling and business-day resolution."""

from .business_day import DEFAULT_ROLLOVER_RULE, RolloverRule, resolve_business_date
from .models import ExpenseRecord, PersonalExpenseRecord, SaleRecord, SaleSource
from .validation import DaybookError, InvalidConfig, InvalidRange, InvalidTimestamp, ValidationError

__all__ = [
    "DEFAULT_ROLLOVER_RULE",
    "DaybookError",
    "ExpenseRecord",
    "InvalidConfig",
    "InvalidRange",
    "InvalidTimestamp",
    "PersonalExpenseRecord",
    "RolloverRule",
    "SaleRecord",
    "SaleSource",
    "ValidationError",
    "resolve_business_date",
]

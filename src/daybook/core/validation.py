"""Error taxonomy and payload validation.

Sale, expense, POS event and settings payloads are checked here before
they reach the ledger. Invalid payloads never touch the database; errors
are surfaced to callers with every problem collected.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

__all__ = [
    "DaybookError",
    "InvalidConfig",
    "InvalidRange",
    "InvalidTimestamp",
    "ValidationError",
    "ValidationResult",
    "POS_EVENT_TYPES",
    "validate_expense",
    "validate_personal_expense",
    "validate_pos_event",
    "validate_profit_rate",
    "validate_sale",
]

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SALE_SOURCES = ("spot", "foodpanda")
POS_EVENT_TYPES = ("order_created", "order_updated", "order_cancelled", "daily_summary")


class DaybookError(Exception):
    """Base class for Daybook errors."""


class InvalidTimestamp(DaybookError):
    """Raised when a timestamp cannot be parsed."""


class InvalidRange(DaybookError):
    """Raised when range bounds are missing, malformed or reversed."""


class InvalidConfig(DaybookError):
    """Raised when a configuration value (profit rate, timezone) is out of bounds."""


class ValidationError(DaybookError):
    """Raised when a payload fails validation."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ValidationResult:
    """Result of payload validation."""

    def __init__(self, valid: bool, errors: list[str] | None = None) -> None:
        self.valid = valid
        self.errors = errors or []

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return "Valid"
        return f"Invalid: {'; '.join(self.errors)}"

    def add_error(self, error: str) -> None:
        """Add validation error."""
        self.errors.append(error)
        self.valid = False

    def raise_if_invalid(self, what: str) -> None:
        if not self.valid:
            raise ValidationError(f"Validation error: invalid {what}: {'; '.join(self.errors)}", self.errors)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_date(result: ValidationResult, data: dict[str, Any], key: str = "date") -> None:
    value = data.get(key)
    if not isinstance(value, str) or not DATE_RE.match(value):
        result.add_error(f"{key} must be YYYY-MM-DD")
        return
    try:
        date.fromisoformat(value)
    except ValueError:
        result.add_error(f"{key} is not a calendar date: {value}")


def _check_optional_text(result: ValidationResult, data: dict[str, Any], key: str) -> None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        result.add_error(f"{key} must be text")


def validate_sale(data: dict[str, Any], *, require_date: bool = True) -> ValidationResult:
    """Validate a manual or POS sale payload.

    Manual entries need a date; POS entries carry a timestamp instead and
    pass ``require_date=False``.
    """
    result = ValidationResult(valid=True)

    if require_date:
        _check_date(result, data)

    if data.get("source") not in SALE_SOURCES:
        result.add_error(f"source must be one of {', '.join(SALE_SOURCES)}")

    orders = data.get("orders")
    if not isinstance(orders, int) or isinstance(orders, bool) or orders < 0:
        result.add_error("orders must be a non-negative integer")

    amount = data.get("gross_amount")
    if not _is_number(amount) or amount < 0:
        result.add_error("gross_amount must be a non-negative number")

    _check_optional_text(result, data, "notes")
    return result


def validate_expense(data: dict[str, Any]) -> ValidationResult:
    """Validate an expense payload.

    Either ``amount`` or both ``quantity`` and ``unit_price`` must be given.
    """
    result = ValidationResult(valid=True)
    _check_date(result, data)

    item = data.get("item")
    if not isinstance(item, str) or not item.strip():
        result.add_error("item is required")

    for key in ("amount", "quantity", "unit_price"):
        value = data.get(key)
        if value is not None and (not _is_number(value) or value <= 0):
            result.add_error(f"{key} must be a positive number")

    has_amount = data.get("amount") is not None
    has_parts = data.get("quantity") is not None and data.get("unit_price") is not None
    if not has_amount and not has_parts:
        result.add_error("Either amount must be provided, or both quantity and unit_price must be provided")

    for key in ("unit", "notes", "category", "vendor"):
        _check_optional_text(result, data, key)
    return result


def validate_personal_expense(data: dict[str, Any]) -> ValidationResult:
    """Validate a personal ledger entry."""
    result = ValidationResult(valid=True)
    _check_date(result, data)

    head = data.get("head")
    if not isinstance(head, str) or not head.strip():
        result.add_error("head is required")

    if not _is_number(data.get("amount")):
        result.add_error("amount must be a number")

    _check_optional_text(result, data, "notes")
    return result


def validate_pos_event(data: dict[str, Any]) -> ValidationResult:
    """Validate a POS webhook-style event."""
    result = ValidationResult(valid=True)

    if data.get("event_type") not in POS_EVENT_TYPES:
        result.add_error(f"event_type must be one of {', '.join(POS_EVENT_TYPES)}")

    timestamp = data.get("timestamp")
    if timestamp is not None and not isinstance(timestamp, str):
        result.add_error("timestamp must be an ISO-8601 string")

    sale = validate_sale(data, require_date=False)
    for error in sale.errors:
        result.add_error(error)
    return result


def validate_profit_rate(value: Any) -> float:
    """Coerce and bound-check the foodpanda profit rate.

    Accepts numbers or numeric strings (the settings store keeps text).

    Raises
    ------
    InvalidConfig
        If the value is not a number in [0, 1]
    """
    if isinstance(value, bool):
        raise InvalidConfig(f"FP_PROFIT_RATE must be a number, got {value!r}")
    try:
        rate = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidConfig(f"FP_PROFIT_RATE must be a number, got {value!r}") from exc
    if not 0.0 <= rate <= 1.0:
        raise InvalidConfig(f"FP_PROFIT_RATE must be between 0 and 1, got {rate}")
    return rate

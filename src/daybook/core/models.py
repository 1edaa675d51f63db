"""Record types held by the ledger and consumed by the rollups."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any

__all__ = [
    "ExpenseRecord",
    "PersonalExpenseRecord",
    "SaleRecord",
    "SaleSource",
]


class SaleSource(str, Enum):
    """Sales channel."""

    SPOT = "spot"
    FOODPANDA = "foodpanda"


def _date_text(value: date | str) -> str:
    return value.isoformat() if isinstance(value, date) else value


@dataclass(frozen=True)
class SaleRecord:
    """Orders and gross revenue of one channel on one business day.

    Attributes
    ----------
    business_date : date
        Trading day the sales belong to
    source : SaleSource
        Sales channel
    orders : int
        Order count (non-negative)
    gross_amount : float
        Revenue before channel commission
    notes : str | None
        Free text
    id : str | None
        Ledger identifier (None until stored)
    created_at : str | None
        ISO-8601 UTC creation time
    """

    business_date: date
    source: SaleSource
    orders: int
    gross_amount: float
    notes: str | None = None
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["business_date"] = _date_text(self.business_date)
        data["source"] = self.source.value
        return data


@dataclass(frozen=True)
class ExpenseRecord:
    """One expense entry. Several entries per day and item are expected."""

    business_date: date
    item: str
    amount: float
    quantity: float | None = None
    unit: str | None = None
    notes: str | None = None
    category: str = "general"
    unit_price: float | None = None
    vendor: str | None = None
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["business_date"] = _date_text(self.business_date)
        return data


@dataclass(frozen=True)
class PersonalExpenseRecord:
    """Personal ledger entry, grouped by expense head."""

    business_date: date
    head: str
    amount: float
    notes: str | None = None
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["business_date"] = _date_text(self.business_date)
        return data

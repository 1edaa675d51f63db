"""POS Pipeline - bucket POS orders into business days.

Every order event is mapped to its business date with the single rollover
rule configured for the process, then merged into the (date, source) sales
row through the ledger's atomic upsert.

Event handling:
- order_created / order_updated: add orders and revenue
- order_cancelled: subtract (floored at zero, never creates a row)
- daily_summary: replace the row with the POS totals
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..core.business_day import DEFAULT_ROLLOVER_RULE, RolloverRule, parse_rollover_rule, resolve_business_date
from ..core.models import SaleSource
from ..core.time import DEFAULT_TIMEZONE, parse_date
from ..core.validation import validate_pos_event, validate_sale
from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from ..storage.ledger import Ledger, UpsertMode

__all__ = [
    "PosPipeline",
    "PosResult",
    "create_pos_pipeline",
]

log = get_logger("pipeline")

EVENT_MODES: dict[str, UpsertMode] = {
    "order_created": "add",
    "order_updated": "add",
    "order_cancelled": "subtract",
    "daily_summary": "replace",
}


@dataclass
class PosResult:
    """Outcome of one POS write."""

    action: str
    business_date: str
    event_type: str
    sale: dict[str, Any] | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "businessDate": self.business_date,
            "event": self.event_type,
            "sale": self.sale,
        }


class PosPipeline:
    """Records POS orders against business-date buckets."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        timezone_str: str = DEFAULT_TIMEZONE,
        rule: RolloverRule | str = DEFAULT_ROLLOVER_RULE,
    ) -> None:
        self.ledger = ledger
        self.timezone_str = timezone_str
        self.rule = parse_rollover_rule(rule)

    def business_date(self, timestamp: str | datetime | None = None) -> str:
        """Business date for a timestamp (now if None)."""
        return resolve_business_date(timestamp, self.timezone_str, self.rule)

    def record_order(
        self,
        source: SaleSource | str,
        orders: int,
        gross_amount: float,
        *,
        timestamp: str | datetime | None = None,
        notes: str | None = None,
    ) -> PosResult:
        """Add an order batch to its business-date bucket.

        Raises
        ------
        ValidationError
            If the payload is invalid
        InvalidTimestamp
            If the timestamp cannot be parsed
        """
        channel = source.value if isinstance(source, SaleSource) else source
        validate_sale(
            {"source": channel, "orders": orders, "gross_amount": gross_amount, "notes": notes},
            require_date=False,
        ).raise_if_invalid("POS order")
        return self._write("order_created", channel, orders, gross_amount, timestamp, notes)

    def handle_event(self, event: dict[str, Any]) -> PosResult:
        """Apply a POS event payload.

        Parameters
        ----------
        event
            ``{"event_type", "source", "orders", "gross_amount", "timestamp"?, "notes"?}``
        """
        validate_pos_event(event).raise_if_invalid("POS event")
        event_type = event["event_type"]
        notes = event.get("notes")
        if notes is None and event_type == "daily_summary":
            notes = "Daily summary from POS"
        return self._write(
            event_type,
            event["source"],
            event["orders"],
            event["gross_amount"],
            event.get("timestamp"),
            notes,
        )

    def _write(
        self,
        event_type: str,
        source: str,
        orders: int,
        gross_amount: float,
        timestamp: str | datetime | None,
        notes: str | None,
    ) -> PosResult:
        business_date = self.business_date(timestamp)
        result = self.ledger.upsert_sale(
            business_date,
            source,
            orders=orders,
            gross_amount=gross_amount,
            notes=notes,
            mode=EVENT_MODES[event_type],
        )
        log.info(
            f"POS {event_type}: {source} -> {business_date} ({result.action})",
            orders=orders,
            gross_amount=gross_amount,
        )
        return PosResult(
            action=result.action,
            business_date=business_date,
            event_type=event_type,
            sale=result.sale.to_dict() if result.sale else None,
        )

    def daily_snapshot(self, business_date: str | None = None) -> dict[str, Any]:
        """Orders and revenue per source for one business day (default: current)."""
        day = parse_date(business_date) if business_date else parse_date(self.business_date())
        sales = self.ledger.list_sales(day, day)

        snapshot: dict[str, Any] = {"businessDate": day.isoformat(), "totalOrders": 0, "totalRevenue": 0.0}
        for source in SaleSource:
            rows = [s for s in sales if s.source == source]
            orders = sum(s.orders for s in rows)
            revenue = sum(s.gross_amount for s in rows)
            snapshot[f"{source.value}Orders"] = orders
            snapshot[f"{source.value}Revenue"] = revenue
            snapshot["totalOrders"] += orders
            snapshot["totalRevenue"] += revenue
        snapshot["recordsCount"] = len(sales)
        return snapshot


def create_pos_pipeline(
    ledger: Ledger,
    *,
    timezone_str: str = DEFAULT_TIMEZONE,
    rule: RolloverRule | str = DEFAULT_ROLLOVER_RULE,
) -> PosPipeline:
    """Create POS pipeline."""
    return PosPipeline(ledger, timezone_str=timezone_str, rule=rule)

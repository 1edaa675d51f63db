"""Ledger export.

Dump the sales and expenses of a date range as CSV (sales block,
expenses block and a data dictionary) or as a JSON document.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.time import get_current_utc
from ..core.validation import ValidationError
from ..observability.loguru_config import get_logger
from ..rollups.time_windows import DateRange, parse_range

if TYPE_CHECKING:
    from ..core.models import ExpenseRecord, SaleRecord
    from ..storage.ledger import Ledger

__all__ = [
    "EXPORT_FORMATS",
    "ExportInfo",
    "export_range",
    "render_csv",
    "render_json",
    "write_export",
]

log = get_logger("maintenance")

EXPORT_FORMATS = ("csv", "json")

SALES_HEADER = ("date", "source", "orders", "gross_amount", "notes")
EXPENSES_HEADER = ("date", "item", "qty", "unit", "amount", "notes")

DATA_DICTIONARY = (
    ("date", "Date of transaction", "YYYY-MM-DD", "2025-01-01"),
    ("source", "Sales source", "spot|foodpanda", "spot"),
    ("orders", "Number of orders", "integer", "45"),
    ("gross_amount", "Gross sales amount", "decimal", "125000.00"),
    ("notes", "Additional notes", "text", "Evening rush"),
    ("item", "Expense item", "text", "Chicken"),
    ("qty", "Quantity", "decimal", "25.000"),
    ("unit", "Unit of measurement", "text", "kg"),
    ("amount", "Total amount", "decimal", "15500.00"),
)


@dataclass
class ExportInfo:
    """Information about a written export.

    Attributes
    ----------
    path : Path
        Export file
    fmt : str
        ``csv`` or ``json``
    sales : int
        Number of sales rows
    expenses : int
        Number of expense rows
    """

    path: Path
    fmt: str
    sales: int
    expenses: int


def _blank(value: Any) -> Any:
    return "" if value is None else value


def render_csv(sales: list[SaleRecord], expenses: list[ExpenseRecord]) -> str:
    """Render the CSV export with its three blocks."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow(["SALES DATA"])
    writer.writerow(SALES_HEADER)
    for sale in sales:
        writer.writerow(
            [sale.business_date.isoformat(), sale.source.value, sale.orders, sale.gross_amount, _blank(sale.notes)]
        )

    writer.writerow([])
    writer.writerow(["EXPENSES DATA"])
    writer.writerow(EXPENSES_HEADER)
    for expense in expenses:
        writer.writerow(
            [
                expense.business_date.isoformat(),
                expense.item,
                _blank(expense.quantity),
                _blank(expense.unit),
                expense.amount,
                _blank(expense.notes),
            ]
        )

    writer.writerow([])
    writer.writerow(["DATA DICTIONARY"])
    writer.writerow(("Field", "Description", "Type", "Example"))
    writer.writerows(DATA_DICTIONARY)
    return buffer.getvalue()


def render_json(
    sales: list[SaleRecord],
    expenses: list[ExpenseRecord],
    start: date,
    end: date,
    exported_at: datetime | None = None,
) -> str:
    """Render the JSON export document."""
    exported_at = exported_at or get_current_utc()
    document = {
        "exportDate": exported_at.isoformat(),
        "dateRange": {"start": start.isoformat(), "end": end.isoformat()},
        "sales": [sale.to_dict() for sale in sales],
        "expenses": [expense.to_dict() for expense in expenses],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def _check_format(fmt: str) -> None:
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(
            f"Validation error: unknown export format {fmt!r}",
            [f"format must be one of {', '.join(EXPORT_FORMATS)}"],
        )


def export_range(
    ledger: Ledger,
    start: date | str | None,
    end: date | str | None,
    fmt: str = "csv",
) -> str:
    """Export sales and expenses of ``[start, end]``.

    Parameters
    ----------
    ledger
        Ledger to read from
    start, end
        Inclusive business-date bounds
    fmt
        ``csv`` or ``json``

    Returns
    -------
    str
        Export content

    Raises
    ------
    InvalidRange
        If the bounds are missing or malformed
    ValidationError
        If the format is unknown
    """
    _check_format(fmt)
    period = parse_range(start, end)
    content, _, _ = _render_period(ledger, period, fmt)
    return content


def _render_period(ledger: Ledger, period: DateRange, fmt: str) -> tuple[str, list, list]:
    sales = ledger.list_sales(period.start, period.end)
    expenses = ledger.list_expenses(period.start, period.end)
    log.info(f"Exporting {period.start}..{period.end} as {fmt}", sales=len(sales), expenses=len(expenses))

    if fmt == "json":
        return render_json(sales, expenses, period.start, period.end), sales, expenses
    return render_csv(sales, expenses), sales, expenses


def write_export(
    ledger: Ledger,
    start: date | str | None,
    end: date | str | None,
    fmt: str,
    output_dir: Path,
) -> ExportInfo:
    """Write an export file named ``daybook-export-<start>-<end>.<fmt>``."""
    _check_format(fmt)
    period = parse_range(start, end)
    content, sales, expenses = _render_period(ledger, period, fmt)

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"daybook-export-{period.start}-{period.end}.{fmt}"
    path.write_text(content, encoding="utf-8")

    return ExportInfo(
        path=path,
        fmt=fmt,
        sales=len(sales),
        expenses=len(expenses),
    )

"""SQLite ledger for sales, expenses, the personal ledger and settings.

The ledger is the storage collaborator of the summary and POS pipelines:

- range queries for sales and expenses (inclusive business dates)
- an atomic upsert on sales keyed by (business date, source)
- CRUD for individual records by identifier
- a small key/value settings store (profit rate, currency, categories)

Payloads are validated before any write; invalid payloads never touch
the database.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import date
from pathlib import Path
from typing import Any, Literal

from ..core.models import ExpenseRecord, PersonalExpenseRecord, SaleRecord, SaleSource
from ..core.time import get_current_utc, parse_date
from ..core.validation import (
    DaybookError,
    InvalidRange,
    ValidationError,
    ValidationResult,
    validate_expense,
    validate_personal_expense,
    validate_profit_rate,
    validate_sale,
)
from ..observability.loguru_config import get_logger

__all__ = [
    "DEFAULT_CURRENCY",
    "DEFAULT_PROFIT_RATE",
    "Ledger",
    "RecordNotFound",
    "UpsertMode",
    "UpsertResult",
    "open_ledger",
]

log = get_logger("ledger")

DEFAULT_PROFIT_RATE = 0.70
DEFAULT_CURRENCY = "PKR"

UpsertMode = Literal["add", "subtract", "replace"]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS sales (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    source TEXT NOT NULL CHECK (source IN ('spot', 'foodpanda')),
    orders INTEGER NOT NULL DEFAULT 0,
    gross_amount REAL NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS sales_date_source_idx ON sales(date, source);

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'general',
    item TEXT NOT NULL,
    qty REAL,
    unit TEXT,
    unit_price REAL,
    amount REAL NOT NULL,
    vendor TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS expenses_date_idx ON expenses(date);
CREATE INDEX IF NOT EXISTS expenses_item_idx ON expenses(item);

CREATE TABLE IF NOT EXISTS personal_expenses (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL,
    head TEXT NOT NULL,
    amount REAL NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS personal_expenses_date_idx ON personal_expenses(date);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

SALE_FIELDS = ("date", "source", "orders", "gross_amount", "notes")
EXPENSE_FIELDS = ("date", "category", "item", "quantity", "unit", "unit_price", "amount", "vendor", "notes")
PERSONAL_FIELDS = ("date", "head", "amount", "notes")


class RecordNotFound(DaybookError):
    """Raised when a record id does not exist."""


class UpsertResult:
    """Outcome of a (date, source) upsert."""

    def __init__(self, action: str, sale: SaleRecord | None) -> None:
        self.action = action
        self.sale = sale

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "sale": self.sale.to_dict() if self.sale else None}


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> str:
    return get_current_utc().replace(microsecond=0).isoformat()


def _sale_from_row(row: sqlite3.Row) -> SaleRecord:
    return SaleRecord(
        business_date=date.fromisoformat(row["date"]),
        source=SaleSource(row["source"]),
        orders=row["orders"],
        gross_amount=row["gross_amount"],
        notes=row["notes"],
        id=row["id"],
        created_at=row["created_at"],
    )


def _expense_from_row(row: sqlite3.Row) -> ExpenseRecord:
    return ExpenseRecord(
        business_date=date.fromisoformat(row["date"]),
        item=row["item"],
        amount=row["amount"],
        quantity=row["qty"],
        unit=row["unit"],
        notes=row["notes"],
        category=row["category"],
        unit_price=row["unit_price"],
        vendor=row["vendor"],
        id=row["id"],
        created_at=row["created_at"],
    )


def _personal_from_row(row: sqlite3.Row) -> PersonalExpenseRecord:
    return PersonalExpenseRecord(
        business_date=date.fromisoformat(row["date"]),
        head=row["head"],
        amount=row["amount"],
        notes=row["notes"],
        id=row["id"],
        created_at=row["created_at"],
    )


def _date_bounds(start: date | str | None, end: date | str | None) -> tuple[list[str], list[Any]]:
    """WHERE clauses for optional inclusive bounds; raises InvalidRange on bad bounds."""
    first = parse_date(start, field="start") if start is not None else None
    last = parse_date(end, field="end") if end is not None else None
    if first is not None and last is not None and last < first:
        raise InvalidRange(f"end {last} is before start {first}")

    clauses: list[str] = []
    params: list[Any] = []
    if first is not None:
        clauses.append("date >= ?")
        params.append(first.isoformat())
    if last is not None:
        clauses.append("date <= ?")
        params.append(last.isoformat())
    return clauses, params


def _where(clauses: list[str]) -> str:
    return f"WHERE {' AND '.join(clauses)}" if clauses else ""


class Ledger:
    """SQLite-backed ledger.

    Example:
        >>> ledger = Ledger("daybook.db")
        >>> ledger.upsert_sale("2025-01-01", "spot", orders=3, gross_amount=1500.0)
        >>> ledger.list_sales("2025-01-01", "2025-01-07")
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize ledger.

        Parameters
        ----------
        db_path
            Path to SQLite database (``:memory:`` for a throwaway ledger)
        """
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._get_connection()
        conn.executescript(SCHEMA_SQL)
        conn.commit()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Ledger:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def list_sales(
        self,
        start: date | str | None = None,
        end: date | str | None = None,
        source: SaleSource | str | None = None,
    ) -> list[SaleRecord]:
        """Sales with business date in ``[start, end]``, optionally one source."""
        clauses, params = _date_bounds(start, end)
        if source is not None:
            clauses.append("source = ?")
            params.append(SaleSource(source).value)

        rows = self._get_connection().execute(
            f"SELECT * FROM sales {_where(clauses)} ORDER BY date, created_at",
            params,
        ).fetchall()
        return [_sale_from_row(row) for row in rows]

    def get_sale(self, sale_id: str) -> SaleRecord:
        row = self._get_connection().execute("SELECT * FROM sales WHERE id = ?", (sale_id,)).fetchone()
        if row is None:
            raise RecordNotFound(f"Sale not found: {sale_id}")
        return _sale_from_row(row)

    def _find_sale(self, business_date: str, source: str) -> SaleRecord | None:
        row = self._get_connection().execute(
            "SELECT * FROM sales WHERE date = ? AND source = ?",
            (business_date, source),
        ).fetchone()
        return _sale_from_row(row) if row else None

    def add_sale(self, data: dict[str, Any]) -> SaleRecord:
        """Insert a manually entered sale.

        Raises
        ------
        ValidationError
            If the payload is invalid or a sale for the same date and
            source already exists
        """
        validate_sale(data).raise_if_invalid("sale")
        sale_id = _new_id()
        conn = self._get_connection()
        try:
            conn.execute(
                "INSERT INTO sales (id, date, source, orders, gross_amount, notes, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    sale_id,
                    data["date"],
                    data["source"],
                    data["orders"],
                    float(data["gross_amount"]),
                    data.get("notes"),
                    _now(),
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ValidationError(
                f"Validation error: sale for {data['source']} on {data['date']} already exists",
                ["conflict on (date, source)"],
            ) from exc

        log.info(f"Sale created: {data['source']} {data['date']}", sale_id=sale_id)
        return self.get_sale(sale_id)

    def update_sale(self, sale_id: str, changes: dict[str, Any]) -> SaleRecord:
        """Apply a partial update to a sale."""
        current = self.get_sale(sale_id).to_dict()
        current["date"] = current.pop("business_date")
        merged = {key: current.get(key) for key in SALE_FIELDS}
        merged.update({key: value for key, value in changes.items() if key in SALE_FIELDS})
        validate_sale(merged).raise_if_invalid("sale")

        conn = self._get_connection()
        try:
            conn.execute(
                "UPDATE sales SET date = ?, source = ?, orders = ?, gross_amount = ?, notes = ? WHERE id = ?",
                (
                    merged["date"],
                    merged["source"],
                    merged["orders"],
                    float(merged["gross_amount"]),
                    merged.get("notes"),
                    sale_id,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ValidationError(
                f"Validation error: sale for {merged['source']} on {merged['date']} already exists",
                ["conflict on (date, source)"],
            ) from exc
        return self.get_sale(sale_id)

    def delete_sale(self, sale_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM sales WHERE id = ?", (sale_id,))
        conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFound(f"Sale not found: {sale_id}")

    def upsert_sale(
        self,
        business_date: date | str,
        source: SaleSource | str,
        *,
        orders: int,
        gross_amount: float,
        notes: str | None = None,
        mode: UpsertMode = "add",
    ) -> UpsertResult:
        """Atomically merge into the (business date, source) row.

        Parameters
        ----------
        business_date
            Bucket date
        source
            Sales channel
        orders, gross_amount
            Amounts to merge
        notes
            Notes; kept from the existing row when None
        mode
            ``add`` increments (creating the row if needed), ``subtract``
            decrements floored at zero (never creates a row), ``replace``
            overwrites with the given totals

        Returns
        -------
        UpsertResult
            ``action`` is created, updated or ignored
        """
        payload = {
            "date": str(business_date),
            "source": source.value if isinstance(source, SaleSource) else source,
            "orders": orders,
            "gross_amount": gross_amount,
            "notes": notes,
        }
        validate_sale(payload).raise_if_invalid("sale")
        day = payload["date"]
        channel = payload["source"]
        conn = self._get_connection()

        if mode == "subtract":
            cursor = conn.execute(
                "UPDATE sales SET orders = MAX(0, orders - ?), gross_amount = MAX(0, gross_amount - ?) "
                "WHERE date = ? AND source = ?",
                (orders, float(gross_amount), day, channel),
            )
            conn.commit()
            if cursor.rowcount == 0:
                log.info(f"Nothing to subtract for {channel} on {day}")
                return UpsertResult("ignored", None)
            return UpsertResult("updated", self._find_sale(day, channel))

        if mode == "add":
            on_conflict = (
                "orders = orders + excluded.orders, "
                "gross_amount = gross_amount + excluded.gross_amount, "
                "notes = COALESCE(excluded.notes, notes)"
            )
        elif mode == "replace":
            on_conflict = "orders = excluded.orders, gross_amount = excluded.gross_amount, notes = excluded.notes"
        else:
            raise ValueError(f"Unknown upsert mode: {mode}")

        sale_id = _new_id()
        conn.execute(
            "INSERT INTO sales (id, date, source, orders, gross_amount, notes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            f"ON CONFLICT(date, source) DO UPDATE SET {on_conflict}",
            (sale_id, day, channel, orders, float(gross_amount), notes, _now()),
        )
        conn.commit()

        sale = self._find_sale(day, channel)
        action = "created" if sale is not None and sale.id == sale_id else "updated"
        log.info(f"Sale {action}: {channel} {day}", mode=mode, orders=orders, gross_amount=gross_amount)
        return UpsertResult(action, sale)

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def list_expenses(
        self,
        start: date | str | None = None,
        end: date | str | None = None,
        category: str | None = None,
    ) -> list[ExpenseRecord]:
        """Expenses with business date in ``[start, end]``, optionally one category."""
        clauses, params = _date_bounds(start, end)
        if category:
            clauses.append("category = ?")
            params.append(category)

        rows = self._get_connection().execute(
            f"SELECT * FROM expenses {_where(clauses)} ORDER BY date, created_at",
            params,
        ).fetchall()
        return [_expense_from_row(row) for row in rows]

    def get_expense(self, expense_id: str) -> ExpenseRecord:
        row = self._get_connection().execute("SELECT * FROM expenses WHERE id = ?", (expense_id,)).fetchone()
        if row is None:
            raise RecordNotFound(f"Expense not found: {expense_id}")
        return _expense_from_row(row)

    @staticmethod
    def _expense_amount(data: dict[str, Any]) -> float:
        if data.get("amount") is not None:
            return float(data["amount"])
        return float(data["quantity"]) * float(data["unit_price"])

    def add_expense(self, data: dict[str, Any]) -> ExpenseRecord:
        """Insert an expense; without ``amount`` it is derived from quantity x unit price."""
        validate_expense(data).raise_if_invalid("expense")
        expense_id = _new_id()
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO expenses "
            "(id, date, category, item, qty, unit, unit_price, amount, vendor, notes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                expense_id,
                data["date"],
                data.get("category") or "general",
                data["item"].strip(),
                data.get("quantity"),
                data.get("unit"),
                data.get("unit_price"),
                self._expense_amount(data),
                data.get("vendor"),
                data.get("notes"),
                _now(),
            ),
        )
        conn.commit()
        log.info(f"Expense created: {data['item']} {data['date']}", expense_id=expense_id)
        return self.get_expense(expense_id)

    def update_expense(self, expense_id: str, changes: dict[str, Any]) -> ExpenseRecord:
        """Apply a partial update to an expense.

        Changing quantity or unit price without an amount re-derives the amount.
        """
        current = self.get_expense(expense_id).to_dict()
        current["date"] = current.pop("business_date")
        merged = {key: current.get(key) for key in EXPENSE_FIELDS}
        merged.update({key: value for key, value in changes.items() if key in EXPENSE_FIELDS})
        if "amount" not in changes and ("quantity" in changes or "unit_price" in changes):
            if merged.get("quantity") is not None and merged.get("unit_price") is not None:
                merged["amount"] = None
        validate_expense(merged).raise_if_invalid("expense")

        conn = self._get_connection()
        conn.execute(
            "UPDATE expenses SET date = ?, category = ?, item = ?, qty = ?, unit = ?, unit_price = ?, "
            "amount = ?, vendor = ?, notes = ? WHERE id = ?",
            (
                merged["date"],
                merged.get("category") or "general",
                merged["item"].strip(),
                merged.get("quantity"),
                merged.get("unit"),
                merged.get("unit_price"),
                self._expense_amount(merged),
                merged.get("vendor"),
                merged.get("notes"),
                expense_id,
            ),
        )
        conn.commit()
        return self.get_expense(expense_id)

    def delete_expense(self, expense_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFound(f"Expense not found: {expense_id}")

    # ------------------------------------------------------------------
    # Personal ledger
    # ------------------------------------------------------------------

    def list_personal_expenses(
        self,
        start: date | str | None = None,
        end: date | str | None = None,
        head: str | None = None,
    ) -> list[PersonalExpenseRecord]:
        clauses, params = _date_bounds(start, end)
        if head:
            clauses.append("head = ?")
            params.append(head)
        rows = self._get_connection().execute(
            f"SELECT * FROM personal_expenses {_where(clauses)} ORDER BY date, created_at",
            params,
        ).fetchall()
        return [_personal_from_row(row) for row in rows]

    def get_personal_expense(self, expense_id: str) -> PersonalExpenseRecord:
        row = self._get_connection().execute(
            "SELECT * FROM personal_expenses WHERE id = ?", (expense_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFound(f"Personal expense not found: {expense_id}")
        return _personal_from_row(row)

    def add_personal_expense(self, data: dict[str, Any]) -> PersonalExpenseRecord:
        validate_personal_expense(data).raise_if_invalid("personal expense")
        expense_id = _new_id()
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO personal_expenses (id, date, head, amount, notes, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (expense_id, data["date"], data["head"].strip(), float(data["amount"]), data.get("notes"), _now()),
        )
        conn.commit()
        return self.get_personal_expense(expense_id)

    def delete_personal_expense(self, expense_id: str) -> None:
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM personal_expenses WHERE id = ?", (expense_id,))
        conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFound(f"Personal expense not found: {expense_id}")

    def personal_totals(
        self,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> list[dict[str, Any]]:
        """Total and entry count per expense head, ordered by head."""
        clauses, params = _date_bounds(start, end)
        rows = self._get_connection().execute(
            "SELECT head, SUM(amount) AS total, COUNT(*) AS entries "
            f"FROM personal_expenses {_where(clauses)} GROUP BY head ORDER BY head",
            params,
        ).fetchall()
        return [{"head": row["head"], "total": row["total"], "entries": row["entries"]} for row in rows]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        row = self._get_connection().execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        conn.commit()

    def all_settings(self) -> dict[str, str]:
        rows = self._get_connection().execute("SELECT key, value FROM settings ORDER BY key").fetchall()
        return {row["key"]: row["value"] for row in rows}

    def profit_rate(self) -> float:
        """Stored ``FP_PROFIT_RATE`` (default 0.70), validated to [0, 1]."""
        return validate_profit_rate(self.get_setting("FP_PROFIT_RATE", str(DEFAULT_PROFIT_RATE)))

    def currency(self) -> str:
        return self.get_setting("CURRENCY", DEFAULT_CURRENCY) or DEFAULT_CURRENCY

    def expense_categories(self) -> list[str]:
        raw = self.get_setting("EXPENSE_CATEGORIES")
        return json.loads(raw) if raw else []

    def update_settings(self, updates: dict[str, Any]) -> dict[str, str]:
        """Validate and store dashboard settings, returning the full store.

        Accepted keys: ``FP_PROFIT_RATE`` (number in [0, 1]), ``CURRENCY``
        (non-empty text), ``EXPENSE_CATEGORIES`` (list of text).

        Raises
        ------
        InvalidConfig
            If the profit rate is out of bounds
        ValidationError
            If another key is unknown or malformed
        """
        result = ValidationResult(valid=True)
        pending: dict[str, str] = {}

        for key, value in updates.items():
            if key == "FP_PROFIT_RATE":
                pending[key] = str(validate_profit_rate(value))
            elif key == "CURRENCY":
                if not isinstance(value, str) or not value.strip():
                    result.add_error("CURRENCY must be non-empty text")
                else:
                    pending[key] = value.strip()
            elif key == "EXPENSE_CATEGORIES":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    result.add_error("EXPENSE_CATEGORIES must be a list of text")
                else:
                    pending[key] = json.dumps(value)
            else:
                result.add_error(f"Unknown setting: {key}")

        result.raise_if_invalid("settings")

        for key, value in pending.items():
            self.set_setting(key, value)
        log.info("Settings updated", keys=sorted(pending))
        return self.all_settings()


def open_ledger(db_path: Path | str) -> Ledger:
    """Create ledger instance."""
    return Ledger(db_path)

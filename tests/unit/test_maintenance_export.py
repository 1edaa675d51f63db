"""Tests for ledger export."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from daybook.core.validation import InvalidRange, ValidationError
from daybook.maintenance.export import export_range, render_json, write_export
from daybook.storage.ledger import Ledger


@pytest.fixture
def ledger(tmp_path: Path):
    """Create ledger with a few rows."""
    with Ledger(tmp_path / "daybook.db") as ledger:
        ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 45, "gross_amount": 125000, "notes": "Evening rush"})
        ledger.add_sale({"date": "2025-01-02", "source": "foodpanda", "orders": 12, "gross_amount": 30000})
        ledger.add_sale({"date": "2025-02-01", "source": "spot", "orders": 1, "gross_amount": 10})
        ledger.add_expense({"date": "2025-01-01", "item": "Chicken", "quantity": 25, "unit": "kg", "unit_price": 620})
        yield ledger


def test_csv_blocks(ledger):
    """Test the CSV has sales, expenses and dictionary blocks."""
    content = export_range(ledger, "2025-01-01", "2025-01-31", "csv")
    lines = content.splitlines()

    assert lines[0] == "SALES DATA"
    assert lines[1] == "date,source,orders,gross_amount,notes"
    assert lines[2] == "2025-01-01,spot,45,125000.0,Evening rush"
    assert lines[3] == "2025-01-02,foodpanda,12,30000.0,"
    assert lines[4] == ""
    assert lines[5] == "EXPENSES DATA"
    assert lines[6] == "date,item,qty,unit,amount,notes"
    assert lines[7] == "2025-01-01,Chicken,25.0,kg,15500.0,"
    assert lines[8] == ""
    assert lines[9] == "DATA DICTIONARY"
    assert lines[10] == "Field,Description,Type,Example"
    assert "2025-02-01" not in content


def test_json_document(ledger):
    """Test the JSON export keys and rows."""
    document = json.loads(export_range(ledger, "2025-01-01", "2025-01-31", "json"))

    assert set(document) == {"exportDate", "dateRange", "sales", "expenses"}
    assert document["dateRange"] == {"start": "2025-01-01", "end": "2025-01-31"}
    assert [sale["source"] for sale in document["sales"]] == ["spot", "foodpanda"]
    assert document["expenses"][0]["amount"] == 15500.0


def test_render_json_export_date():
    """Test the export time is written as given."""
    exported_at = datetime(2025, 2, 1, 9, 30, tzinfo=timezone.utc)
    document = json.loads(
        render_json([], [], datetime(2025, 1, 1).date(), datetime(2025, 1, 31).date(), exported_at)
    )

    assert document["exportDate"] == "2025-02-01T09:30:00+00:00"
    assert document["sales"] == []


def test_write_export(ledger, tmp_path):
    """Test the export file name and counts."""
    info = write_export(ledger, "2025-01-01", "2025-01-31", "json", tmp_path / "exports")

    assert info.path == tmp_path / "exports" / "daybook-export-2025-01-01-2025-01-31.json"
    assert info.path.exists()
    assert info.sales == 2
    assert info.expenses == 1


def test_write_export_counts_exported_rows(ledger, tmp_path, monkeypatch):
    """Test counts come from the rows written, with one read per table."""
    calls = []
    list_sales = ledger.list_sales
    list_expenses = ledger.list_expenses
    monkeypatch.setattr(ledger, "list_sales", lambda *args: calls.append("sales") or list_sales(*args))
    monkeypatch.setattr(ledger, "list_expenses", lambda *args: calls.append("expenses") or list_expenses(*args))

    info = write_export(ledger, "2025-01-01", "2025-01-31", "json", tmp_path)

    document = json.loads(info.path.read_text(encoding="utf-8"))
    assert calls == ["sales", "expenses"]
    assert info.sales == len(document["sales"])
    assert info.expenses == len(document["expenses"])


def test_write_export_unknown_format(ledger, tmp_path):
    """Test nothing is written for an unknown format."""
    with pytest.raises(ValidationError):
        write_export(ledger, "2025-01-01", "2025-01-31", "xlsx", tmp_path / "exports")

    assert not (tmp_path / "exports").exists()


def test_unknown_format(ledger):
    """Test unknown formats are validation errors."""
    with pytest.raises(ValidationError, match="unknown export format"):
        export_range(ledger, "2025-01-01", "2025-01-31", "xlsx")


def test_invalid_bounds(ledger):
    """Test bad bounds are invalid ranges."""
    with pytest.raises(InvalidRange):
        export_range(ledger, "2025-01-31", "2025-01-01")

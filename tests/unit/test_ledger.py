"""Tests for the SQLite ledger."""

from datetime import date
from pathlib import Path

import pytest

from daybook.core.models import SaleSource
from daybook.core.validation import InvalidConfig, InvalidRange, ValidationError
from daybook.storage.ledger import Ledger, RecordNotFound


@pytest.fixture
def ledger(tmp_path: Path):
    with Ledger(tmp_path / "daybook.db") as ledger:
        yield ledger


class TestSales:
    """Sales CRUD and range queries."""

    def test_add_and_get(self, ledger: Ledger):
        """Test a manual sale round-trips."""
        sale = ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 12, "gross_amount": 5400})

        stored = ledger.get_sale(sale.id)
        assert stored.business_date == date(2025, 1, 1)
        assert stored.source is SaleSource.SPOT
        assert stored.orders == 12
        assert stored.gross_amount == 5400.0
        assert stored.created_at is not None

    def test_duplicate_manual_sale_is_a_conflict(self, ledger: Ledger):
        """Test manual entry never merges into an existing (date, source) row."""
        ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 1, "gross_amount": 100})

        with pytest.raises(ValidationError, match="already exists") as excinfo:
            ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 2, "gross_amount": 200})
        assert excinfo.value.errors == ["conflict on (date, source)"]

        # other channel on the same day is fine
        ledger.add_sale({"date": "2025-01-01", "source": "foodpanda", "orders": 2, "gross_amount": 200})
        assert len(ledger.list_sales("2025-01-01", "2025-01-01")) == 2

    def test_invalid_sale_never_written(self, ledger: Ledger):
        """Test invalid payloads leave the table untouched."""
        with pytest.raises(ValidationError):
            ledger.add_sale({"date": "2025-01-01", "source": "uber", "orders": 1, "gross_amount": 100})

        assert ledger.list_sales() == []

    @pytest.mark.parametrize(
        ("add", "payload"),
        [
            ("add_sale", {"source": "spot", "orders": 1, "gross_amount": 100}),
            ("add_expense", {"item": "Gas", "amount": 100}),
            ("add_personal_expense", {"head": "Rent", "amount": 100}),
        ],
    )
    def test_impossible_date_never_written(self, ledger: Ledger, add, payload):
        """Test a date like Feb 30 is rejected before the insert."""
        with pytest.raises(ValidationError, match="not a calendar date"):
            getattr(ledger, add)({"date": "2025-02-30", **payload})

        assert ledger.list_sales() == []
        assert ledger.list_expenses() == []
        assert ledger.list_personal_expenses() == []

    def test_list_sales_range_and_source(self, ledger: Ledger):
        """Test inclusive range and source filters."""
        for day in ("2025-01-01", "2025-01-02", "2025-01-03"):
            ledger.add_sale({"date": day, "source": "spot", "orders": 1, "gross_amount": 100})
        ledger.add_sale({"date": "2025-01-02", "source": "foodpanda", "orders": 1, "gross_amount": 50})

        assert len(ledger.list_sales("2025-01-02", "2025-01-03")) == 3
        assert [s.business_date.day for s in ledger.list_sales("2025-01-01", "2025-01-03", "spot")] == [1, 2, 3]
        assert len(ledger.list_sales(source=SaleSource.FOODPANDA)) == 1

    @pytest.mark.parametrize(("start", "end"), [("foo", None), (None, "2025-02-30"), ("2025-01-03", "2025-01-01")])
    def test_list_rejects_bad_bounds(self, ledger: Ledger, start, end):
        """Test malformed or reversed bounds raise InvalidRange instead of filtering."""
        with pytest.raises(InvalidRange):
            ledger.list_sales(start, end)
        with pytest.raises(InvalidRange):
            ledger.list_expenses(start, end)
        with pytest.raises(InvalidRange):
            ledger.personal_totals(start, end)

    def test_update_sale(self, ledger: Ledger):
        """Test partial updates are validated and applied."""
        sale = ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 1, "gross_amount": 100})

        updated = ledger.update_sale(sale.id, {"orders": 4, "notes": "corrected"})
        assert updated.orders == 4
        assert updated.gross_amount == 100
        assert updated.notes == "corrected"

        with pytest.raises(ValidationError):
            ledger.update_sale(sale.id, {"orders": -4})

    def test_delete_sale(self, ledger: Ledger):
        """Test deletes, and missing ids raise RecordNotFound."""
        sale = ledger.add_sale({"date": "2025-01-01", "source": "spot", "orders": 1, "gross_amount": 100})
        ledger.delete_sale(sale.id)

        with pytest.raises(RecordNotFound):
            ledger.get_sale(sale.id)
        with pytest.raises(RecordNotFound):
            ledger.delete_sale(sale.id)


class TestUpsert:
    """Atomic (date, source) upsert."""

    def test_add_creates_then_increments(self, ledger: Ledger):
        """Test add mode creates the row and then increments it."""
        first = ledger.upsert_sale("2025-01-01", "foodpanda", orders=1, gross_amount=900)
        second = ledger.upsert_sale("2025-01-01", "foodpanda", orders=2, gross_amount=1500, notes="rush")

        assert first.action == "created"
        assert second.action == "updated"
        assert second.sale.id == first.sale.id
        assert second.sale.orders == 3
        assert second.sale.gross_amount == pytest.approx(2400)
        assert second.sale.notes == "rush"

    def test_one_row_per_key(self, ledger: Ledger):
        """Test repeated upserts never duplicate a (date, source) row."""
        for _ in range(5):
            ledger.upsert_sale(date(2025, 1, 1), SaleSource.SPOT, orders=1, gross_amount=100)
        ledger.upsert_sale("2025-01-01", "foodpanda", orders=1, gross_amount=100)

        sales = ledger.list_sales("2025-01-01", "2025-01-01")
        assert len(sales) == 2
        spot = [s for s in sales if s.source is SaleSource.SPOT][0]
        assert spot.orders == 5
        assert spot.gross_amount == pytest.approx(500)

    def test_subtract_floors_at_zero(self, ledger: Ledger):
        """Test cancellations never go below zero."""
        ledger.upsert_sale("2025-01-01", "spot", orders=2, gross_amount=1000)

        result = ledger.upsert_sale("2025-01-01", "spot", orders=5, gross_amount=400, mode="subtract")

        assert result.action == "updated"
        assert result.sale.orders == 0
        assert result.sale.gross_amount == pytest.approx(600)

    def test_subtract_without_row_is_ignored(self, ledger: Ledger):
        """Test a cancellation for an empty bucket creates nothing."""
        result = ledger.upsert_sale("2025-01-01", "spot", orders=1, gross_amount=100, mode="subtract")

        assert result.action == "ignored"
        assert result.sale is None
        assert ledger.list_sales() == []

    def test_replace_overwrites(self, ledger: Ledger):
        """Test daily summaries replace the bucket totals."""
        ledger.upsert_sale("2025-01-01", "spot", orders=7, gross_amount=7000, notes="orders")

        result = ledger.upsert_sale("2025-01-01", "spot", orders=40, gross_amount=52000, mode="replace")

        assert result.action == "updated"
        assert result.sale.orders == 40
        assert result.sale.gross_amount == pytest.approx(52000)
        assert result.sale.notes is None

    def test_upsert_validates_payload(self, ledger: Ledger):
        """Test invalid upserts raise before touching the table."""
        with pytest.raises(ValidationError):
            ledger.upsert_sale("2025-01-01", "spot", orders=-1, gross_amount=100)
        with pytest.raises(ValueError, match="Unknown upsert mode"):
            ledger.upsert_sale("2025-01-01", "spot", orders=1, gross_amount=100, mode="merge")  # type: ignore[arg-type]

        assert ledger.list_sales() == []

    def test_upsert_result_to_dict(self, ledger: Ledger):
        """Test the serialized upsert outcome."""
        data = ledger.upsert_sale("2025-01-01", "spot", orders=1, gross_amount=100).to_dict()

        assert data["action"] == "created"
        assert data["sale"]["business_date"] == "2025-01-01"
        assert data["sale"]["source"] == "spot"


class TestExpenses:
    """Expense CRUD."""

    def test_amount_from_quantity_and_unit_price(self, ledger: Ledger):
        """Test amount = quantity x unit price when both are given."""
        expense = ledger.add_expense(
            {"date": "2025-01-01", "item": "Chicken", "quantity": 25, "unit": "kg", "unit_price": 620}
        )

        assert expense.amount == pytest.approx(15500)
        assert expense.quantity == 25
        assert expense.unit == "kg"
        assert expense.category == "general"

    def test_explicit_amount(self, ledger: Ledger):
        """Test an explicit amount is stored as given."""
        expense = ledger.add_expense({"date": "2025-01-01", "item": " Gas ", "amount": 2500, "category": "utilities"})

        assert expense.amount == 2500
        assert expense.item == "Gas"
        assert ledger.list_expenses(category="utilities") == [expense]
        assert ledger.list_expenses(category="food") == []

    def test_missing_amount_rejected(self, ledger: Ledger):
        """Test neither form of amount is a validation error."""
        with pytest.raises(ValidationError, match="Either amount"):
            ledger.add_expense({"date": "2025-01-01", "item": "Chicken", "quantity": 25})

    def test_update_and_delete(self, ledger: Ledger):
        """Test updates recompute the amount, deletes remove the row."""
        expense = ledger.add_expense({"date": "2025-01-01", "item": "Chicken", "quantity": 2, "unit_price": 600})

        updated = ledger.update_expense(expense.id, {"quantity": 3})
        assert updated.amount == pytest.approx(1800)

        ledger.delete_expense(expense.id)
        with pytest.raises(RecordNotFound):
            ledger.get_expense(expense.id)

    def test_explicit_amount_wins_over_parts(self, ledger: Ledger):
        """Test a given amount is kept even with quantity and unit price."""
        expense = ledger.add_expense(
            {"date": "2025-01-01", "item": "Chicken", "quantity": 2, "unit_price": 600, "amount": 1100}
        )

        assert expense.amount == pytest.approx(1100)
        assert expense.unit_price == 600

    def test_update_amount_only_keeps_it(self, ledger: Ledger):
        """Test changing just the amount of a quantity x price expense stores that amount."""
        expense = ledger.add_expense({"date": "2025-01-01", "item": "Chicken", "quantity": 2, "unit_price": 600})

        updated = ledger.update_expense(expense.id, {"amount": 1000})

        assert updated.amount == pytest.approx(1000)
        assert updated.quantity == 2
        assert ledger.get_expense(expense.id).amount == pytest.approx(1000)

    def test_update_unit_price_rederives_amount(self, ledger: Ledger):
        """Test a new unit price replaces a previously stored amount."""
        expense = ledger.add_expense(
            {"date": "2025-01-01", "item": "Chicken", "quantity": 2, "unit_price": 600, "amount": 1100}
        )

        updated = ledger.update_expense(expense.id, {"unit_price": 650})

        assert updated.amount == pytest.approx(1300)


class TestPersonal:
    """Personal ledger."""

    def test_totals_by_head(self, ledger: Ledger):
        """Test totals and entry counts grouped by head, ordered by head."""
        ledger.add_personal_expense({"date": "2025-01-01", "head": "Rent", "amount": 45000})
        ledger.add_personal_expense({"date": "2025-01-05", "head": "Fuel", "amount": 3000})
        ledger.add_personal_expense({"date": "2025-01-09", "head": "Fuel", "amount": 2500})
        ledger.add_personal_expense({"date": "2025-02-01", "head": "Fuel", "amount": 9999})

        totals = ledger.personal_totals("2025-01-01", "2025-01-31")

        assert totals == [
            {"head": "Fuel", "total": 5500.0, "entries": 2},
            {"head": "Rent", "total": 45000.0, "entries": 1},
        ]

    def test_list_and_delete(self, ledger: Ledger):
        """Test listing by head and deleting."""
        entry = ledger.add_personal_expense({"date": "2025-01-01", "head": "Rent", "amount": 45000, "notes": "Jan"})

        assert ledger.list_personal_expenses(head="Rent") == [entry]
        ledger.delete_personal_expense(entry.id)
        with pytest.raises(RecordNotFound):
            ledger.get_personal_expense(entry.id)


class TestSettingsStore:
    """Key/value settings."""

    def test_defaults(self, ledger: Ledger):
        """Test defaults before anything is stored."""
        assert ledger.profit_rate() == pytest.approx(0.70)
        assert ledger.currency() == "PKR"
        assert ledger.expense_categories() == []

    def test_update_settings(self, ledger: Ledger):
        """Test valid updates are stored."""
        stored = ledger.update_settings(
            {"FP_PROFIT_RATE": 0.65, "CURRENCY": "AED", "EXPENSE_CATEGORIES": ["food", "utilities"]}
        )

        assert stored["CURRENCY"] == "AED"
        assert ledger.profit_rate() == pytest.approx(0.65)
        assert ledger.expense_categories() == ["food", "utilities"]

    @pytest.mark.parametrize("rate", [1.2, -0.5, "most"])
    def test_profit_rate_out_of_bounds(self, ledger: Ledger, rate):
        """Test profit rates outside [0, 1] are rejected."""
        with pytest.raises(InvalidConfig):
            ledger.update_settings({"FP_PROFIT_RATE": rate})

        assert ledger.profit_rate() == pytest.approx(0.70)

    def test_unknown_key_rejected(self, ledger: Ledger):
        """Test unknown keys fail without partial writes."""
        with pytest.raises(ValidationError, match="Unknown setting"):
            ledger.update_settings({"CURRENCY": "USD", "THEME": "dark"})

        assert ledger.currency() == "PKR"

    def test_corrupt_stored_rate_raises(self, ledger: Ledger):
        """Test a bad stored rate surfaces as InvalidConfig when read."""
        ledger.set_setting("FP_PROFIT_RATE", "1.7")

        with pytest.raises(InvalidConfig):
            ledger.profit_rate()


def test_in_memory_ledger():
    """Test the throwaway in-memory ledger."""
    ledger = Ledger(":memory:")
    ledger.upsert_sale("2025-01-01", "spot", orders=1, gross_amount=100)

    assert len(ledger.list_sales()) == 1
    ledger.close()

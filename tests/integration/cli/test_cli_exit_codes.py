"""Integration tests for CLI exit codes and operational flags.

Tests verify that:
- Stable exit codes (0,2,3,6) are returned
- --json prints a single JSON document with status and trace id
- --trace-id allows request correlation
"""

import json
import os
from pathlib import Path

import pytest
from loguru import logger

import daybook.config.settings as settings_module
from daybook.cli.__main__ import main
from daybook.cli.cli_common import ExitCode


@pytest.fixture(autouse=True)
def daybook_env(tmp_path: Path, monkeypatch):
    """Point the CLI at a fresh ledger."""
    for var in [k for k in os.environ if k.startswith("DAYBOOK_")]:
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DAYBOOK_DB_PATH", str(tmp_path / "daybook.db"))
    settings_module._settings = None
    yield
    settings_module._settings = None
    logger.remove()


def run_json(capsys, *args: str) -> tuple[int, dict]:
    exit_code = main([*args, "--json"])
    out = capsys.readouterr().out
    return exit_code, json.loads(out)


class TestExitCodes:
    """Test stable exit codes."""

    def test_success_exit_code(self, capsys):
        """Successful command returns exit code 0."""
        exit_code, result = run_json(
            capsys, "sale", "add", "--date", "2025-01-01", "--source", "spot", "--orders", "12", "--amount", "5400"
        )

        assert exit_code == ExitCode.SUCCESS
        assert result["status"] == "success"
        assert result["data"]["business_date"] == "2025-01-01"
        assert result["data"]["gross_amount"] == 5400.0

    def test_validation_error_exit_code(self, capsys):
        """Validation error returns exit code 2."""
        exit_code, result = run_json(
            capsys, "sale", "add", "--date", "01/01/2025", "--source", "spot", "--orders", "1", "--amount", "10"
        )

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert result["status"] == "error"
        assert result["meta"]["exit_code"] == 2
        assert result["meta"]["error_type"] == "ValidationError"
        assert result["meta"]["errors"]

    def test_duplicate_sale_exit_code(self, capsys):
        """A second manual sale for the same day and channel is a conflict."""
        args = ("sale", "add", "--date", "2025-01-01", "--source", "spot", "--orders", "1", "--amount", "10")
        run_json(capsys, *args)

        exit_code, result = run_json(capsys, *args)

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert result["meta"]["errors"] == ["conflict on (date, source)"]

    def test_invalid_range_exit_code(self, capsys):
        """Reversed bounds return exit code 2."""
        exit_code, result = run_json(capsys, "summary", "--start", "2025-01-31", "--end", "2025-01-01")

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert result["meta"]["error_type"] == "InvalidRange"

    @pytest.mark.parametrize("command", ["sale", "expense"])
    def test_list_bad_bounds_exit_code(self, capsys, command):
        """Unparsable list bounds return exit code 2."""
        exit_code, result = run_json(capsys, command, "list", "--start", "foo")

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert result["meta"]["error_type"] == "InvalidRange"

    def test_impossible_date_exit_code(self, capsys):
        """A date like Feb 30 is a validation error and leaves no row behind."""
        exit_code, result = run_json(
            capsys, "sale", "add", "--date", "2025-02-30", "--source", "spot", "--orders", "1", "--amount", "10"
        )

        assert exit_code == ExitCode.VALIDATION_ERROR
        assert result["meta"]["errors"] == ["date is not a calendar date: 2025-02-30"]

        exit_code, result = run_json(capsys, "sale", "list")
        assert exit_code == ExitCode.SUCCESS
        assert result["data"] == []

    def test_not_found_exit_code(self, capsys):
        """Deleting an unknown id returns exit code 3."""
        exit_code, result = run_json(capsys, "sale", "delete", "no-such-id")

        assert exit_code == ExitCode.NOT_FOUND
        assert "no-such-id" in result["error"]

    def test_bad_profit_rate_exit_code(self, capsys):
        """An out-of-bounds profit rate returns exit code 6."""
        exit_code, result = run_json(capsys, "settings", "set", "--profit-rate", "2")

        assert exit_code == ExitCode.CONFIG_ERROR
        assert result["meta"]["error_type"] == "InvalidConfig"

    def test_bad_timezone_exit_code(self, capsys, monkeypatch):
        """A bad configured timezone returns exit code 6."""
        monkeypatch.setenv("DAYBOOK_TIMEZONE", "Bad/Zone")

        exit_code, result = run_json(capsys, "business-date", "--at", "2025-01-15T05:00:00Z")

        assert exit_code == ExitCode.CONFIG_ERROR
        assert result["status"] == "error"

    def test_nothing_to_update(self, capsys):
        """settings set without options is a validation error."""
        exit_code, _ = run_json(capsys, "settings", "set")

        assert exit_code == ExitCode.VALIDATION_ERROR


class TestOperationalFlags:
    """Test operational flags: --json, --trace-id."""

    def test_trace_id_flag(self, capsys):
        """--trace-id is echoed in JSON output."""
        exit_code, result = run_json(capsys, "business-date", "--at", "2025-01-15T05:00:00Z", "--trace-id", "req-42")

        assert exit_code == ExitCode.SUCCESS
        assert result["trace_id"] == "req-42"
        assert result["data"]["businessDate"] == "2025-01-14"
        assert result["data"]["rule"] == "trading_window"

    def test_generated_trace_id(self, capsys):
        """A trace id is generated when none is given."""
        _, result = run_json(capsys, "settings", "show")

        assert result["trace_id"].startswith("trace-")
        assert result["data"]["FP_PROFIT_RATE"] == 0.7
        assert result["data"]["CURRENCY"] == "PKR"

    def test_human_output(self, capsys):
        """Without --json, fields are printed one per line."""
        exit_code = main(["business-date", "--at", "2025-01-15T05:00:00Z", "--rule", "cutoff_2am"])

        assert exit_code == ExitCode.SUCCESS
        assert "businessDate: 2025-01-15" in capsys.readouterr().out


class TestWorkflow:
    """POS orders, expenses and summary through the CLI."""

    def test_pos_then_summary(self, capsys):
        """Orders recorded via POS show up in the summary."""
        assert main(["pos", "order", "--source", "spot", "--orders", "2", "--amount", "1000", "--at", "2025-01-15T15:00:00Z"]) == 0
        assert main(["pos", "order", "--source", "foodpanda", "--amount", "1000", "--at", "2025-01-15T05:00:00Z"]) == 0
        assert main(["expense", "add", "--date", "2025-01-15", "--item", "Gas", "--amount", "300"]) == 0
        capsys.readouterr()

        exit_code, result = run_json(capsys, "summary", "--start", "2025-01-14", "--end", "2025-01-15")

        assert exit_code == ExitCode.SUCCESS
        kpis = result["data"]["kpis"]
        assert kpis["spotSalesTotal"] == 1000
        assert kpis["foodpandaProfitTotal"] == pytest.approx(700)
        assert kpis["netProfit"] == pytest.approx(1400)
        assert result["meta"]["currency"] == "PKR"

    def test_pos_today_snapshot(self, capsys):
        """pos today reports the bucket of a given business date."""
        main(["pos", "order", "--source", "spot", "--amount", "450", "--at", "2025-01-15T15:00:00Z", "--json"])
        capsys.readouterr()

        exit_code, result = run_json(capsys, "pos", "today", "--date", "2025-01-15")

        assert exit_code == ExitCode.SUCCESS
        assert result["data"]["spotOrders"] == 1
        assert result["data"]["totalRevenue"] == 450

    def test_export_to_stdout(self, capsys):
        """export without --output prints the CSV."""
        main(["sale", "add", "--date", "2025-01-01", "--source", "spot", "--orders", "1", "--amount", "10", "--json"])
        capsys.readouterr()

        exit_code = main(["export", "--start", "2025-01-01", "--end", "2025-01-31"])

        assert exit_code == ExitCode.SUCCESS
        assert capsys.readouterr().out.startswith("SALES DATA")

    def test_expense_list_total(self, capsys):
        """expense list reports the count and total in meta."""
        main(["expense", "add", "--date", "2025-01-15", "--item", "Chicken", "--qty", "2", "--unit", "kg", "--unit-price", "600", "--json"])
        main(["expense", "add", "--date", "2025-01-16", "--item", "Gas", "--amount", "300", "--json"])
        capsys.readouterr()

        exit_code, result = run_json(capsys, "expense", "list", "--start", "2025-01-15", "--end", "2025-01-16")

        assert exit_code == ExitCode.SUCCESS
        assert result["meta"]["count"] == 2
        assert result["meta"]["total"] == pytest.approx(1500)
        assert result["data"][0]["amount"] == pytest.approx(1200)

    def test_personal_totals(self, capsys):
        """personal totals groups spend by head."""
        main(["personal", "add", "--date", "2025-01-01", "--head", "Fuel", "--amount", "3000", "--json"])
        main(["personal", "add", "--date", "2025-01-09", "--head", "Fuel", "--amount", "2500", "--json"])
        capsys.readouterr()

        exit_code, result = run_json(capsys, "personal", "totals", "--start", "2025-01-01", "--end", "2025-01-31")

        assert exit_code == ExitCode.SUCCESS
        assert result["data"] == [{"head": "Fuel", "total": 5500.0, "entries": 2}]
        assert result["meta"]["total"] == pytest.approx(5500)

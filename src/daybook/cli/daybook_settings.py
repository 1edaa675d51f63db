"""CLI module for dashboard settings (profit rate, currency, categories)."""

import click

from ..core.validation import ValidationError
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Dashboard settings")
def cli() -> None:
    """Root command for settings."""


def _settings_view(ctx: CLIContext) -> dict:
    ledger = ctx.ledger
    process = ctx.settings
    return {
        "FP_PROFIT_RATE": ledger.profit_rate(),
        "CURRENCY": ledger.currency(),
        "EXPENSE_CATEGORIES": ledger.expense_categories(),
        "dbPath": str(process.db_path),
        "timezone": process.timezone,
        "rolloverRule": process.rollover_rule.value,
    }


@cli.command("show")
@cli_command
def show_command(ctx: CLIContext) -> int:
    """Show stored and process settings."""
    cmd = "settings.show"

    try:
        return handle_cli_success(ctx, _settings_view(ctx), cmd, {})
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, {})


@cli.command("set")
@click.option("--profit-rate", type=str, help="Foodpanda profit rate in [0, 1]")
@click.option("--currency", type=str, help="Display currency, e.g. PKR")
@click.option("--categories", type=str, help="Comma-separated expense categories")
@cli_command
def set_command(ctx: CLIContext, profit_rate: str | None, currency: str | None, categories: str | None) -> int:
    """Update settings."""
    cmd = "settings.set"
    args = {"profit_rate": profit_rate, "currency": currency, "categories": categories}

    try:
        updates: dict = {}
        if profit_rate is not None:
            updates["FP_PROFIT_RATE"] = profit_rate
        if currency is not None:
            updates["CURRENCY"] = currency
        if categories is not None:
            updates["EXPENSE_CATEGORIES"] = [c.strip() for c in categories.split(",") if c.strip()]
        if not updates:
            raise ValidationError("Validation error: nothing to update", ["give at least one setting"])

        ctx.ledger.update_settings(updates)
        return handle_cli_success(ctx, _settings_view(ctx), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

"""CLI module for the personal expense ledger."""

import click

from ..core.time import today_in
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Personal expense ledger")
def cli() -> None:
    """Root command for personal expenses."""


@cli.command("add")
@click.option("--date", "day", type=str, help="Date YYYY-MM-DD (default: today)")
@click.option("--head", required=True, help="Expense head, e.g. Rent")
@click.option("--amount", type=float, required=True, help="Amount")
@click.option("--notes", type=str, help="Notes")
@cli_command
def add_command(ctx: CLIContext, day: str | None, head: str, amount: float, notes: str | None) -> int:
    """Record a personal expense."""
    cmd = "personal.add"
    args = {"date": day, "head": head, "amount": amount, "notes": notes}

    try:
        data = dict(args)
        data["date"] = day or today_in(ctx.settings.timezone).isoformat()
        entry = ctx.ledger.add_personal_expense(data)
        return handle_cli_success(ctx, entry.to_dict(), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("totals")
@click.option("--start", type=str, help="First date (inclusive)")
@click.option("--end", type=str, help="Last date (inclusive)")
@cli_command
def totals_command(ctx: CLIContext, start: str | None, end: str | None) -> int:
    """Totals per expense head."""
    cmd = "personal.totals"
    args = {"start": start, "end": end}

    try:
        totals = ctx.ledger.personal_totals(start, end)
        grand_total = sum(row["total"] for row in totals)
        return handle_cli_success(ctx, totals, cmd, args, meta={"total": grand_total})
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

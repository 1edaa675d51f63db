#!/usr/bin/env python3
"""Main CLI module for Daybook."""

import sys

import click

from ..core.business_day import RolloverRule, resolve_business_date
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success
from .daybook_expense import cli as expense_cli
from .daybook_personal import cli as personal_cli
from .daybook_pos import cli as pos_cli
from .daybook_sale import cli as sale_cli
from .daybook_settings import cli as settings_cli
from .daybook_summary import export_command, summary_command

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  daybook business-date --at 2025-01-02T00:30:00+05:00   # Which trading day?
  daybook sale add --source spot --orders 40 --amount 52000
  daybook pos order --source foodpanda --amount 1850     # POS order, bucketed by business day
  daybook pos today                                      # Today's orders per channel
  daybook expense add --item Chicken --qty 25 --unit kg --unit-price 620
  daybook summary --range thisWeek                       # KPIs, changes, forecast
  daybook summary --start 2025-01-01 --end 2025-01-31 --json
  daybook export --start 2025-01-01 --end 2025-01-31 --format csv --output exports
  daybook settings set --profit-rate 0.7
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Daybook - restaurant sales, expenses and daily KPIs",
    epilog=EPILOG,
)
def cli() -> None:
    """Root CLI command."""


@cli.command("business-date")
@click.option("--at", "timestamp", type=str, help="ISO-8601 instant (default: now)")
@click.option(
    "--rule",
    type=click.Choice([rule.value for rule in RolloverRule]),
    help="Rollover rule (default: configured rule)",
)
@cli_command
def business_date_command(ctx: CLIContext, timestamp: str | None, rule: str | None) -> int:
    """Resolve the business date of an instant."""
    cmd = "business-date"
    args = {"timestamp": timestamp, "rule": rule}

    try:
        settings = ctx.settings
        applied = rule or settings.rollover_rule.value
        business_date = resolve_business_date(timestamp, settings.timezone, applied)
        data = {
            "businessDate": business_date,
            "timestamp": timestamp,
            "timezone": settings.timezone,
            "rule": applied,
        }
        return handle_cli_success(ctx, data, cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


# Subcommands
cli.add_command(summary_command, "summary")
cli.add_command(sale_cli, "sale")
cli.add_command(pos_cli, "pos")
cli.add_command(expense_cli, "expense")
cli.add_command(personal_cli, "personal")
cli.add_command(settings_cli, "settings")
cli.add_command(export_command, "export")


def main(args: list[str] | None = None) -> int:
    """CLI entry point; returns the exit code."""

    try:
        normalized_args = list(args) if args is not None else None
        result = cli.main(args=normalized_args, prog_name="daybook", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    except SystemExit as exc:  # pragma: no cover - click normalizes exit codes
        return int(exc.code) if exc.code is not None else 0
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - executable module
    sys.exit(main())

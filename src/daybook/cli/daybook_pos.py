"""CLI module for POS orders bucketed into business days."""

import click

from ..core.validation import POS_EVENT_TYPES
from ..pipelines.pos_pipeline import create_pos_pipeline
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
SOURCES = ["spot", "foodpanda"]


@click.group(context_settings=CONTEXT_SETTINGS, help="POS orders and daily summaries")
def cli() -> None:
    """Root command for POS."""


def _pipeline(ctx: CLIContext):
    settings = ctx.settings
    return create_pos_pipeline(ctx.ledger, timezone_str=settings.timezone, rule=settings.rollover_rule)


@cli.command("order")
@click.option("--source", type=click.Choice(SOURCES), required=True, help="Sales channel")
@click.option("--orders", type=int, default=1, show_default=True, help="Number of orders")
@click.option("--amount", "gross_amount", type=float, required=True, help="Order revenue")
@click.option("--at", "timestamp", type=str, help="ISO-8601 order time (default: now)")
@click.option("--notes", type=str, help="Notes")
@cli_command
def order_command(
    ctx: CLIContext, source: str, orders: int, gross_amount: float, timestamp: str | None, notes: str | None
) -> int:
    """Add an order to its business day."""
    cmd = "pos.order"
    args = {"source": source, "orders": orders, "gross_amount": gross_amount, "timestamp": timestamp}

    try:
        result = _pipeline(ctx).record_order(source, orders, gross_amount, timestamp=timestamp, notes=notes)
        return handle_cli_success(ctx, result.to_dict(), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("event")
@click.option("--type", "event_type", type=click.Choice(POS_EVENT_TYPES), required=True, help="POS event type")
@click.option("--source", type=click.Choice(SOURCES), required=True, help="Sales channel")
@click.option("--orders", type=int, required=True, help="Number of orders")
@click.option("--amount", "gross_amount", type=float, required=True, help="Revenue")
@click.option("--at", "timestamp", type=str, help="ISO-8601 event time (default: now)")
@click.option("--notes", type=str, help="Notes")
@cli_command
def event_command(
    ctx: CLIContext,
    event_type: str,
    source: str,
    orders: int,
    gross_amount: float,
    timestamp: str | None,
    notes: str | None,
) -> int:
    """Apply a POS event (created, updated, cancelled, daily summary)."""
    cmd = "pos.event"
    event = {
        "event_type": event_type,
        "source": source,
        "orders": orders,
        "gross_amount": gross_amount,
        "timestamp": timestamp,
        "notes": notes,
    }

    try:
        result = _pipeline(ctx).handle_event(event)
        return handle_cli_success(ctx, result.to_dict(), cmd, event)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, event)


@cli.command("today")
@click.option("--date", "day", type=str, help="Business date YYYY-MM-DD (default: current business day)")
@cli_command
def today_command(ctx: CLIContext, day: str | None) -> int:
    """Orders and revenue per channel for one business day."""
    cmd = "pos.today"
    args = {"date": day}

    try:
        snapshot = _pipeline(ctx).daily_snapshot(day)
        return handle_cli_success(ctx, snapshot, cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

"""CLI module for manually entered sales."""

import click

from ..core.time import today_in
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
SOURCES = ["spot", "foodpanda"]


@click.group(context_settings=CONTEXT_SETTINGS, help="Daily sales per channel")
def cli() -> None:
    """Root command for sales."""


@cli.command("add")
@click.option("--date", "day", type=str, help="Business date YYYY-MM-DD (default: today)")
@click.option("--source", type=click.Choice(SOURCES), required=True, help="Sales channel")
@click.option("--orders", type=int, required=True, help="Number of orders")
@click.option("--amount", "gross_amount", type=float, required=True, help="Gross sales amount")
@click.option("--notes", type=str, help="Notes")
@cli_command
def add_command(
    ctx: CLIContext, day: str | None, source: str, orders: int, gross_amount: float, notes: str | None
) -> int:
    """Record the sales of one channel for one day."""
    cmd = "sale.add"
    args = {"date": day, "source": source, "orders": orders, "gross_amount": gross_amount, "notes": notes}

    try:
        data = dict(args)
        data["date"] = day or today_in(ctx.settings.timezone).isoformat()
        sale = ctx.ledger.add_sale(data)
        return handle_cli_success(ctx, sale.to_dict(), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("list")
@click.option("--start", type=str, help="First business date (inclusive)")
@click.option("--end", type=str, help="Last business date (inclusive)")
@click.option("--source", type=click.Choice(SOURCES), help="Only this channel")
@cli_command
def list_command(ctx: CLIContext, start: str | None, end: str | None, source: str | None) -> int:
    """List sales."""
    cmd = "sale.list"
    args = {"start": start, "end": end, "source": source}

    try:
        sales = ctx.ledger.list_sales(start, end, source)
        return handle_cli_success(ctx, [sale.to_dict() for sale in sales], cmd, args, meta={"count": len(sales)})
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("delete")
@click.argument("sale_id")
@cli_command
def delete_command(ctx: CLIContext, sale_id: str) -> int:
    """Delete a sale by id."""
    cmd = "sale.delete"
    args = {"sale_id": sale_id}

    try:
        ctx.ledger.delete_sale(sale_id)
        return handle_cli_success(ctx, {"action": "deleted", "id": sale_id}, cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

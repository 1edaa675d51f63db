"""CLI module for business expenses."""

import click

from ..core.time import today_in
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS, help="Business expenses")
def cli() -> None:
    """Root command for expenses."""


@cli.command("add")
@click.option("--date", "day", type=str, help="Business date YYYY-MM-DD (default: today)")
@click.option("--item", required=True, help="Expense item, e.g. Chicken")
@click.option("--amount", type=float, help="Total amount (omit to use qty x unit price)")
@click.option("--qty", "quantity", type=float, help="Quantity")
@click.option("--unit", type=str, help="Unit of measurement, e.g. kg")
@click.option("--unit-price", type=float, help="Price per unit")
@click.option("--category", default="general", show_default=True, help="Expense category")
@click.option("--vendor", type=str, help="Vendor")
@click.option("--notes", type=str, help="Notes")
@cli_command
def add_command(
    ctx: CLIContext,
    day: str | None,
    item: str,
    amount: float | None,
    quantity: float | None,
    unit: str | None,
    unit_price: float | None,
    category: str,
    vendor: str | None,
    notes: str | None,
) -> int:
    """Record an expense."""
    cmd = "expense.add"
    args = {
        "date": day,
        "item": item,
        "amount": amount,
        "quantity": quantity,
        "unit": unit,
        "unit_price": unit_price,
        "category": category,
        "vendor": vendor,
        "notes": notes,
    }

    try:
        data = dict(args)
        data["date"] = day or today_in(ctx.settings.timezone).isoformat()
        expense = ctx.ledger.add_expense(data)
        return handle_cli_success(ctx, expense.to_dict(), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("list")
@click.option("--start", type=str, help="First business date (inclusive)")
@click.option("--end", type=str, help="Last business date (inclusive)")
@click.option("--category", type=str, help="Only this category")
@cli_command
def list_command(ctx: CLIContext, start: str | None, end: str | None, category: str | None) -> int:
    """List expenses."""
    cmd = "expense.list"
    args = {"start": start, "end": end, "category": category}

    try:
        expenses = ctx.ledger.list_expenses(start, end, category)
        total = sum(expense.amount for expense in expenses)
        return handle_cli_success(
            ctx,
            [expense.to_dict() for expense in expenses],
            cmd,
            args,
            meta={"count": len(expenses), "total": total},
        )
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@cli.command("delete")
@click.argument("expense_id")
@cli_command
def delete_command(ctx: CLIContext, expense_id: str) -> int:
    """Delete an expense by id."""
    cmd = "expense.delete"
    args = {"expense_id": expense_id}

    try:
        ctx.ledger.delete_expense(expense_id)
        return handle_cli_success(ctx, {"action": "deleted", "id": expense_id}, cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

"""CLI module for KPI summaries and data export."""

from pathlib import Path

import click

from ..maintenance.export import EXPORT_FORMATS, export_range, write_export
from ..pipelines.summary_pipeline import create_summary_pipeline
from .cli_common import CLIContext, cli_command, handle_cli_error, handle_cli_success

RANGE_KINDS = ["today", "yesterday", "thisWeek", "lastWeek", "thisMonth", "custom"]


def _human_summary(data: dict) -> dict:
    """Flatten a summary for terminal output."""
    kpis = data["kpis"]
    view = {
        "range": f"{data['range']['start']}..{data['range']['end']} ({data['range']['days']} days)",
        "totalSales": kpis["totalSales"],
        "spotSales": kpis["spotSalesTotal"],
        "foodpandaSales": kpis["foodpandaSalesTotal"],
        "foodpandaProfit": kpis["foodpandaProfitTotal"],
        "expenses": kpis["expensesTotal"],
        "netProfit": kpis["netProfit"],
        "orders": kpis["ordersTotal"],
        "averageOrderValue": round(kpis["averageOrderValue"], 2),
        "profitMargin": f"{kpis['profitMargin']:.2f}%",
        "changes": {key: f"{value:+.1f}%" for key, value in data["changes"].items()},
    }
    for item, forecast in data["expenseForecast"].items():
        view[f"forecast[{item}]"] = (
            f"{forecast['predictedAmount']} ({forecast['trend']}, {forecast['confidence']} confidence)"
        )
    return view


@click.command("summary")
@click.option("--range", "kind", type=click.Choice(RANGE_KINDS), default="custom", show_default=True)
@click.option("--start", type=str, help="First business date (custom range)")
@click.option("--end", type=str, help="Last business date (custom range)")
@cli_command
def summary_command(ctx: CLIContext, kind: str, start: str | None, end: str | None) -> int:
    """KPIs, daily series and expense forecast for a date range."""
    cmd = "summary"
    args = {"range": kind, "start": start, "end": end}

    try:
        pipeline = create_summary_pipeline(ctx.ledger, timezone_str=ctx.settings.timezone)
        data = pipeline.summarize_named(kind, start, end).to_dict()
        if not ctx.json_output:
            data = _human_summary(data)
        return handle_cli_success(ctx, data, cmd, args, meta={"currency": ctx.ledger.currency()})
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)


@click.command("export")
@click.option("--start", type=str, help="First business date (inclusive)")
@click.option("--end", type=str, help="Last business date (inclusive)")
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="csv", show_default=True)
@click.option("--output", "output_dir", type=click.Path(file_okay=False, path_type=Path), help="Write a file here")
@cli_command
def export_command(ctx: CLIContext, start: str | None, end: str | None, fmt: str, output_dir: Path | None) -> int:
    """Export sales and expenses as CSV or JSON."""
    cmd = "export"
    args = {"start": start, "end": end, "format": fmt, "output": str(output_dir) if output_dir else None}

    try:
        if output_dir is not None:
            info = write_export(ctx.ledger, start, end, fmt, output_dir)
            data = {"path": str(info.path), "format": info.fmt, "sales": info.sales, "expenses": info.expenses}
            return handle_cli_success(ctx, data, cmd, args)

        content = export_range(ctx.ledger, start, end, fmt)
        if ctx.json_output:
            return handle_cli_success(ctx, {"format": fmt, "content": content}, cmd, args)
        return handle_cli_success(ctx, content.rstrip("\n"), cmd, args)
    except Exception as exc:
        return handle_cli_error(ctx, exc, cmd, args)

"""freezeassay query — inspect store contents and analysis results."""

from __future__ import annotations

import csv
import io
import json
from typing import Any

import click
from rich.table import Table

from freezeassay.cli.utils import console, error_handler, open_store, store_option

_FORMAT = click.option(
    "--format", "fmt", type=click.Choice(["table", "csv", "json"]),
    default="table", help="Output format.",
)


def format_output(
    rows: list[dict[str, Any]],
    columns: list[str],
    fmt: str,
    title: str,
) -> None:
    """Render rows in the requested format (table, csv, or json).

    Args:
        rows: List of dicts, each with keys matching columns.
        columns: Column names (display order).
        fmt: One of "table", "csv", "json".
        title: Title for table output.
    """
    if fmt == "table":
        table = Table(show_header=True, title=title)
        for col in columns:
            if col == columns[0]:
                table.add_column(col, style="bold")
            else:
                table.add_column(col)
        for row in rows:
            table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
        console.print(table)
    elif fmt == "csv":
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow(columns)
        for row in rows:
            writer.writerow([row.get(c, "") for c in columns])
        console.print(buf.getvalue().rstrip(), markup=False, highlight=False, soft_wrap=True)
    elif fmt == "json":
        payload = [{c: row.get(c) for c in columns} for row in rows]
        console.print(
            json.dumps(payload, indent=2, default=str),
            markup=False, highlight=False, soft_wrap=True,
        )


def _records(df: Any) -> list[dict[str, Any]]:
    """DataFrame rows as plain dicts with NaN mapped to None."""
    if df.empty:
        return []
    return df.astype(object).where(df.notna(), None).to_dict("records")


@click.group()
@store_option
@click.pass_context
@error_handler
def query(ctx: click.Context, store_path: str) -> None:
    """Query store contents."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = open_store(store_path)


@query.result_callback()
@click.pass_context
def cleanup(ctx: click.Context, *args: object, **kwargs: object) -> None:
    """Close the store after any query subcommand completes."""
    store = ctx.obj.get("store")
    if store:
        store.close()


@query.command()
@_FORMAT
@click.pass_context
@error_handler
def experiments(ctx: click.Context, fmt: str) -> None:
    """List experiments."""
    store = ctx.obj["store"]
    exp_list = store.get_experiments()
    if not exp_list:
        console.print("[dim]No experiments found.[/dim]")
        return
    rows = [
        {
            "name": e.name,
            "tray_configuration": e.tray_configuration or "",
            "description": e.description,
        }
        for e in exp_list
    ]
    format_output(rows, ["name", "tray_configuration", "description"], fmt, "Experiments")


@query.command()
@_FORMAT
@click.pass_context
@error_handler
def trays(ctx: click.Context, fmt: str) -> None:
    """List trays."""
    store = ctx.obj["store"]
    tray_list = store.get_trays()
    if not tray_list:
        console.print("[dim]No trays found.[/dim]")
        return
    rows = [
        {"name": t.name, "rows": t.n_rows, "columns": t.n_cols, "wells": t.n_rows * t.n_cols}
        for t in tray_list
    ]
    format_output(rows, ["name", "rows", "columns", "wells"], fmt, "Trays")


@query.command()
@_FORMAT
@click.pass_context
@error_handler
def configurations(ctx: click.Context, fmt: str) -> None:
    """List tray configurations and their tray assignments."""
    store = ctx.obj["store"]
    names = store.get_tray_configurations()
    if not names:
        console.print("[dim]No tray configurations found.[/dim]")
        return
    rows = []
    for name in names:
        config = store.get_tray_configuration(name)
        for a in config.assignments:
            rows.append({
                "configuration": name,
                "default": "yes" if config.experiment_default else "",
                "sequence": a.order_sequence,
                "tray": a.tray.name,
                "rotation": a.rotation_degrees,
            })
    format_output(
        rows, ["configuration", "default", "sequence", "tray", "rotation"], fmt,
        "Tray Configurations",
    )


@query.command()
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@_FORMAT
@click.pass_context
@error_handler
def probes(ctx: click.Context, experiment: str, fmt: str) -> None:
    """List temperature probes of an experiment."""
    store = ctx.obj["store"]
    probe_list = store.get_probes(experiment)
    if not probe_list:
        console.print("[dim]No probes found.[/dim]")
        return
    rows = [
        {
            "name": p.name,
            "column_index": p.column_index,
            "correction_factor": p.correction_factor,
        }
        for p in probe_list
    ]
    format_output(rows, ["name", "column_index", "correction_factor"], fmt, "Probes")


@query.command()
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@_FORMAT
@click.pass_context
@error_handler
def regions(ctx: click.Context, experiment: str, fmt: str) -> None:
    """List regions of an experiment."""
    from freezeassay.core.models import format_well_coordinate

    store = ctx.obj["store"]
    region_list = store.get_regions(experiment)
    if not region_list:
        console.print("[dim]No regions found.[/dim]")
        return
    rows = [
        {
            "name": r.name,
            "tray_sequence": r.tray_sequence,
            "wells": (
                f"{format_well_coordinate(r.row_min, r.col_min)}:"
                f"{format_well_coordinate(r.row_max, r.col_max)}"
            ),
            "treatment": r.treatment or "",
            "dilution": r.dilution_factor,
            "background": "key" if r.is_background_key else (r.background_region or ""),
        }
        for r in region_list
    ]
    format_output(
        rows, ["name", "tray_sequence", "wells", "treatment", "dilution", "background"],
        fmt, "Regions",
    )


@query.command()
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@click.option("--region", default=None, help="Restrict to one region.")
@_FORMAT
@click.pass_context
@error_handler
def results(ctx: click.Context, experiment: str, region: str | None, fmt: str) -> None:
    """Show per-well freezing results."""
    store = ctx.obj["store"]
    rows = _records(store.get_freezing_results(experiment, region=region))
    if not rows:
        console.print("[dim]No freezing results found. Run 'freezeassay analyze' first.[/dim]")
        return
    columns = [
        "well_id", "tray_sequence", "coordinate", "region", "treatment",
        "dilution_factor", "is_frozen", "final_state", "total_phase_changes",
        "freezing_temperature", "nucleation_time_seconds",
    ]
    format_output(rows, columns, fmt, f"Freezing Results — {experiment}")


@query.command()
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@click.option("--region", default=None, help="Restrict to one region.")
@_FORMAT
@click.pass_context
@error_handler
def concentrations(
    ctx: click.Context, experiment: str, region: str | None, fmt: str,
) -> None:
    """Show INP concentration curves."""
    store = ctx.obj["store"]
    rows = _records(store.get_concentrations(experiment, region=region))
    if not rows:
        console.print("[dim]No concentrations found. Run 'freezeassay analyze' first.[/dim]")
        return
    columns = [
        "region", "reading_index", "temperature", "frozen_count", "total_count",
        "fraction_frozen", "nm_value", "error",
    ]
    format_output(rows, columns, fmt, f"INP Concentrations — {experiment}")


@query.command()
@click.option("-e", "--experiment", default=None, help="Restrict to one experiment.")
@_FORMAT
@click.pass_context
@error_handler
def runs(ctx: click.Context, experiment: str | None, fmt: str) -> None:
    """List analysis runs."""
    store = ctx.obj["store"]
    run_list = store.get_analysis_runs(experiment)
    if not run_list:
        console.print("[dim]No analysis runs found.[/dim]")
        return
    columns = ["id", "experiment", "status", "message", "started_at", "completed_at"]
    format_output(run_list, columns, fmt, "Analysis Runs")

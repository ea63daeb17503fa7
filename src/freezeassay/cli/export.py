"""freezeassay export — export analysis results to CSV."""

from __future__ import annotations

from pathlib import Path

import click

from freezeassay.cli.utils import console, error_handler, open_store, store_option
from freezeassay.core.assay_store import EXPORT_TABLES


@click.command()
@click.argument("output", type=click.Path())
@store_option
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@click.option(
    "--table", type=click.Choice(EXPORT_TABLES), default="concentrations",
    help="Result table to export.",
)
@click.option("--region", default=None, help="Restrict to one region.")
@click.option("--overwrite", is_flag=True, help="Overwrite output file if it exists.")
@error_handler
def export(
    output: str,
    store_path: str,
    experiment: str,
    table: str,
    region: str | None,
    overwrite: bool,
) -> None:
    """Export one result table of an experiment to CSV."""
    out_path = Path(output).expanduser()

    if out_path.is_dir():
        console.print(
            f"[red]Error:[/red] Output path is a directory: {out_path}\n"
            f"Provide a file path, e.g. {out_path / f'{table}.csv'}"
        )
        raise SystemExit(1)
    if not out_path.parent.exists():
        console.print(
            f"[red]Error:[/red] Parent directory does not exist: {out_path.parent}"
        )
        raise SystemExit(1)
    if out_path.exists() and not overwrite:
        console.print(
            f"[red]Error:[/red] Output file already exists: {out_path}\n"
            "Use --overwrite to replace it."
        )
        raise SystemExit(1)

    store = open_store(store_path)
    try:
        with console.status(f"[bold blue]Exporting {table}..."):
            count = store.export_csv(experiment, out_path, table=table, region=region)
    finally:
        store.close()
    console.print(f"[green]Exported {count} {table} rows to {out_path}[/green]")

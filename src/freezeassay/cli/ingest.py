"""freezeassay ingest — load probe readings and well observations from CSV."""

from __future__ import annotations

from pathlib import Path

import click

from freezeassay.cli.utils import console, error_handler, open_store, print_warnings, store_option


@click.command()
@store_option
@click.option("-e", "--experiment", required=True, help="Experiment name.")
@click.option(
    "--probes", "probe_csv", type=click.Path(exists=True, dir_okay=False), default=None,
    help="CSV of probe samples (long: timestamp,probe_index,raw_value; or wide).",
)
@click.option(
    "--observations", "observation_csv", type=click.Path(exists=True, dir_okay=False),
    default=None, help="CSV of well observations (timestamp,tray,well,is_frozen).",
)
@click.option("--replace", is_flag=True, help="Delete previously ingested readings first.")
@error_handler
def ingest(
    store_path: str,
    experiment: str,
    probe_csv: str | None,
    observation_csv: str | None,
    replace: bool,
) -> None:
    """Ingest raw readings into an experiment."""
    from freezeassay.io import ReadingIngester

    if probe_csv is None and observation_csv is None:
        console.print("[red]Error:[/red] Provide --probes and/or --observations.")
        raise SystemExit(1)

    store = open_store(store_path)
    try:
        with console.status("[bold blue]Ingesting readings..."):
            result = ReadingIngester().ingest(
                store,
                experiment,
                probe_csv=Path(probe_csv) if probe_csv else None,
                observation_csv=Path(observation_csv) if observation_csv else None,
                replace=replace,
            )
    finally:
        store.close()

    console.print(
        f"[green]Ingested {result.samples_ingested} probe samples and "
        f"{result.observations_ingested} well observations into {experiment}[/green]"
    )
    print_warnings(result.warnings)

"""freezeassay analyze — run the freezing-assay analysis for experiments."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.table import Table

from freezeassay.cli.utils import (
    console,
    error_handler,
    make_progress,
    open_store,
    print_warnings,
    store_option,
)

if TYPE_CHECKING:
    from freezeassay.analysis import AnalysisResult


def _fmt(value: float | None, digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def _print_result(experiment: str, result: AnalysisResult) -> None:
    status_color = "green" if result.status == "completed" else "yellow"
    console.print(
        f"[{status_color}]{experiment}: {result.status}[/{status_color}] "
        f"({len(result.wells)} wells, {len(result.readings)} readings, "
        f"{len(result.transitions)} transitions, {result.elapsed_seconds}s)"
    )
    if result.rejected_flickers or result.anomalies:
        console.print(
            f"  [dim]{result.rejected_flickers} flickers rejected, "
            f"{result.anomalies} late-ramp anomalies[/dim]"
        )

    if result.statistics:
        table = Table(show_header=True, title=f"Regions — {experiment}")
        table.add_column("region", style="bold")
        table.add_column("wells", justify="right")
        table.add_column("frozen", justify="right")
        table.add_column("success", justify="right")
        table.add_column("mean T (°C)", justify="right")
        table.add_column("median t (s)", justify="right")
        for name, stats in result.statistics.items():
            table.add_row(
                name,
                str(stats.total_wells),
                str(stats.frozen_count),
                f"{stats.success_rate:.0%}",
                _fmt(stats.mean_nucleation_temperature),
                _fmt(stats.median_nucleation_time_seconds, 0),
            )
        console.print(table)

    print_warnings(result.errors + result.warnings)


@click.command()
@store_option
@click.option(
    "-e", "--experiment", "experiments", multiple=True,
    help="Experiment to analyze (repeatable).",
)
@click.option("--all", "all_experiments", is_flag=True, help="Analyze every experiment.")
@click.option(
    "--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
    help="YAML analysis config.",
)
@click.option(
    "--debounce", type=click.IntRange(min=1), default=None,
    help="Consecutive observations needed to accept a state change.",
)
@click.option(
    "--droplet-volume", type=click.FloatRange(min=0, min_open=True), default=None,
    help="Droplet volume in mL.",
)
@click.option(
    "--workers", type=click.IntRange(min=1), default=None,
    help="Worker threads for per-well and per-region work.",
)
@error_handler
def analyze(
    store_path: str,
    experiments: tuple[str, ...],
    all_experiments: bool,
    config_path: str | None,
    debounce: int | None,
    droplet_volume: float | None,
    workers: int | None,
) -> None:
    """Analyze experiments and replace their stored results."""
    from freezeassay.analysis import AnalysisConfig, ExperimentAnalyzer
    from freezeassay.io import config_from_yaml

    config = config_from_yaml(Path(config_path)) if config_path else AnalysisConfig()
    config = config.with_overrides(
        debounce_count=debounce, droplet_volume_ml=droplet_volume, max_workers=workers,
    )

    store = open_store(store_path)
    try:
        names = list(experiments)
        if all_experiments:
            names = [e.name for e in store.get_experiments()]
        if not names:
            console.print("[red]Error:[/red] Provide --experiment or --all.")
            raise SystemExit(1)

        analyzer = ExperimentAnalyzer(config)
        if len(names) == 1:
            with console.status(f"[bold blue]Analyzing {names[0]}..."):
                result = analyzer.analyze(store, names[0])
            _print_result(names[0], result)
            return

        with make_progress() as progress:
            task = progress.add_task("Analyzing", total=len(names))

            def on_progress(current: int, total: int, name: str) -> None:
                progress.update(task, completed=current, description=f"Stored {name}")

            batch = analyzer.analyze_many(store, names, progress_callback=on_progress)

        for name, result in batch.results.items():
            _print_result(name, result)
        for name, message in batch.failures.items():
            console.print(f"[red]{name}: failed[/red] {message}")
        if batch.failures:
            raise SystemExit(1)
    finally:
        store.close()

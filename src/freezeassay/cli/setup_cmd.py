"""freezeassay setup — register trays, configuration, probes and regions from YAML."""

from __future__ import annotations

from pathlib import Path

import click

from freezeassay.cli.utils import console, error_handler, open_store, print_warnings, store_option


@click.command()
@click.argument("layout", type=click.Path(exists=True, dir_okay=False))
@store_option
@error_handler
def setup(layout: str, store_path: str) -> None:
    """Apply a YAML layout file to the store."""
    from freezeassay.io import LayoutLoader, layout_from_yaml

    plan = layout_from_yaml(Path(layout))
    store = open_store(store_path)
    try:
        result = LayoutLoader().apply(plan, store)
    finally:
        store.close()

    console.print(f"[green]Applied layout {layout}[/green]")
    console.print(f"  Trays added:   {result.trays_added}")
    if result.configuration:
        console.print(f"  Configuration: {result.configuration}")
    if result.experiment:
        console.print(f"  Experiment:    {result.experiment}")
        console.print(f"  Probes added:  {result.probes_added}")
        console.print(f"  Regions added: {result.regions_added}")
    print_warnings(result.warnings)

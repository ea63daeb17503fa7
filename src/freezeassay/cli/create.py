"""freezeassay create — create a new assay store."""

from __future__ import annotations

from pathlib import Path

import click

from freezeassay.cli.utils import console, error_handler


@click.command()
@click.argument("path", type=click.Path())
@click.option("--name", "-n", default=None, help="Store name.")
@click.option("--description", "-d", default=None, help="Store description.")
@error_handler
def create(path: str, name: str | None, description: str | None) -> None:
    """Create a new assay store directory."""
    from freezeassay.core import AssayStore

    store_path = Path(path)
    store = AssayStore.create(store_path, name=name or "", description=description or "")
    store.close()
    console.print(f"[green]Created assay store at {store_path}[/green]")

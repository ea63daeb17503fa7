"""freezeassay CLI — top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="freezeassay")
@click.option("--verbose", "-v", is_flag=True, help="Show full tracebacks on errors.")
def cli(verbose: bool) -> None:
    """freezeassay — INP droplet-freezing assay analysis."""
    from freezeassay.cli import utils

    utils.verbose = verbose


def _register_commands() -> None:
    """Register all subcommands — imports deferred to avoid loading pandas at startup."""
    from freezeassay.cli.analyze import analyze
    from freezeassay.cli.create import create
    from freezeassay.cli.export import export
    from freezeassay.cli.ingest import ingest
    from freezeassay.cli.query import query
    from freezeassay.cli.setup_cmd import setup

    cli.add_command(analyze)
    cli.add_command(create)
    cli.add_command(export)
    cli.add_command(ingest)
    cli.add_command(query)
    cli.add_command(setup)


_register_commands()

"""Shared CLI utilities — Rich console, error handling, store helpers."""

from __future__ import annotations

import functools
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

if TYPE_CHECKING:
    from freezeassay.core import AssayStore

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def store_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the shared ``-s/--store`` option."""
    return click.option(
        "-s", "--store", "store_path", required=True, type=click.Path(exists=True),
        help="Path to the assay store directory.",
    )(func)


def open_store(path: str) -> AssayStore:
    """Open a store with CLI-friendly error handling.

    Raises:
        SystemExit: With code 1 if no store is found.
    """
    from freezeassay.core import AssayStore
    from freezeassay.core.exceptions import StoreNotFoundError

    try:
        return AssayStore.open(Path(path))
    except StoreNotFoundError:
        console.print(f"[red]Error:[/red] No assay store found at {path}")
        raise SystemExit(1)


def print_warnings(warnings: list[str], limit: int = 10) -> None:
    if not warnings:
        return
    console.print(f"[yellow]Warnings ({len(warnings)}):[/yellow]")
    for w in warnings[:limit]:
        console.print(f"  [yellow]-[/yellow] {w}")
    if len(warnings) > limit:
        console.print(f"  [dim]... and {len(warnings) - limit} more[/dim]")


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches ExperimentError and invalid user input (exit 1) and unexpected
    exceptions (exit 2). With --verbose, unexpected errors include the full
    traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from freezeassay.core.exceptions import ExperimentError

        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except (ExperimentError, ValueError, FileNotFoundError) as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )

"""Shared CLI helpers: exit codes, consoles, logging setup and messages."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "EXIT_SUCCESS",
    "EXIT_ERROR",
    "console",
    "err_console",
    "_error",
    "_info",
    "_success",
    "_warning",
    "_setup_logging",
    "_validate_project_path",
]

EXIT_SUCCESS = 0
EXIT_ERROR = 1

# Results go to stdout, diagnostics to stderr
console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure root logging with a rich handler on stderr.

    Args:
        verbose: DEBUG level.
        quiet: WARNING level; ignored when verbose is set.

    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def _error(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {message}", highlight=False)


def _warning(message: str) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {message}", highlight=False)


def _info(message: str) -> None:
    console.print(f"[blue]{message}[/blue]", highlight=False)


def _success(message: str) -> None:
    console.print(f"[green]{message}[/green]", highlight=False)


def _validate_project_path(project: str | Path) -> Path:
    """Resolve the project directory or exit with an error.

    Raises:
        typer.Exit: If the path does not exist or is not a directory.

    """
    project_path = Path(project).expanduser().resolve()
    if not project_path.exists():
        _error(f"Directory does not exist: {project_path}")
        raise typer.Exit(code=EXIT_ERROR)
    if not project_path.is_dir():
        _error(f"Not a directory: {project_path}")
        raise typer.Exit(code=EXIT_ERROR)
    return project_path

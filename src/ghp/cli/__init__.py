"""ghp CLI.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly and global options
    ├── helpers.py            # Logging state, registry and argument helpers
    ├── output.py             # Rich tables and formatters
    └── commands/
        ├── __init__.py       # Command exports
        └── hooks.py          # hooks list/show/run/add/remove/enable/disable/policy
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ghp import __version__

from . import helpers as helpers
from .commands import hooks_app
from .helpers import (
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
)
from .output import console, err_console

# =============================================================================
# Typer app definition
# =============================================================================

app = typer.Typer(
    name="ghp",
    help="GitHub workflow helper: event hooks and lifecycle automation",
    add_completion=False,
    no_args_is_help=True,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghp v{__version__}")
        raise typer.Exit()


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="GHP_LOG_LEVEL",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: console or json",
            envvar="GHP_LOG_FORMAT",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Write JSON logs to this file instead of stderr",
            envvar="GHP_LOG_FILE",
        ),
    ] = None,
) -> None:
    """ghp - event hooks for GitHub issue and pull request workflows."""
    configure_global_logging(err_console)


# =============================================================================
# Command registration
# =============================================================================

app.add_typer(hooks_app)


__all__ = [
    "app",
    "main",
]

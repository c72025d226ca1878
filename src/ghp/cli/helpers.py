"""Shared utilities for ghp CLI commands.

- Logging configuration state set by the global options
- Registry construction
- Payload and exit-code argument parsing
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from ghp.core.config import LogConfig
from ghp.core.logging import configure_logging, get_logger
from ghp.hooks.registry import FileHookRegistry

# =============================================================================
# Module-level logger
# =============================================================================

_logger = get_logger("cli")


# =============================================================================
# Error message constants
# =============================================================================


class ErrorMessages:
    """Constants for CLI error messages."""

    HOOK_NOT_FOUND = "Hook not found"
    INVALID_PAYLOAD = "Invalid payload"
    INVALID_EXIT_CODES = "Invalid exit code list"


# =============================================================================
# Logging configuration
# =============================================================================


class CliLoggingState:
    """Logging options collected from global CLI flags, applied once."""

    def __init__(self) -> None:
        self.options: dict[str, Any] = {}
        self.configured = False


_log_state = CliLoggingState()


def set_log_level(level: str) -> None:
    _log_state.options["level"] = level.upper()


def set_log_format(fmt: str) -> None:
    _log_state.options["format"] = fmt.lower()


def set_log_file(path: Path | None) -> None:
    _log_state.options["file_path"] = path


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global CLI options.

    Only configures once per session.

    Raises:
        typer.Exit: If the options are invalid.
    """
    if _log_state.configured:
        return

    try:
        config = LogConfig.model_validate(_log_state.options)
    except ValidationError as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None

    configure_logging(level=config.level, format=config.format, file_path=config.file_path)
    _log_state.configured = True


def reset_logging_state() -> None:
    """Reset logging state (primarily for testing)."""
    _log_state.options.clear()
    _log_state.configured = False


# =============================================================================
# Registry and argument helpers
# =============================================================================


def get_registry(config_file: Path | None = None) -> FileHookRegistry:
    """Registry for the given file, else GHP_EVENT_HOOKS_CONFIG, else the default path."""
    registry = FileHookRegistry(config_file.expanduser() if config_file else None)
    _logger.debug("cli.registry_selected", path=str(registry.path))
    return registry


def parse_payload(raw: str | None, payload_file: Path | None = None) -> dict[str, Any]:
    """Parse an event payload from a JSON string or file.

    Raises:
        typer.BadParameter: If the payload is not a JSON object.
    """
    if raw is not None and payload_file is not None:
        raise typer.BadParameter("Use either --payload or --payload-file, not both")
    if payload_file is not None:
        raw = payload_file.read_text(encoding="utf-8")
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{ErrorMessages.INVALID_PAYLOAD}: {e}") from None
    if not isinstance(payload, dict):
        raise typer.BadParameter(f"{ErrorMessages.INVALID_PAYLOAD}: expected a JSON object")
    return payload


def parse_exit_codes(raw: str | None) -> list[int] | None:
    """Parse "0,2,3" into [0, 2, 3]; None passes through."""
    if raw is None:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise typer.BadParameter(f"{ErrorMessages.INVALID_EXIT_CODES}: {raw!r}") from None


__all__ = [
    "ErrorMessages",
    "configure_global_logging",
    "get_registry",
    "parse_exit_codes",
    "parse_payload",
    "reset_logging_state",
    "set_log_file",
    "set_log_format",
    "set_log_level",
]

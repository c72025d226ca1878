"""Logging configuration model."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class LogConfig(BaseModel):
    """Configuration for structured logging.

    Controls log level, output format, and optional file output.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum log level to capture",
    )
    format: Literal["json", "console"] = Field(
        default="console",
        description="Output format: json for structured, console for human-readable",
    )
    file_path: Path | None = Field(
        default=None,
        description="Rotating log file; when set, logs are written there as JSON",
    )

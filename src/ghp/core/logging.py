"""Structured logging infrastructure for ghp.

Provides structured logging using structlog with ghp-specific context such
as the lifecycle event being fired and a per-invocation run id. Supports
human-readable console output and JSON output (stdout or a rotating file).

Example usage:
    from ghp.core.logging import get_logger, configure_logging, with_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("hooks")
    logger.info("hook.executing", hook_name="lint")

    # Correlate every log line emitted while firing one event
    ctx = EventContext(event="pre-pr")
    with with_context(ctx):
        logger.info("hooks.starting")  # includes hook_event and run_id
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field names whose values must never reach a log sink
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
    "bearer",
})


@dataclass(frozen=True)
class EventContext:
    """Immutable correlation context for one lifecycle event firing.

    Attributes:
        event: The lifecycle event name (e.g. "issue-started").
        run_id: Unique id for this firing, shared by every hook it runs.
        hook_name: Hook currently executing, if any.
    """

    event: str
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    hook_name: str | None = None

    def with_hook(self, hook_name: str) -> EventContext:
        """Return a copy of this context scoped to a single hook."""
        return EventContext(event=self.event, run_id=self.run_id, hook_name=hook_name)

    def to_dict(self) -> dict[str, Any]:
        # "event" is structlog's message key
        result: dict[str, Any] = {"hook_event": self.event, "run_id": self.run_id}
        if self.hook_name is not None:
            result["hook_name"] = self.hook_name
        return result


_current_context: ContextVar[EventContext | None] = ContextVar(
    "ghp_event_context", default=None
)


def get_current_context() -> EventContext | None:
    """Get the current EventContext, or None outside a `with_context()` block."""
    return _current_context.get()


@contextmanager
def with_context(ctx: EventContext) -> Iterator[EventContext]:
    """Set the EventContext for the duration of a block.

    Args:
        ctx: The EventContext to use for the block.

    Yields:
        The EventContext that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _sanitize_value(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds an ISO8601 UTC timestamp."""
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that merges the current EventContext.

    Explicitly bound keys take precedence over context keys.
    """
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class GhpLogger:
    """ghp-specific logger wrapper around structlog.

    Bound to a component name; additional context can be bound for a scope.
    The underlying structlog logger is fetched lazily on every call so that
    loggers created at import time respect a later `configure_logging()`.
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> GhpLogger:
        """Create a new logger with additional bound context."""
        new_logger = GhpLogger.__new__(GhpLogger)
        new_logger._component = self._component
        new_logger._context = {**self._context, **context}
        return new_logger

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an exception with traceback. Call from inside an except block."""
        self._get_logger().exception(event, **kw)


def _build_processors(renderer: Processor, include_timestamps: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING",
    format: Literal["json", "console"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
) -> None:
    """Configure ghp structured logging.

    Call once at application startup. Console output goes to stderr so it
    never mixes with hook output or `--json` style command output.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable, "json" for structured output.
        file_path: Optional rotating log file. JSON is always used for files.
        max_file_size_mb: Maximum log file size before rotation (MB).
        backup_count: Number of rotated log files to keep.
        include_timestamps: Whether to include ISO8601 timestamps.
    """
    log_level = getattr(logging, level)

    handlers: list[logging.Handler] = []
    if file_path is not None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
        format = "json"  # noqa: A001
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # cache_logger_on_first_use=False keeps import-time loggers reconfigurable
    structlog.configure(
        processors=_build_processors(renderer, include_timestamps),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> GhpLogger:
    """Get a ghp logger for a component (e.g. "hooks", "retry", "registry")."""
    return GhpLogger(component, **initial_context)


__all__ = [
    "EventContext",
    "GhpLogger",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_logger",
    "with_context",
]

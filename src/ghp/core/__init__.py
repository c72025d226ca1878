"""Core building blocks: configuration models, logging, exceptions, constants."""

from ghp.core.exceptions import GhpError, HookConfigError
from ghp.core.logging import configure_logging, get_logger

__all__ = [
    "GhpError",
    "HookConfigError",
    "configure_logging",
    "get_logger",
]

"""Configuration models for ghp.

All models are re-exported from this ``__init__`` so callers can use
``from ghp.core.config import EventHook``.
"""

from ghp.core.config.hooks import (
    EventHook,
    EventHooksConfig,
    EventSettings,
    EventType,
    FailurePolicy,
    HookExitCodes,
    HookMode,
    HookOutcome,
)
from ghp.core.config.log import LogConfig

__all__ = [
    "EventHook",
    "EventHooksConfig",
    "EventSettings",
    "EventType",
    "FailurePolicy",
    "HookExitCodes",
    "HookMode",
    "HookOutcome",
    "LogConfig",
]

"""Global constants for ghp.

Centralizes magic numbers used throughout the codebase,
making them discoverable, consistent, and easy to modify.
"""

from pathlib import Path

# =============================================================================
# Hook Execution Defaults
# =============================================================================

DEFAULT_HOOK_TIMEOUT_MS = 30_000
"""Default per-hook timeout (30 seconds)."""

HOOK_GRACEFUL_TERMINATION_SECONDS = 5.0
"""Seconds to wait after SIGTERM before escalating a timed-out hook to SIGKILL."""

HOOK_OUTPUT_PANEL_MAX_LINES = 10
"""Lines of hook output shown in the blocking/interactive output panel."""

DEFAULT_CONTINUE_PROMPT = "Continue?"
"""Prompt shown for interactive hooks without a custom continue_prompt."""

HOOK_NAME_MAX_LENGTH = 63
"""Longest accepted hook name."""

# =============================================================================
# Retry Defaults (milliseconds)
# =============================================================================

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1_000
DEFAULT_MAX_DELAY_MS = 30_000

BACKOFF_MAX_EXPONENT = 31
"""Attempt numbers above this are clamped so 2**attempt stays bounded."""

# =============================================================================
# Registry
# =============================================================================

EVENT_HOOKS_CONFIG_ENV = "GHP_EVENT_HOOKS_CONFIG"
"""Environment variable overriding the event hooks config file location."""

DEFAULT_EVENT_HOOKS_CONFIG_PATH = Path.home() / ".config" / "ghp-cli" / "event-hooks.json"
"""Default event hooks config file location."""

EVENT_HOOKS_CONFIG_MODE = 0o600
"""File permissions for the event hooks config (user read/write only)."""

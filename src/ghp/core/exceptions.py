"""Exception hierarchy for ghp.

All ghp-specific exceptions inherit from GhpError, enabling callers
to catch broad (GhpError) or narrow (e.g., HookConfigError).

Hook execution failures are deliberately NOT exceptions: they are
reported through HookResult so one hook cannot crash the host workflow.
Retry engine failures propagate as the caller's original exception.
"""

from __future__ import annotations


class GhpError(Exception):
    """Base exception for all ghp errors."""


class HookConfigError(GhpError):
    """Raised when a hook definition or the hooks config file is invalid.

    Examples: duplicate hook name, unknown event type, unknown hook on update,
    unparseable config file.
    """

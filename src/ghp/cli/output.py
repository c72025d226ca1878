"""Rich output formatting for the ghp CLI.

Tables and formatters shared by the hook commands. Hook output panels and
prompts live in ``ghp.hooks.interactive`` and are drawn on stderr so that
``--json`` output on stdout stays machine-readable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from ghp.core.config import HookMode, HookOutcome
from ghp.hooks.interactive import OUTCOME_COLORS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ghp.core.config import EventHook
    from ghp.execution.hooks import HookResult

# =============================================================================
# Shared console instances
# =============================================================================

console = Console()
err_console = Console(stderr=True)


MODE_COLORS: dict[HookMode, str] = {
    HookMode.FIRE_AND_FORGET: "dim",
    HookMode.BLOCKING: "yellow",
    HookMode.INTERACTIVE: "cyan",
}


# =============================================================================
# Formatters
# =============================================================================


def format_duration_ms(duration_ms: int) -> str:
    """Format a duration: 850ms, 2.4s, 1m 05s."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    seconds = duration_ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


def format_outcome(outcome: HookOutcome) -> str:
    color = OUTCOME_COLORS.get(outcome, "white")
    return f"[{color}]{outcome.value}[/{color}]"


def format_mode(mode: HookMode) -> str:
    color = MODE_COLORS.get(mode, "white")
    return f"[{color}]{mode.value}[/{color}]"


# =============================================================================
# Table builders
# =============================================================================


def create_hooks_table(hooks: Sequence[EventHook]) -> Table:
    """Table of registered hooks, in registration order."""
    table = Table(title="Event Hooks", show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("Event")
    table.add_column("Mode")
    table.add_column("Enabled", justify="center")
    table.add_column("Timeout", justify="right")
    table.add_column("Command", overflow="fold")

    for hook in hooks:
        table.add_row(
            hook.label,
            hook.event.value,
            format_mode(hook.mode),
            "[green]yes[/green]" if hook.enabled else "[dim]no[/dim]",
            format_duration_ms(hook.timeout_ms),
            hook.command,
        )
    return table


def create_results_table(results: Sequence[HookResult]) -> Table:
    """Table of hook results for one event."""
    table = Table(title="Hook Results")
    table.add_column("Hook", style="bold")
    table.add_column("Mode")
    table.add_column("Outcome")
    table.add_column("Exit", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Error", overflow="fold")

    for result in results:
        table.add_row(
            result.hook_name + (" [red](aborted)[/red]" if result.aborted else ""),
            format_mode(result.mode),
            format_outcome(result.outcome),
            "-" if result.exit_code is None else str(result.exit_code),
            format_duration_ms(result.duration_ms),
            result.error or "",
        )
    return table


__all__ = [
    "console",
    "create_hooks_table",
    "create_results_table",
    "err_console",
    "format_duration_ms",
    "format_mode",
    "format_outcome",
]

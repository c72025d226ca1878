"""Terminal presentation for blocking and interactive hooks.

Blocking hooks show their output when they abort the workflow. Interactive
hooks always show their output and then ask whether to continue::

    ╭─ Lint ─────────────────────────────╮
    │ src/app.py:12: unused import       │
    │ ... (41 more lines)                │
    ╰────────────────────── exit 2: warn ╯
    Continue? [y/n/v] (n):

Answering ``v`` pages the full output (``$PAGER``, via Rich) and asks again.
Without a terminal on stdin the prompter declines to decide and the hook's
exit-code classification stands.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from enum import Enum
from typing import Protocol, TextIO

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from ghp.core.config import EventHook, HookOutcome
from ghp.core.constants import DEFAULT_CONTINUE_PROMPT, HOOK_OUTPUT_PANEL_MAX_LINES

NO_OUTPUT_PLACEHOLDER = "(no output)"

OUTCOME_COLORS: dict[HookOutcome, str] = {
    HookOutcome.SUCCESS: "green",
    HookOutcome.WARN: "yellow",
    HookOutcome.ABORT: "red",
    HookOutcome.CONTINUE: "cyan",
}


class HookDecision(str, Enum):
    """The user's answer to an interactive hook prompt."""

    CONTINUE = "continue"
    ABORT = "abort"


class HookPrompter(Protocol):
    """What the hook runner needs from a terminal."""

    def show_output(
        self, hook: EventHook, output: str, exit_code: int | None, outcome: HookOutcome
    ) -> None: ...

    def confirm_continue(self, hook: EventHook, output: str) -> HookDecision | None: ...


def display_output(output: str, stderr: str) -> str:
    """Pick the text to show for a hook: stderr first, then stdout."""
    return stderr or output or NO_OUTPUT_PLACEHOLDER


def truncate_lines(text: str, max_lines: int = HOOK_OUTPUT_PANEL_MAX_LINES) -> str:
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    hidden = len(lines) - max_lines
    return "\n".join([*lines[:max_lines], f"... ({hidden} more lines)"])


class RichHookPrompter:
    """Rich-based prompter writing to a console and reading answers from stdin.

    Args:
        console: Console to draw panels and prompts on.
        stream: Where answers are read from (defaults to stdin).
        is_interactive: Returns whether a human can answer; defaults to
            checking that stdin is a TTY.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        stream: TextIO | None = None,
        is_interactive: Callable[[], bool] | None = None,
    ) -> None:
        self.console = console or Console(stderr=True)
        self._stream = stream
        self._is_interactive = is_interactive or sys.stdin.isatty

    def show_output(
        self, hook: EventHook, output: str, exit_code: int | None, outcome: HookOutcome
    ) -> None:
        status = "timed out / killed" if exit_code is None else f"exit {exit_code}"
        color = OUTCOME_COLORS.get(outcome, "white")
        self.console.print(
            Panel(
                Text(truncate_lines(output)),
                title=f"[bold]{hook.label}[/bold]",
                title_align="left",
                subtitle=f"[{color}]{status}: {outcome.value}[/{color}]",
                subtitle_align="right",
                border_style=color,
            )
        )

    def _page(self, output: str) -> None:
        with self.console.pager():
            self.console.print(Text(output))

    def confirm_continue(self, hook: EventHook, output: str) -> HookDecision | None:
        """Ask whether to continue; None when nobody can answer."""
        if not self._is_interactive():
            return None

        prompt = hook.continue_prompt or DEFAULT_CONTINUE_PROMPT
        while True:
            answer = Prompt.ask(
                prompt,
                console=self.console,
                choices=["y", "n", "v"],
                default="n",
                stream=self._stream,
            )
            if answer == "v":
                self._page(output)
                continue
            return HookDecision.CONTINUE if answer == "y" else HookDecision.ABORT


__all__ = [
    "HookDecision",
    "HookPrompter",
    "NO_OUTPUT_PLACEHOLDER",
    "RichHookPrompter",
    "display_output",
    "truncate_lines",
]

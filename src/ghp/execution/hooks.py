"""Event hook execution.

Runs the shell commands users register for lifecycle events (issue started,
PR created, ...) and turns each exit status into a workflow decision.

Hooks for one event run strictly one after another, in registration order,
so their output never interleaves and "which hook stopped the workflow" is
always well defined.

Mode semantics:
- fire-and-forget: result is recorded, the workflow never stops
- blocking: an abort-classified result stops the workflow; output is shown
- interactive: output is shown and the user decides (when a TTY is present)

The sequencer itself never raises for hook failures. Whether the calling
workflow should stop is communicated only through ``HookResult.aborted``;
callers may still override it (e.g. a ``--force`` flag).

Security Note:
--------------
Hook commands run through ``/bin/sh -c`` because users rely on pipes,
redirects and environment variables. Commands come from the user's own
config file; only payload values (issue titles, PR bodies, ...) are
untrusted, and the template renderer shell-escapes every one of them.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple

from ghp.core.config import (
    EventHook,
    EventType,
    FailurePolicy,
    HookExitCodes,
    HookMode,
    HookOutcome,
)
from ghp.core.constants import HOOK_GRACEFUL_TERMINATION_SECONDS
from ghp.core.logging import EventContext, get_current_context, get_logger, with_context
from ghp.execution.process import AsyncioShellSpawner, ProcessSpawner, terminate_process
from ghp.hooks.interactive import HookDecision, HookPrompter, display_output
from ghp.hooks.registry import HookRegistry
from ghp.hooks.templating import CommandRenderer, EventPayload, render_command

_logger = get_logger("hooks")

DEFAULT_FAILURE_POLICY = FailurePolicy.FAIL_FAST

_DEFAULT_EXIT_CODES = HookExitCodes()


@dataclass(frozen=True)
class HookResult:
    """Result of executing a single hook. Exactly one per attempted hook."""

    hook_name: str
    success: bool
    duration_ms: int
    exit_code: int | None
    mode: HookMode
    outcome: HookOutcome
    aborted: bool
    output: str = ""
    stderr: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (enum values as strings)."""
        return {
            "hook_name": self.hook_name,
            "success": self.success,
            "duration_ms": self.duration_ms,
            "exit_code": self.exit_code,
            "mode": self.mode.value,
            "outcome": self.outcome.value,
            "aborted": self.aborted,
            "output": self.output,
            "stderr": self.stderr,
            "error": self.error,
        }


class HookSummary(NamedTuple):
    succeeded: int
    failed: int


# =============================================================================
# Exit-code classification
# =============================================================================


def classify_exit_code(
    exit_code: int | None,
    exit_codes: HookExitCodes | None = None,
) -> HookOutcome:
    """Map an exit status to an outcome using the hook's exit-code policy.

    Lists are consulted in order success, abort, warn. A code found in none
    of them, and ``None`` (killed by a signal, timed out, never started),
    classify as abort: an unexpected status must never read as success.
    """
    codes = exit_codes or _DEFAULT_EXIT_CODES
    if exit_code is None:
        return HookOutcome.ABORT
    if exit_code in codes.success:
        return HookOutcome.SUCCESS
    if exit_code in codes.abort:
        return HookOutcome.ABORT
    if exit_code in codes.warn:
        return HookOutcome.WARN
    return HookOutcome.ABORT


def is_aborting(mode: HookMode, outcome: HookOutcome) -> bool:
    """Fire-and-forget hooks never stop a workflow."""
    return mode != HookMode.FIRE_AND_FORGET and outcome == HookOutcome.ABORT


# =============================================================================
# Result helpers for callers
# =============================================================================


def should_abort(results: Sequence[HookResult]) -> bool:
    """True when any hook asked the workflow to stop."""
    return any(result.aborted for result in results)


def find_aborting_result(results: Sequence[HookResult]) -> HookResult | None:
    return next((result for result in results if result.aborted), None)


def summarize_results(results: Sequence[HookResult]) -> HookSummary:
    succeeded = sum(1 for result in results if result.success)
    return HookSummary(succeeded=succeeded, failed=len(results) - succeeded)


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace").strip() if data else ""


# =============================================================================
# Runner
# =============================================================================


class HookRunner:
    """Executes registered hooks for lifecycle events.

    All side-effecting collaborators are injectable so tests can run without
    real processes, terminals, or wall-clock time.

    Args:
        registry: Source of hooks and per-event failure policies.
        spawner: Starts hook commands (default: ``/bin/sh -c`` via asyncio).
        renderer: Renders command templates with escaped payload values.
        prompter: Terminal UI for blocking/interactive hooks. Without one,
            output is not displayed and interactive hooks keep their
            exit-code classification.
        clock: Monotonic clock in seconds, used for ``duration_ms``.
        cwd: Working directory for hook commands (default: inherited).
        env: Environment for hook commands (default: inherited).
        grace_seconds: Time between SIGTERM and SIGKILL on timeout.
    """

    def __init__(
        self,
        registry: HookRegistry,
        *,
        spawner: ProcessSpawner | None = None,
        renderer: CommandRenderer = render_command,
        prompter: HookPrompter | None = None,
        clock: Callable[[], float] = time.monotonic,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        grace_seconds: float = HOOK_GRACEFUL_TERMINATION_SECONDS,
    ) -> None:
        self.registry = registry
        self.spawner = spawner or AsyncioShellSpawner()
        self.renderer = renderer
        self.prompter = prompter
        self.cwd = cwd
        self.env = env
        self._clock = clock
        self._grace_seconds = grace_seconds

    def has_hooks_for_event(self, event: EventType | str) -> bool:
        return bool(self.registry.get_hooks_for_event(EventType(event)))

    def resolve_failure_policy(
        self,
        event: EventType,
        on_failure: FailurePolicy | None = None,
    ) -> FailurePolicy:
        """Per-event override > caller option > fail-fast."""
        override = self.registry.get_event_failure_policy(event)
        if override is not None:
            return FailurePolicy(override)
        if on_failure is not None:
            return FailurePolicy(on_failure)
        return DEFAULT_FAILURE_POLICY

    async def run_hooks_for_event(
        self,
        event: EventType | str,
        payload: EventPayload,
        *,
        on_failure: FailurePolicy | None = None,
        skip_hooks: bool = False,
    ) -> list[HookResult]:
        """Run every enabled hook for an event, in registration order.

        Under fail-fast, stops after the first aborting result (which is
        included); under continue, every hook runs. With ``skip_hooks`` the
        registry is not consulted and nothing is spawned.
        """
        if skip_hooks:
            _logger.debug("hooks.skipped", hook_event=str(event))
            return []

        event = EventType(event)
        hooks = self.registry.get_hooks_for_event(event)
        if not hooks:
            _logger.debug("hooks.none_registered", hook_event=event.value)
            return []

        policy = self.resolve_failure_policy(event, on_failure)
        results: list[HookResult] = []

        with with_context(EventContext(event=event.value)):
            _logger.info("hooks.starting", hook_count=len(hooks), on_failure=policy.value)

            for index, hook in enumerate(hooks):
                try:
                    result = await self.run_hook(hook, payload)
                except Exception as e:
                    _logger.exception("hook.exception", hook_name=hook.name, error=str(e))
                    result = self._build_result(
                        hook,
                        duration_ms=0,
                        exit_code=None,
                        outcome=HookOutcome.ABORT,
                        error=f"Exception: {e!s}",
                    )
                results.append(result)

                if result.aborted and policy == FailurePolicy.FAIL_FAST:
                    _logger.warning(
                        "hooks.aborted",
                        hook_name=hook.name,
                        remaining_hooks=len(hooks) - index - 1,
                    )
                    break

            summary = summarize_results(results)
            _logger.info(
                "hooks.completed",
                hooks_run=len(results),
                hooks_succeeded=summary.succeeded,
                hooks_failed=summary.failed,
            )

        return results

    async def run_hook(self, hook: EventHook, payload: EventPayload) -> HookResult:
        """Run one hook and classify its result. Never raises for hook failures."""
        ctx = get_current_context()
        if ctx is None:
            ctx = EventContext(event=hook.event.value)
        with with_context(ctx.with_hook(hook.name)):
            return await self._run_hook(hook, payload)

    async def _run_hook(self, hook: EventHook, payload: EventPayload) -> HookResult:
        start = self._clock()
        try:
            command = self.renderer(hook.command, payload)
        except Exception as e:
            _logger.warning("hook.render_failed", error_type=type(e).__name__, error=str(e))
            return await self._finish(
                hook,
                start,
                exit_code=None,
                stderr=str(e),
                error=f"Failed to render command: {e}",
            )

        _logger.debug("hook.executing", mode=hook.mode.value, timeout_ms=hook.timeout_ms)

        try:
            process = await self.spawner.spawn(command, cwd=self.cwd, env=self.env)
        except (OSError, ValueError) as e:
            # ValueError: embedded NUL byte in the command
            _logger.warning("hook.spawn_failed", error=str(e))
            return await self._finish(
                hook,
                start,
                exit_code=None,
                stderr=str(e),
                error=f"Failed to start hook: {e}",
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=hook.timeout_ms / 1000,
            )
        except TimeoutError:
            await terminate_process(process, self._grace_seconds)
            _logger.warning("hook.timed_out", pid=process.pid, timeout_ms=hook.timeout_ms)
            return await self._finish(
                hook,
                start,
                exit_code=None,
                error=f"Hook timed out after {hook.timeout_ms} ms",
            )

        # Negative return codes mean the child was killed by a signal
        returncode = process.returncode
        error = None
        if returncode is not None and returncode < 0:
            error = f"Hook terminated by signal {-returncode}"
            returncode = None

        return await self._finish(
            hook,
            start,
            exit_code=returncode,
            output=_decode(stdout),
            stderr=_decode(stderr),
            error=error,
        )

    async def _finish(
        self,
        hook: EventHook,
        start: float,
        *,
        exit_code: int | None,
        output: str = "",
        stderr: str = "",
        error: str | None = None,
    ) -> HookResult:
        """Classify, apply mode-specific behavior, and build the result."""
        outcome = classify_exit_code(exit_code, hook.exit_codes)
        success = outcome == HookOutcome.SUCCESS

        if self.prompter is not None:
            shown = display_output(output, stderr)
            if hook.mode == HookMode.BLOCKING and outcome == HookOutcome.ABORT:
                self.prompter.show_output(hook, shown, exit_code, outcome)
            elif hook.mode == HookMode.INTERACTIVE:
                self.prompter.show_output(hook, shown, exit_code, outcome)
                # Prompting reads stdin; keep it off the event loop
                decision = await asyncio.to_thread(self.prompter.confirm_continue, hook, shown)
                if decision == HookDecision.CONTINUE:
                    outcome = HookOutcome.CONTINUE
                elif decision == HookDecision.ABORT:
                    outcome = HookOutcome.ABORT
                _logger.info(
                    "hook.user_decision",
                    decision=decision.value if decision else None,
                    outcome=outcome.value,
                )

        duration_ms = max(0, round((self._clock() - start) * 1000))
        result = self._build_result(
            hook,
            duration_ms=duration_ms,
            exit_code=exit_code,
            outcome=outcome,
            success=success,
            output=output,
            stderr=stderr,
            error=error,
        )

        log = _logger.warning if outcome == HookOutcome.ABORT else _logger.info
        log(
            "hook.completed",
            outcome=outcome.value,
            exit_code=exit_code,
            aborted=result.aborted,
            duration_ms=duration_ms,
        )
        return result

    @staticmethod
    def _build_result(
        hook: EventHook,
        *,
        duration_ms: int,
        exit_code: int | None,
        outcome: HookOutcome,
        success: bool = False,
        output: str = "",
        stderr: str = "",
        error: str | None = None,
    ) -> HookResult:
        return HookResult(
            hook_name=hook.name,
            success=success,
            duration_ms=duration_ms,
            exit_code=exit_code,
            mode=hook.mode,
            outcome=outcome,
            aborted=is_aborting(hook.mode, outcome),
            output=output,
            stderr=stderr,
            error=error,
        )


__all__ = [
    "DEFAULT_FAILURE_POLICY",
    "HookResult",
    "HookRunner",
    "HookSummary",
    "classify_exit_code",
    "find_aborting_result",
    "is_aborting",
    "should_abort",
    "summarize_results",
]

"""Gating workflow steps on event hooks.

Workflows such as "create a pull request" fire a gating event (``pre-pr``,
``pr-creating``) before doing anything irreversible and stop if a hook
aborts. The caller can override the abort with ``force``; the aborting hook
is still reported so the user sees why it would have stopped.

Example:
    gate = await fire_gated_event(runner, EventType.PRE_PR, payload, force=args.force)
    if not gate.proceed:
        raise SystemExit(1)
    pr = await create_pull_request(...)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ghp.core.config import EventType, FailurePolicy
from ghp.core.logging import get_logger
from ghp.execution.hooks import HookResult, HookRunner, find_aborting_result
from ghp.hooks.templating import EventPayload

_logger = get_logger("workflows")


@dataclass(frozen=True)
class GateResult:
    """Outcome of a gating event.

    Attributes:
        results: One HookResult per hook that ran.
        aborted_by_hook: Name of the hook that asked to stop, if any.
        proceed: Whether the workflow should continue.
    """

    results: list[HookResult] = field(default_factory=list)
    aborted_by_hook: str | None = None
    proceed: bool = True

    @property
    def forced(self) -> bool:
        """True when a hook aborted but the caller proceeded anyway."""
        return self.aborted_by_hook is not None and self.proceed


async def fire_gated_event(
    runner: HookRunner,
    event: EventType | str,
    payload: EventPayload,
    *,
    skip_hooks: bool = False,
    force: bool = False,
    on_failure: FailurePolicy | None = None,
) -> GateResult:
    """Run the hooks for a gating event and decide whether to proceed."""
    results = await runner.run_hooks_for_event(
        event,
        payload,
        on_failure=on_failure,
        skip_hooks=skip_hooks,
    )
    aborting = find_aborting_result(results)
    if aborting is None:
        return GateResult(results=results)

    if force:
        _logger.warning("workflow.abort_overridden", hook_name=aborting.hook_name)
    else:
        _logger.info("workflow.aborted_by_hook", hook_name=aborting.hook_name)

    return GateResult(results=results, aborted_by_hook=aborting.hook_name, proceed=force)


__all__ = ["GateResult", "fire_gated_event"]

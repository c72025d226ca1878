"""Tests for event hook execution.

Tests cover:
- Exit-code classification (defaults, custom lists, precedence, fail-closed)
- HookRunner.run_hook: rendering, spawning, timeout, signals, spawn errors
- Mode semantics (fire-and-forget, blocking, interactive)
- HookRunner.run_hooks_for_event: ordering, fail-fast/continue, overrides
- Result helpers (should_abort, find_aborting_result, summarize_results)
- End-to-end runs through a real /bin/sh
"""

import threading
from unittest.mock import MagicMock

import pytest

from ghp.core.config import (
    EventHook,
    EventType,
    FailurePolicy,
    HookExitCodes,
    HookMode,
    HookOutcome,
)
from ghp.execution.hooks import (
    HookResult,
    HookRunner,
    classify_exit_code,
    find_aborting_result,
    is_aborting,
    should_abort,
    summarize_results,
)
from ghp.hooks.interactive import HookDecision
from ghp.hooks.registry import InMemoryHookRegistry
from tests.helpers import FakeClock, FakeProcess, FakeSpawner, RecordingPrompter, make_hook

# ============================================================================
# Exit-code classification
# ============================================================================


class TestClassifyExitCode:
    """Tests for classify_exit_code."""

    def test_defaults(self) -> None:
        assert classify_exit_code(0) == HookOutcome.SUCCESS
        assert classify_exit_code(1) == HookOutcome.ABORT

    def test_unlisted_code_fails_closed(self) -> None:
        assert classify_exit_code(2) == HookOutcome.ABORT
        assert classify_exit_code(127) == HookOutcome.ABORT

    def test_none_is_abort(self) -> None:
        assert classify_exit_code(None) == HookOutcome.ABORT
        assert classify_exit_code(None, HookExitCodes(success=[0], abort=[], warn=[])) == (
            HookOutcome.ABORT
        )

    def test_custom_lists(self) -> None:
        codes = HookExitCodes(success=[0, 3], abort=[2], warn=[1])
        assert classify_exit_code(3, codes) == HookOutcome.SUCCESS
        assert classify_exit_code(2, codes) == HookOutcome.ABORT
        assert classify_exit_code(1, codes) == HookOutcome.WARN
        assert classify_exit_code(4, codes) == HookOutcome.ABORT

    def test_success_list_checked_first(self) -> None:
        codes = HookExitCodes(success=[1], abort=[1], warn=[1])
        assert classify_exit_code(1, codes) == HookOutcome.SUCCESS

    def test_abort_list_checked_before_warn(self) -> None:
        codes = HookExitCodes(success=[0], abort=[2], warn=[2])
        assert classify_exit_code(2, codes) == HookOutcome.ABORT

    def test_all_lists_empty(self) -> None:
        codes = HookExitCodes(success=[], abort=[], warn=[])
        assert classify_exit_code(0, codes) == HookOutcome.ABORT


class TestIsAborting:
    @pytest.mark.parametrize("outcome", list(HookOutcome))
    def test_fire_and_forget_never_aborts(self, outcome: HookOutcome) -> None:
        assert is_aborting(HookMode.FIRE_AND_FORGET, outcome) is False

    @pytest.mark.parametrize("mode", [HookMode.BLOCKING, HookMode.INTERACTIVE])
    def test_abort_outcome_aborts_other_modes(self, mode: HookMode) -> None:
        assert is_aborting(mode, HookOutcome.ABORT) is True
        assert is_aborting(mode, HookOutcome.WARN) is False
        assert is_aborting(mode, HookOutcome.CONTINUE) is False


# ============================================================================
# Single hook execution
# ============================================================================


def make_runner(
    hooks: list[EventHook] | None = None,
    *,
    spawner: FakeSpawner | None = None,
    **kwargs: object,
) -> HookRunner:
    return HookRunner(
        InMemoryHookRegistry(hooks or []),
        spawner=spawner or FakeSpawner(),
        clock=FakeClock(),
        **kwargs,  # type: ignore[arg-type]
    )


class TestRunHook:
    """Tests for HookRunner.run_hook."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        spawner = FakeSpawner()
        spawner.register("make lint", lambda: FakeProcess(0, b"  all good \n", b""))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook("lint", "make lint"), {})

        assert result.hook_name == "lint"
        assert result.success is True
        assert result.outcome == HookOutcome.SUCCESS
        assert result.aborted is False
        assert result.exit_code == 0
        assert result.output == "all good"
        assert result.error is None
        assert result.mode == HookMode.BLOCKING

    @pytest.mark.asyncio
    async def test_duration_from_injected_clock(self) -> None:
        runner = HookRunner(
            InMemoryHookRegistry(), spawner=FakeSpawner(), clock=FakeClock(step=0.25)
        )

        result = await runner.run_hook(make_hook(), {})

        assert result.duration_ms == 250

    @pytest.mark.asyncio
    async def test_command_is_rendered_with_escaped_values(self) -> None:
        spawner = FakeSpawner()
        runner = make_runner(spawner=spawner)
        hook = make_hook("notify", "notify ${issue.title} ${issue.number}")

        await runner.run_hook(hook, {"issue": {"title": "it's; rm -rf /", "number": 12}})

        assert spawner.commands == ["notify 'it'\\''s; rm -rf /' 12"]

    @pytest.mark.asyncio
    async def test_custom_renderer_and_cwd(self, tmp_path: object) -> None:
        spawner = FakeSpawner()
        renderer = MagicMock(return_value="exit 0")
        runner = make_runner(spawner=spawner, renderer=renderer, cwd=tmp_path)
        payload = {"repo": "o/r"}

        await runner.run_hook(make_hook(command="echo ${repo}"), payload)

        renderer.assert_called_once_with("echo ${repo}", payload)
        assert spawner.cwds == [tmp_path]

    @pytest.mark.asyncio
    async def test_abort_exit_code_blocking(self) -> None:
        spawner = FakeSpawner()
        spawner.register("check", lambda: FakeProcess(1, b"", b"lint errors\n"))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(command="check"), {})

        assert result.success is False
        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is True
        assert result.stderr == "lint errors"

    @pytest.mark.asyncio
    async def test_fire_and_forget_exit_1_never_aborts(self) -> None:
        runner = make_runner()

        result = await runner.run_hook(
            make_hook(command="exit 1", mode=HookMode.FIRE_AND_FORGET), {}
        )

        assert result.outcome == HookOutcome.ABORT
        assert result.success is False
        assert result.aborted is False

    @pytest.mark.asyncio
    async def test_warn_is_not_success_and_not_aborting(self) -> None:
        runner = make_runner()
        hook = make_hook(command="exit 2", exit_codes=HookExitCodes(warn=[2]))

        result = await runner.run_hook(hook, {})

        assert result.outcome == HookOutcome.WARN
        assert result.success is False
        assert result.aborted is False

    @pytest.mark.asyncio
    async def test_signal_termination_reports_no_exit_code(self) -> None:
        spawner = FakeSpawner()
        spawner.register("crash", lambda: FakeProcess(-11))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(command="crash"), {})

        assert result.exit_code is None
        assert result.outcome == HookOutcome.ABORT
        assert result.error == "Hook terminated by signal 11"

    @pytest.mark.asyncio
    async def test_timeout_terminates_process(self) -> None:
        spawner = FakeSpawner()
        spawner.register("sleep 60", lambda: FakeProcess(hang=True))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(command="sleep 60", timeout_ms=20), {})

        process = spawner.processes[0]
        assert process.terminated is True
        assert process.killed is False
        assert result.exit_code is None
        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is True
        assert result.success is False
        assert result.error == "Hook timed out after 20 ms"

    @pytest.mark.asyncio
    async def test_timeout_escalates_to_kill(self) -> None:
        spawner = FakeSpawner()
        spawner.register("stubborn", lambda: FakeProcess(hang=True, ignore_sigterm=True))
        runner = make_runner(spawner=spawner, grace_seconds=0.01)

        result = await runner.run_hook(make_hook(command="stubborn", timeout_ms=20), {})

        process = spawner.processes[0]
        assert process.terminated is True
        assert process.killed is True
        assert result.exit_code is None

    @pytest.mark.asyncio
    async def test_timeout_fire_and_forget_not_aborted(self) -> None:
        spawner = FakeSpawner()
        spawner.register("slow", lambda: FakeProcess(hang=True))
        runner = make_runner(spawner=spawner)
        hook = make_hook(command="slow", timeout_ms=10, mode=HookMode.FIRE_AND_FORGET)

        result = await runner.run_hook(hook, {})

        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is False

    @pytest.mark.asyncio
    async def test_spawn_error_is_captured(self) -> None:
        spawner = FakeSpawner(error=PermissionError(13, "Permission denied"))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(), {})

        assert result.exit_code is None
        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is True
        assert result.error is not None
        assert result.error.startswith("Failed to start hook")
        assert "Permission denied" in result.stderr

    @pytest.mark.asyncio
    async def test_spawn_error_fire_and_forget(self) -> None:
        spawner = FakeSpawner(error=FileNotFoundError(2, "No such file or directory"))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(mode=HookMode.FIRE_AND_FORGET), {})

        assert result.aborted is False
        assert result.outcome == HookOutcome.ABORT

    @pytest.mark.asyncio
    async def test_spawn_value_error_is_captured(self) -> None:
        spawner = FakeSpawner(error=ValueError("embedded null byte"))
        runner = make_runner(spawner=spawner)

        result = await runner.run_hook(make_hook(), {})

        assert result.aborted is True
        assert result.error == "Failed to start hook: embedded null byte"
        assert result.duration_ms == 250

    @pytest.mark.asyncio
    async def test_renderer_error_is_captured(self) -> None:
        def broken_renderer(template: str, payload: object) -> str:
            raise RuntimeError("renderer exploded")

        spawner = FakeSpawner()
        runner = make_runner(spawner=spawner, renderer=broken_renderer)

        result = await runner.run_hook(make_hook(), {})

        assert result.exit_code is None
        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is True
        assert result.error == "Failed to render command: renderer exploded"
        assert result.duration_ms == 250
        assert spawner.commands == []

    @pytest.mark.asyncio
    async def test_result_is_immutable(self) -> None:
        result = await make_runner().run_hook(make_hook(), {})
        with pytest.raises(AttributeError):
            result.aborted = True  # type: ignore[misc]


class TestModes:
    """Tests for prompter interaction in blocking and interactive modes."""

    @pytest.mark.asyncio
    async def test_blocking_shows_output_only_on_abort(self) -> None:
        spawner = FakeSpawner()
        spawner.register("fail", lambda: FakeProcess(1, b"out", b"err"))
        prompter = RecordingPrompter()
        runner = make_runner(spawner=spawner, prompter=prompter)

        await runner.run_hook(make_hook("ok", "exit 0"), {})
        await runner.run_hook(make_hook("bad", "fail"), {})

        assert prompter.shown == [("bad", "err", 1, HookOutcome.ABORT)]
        assert prompter.asked == []

    @pytest.mark.asyncio
    async def test_fire_and_forget_is_silent(self) -> None:
        prompter = RecordingPrompter()
        runner = make_runner(prompter=prompter)

        await runner.run_hook(make_hook(command="exit 1", mode=HookMode.FIRE_AND_FORGET), {})

        assert prompter.shown == []

    @pytest.mark.asyncio
    async def test_interactive_user_continues(self) -> None:
        prompter = RecordingPrompter([HookDecision.CONTINUE])
        runner = make_runner(prompter=prompter)

        result = await runner.run_hook(
            make_hook("review", "exit 1", mode=HookMode.INTERACTIVE), {}
        )

        assert prompter.asked == ["review"]
        assert prompter.shown[0][1] == "(no output)"
        assert result.outcome == HookOutcome.CONTINUE
        assert result.aborted is False
        assert result.success is False

    @pytest.mark.asyncio
    async def test_interactive_user_aborts_after_success(self) -> None:
        prompter = RecordingPrompter([HookDecision.ABORT])
        runner = make_runner(prompter=prompter)

        result = await runner.run_hook(
            make_hook("review", "exit 0", mode=HookMode.INTERACTIVE), {}
        )

        assert result.outcome == HookOutcome.ABORT
        assert result.aborted is True
        assert result.success is True

    @pytest.mark.asyncio
    async def test_interactive_prompt_runs_off_the_event_loop(self) -> None:
        class ThreadRecordingPrompter(RecordingPrompter):
            thread_id: int | None = None

            def confirm_continue(self, hook: EventHook, output: str) -> HookDecision | None:
                self.thread_id = threading.get_ident()
                return super().confirm_continue(hook, output)

        prompter = ThreadRecordingPrompter([HookDecision.CONTINUE])
        runner = make_runner(prompter=prompter)

        result = await runner.run_hook(make_hook(mode=HookMode.INTERACTIVE), {})

        assert result.outcome == HookOutcome.CONTINUE
        assert prompter.thread_id != threading.get_ident()

    @pytest.mark.asyncio
    async def test_interactive_without_terminal_keeps_classification(self) -> None:
        prompter = RecordingPrompter([None])
        runner = make_runner(prompter=prompter)

        ok = await runner.run_hook(make_hook("a", "exit 0", mode=HookMode.INTERACTIVE), {})
        bad = await runner.run_hook(make_hook("b", "exit 1", mode=HookMode.INTERACTIVE), {})

        assert ok.outcome == HookOutcome.SUCCESS
        assert ok.aborted is False
        assert bad.outcome == HookOutcome.ABORT
        assert bad.aborted is True

    @pytest.mark.asyncio
    async def test_interactive_without_prompter(self) -> None:
        runner = make_runner()

        result = await runner.run_hook(make_hook(command="exit 0", mode=HookMode.INTERACTIVE), {})

        assert result.outcome == HookOutcome.SUCCESS


# ============================================================================
# Sequencing
# ============================================================================


class TestRunHooksForEvent:
    """Tests for HookRunner.run_hooks_for_event."""

    @pytest.mark.asyncio
    async def test_fail_fast_stops_after_abort(
        self, blocking_registry: InMemoryHookRegistry, spawner: FakeSpawner
    ) -> None:
        runner = HookRunner(blocking_registry, spawner=spawner)

        results = await runner.run_hooks_for_event(EventType.PRE_PR, {})

        assert [r.hook_name for r in results] == ["a", "b"]
        assert results[1].aborted is True
        assert spawner.commands == ["exit 0", "exit 1"]

    @pytest.mark.asyncio
    async def test_continue_runs_every_hook(
        self, blocking_registry: InMemoryHookRegistry, spawner: FakeSpawner
    ) -> None:
        runner = HookRunner(blocking_registry, spawner=spawner)

        results = await runner.run_hooks_for_event(
            EventType.PRE_PR, {}, on_failure=FailurePolicy.CONTINUE
        )

        assert [r.hook_name for r in results] == ["a", "b", "c"]
        assert [r.aborted for r in results] == [False, True, False]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", [None, FailurePolicy.FAIL_FAST, FailurePolicy.CONTINUE])
    async def test_fire_and_forget_never_halts(
        self, policy: FailurePolicy | None, spawner: FakeSpawner
    ) -> None:
        registry = InMemoryHookRegistry([
            make_hook("x", "exit 1", mode=HookMode.FIRE_AND_FORGET),
            make_hook("y", "exit 0"),
        ])
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event(EventType.PRE_PR, {}, on_failure=policy)

        assert [r.hook_name for r in results] == ["x", "y"]
        assert results[0].aborted is False

    @pytest.mark.asyncio
    async def test_event_override_continue_beats_caller_fail_fast(
        self, blocking_hooks: list[EventHook], spawner: FakeSpawner
    ) -> None:
        registry = InMemoryHookRegistry(
            blocking_hooks, {EventType.PRE_PR: FailurePolicy.CONTINUE}
        )
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event(
            EventType.PRE_PR, {}, on_failure=FailurePolicy.FAIL_FAST
        )

        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_event_override_fail_fast_beats_caller_continue(
        self, blocking_hooks: list[EventHook], spawner: FakeSpawner
    ) -> None:
        registry = InMemoryHookRegistry(
            blocking_hooks, {EventType.PRE_PR: FailurePolicy.FAIL_FAST}
        )
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event(
            EventType.PRE_PR, {}, on_failure=FailurePolicy.CONTINUE
        )

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_skip_hooks_touches_nothing(self) -> None:
        registry = MagicMock()
        spawner = FakeSpawner()
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event(EventType.PRE_PR, {}, skip_hooks=True)

        assert results == []
        assert registry.mock_calls == []
        assert spawner.commands == []

    @pytest.mark.asyncio
    async def test_only_enabled_hooks_for_event_run(self, spawner: FakeSpawner) -> None:
        registry = InMemoryHookRegistry([
            make_hook("other-event", event=EventType.PR_MERGED),
            make_hook("disabled", enabled=False),
            make_hook("active"),
        ])
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event("pre-pr", {})

        assert [r.hook_name for r in results] == ["active"]

    @pytest.mark.asyncio
    async def test_no_hooks_registered(self, spawner: FakeSpawner) -> None:
        runner = HookRunner(InMemoryHookRegistry(), spawner=spawner)

        assert await runner.run_hooks_for_event(EventType.ISSUE_CREATED, {}) == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_result(self) -> None:
        spawner = FakeSpawner(error=RuntimeError("spawner exploded"))
        registry = InMemoryHookRegistry([make_hook("a"), make_hook("b")])
        runner = HookRunner(registry, spawner=spawner)

        results = await runner.run_hooks_for_event(EventType.PRE_PR, {})

        assert len(results) == 1
        assert results[0].aborted is True
        assert results[0].error == "Exception: spawner exploded"
        assert spawner.commands == ["exit 0"]

    def test_has_hooks_for_event(self) -> None:
        runner = HookRunner(InMemoryHookRegistry([make_hook(event=EventType.PR_CREATED)]))

        assert runner.has_hooks_for_event(EventType.PR_CREATED) is True
        assert runner.has_hooks_for_event("pr-merged") is False

    def test_resolve_failure_policy_default(self) -> None:
        runner = HookRunner(InMemoryHookRegistry())

        assert runner.resolve_failure_policy(EventType.PRE_PR) == FailurePolicy.FAIL_FAST


# ============================================================================
# Result helpers
# ============================================================================


def _result(name: str, *, success: bool, aborted: bool) -> HookResult:
    return HookResult(
        hook_name=name,
        success=success,
        duration_ms=1,
        exit_code=0 if success else 1,
        mode=HookMode.BLOCKING,
        outcome=HookOutcome.SUCCESS if success else HookOutcome.ABORT,
        aborted=aborted,
    )


class TestResultHelpers:
    def test_should_abort(self) -> None:
        assert should_abort([]) is False
        assert should_abort([_result("a", success=True, aborted=False)]) is False
        assert should_abort([_result("b", success=False, aborted=True)]) is True

    def test_find_aborting_result(self) -> None:
        aborting = _result("b", success=False, aborted=True)
        results = [_result("a", success=True, aborted=False), aborting]

        assert find_aborting_result(results) is aborting
        assert find_aborting_result(results[:1]) is None

    def test_summarize_results(self) -> None:
        results = [
            _result("a", success=True, aborted=False),
            _result("b", success=False, aborted=True),
            _result("c", success=False, aborted=False),
        ]

        summary = summarize_results(results)

        assert summary == (1, 2)
        assert summary.succeeded == 1
        assert summary.failed == 2

    def test_to_dict(self) -> None:
        data = _result("a", success=True, aborted=False).to_dict()

        assert data["hook_name"] == "a"
        assert data["mode"] == "blocking"
        assert data["outcome"] == "success"
        assert data["error"] is None


# ============================================================================
# End-to-end through /bin/sh
# ============================================================================


@pytest.mark.e2e
class TestEndToEnd:
    """Runs real shell commands through the default spawner."""

    @pytest.mark.asyncio
    async def test_default_policy_stops_at_abort(self) -> None:
        registry = InMemoryHookRegistry([
            EventHook(name="a", event=EventType.PRE_PR, command="exit 0", mode=HookMode.BLOCKING),
            EventHook(name="b", event=EventType.PRE_PR, command="exit 1", mode=HookMode.BLOCKING),
        ])
        runner = HookRunner(registry)

        results = await runner.run_hooks_for_event(EventType.PRE_PR, {})

        assert [
            (r.hook_name, r.success, r.aborted, r.outcome) for r in results
        ] == [
            ("a", True, False, HookOutcome.SUCCESS),
            ("b", False, True, HookOutcome.ABORT),
        ]

    @pytest.mark.asyncio
    async def test_output_and_payload_reach_the_shell(self) -> None:
        hook = make_hook(
            command="printf '%s' ${issue.title}; echo oops >&2",
            event=EventType.ISSUE_CREATED,
        )
        runner = HookRunner(InMemoryHookRegistry())

        result = await runner.run_hook(hook, {"issue": {"title": "Fix `date` $(id)"}})

        assert result.output == "Fix `date` $(id)"
        assert result.stderr == "oops"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_nul_byte_in_payload_is_reported(self) -> None:
        runner = HookRunner(InMemoryHookRegistry())

        result = await runner.run_hook(
            make_hook(command="echo ${issue.title}"), {"issue": {"title": "a\x00b"}}
        )

        assert result.exit_code is None
        assert result.aborted is True
        assert result.error is not None
        assert result.error.startswith("Failed to start hook")

    @pytest.mark.asyncio
    async def test_real_timeout(self) -> None:
        runner = HookRunner(InMemoryHookRegistry(), grace_seconds=1.0)

        result = await runner.run_hook(make_hook(command="sleep 30", timeout_ms=100), {})

        assert result.exit_code is None
        assert result.error == "Hook timed out after 100 ms"
        assert result.duration_ms < 10_000

    @pytest.mark.asyncio
    async def test_cwd_is_used(self, tmp_path: object) -> None:
        runner = HookRunner(InMemoryHookRegistry(), cwd=tmp_path)

        result = await runner.run_hook(make_hook(command="pwd"), {})

        assert result.output.endswith(str(tmp_path).rsplit("/", 1)[-1])

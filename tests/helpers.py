"""Shared test helpers: fake processes, spawners, clocks, and prompters."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ghp.core.config import EventHook, EventType, HookMode, HookOutcome
from ghp.hooks.interactive import HookDecision

_EXIT_PATTERN = re.compile(r"^exit (\d+)$")


class FakeProcess:
    """Stands in for asyncio.subprocess.Process.

    Args:
        returncode: Exit status reported once the process "finishes".
        stdout: Bytes returned from communicate().
        stderr: Bytes returned from communicate().
        hang: Never finish on its own (for timeout tests).
        ignore_sigterm: Keep running after terminate(); only kill() stops it.
    """

    def __init__(
        self,
        returncode: int = 0,
        stdout: bytes = b"",
        stderr: bytes = b"",
        *,
        hang: bool = False,
        ignore_sigterm: bool = False,
    ) -> None:
        self.pid: int | None = None
        self.returncode: int | None = None
        self.terminated = False
        self.killed = False
        self._final_returncode = returncode
        self._stdout = stdout
        self._stderr = stderr
        self._hang = hang
        self._ignore_sigterm = ignore_sigterm
        self._exited = asyncio.Event()

    def _exit(self, returncode: int) -> None:
        self.returncode = returncode
        self._exited.set()

    async def communicate(self) -> tuple[bytes, bytes]:
        if self._hang:
            await self._exited.wait()
            return b"", b""
        self._exit(self._final_returncode)
        return self._stdout, self._stderr

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if not self._ignore_sigterm:
            self._exit(-15)

    def kill(self) -> None:
        self.killed = True
        self._exit(-9)


class FakeSpawner:
    """Records spawned commands and hands out FakeProcesses.

    Commands registered with ``register`` get that process factory; other
    commands of the form ``exit N`` finish with status N; anything else
    exits 0.
    """

    def __init__(self, error: Exception | None = None) -> None:
        self.commands: list[str] = []
        self.cwds: list[Path | str | None] = []
        self.processes: list[FakeProcess] = []
        self._factories: dict[str, Callable[[], FakeProcess]] = {}
        self._error = error

    def register(self, command: str, factory: Callable[[], FakeProcess]) -> None:
        self._factories[command] = factory

    async def spawn(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        env: Any = None,
    ) -> FakeProcess:
        self.commands.append(command)
        self.cwds.append(cwd)
        if self._error is not None:
            raise self._error

        if command in self._factories:
            process = self._factories[command]()
        else:
            match = _EXIT_PATTERN.match(command)
            process = FakeProcess(int(match.group(1)) if match else 0)
        self.processes.append(process)
        return process


class FakeClock:
    """Monotonic clock that advances by ``step`` seconds per reading."""

    def __init__(self, step: float = 0.25) -> None:
        self.now = 100.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class RecordingPrompter:
    """Prompter that records what it was shown and replays canned decisions."""

    def __init__(self, decisions: list[HookDecision | None] | None = None) -> None:
        self.shown: list[tuple[str, str, int | None, HookOutcome]] = []
        self.asked: list[str] = []
        self._decisions = list(decisions or [])

    def show_output(
        self, hook: EventHook, output: str, exit_code: int | None, outcome: HookOutcome
    ) -> None:
        self.shown.append((hook.name, output, exit_code, outcome))

    def confirm_continue(self, hook: EventHook, output: str) -> HookDecision | None:
        self.asked.append(hook.name)
        return self._decisions.pop(0) if self._decisions else None


def make_hook(
    name: str = "hook",
    command: str = "exit 0",
    *,
    event: EventType = EventType.PRE_PR,
    mode: HookMode = HookMode.BLOCKING,
    **kwargs: Any,
) -> EventHook:
    return EventHook(name=name, event=event, command=command, mode=mode, **kwargs)

"""Child process spawning for hook commands.

Hook commands are rendered shell strings, so they run through ``/bin/sh -c``
(``asyncio.create_subprocess_shell``). Every placeholder value has already
been shell-escaped by the template renderer before it reaches this module.

Each child gets its own session (``start_new_session=True``) so that a timed
out hook can be torn down together with anything it spawned.
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from ghp.core.constants import HOOK_GRACEFUL_TERMINATION_SECONDS
from ghp.core.logging import get_logger

_logger = get_logger("process")


class SpawnedProcess(Protocol):
    """The slice of ``asyncio.subprocess.Process`` the hook runner relies on."""

    @property
    def pid(self) -> int | None: ...

    @property
    def returncode(self) -> int | None: ...

    async def communicate(self) -> tuple[bytes, bytes]: ...

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class ProcessSpawner(Protocol):
    """Starts a shell command and returns a handle to the running child."""

    async def spawn(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> SpawnedProcess: ...


class AsyncioShellSpawner:
    """Default spawner: ``/bin/sh -c <command>`` with piped stdout/stderr.

    stdin is closed so a hook that tries to read input fails fast instead of
    hanging until its timeout.
    """

    async def spawn(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> SpawnedProcess:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            start_new_session=True,
        )
        _logger.debug("process.spawned", pid=process.pid, cwd=str(cwd) if cwd else None)
        return process


def _own_process_group(process: SpawnedProcess) -> int | None:
    """Return the child's process group id if the child leads its own group."""
    pid = process.pid
    if pid is None:
        return None
    try:
        pgid = os.getpgid(pid)
    except (ProcessLookupError, PermissionError):
        return None
    return pgid if pgid == pid else None


def _send_signal(process: SpawnedProcess, sig: signal.Signals) -> None:
    pgid = _own_process_group(process)
    try:
        if pgid is not None:
            os.killpg(pgid, sig)
        elif sig == signal.SIGKILL:
            process.kill()
        else:
            process.terminate()
    except ProcessLookupError:
        pass  # already exited


async def terminate_process(
    process: SpawnedProcess,
    grace_seconds: float = HOOK_GRACEFUL_TERMINATION_SECONDS,
) -> None:
    """Send SIGTERM, wait up to ``grace_seconds``, then SIGKILL.

    Signals go to the whole process group when the child leads one, so
    grandchildren started by the hook's shell are cleaned up too.
    """
    _send_signal(process, signal.SIGTERM)
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_seconds)
        return
    except TimeoutError:
        _logger.warning("process.kill_escalated", pid=process.pid, grace_seconds=grace_seconds)

    _send_signal(process, signal.SIGKILL)
    await process.wait()


__all__ = [
    "AsyncioShellSpawner",
    "ProcessSpawner",
    "SpawnedProcess",
    "terminate_process",
]

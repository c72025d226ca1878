"""Pytest fixtures for ghp tests."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from ghp.core.config import EventHook, EventType, HookMode
from ghp.hooks.registry import InMemoryHookRegistry
from tests.helpers import FakeClock, FakeSpawner


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging state before and after each test.

    This ensures test isolation for logging configuration.
    """
    from ghp.cli import helpers as cli_helpers

    cli_helpers.reset_logging_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    cli_helpers.reset_logging_state()
    structlog.reset_defaults()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def hooks_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point GHP_EVENT_HOOKS_CONFIG at a fresh file under tmp_path."""
    path = tmp_path / "config" / "event-hooks.json"
    monkeypatch.setenv("GHP_EVENT_HOOKS_CONFIG", str(path))
    return path


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def blocking_hooks() -> list[EventHook]:
    """a (exit 0), b (exit 1), c (exit 0), all blocking on pre-pr."""
    return [
        EventHook(name=name, event=EventType.PRE_PR, command=command, mode=HookMode.BLOCKING)
        for name, command in (("a", "exit 0"), ("b", "exit 1"), ("c", "exit 0"))
    ]


@pytest.fixture
def blocking_registry(blocking_hooks: list[EventHook]) -> InMemoryHookRegistry:
    return InMemoryHookRegistry(blocking_hooks)

"""Event hook registries.

The hook runner only needs two read operations from a registry:

- ``get_hooks_for_event(event)``: enabled hooks for an event, in
  registration order
- ``get_event_failure_policy(event)``: the per-event ``onFailure``
  override, if one is configured

``InMemoryHookRegistry`` serves tests and embedding callers.
``FileHookRegistry`` persists hooks to ``~/.config/ghp-cli/event-hooks.json``
(override with ``GHP_EVENT_HOOKS_CONFIG``) and adds the CRUD operations the
CLI uses.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from ghp.core.config import (
    EventHook,
    EventHooksConfig,
    EventSettings,
    EventType,
    FailurePolicy,
)
from ghp.core.constants import (
    DEFAULT_EVENT_HOOKS_CONFIG_PATH,
    EVENT_HOOKS_CONFIG_ENV,
    EVENT_HOOKS_CONFIG_MODE,
)
from ghp.core.exceptions import HookConfigError
from ghp.core.logging import get_logger

_logger = get_logger("registry")


class HookRegistry(Protocol):
    """Read interface the hook runner consumes."""

    def get_hooks_for_event(self, event: EventType) -> list[EventHook]: ...

    def get_event_failure_policy(self, event: EventType) -> FailurePolicy | None: ...


def default_config_path() -> Path:
    """Resolve the hooks config path, honoring GHP_EVENT_HOOKS_CONFIG."""
    override = os.environ.get(EVENT_HOOKS_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return DEFAULT_EVENT_HOOKS_CONFIG_PATH


class InMemoryHookRegistry:
    """Registry backed by a list, in registration order."""

    def __init__(
        self,
        hooks: Iterable[EventHook] = (),
        failure_policies: Mapping[EventType, FailurePolicy] | None = None,
    ) -> None:
        self._hooks: list[EventHook] = []
        self._policies: dict[EventType, FailurePolicy] = dict(failure_policies or {})
        for hook in hooks:
            self.add_hook(hook)

    def add_hook(self, hook: EventHook) -> EventHook:
        if any(existing.name == hook.name for existing in self._hooks):
            raise HookConfigError(f'Hook "{hook.name}" already exists')
        self._hooks.append(hook)
        return hook

    def list_hooks(self) -> list[EventHook]:
        return list(self._hooks)

    def get_hooks_for_event(self, event: EventType) -> list[EventHook]:
        return [hook for hook in self._hooks if hook.enabled and hook.event == event]

    def get_event_failure_policy(self, event: EventType) -> FailurePolicy | None:
        return self._policies.get(event)

    def set_event_failure_policy(self, event: EventType, policy: FailurePolicy | None) -> None:
        if policy is None:
            self._policies.pop(event, None)
        else:
            self._policies[event] = policy


class FileHookRegistry:
    """Registry persisted as JSON.

    File format::

        {
          "hooks": [{"name": "lint", "event": "pre-pr", "command": "make lint"}],
          "events": {"pre-pr": {"onFailure": "continue"}}
        }

    Reads are forgiving: invalid hook entries are dropped with a warning and
    an unreadable file reads as empty. Writes are strict: a corrupt file is
    never overwritten, and every mutation is validated before it is saved.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path if path is not None else default_config_path()

    # =========================================================================
    # Load / save
    # =========================================================================

    def _read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level value must be an object")
        return data

    def load(self, *, strict: bool = False) -> EventHooksConfig:
        """Load and validate the config file.

        Args:
            strict: Raise HookConfigError on an unreadable file instead of
                treating it as empty.
        """
        try:
            raw = self._read_raw()
        except (OSError, ValueError) as e:
            if strict:
                raise HookConfigError(f"Cannot read hooks config {self.path}: {e}") from e
            _logger.warning("registry.load_failed", path=str(self.path), error=str(e))
            return EventHooksConfig()

        hooks: list[EventHook] = []
        seen: set[str] = set()
        raw_hooks = raw.get("hooks", [])
        if not isinstance(raw_hooks, list):
            _logger.warning("registry.invalid_hooks_list", path=str(self.path))
            raw_hooks = []

        for index, entry in enumerate(raw_hooks):
            try:
                hook = EventHook.model_validate(entry)
            except ValidationError as e:
                _logger.warning(
                    "registry.invalid_hook_dropped",
                    index=index,
                    name=entry.get("name") if isinstance(entry, dict) else None,
                    errors=e.error_count(),
                )
                continue
            if hook.name in seen:
                _logger.warning("registry.duplicate_hook_dropped", name=hook.name)
                continue
            seen.add(hook.name)
            hooks.append(hook)

        events: dict[EventType, EventSettings] = {}
        raw_events = raw.get("events", {})
        if isinstance(raw_events, dict):
            for key, value in raw_events.items():
                try:
                    events[EventType(key)] = EventSettings.model_validate(value)
                except ValueError as e:
                    _logger.warning("registry.invalid_event_settings_dropped", hook_event=key, error=str(e))

        return EventHooksConfig(hooks=hooks, events=events)

    def save(self, config: EventHooksConfig) -> None:
        """Write the config (temp file + rename) with owner-only permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = config.model_dump(by_alias=True, mode="json", exclude_none=True)
        if not data.get("events"):
            data.pop("events", None)

        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        try:
            os.chmod(temp_file, EVENT_HOOKS_CONFIG_MODE)
        except OSError as e:
            _logger.debug("registry.chmod_failed", path=str(temp_file), error=str(e))
        temp_file.replace(self.path)
        _logger.debug("registry.saved", path=str(self.path), hook_count=len(config.hooks))

    # =========================================================================
    # Queries
    # =========================================================================

    def list_hooks(self) -> list[EventHook]:
        return self.load().hooks

    def get_hook(self, name: str) -> EventHook | None:
        return next((hook for hook in self.list_hooks() if hook.name == name), None)

    def get_hooks_for_event(self, event: EventType) -> list[EventHook]:
        return [hook for hook in self.list_hooks() if hook.enabled and hook.event == event]

    def get_event_failure_policy(self, event: EventType) -> FailurePolicy | None:
        settings = self.load().events.get(event)
        return settings.on_failure if settings else None

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_hook(self, hook: EventHook) -> EventHook:
        config = self.load(strict=True)
        if any(existing.name == hook.name for existing in config.hooks):
            raise HookConfigError(f'Hook "{hook.name}" already exists')
        config.hooks.append(hook)
        self.save(config)
        _logger.info("registry.hook_added", name=hook.name, hook_event=hook.event.value)
        return hook

    def update_hook(self, name: str, /, **updates: Any) -> EventHook:
        """Apply field updates (snake_case names) to an existing hook.

        Raises:
            HookConfigError: If the hook does not exist, the new name is
                taken, or the updated hook fails validation.
        """
        config = self.load(strict=True)
        index = next((i for i, hook in enumerate(config.hooks) if hook.name == name), None)
        if index is None:
            raise HookConfigError(f'Hook "{name}" not found')

        new_name = updates.get("name")
        if new_name and new_name != name and any(h.name == new_name for h in config.hooks):
            raise HookConfigError(f'Hook "{new_name}" already exists')

        merged = {**config.hooks[index].model_dump(), **updates}
        try:
            updated = EventHook.model_validate(merged)
        except ValidationError as e:
            raise HookConfigError(f'Invalid update for hook "{name}": {e}') from e

        config.hooks[index] = updated
        self.save(config)
        _logger.info("registry.hook_updated", name=name, fields=sorted(updates))
        return updated

    def remove_hook(self, name: str) -> bool:
        config = self.load(strict=True)
        remaining = [hook for hook in config.hooks if hook.name != name]
        if len(remaining) == len(config.hooks):
            return False
        config.hooks = remaining
        self.save(config)
        _logger.info("registry.hook_removed", name=name)
        return True

    def set_enabled(self, name: str, enabled: bool) -> EventHook:
        return self.update_hook(name, enabled=enabled)

    def set_event_failure_policy(self, event: EventType, policy: FailurePolicy | None) -> None:
        """Set (or clear, with None) the per-event onFailure override."""
        config = self.load(strict=True)
        if policy is None:
            config.events.pop(event, None)
        else:
            config.events[event] = EventSettings(on_failure=policy)
        self.save(config)


__all__ = [
    "FileHookRegistry",
    "HookRegistry",
    "InMemoryHookRegistry",
    "default_config_path",
]

"""Hook command templating.

Commands reference event payload values with ``${path.to.value}``
placeholders::

    notify-send ${issue.title}             # string, single-quoted
    ./ci.sh --pr ${pr.number}              # int, inserted as-is
    jq . <<< ${issue.json}                 # JSON dump of payload["issue"]
    cd ${worktree.path} && make setup

Every substituted value is shell-escaped, so issue titles or PR bodies can
never inject shell syntax. Numbers are the only values inserted verbatim.

Resolution rules:
- A placeholder whose root key is absent from the payload (e.g. ``${pr.url}``
  on an ``issue-created`` event) is left untouched and logged.
- A placeholder whose root exists but whose leaf is missing or None renders
  as an empty quoted string (``''``).
- ``${x.json}`` renders the JSON encoding of ``x`` unless ``x`` itself has a
  ``json`` key.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

from ghp.core.logging import get_logger

_logger = get_logger("templating")

EventPayload = Mapping[str, Any]
CommandRenderer = Callable[[str, EventPayload], str]

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][\w-]*(?:\.[A-Za-z_][\w-]*)*)\}")

_MISSING = object()


def shell_escape(value: str) -> str:
    """Quote a string for POSIX shells.

    Wraps the value in single quotes; embedded single quotes become
    ``'\\''``, so ``it's`` renders as ``'it'\\''s'``.
    """
    return "'" + value.replace("'", "'\\''") + "'"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    return value


def _to_json(value: Any) -> str:
    return json.dumps(_to_jsonable(value), separators=(",", ":"), ensure_ascii=False, default=str)


def _lookup(payload: EventPayload, parts: list[str]) -> Any:
    current: Any = payload
    for part in parts:
        current = _to_jsonable(current)
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _format_value(value: Any) -> str:
    if value is None:
        return shell_escape("")
    if isinstance(value, bool):
        return shell_escape("true" if value else "false")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return shell_escape(value)
    value = _to_jsonable(value)
    if isinstance(value, Mapping | list | tuple):
        return shell_escape(_to_json(value))
    return shell_escape(str(value))


def render_command(template: str, payload: EventPayload) -> str:
    """Substitute ``${...}`` placeholders in a hook command.

    Args:
        template: The hook's command template.
        payload: Event payload, e.g. ``{"repo": "o/r", "issue": {...}}``.

    Returns:
        A shell command string in which every substituted value is escaped.
    """
    unresolved: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        path = match.group(1)
        parts = path.split(".")

        if _lookup(payload, parts[:1]) is _MISSING:
            unresolved.append(path)
            return match.group(0)

        value = _lookup(payload, parts)
        if value is _MISSING and len(parts) > 1 and parts[-1] == "json":
            target = _lookup(payload, parts[:-1])
            if target is not _MISSING:
                return shell_escape(_to_json(target))
        if value is _MISSING:
            return shell_escape("")
        return _format_value(value)

    rendered = PLACEHOLDER_PATTERN.sub(_replace, template)

    if unresolved:
        _logger.warning(
            "template.unresolved_placeholders",
            placeholders=sorted(set(unresolved)),
            payload_keys=sorted(str(key) for key in payload),
        )
    return rendered


__all__ = [
    "CommandRenderer",
    "EventPayload",
    "PLACEHOLDER_PATTERN",
    "render_command",
    "shell_escape",
]

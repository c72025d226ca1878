"""Hook collaborators: command templating, registries, terminal prompts."""

from ghp.hooks.interactive import HookDecision, HookPrompter, RichHookPrompter
from ghp.hooks.registry import (
    FileHookRegistry,
    HookRegistry,
    InMemoryHookRegistry,
    default_config_path,
)
from ghp.hooks.templating import EventPayload, render_command, shell_escape

__all__ = [
    "EventPayload",
    "FileHookRegistry",
    "HookDecision",
    "HookPrompter",
    "HookRegistry",
    "InMemoryHookRegistry",
    "RichHookPrompter",
    "default_config_path",
    "render_command",
    "shell_escape",
]

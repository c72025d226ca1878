"""Event hook configuration models.

Defines the lifecycle events hooks can subscribe to, the hook definition
itself, exit-code policy, and per-event failure settings. Field aliases
match the camelCase keys of the on-disk ``event-hooks.json`` file, so the
models load existing configs unchanged while Python code uses snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ghp.core.constants import (
    DEFAULT_HOOK_TIMEOUT_MS,
    HOOK_NAME_MAX_LENGTH,
)


class EventType(str, Enum):
    """Lifecycle events that hooks can subscribe to."""

    ISSUE_CREATED = "issue-created"  # after an issue is created
    ISSUE_STARTED = "issue-started"  # after a branch is created/switched for an issue
    PRE_PR = "pre-pr"  # before PR creation, for validation/linting
    PR_CREATING = "pr-creating"  # proposed title/body, before the PR exists
    PR_CREATED = "pr-created"
    PR_MERGED = "pr-merged"
    WORKTREE_CREATED = "worktree-created"
    WORKTREE_REMOVED = "worktree-removed"


class HookMode(str, Enum):
    """Hook execution modes that control behavior on completion.

    - fire-and-forget: runs silently, never aborts the workflow (default)
    - blocking: output shown on failure, abort-classified exit halts the workflow
    - interactive: output always shown, user decides whether to continue
    """

    FIRE_AND_FORGET = "fire-and-forget"
    BLOCKING = "blocking"
    INTERACTIVE = "interactive"


class HookOutcome(str, Enum):
    """Classification of a completed hook invocation."""

    SUCCESS = "success"
    WARN = "warn"
    ABORT = "abort"
    CONTINUE = "continue"  # interactive hook where the user chose to continue


class FailurePolicy(str, Enum):
    """What the sequencer does after an aborting hook."""

    FAIL_FAST = "fail-fast"
    CONTINUE = "continue"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)


class HookExitCodes(_CamelModel):
    """Exit code classification for determining hook outcome.

    Lists are checked in order success, abort, warn. Codes in none of
    them classify as abort.
    """

    success: list[int] = Field(default_factory=lambda: [0])
    abort: list[int] = Field(default_factory=lambda: [1])
    warn: list[int] = Field(default_factory=list)


class EventHook(_CamelModel):
    """A registered event hook.

    Example (event-hooks.json):
        {
          "name": "lint",
          "event": "pre-pr",
          "command": "make lint BRANCH=${branch}",
          "mode": "blocking",
          "timeout": 60000,
          "exitCodes": {"success": [0], "warn": [2]}
        }
    """

    name: str = Field(
        min_length=1,
        max_length=HOOK_NAME_MAX_LENGTH,
        pattern=r"^[\w-]+$",
        description="Unique identifier: letters, digits, dashes, underscores",
    )
    display_name: str | None = Field(
        default=None,
        alias="displayName",
        description="Human-readable name shown in output panels (default: name)",
    )
    event: EventType = Field(description="The event that triggers this hook")
    command: str = Field(
        min_length=1,
        description="Shell command template. Supports ${issue.number}, ${branch}, "
        "${pr.json} style placeholders, each shell-escaped at render time.",
    )
    enabled: bool = Field(default=True)
    timeout_ms: int = Field(
        default=DEFAULT_HOOK_TIMEOUT_MS,
        gt=0,
        alias="timeout",
        description="Maximum execution time in milliseconds",
    )
    mode: HookMode = Field(default=HookMode.FIRE_AND_FORGET)
    exit_codes: HookExitCodes = Field(default_factory=HookExitCodes, alias="exitCodes")
    continue_prompt: str | None = Field(
        default=None,
        alias="continuePrompt",
        description="Prompt text for interactive mode (default: 'Continue?')",
    )

    @field_validator("exit_codes", mode="before")
    @classmethod
    def _none_exit_codes_means_defaults(cls, value: object) -> object:
        return HookExitCodes() if value is None else value

    @property
    def label(self) -> str:
        """Name to display for this hook."""
        return self.display_name or self.name


class EventSettings(_CamelModel):
    """Per-event settings stored alongside hooks."""

    on_failure: FailurePolicy | None = Field(
        default=None,
        alias="onFailure",
        description="Overrides the caller's failure policy for this event",
    )


class EventHooksConfig(_CamelModel):
    """Root of the event hooks config file."""

    hooks: list[EventHook] = Field(default_factory=list)
    events: dict[EventType, EventSettings] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_unique_names(self) -> EventHooksConfig:
        seen: set[str] = set()
        for hook in self.hooks:
            if hook.name in seen:
                raise ValueError(f"Duplicate hook name: {hook.name!r}")
            seen.add(hook.name)
        return self

"""Event hook management commands for the ghp CLI.

Subcommands:
- `ghp hooks list`              Show registered hooks
- `ghp hooks show NAME`         Show one hook in full
- `ghp hooks run EVENT`         Fire an event and run its hooks
- `ghp hooks add NAME`          Register a hook
- `ghp hooks remove NAME`       Delete a hook
- `ghp hooks enable NAME`       Enable a hook
- `ghp hooks disable NAME`      Disable a hook
- `ghp hooks policy EVENT`      Set the per-event failure policy

The hooks file lives at ~/.config/ghp-cli/event-hooks.json unless
GHP_EVENT_HOOKS_CONFIG points elsewhere.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape

from ghp.core.config import EventHook, EventType, FailurePolicy, HookExitCodes, HookMode
from ghp.core.constants import DEFAULT_CONTINUE_PROMPT, DEFAULT_HOOK_TIMEOUT_MS
from ghp.core.exceptions import GhpError
from ghp.execution.hooks import HookRunner, summarize_results
from ghp.hooks.interactive import RichHookPrompter
from ghp.workflows import fire_gated_event

from ..helpers import ErrorMessages, get_registry, parse_exit_codes, parse_payload
from ..output import (
    console,
    create_hooks_table,
    create_results_table,
    err_console,
    format_duration_ms,
    format_mode,
)

hooks_app = typer.Typer(
    name="hooks",
    help="Manage and run event hooks.",
    no_args_is_help=True,
)


def _fail(message: str, detail: object = None) -> typer.Exit:
    if detail is None:
        err_console.print(f"[red]{message}[/red]")
    else:
        err_console.print(f"[red]{message}:[/red] {detail}")
    return typer.Exit(1)


@hooks_app.command("list")
def list_hooks(
    event: EventType | None = typer.Option(
        None,
        "--event",
        "-e",
        help="Only show hooks for this event",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output hooks as JSON",
    ),
) -> None:
    """List registered event hooks.

    Examples:
        ghp hooks list
        ghp hooks list --event pre-pr --json
    """
    registry = get_registry()
    hooks = registry.list_hooks()
    if event is not None:
        hooks = [hook for hook in hooks if hook.event == event]

    if json_output:
        data = [hook.model_dump(by_alias=True, mode="json", exclude_none=True) for hook in hooks]
        console.print_json(json.dumps(data))
        return

    if not hooks:
        console.print(f"No event hooks registered ({registry.path})")
        return
    console.print(create_hooks_table(hooks))


@hooks_app.command("show")
def show_hook(
    name: str = typer.Argument(..., help="Hook name"),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the hook as JSON",
    ),
) -> None:
    """Show the full definition of a hook."""
    hook = get_registry().get_hook(name)
    if hook is None:
        raise _fail(ErrorMessages.HOOK_NOT_FOUND, name)

    if json_output:
        console.print_json(json.dumps(hook.model_dump(by_alias=True, mode="json")))
        return

    status = "[green]enabled[/green]" if hook.enabled else "[yellow]disabled[/yellow]"
    codes = hook.exit_codes
    console.print(f"[bold]{escape(hook.label)}[/bold] ({hook.name})")
    console.print(f"  Status:       {status}")
    console.print(f"  Event:        {hook.event.value}")
    console.print(f"  Mode:         {format_mode(hook.mode)}")
    console.print(f"  Command:      {escape(hook.command)}")
    console.print(f"  Timeout:      {format_duration_ms(hook.timeout_ms)}")
    console.print(
        f"  Exit codes:   success={_codes(codes.success)} "
        f"abort={_codes(codes.abort)} warn={_codes(codes.warn)}"
    )
    if hook.mode == HookMode.INTERACTIVE or hook.continue_prompt:
        prompt = hook.continue_prompt or DEFAULT_CONTINUE_PROMPT
        console.print(f"  Prompt:       {escape(prompt)}")


def _codes(codes: list[int]) -> str:
    return ",".join(str(code) for code in codes) or "-"


@hooks_app.command("run")
def run_hooks(
    event: EventType = typer.Argument(..., help="Event to fire"),
    payload: str | None = typer.Option(
        None,
        "--payload",
        "-p",
        help='Event payload as JSON, e.g. \'{"repo": "o/r", "branch": "main"}\'',
    ),
    payload_file: Path | None = typer.Option(
        None,
        "--payload-file",
        help="Read the event payload from a JSON file",
        exists=True,
        readable=True,
    ),
    on_failure: FailurePolicy | None = typer.Option(
        None,
        "--on-failure",
        help="Failure policy when the event has no configured override",
    ),
    no_hooks: bool = typer.Option(
        False,
        "--no-hooks",
        help="Skip all hooks for this event",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Exit 0 even if a hook aborted",
    ),
    cwd: Path | None = typer.Option(
        None,
        "--cwd",
        help="Working directory for hook commands",
        file_okay=False,
        exists=True,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output results as JSON",
    ),
) -> None:
    """Fire an event and run its hooks in registration order.

    Exits 1 when a blocking or interactive hook aborted, unless --force.

    Examples:
        ghp hooks run pre-pr --payload '{"repo": "o/r", "branch": "feat-1"}'
        ghp hooks run pr-merged --payload-file event.json --on-failure continue
    """
    event_payload = parse_payload(payload, payload_file)
    runner = HookRunner(
        get_registry(),
        prompter=RichHookPrompter(err_console),
        cwd=cwd,
    )
    gate = asyncio.run(
        fire_gated_event(
            runner,
            event,
            event_payload,
            skip_hooks=no_hooks,
            force=force,
            on_failure=on_failure,
        )
    )
    summary = summarize_results(gate.results)

    if json_output:
        data = {
            "event": event.value,
            "results": [result.to_dict() for result in gate.results],
            "succeeded": summary.succeeded,
            "failed": summary.failed,
            "aborted_by_hook": gate.aborted_by_hook,
            "proceed": gate.proceed,
        }
        console.print_json(json.dumps(data))
    elif gate.results:
        console.print(create_results_table(gate.results))
        console.print(f"Hooks: [green]{summary.succeeded} succeeded[/green], "
                      f"[red]{summary.failed} failed[/red]")
    else:
        console.print(f"No hooks ran for {event.value}")

    if gate.aborted_by_hook is not None:
        if gate.proceed:
            err_console.print(
                f"[yellow]Hook '{gate.aborted_by_hook}' aborted; continuing (--force)[/yellow]"
            )
        else:
            raise _fail(f"Aborted by hook '{gate.aborted_by_hook}'")


@hooks_app.command("add")
def add_hook(
    name: str = typer.Argument(..., help="Unique hook name (letters, digits, - and _)"),
    event: EventType = typer.Option(..., "--event", "-e", help="Event that triggers the hook"),
    command: str = typer.Option(
        ...,
        "--command",
        "-c",
        help="Shell command template, e.g. 'make lint BRANCH=${branch}'",
    ),
    mode: HookMode = typer.Option(HookMode.FIRE_AND_FORGET, "--mode", "-m", help="Execution mode"),
    timeout_ms: int = typer.Option(
        DEFAULT_HOOK_TIMEOUT_MS,
        "--timeout",
        "-t",
        help="Timeout in milliseconds",
    ),
    display_name: str | None = typer.Option(None, "--display-name", help="Name shown in output"),
    success_codes: str | None = typer.Option(None, "--success-codes", help="e.g. 0"),
    abort_codes: str | None = typer.Option(None, "--abort-codes", help="e.g. 1,2"),
    warn_codes: str | None = typer.Option(None, "--warn-codes", help="e.g. 3"),
    continue_prompt: str | None = typer.Option(
        None,
        "--continue-prompt",
        help="Prompt for interactive hooks (default: 'Continue?')",
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Register the hook disabled"),
) -> None:
    """Register a new event hook.

    Examples:
        ghp hooks add lint --event pre-pr --command 'make lint' --mode blocking
        ghp hooks add notify -e issue-started -c 'notify-send ${issue.title}'
    """
    exit_codes: dict[str, list[int]] = {}
    for key, raw in (("success", success_codes), ("abort", abort_codes), ("warn", warn_codes)):
        parsed = parse_exit_codes(raw)
        if parsed is not None:
            exit_codes[key] = parsed

    try:
        hook = EventHook(
            name=name,
            display_name=display_name,
            event=event,
            command=command,
            enabled=not disabled,
            timeout_ms=timeout_ms,
            mode=mode,
            exit_codes=HookExitCodes(**exit_codes),
            continue_prompt=continue_prompt,
        )
    except ValidationError as e:
        raise _fail("Invalid hook", e) from None

    try:
        get_registry().add_hook(hook)
    except GhpError as e:
        raise _fail("Error adding hook", e) from None

    console.print(f"[green]Added hook[/green] {hook.name} ({hook.event.value}, {hook.mode.value})")


@hooks_app.command("remove")
def remove_hook(name: str = typer.Argument(..., help="Hook name")) -> None:
    """Delete a registered hook."""
    try:
        removed = get_registry().remove_hook(name)
    except GhpError as e:
        raise _fail("Error removing hook", e) from None
    if not removed:
        raise _fail(ErrorMessages.HOOK_NOT_FOUND, name)
    console.print(f"[green]Removed hook[/green] {name}")


def _set_enabled(name: str, enabled: bool) -> None:
    try:
        get_registry().set_enabled(name, enabled)
    except GhpError as e:
        raise _fail(f"Error updating hook {name}", e) from None
    state = "[green]enabled[/green]" if enabled else "[yellow]disabled[/yellow]"
    console.print(f"Hook {name} {state}")


@hooks_app.command("enable")
def enable_hook(name: str = typer.Argument(..., help="Hook name")) -> None:
    """Enable a hook."""
    _set_enabled(name, True)


@hooks_app.command("disable")
def disable_hook(name: str = typer.Argument(..., help="Hook name")) -> None:
    """Disable a hook without deleting it."""
    _set_enabled(name, False)


@hooks_app.command("policy")
def set_policy(
    event: EventType = typer.Argument(..., help="Event to configure"),
    on_failure: FailurePolicy | None = typer.Argument(
        None,
        help="fail-fast or continue; omit to clear the override",
    ),
) -> None:
    """Set the failure policy for an event, overriding callers' --on-failure."""
    try:
        get_registry().set_event_failure_policy(event, on_failure)
    except GhpError as e:
        raise _fail("Error updating event settings", e) from None
    if on_failure is None:
        console.print(f"Cleared failure policy for {event.value}")
    else:
        console.print(f"Failure policy for {event.value}: {on_failure.value}")

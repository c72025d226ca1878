"""Execution layer: hook running and API retry."""

from ghp.execution.hooks import (
    HookResult,
    HookRunner,
    HookSummary,
    classify_exit_code,
    find_aborting_result,
    should_abort,
    summarize_results,
)
from ghp.execution.process import AsyncioShellSpawner, ProcessSpawner, SpawnedProcess
from ghp.execution.retry import (
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    calculate_backoff_delay,
    is_transient_error,
    parse_rate_limit_delay,
    with_retry,
    wrap_with_retry,
)

__all__ = [
    "AsyncioShellSpawner",
    "DEFAULT_RETRY_CONFIG",
    "HookResult",
    "HookRunner",
    "HookSummary",
    "ProcessSpawner",
    "RetryConfig",
    "SpawnedProcess",
    "calculate_backoff_delay",
    "classify_exit_code",
    "find_aborting_result",
    "is_transient_error",
    "parse_rate_limit_delay",
    "should_abort",
    "summarize_results",
    "with_retry",
    "wrap_with_retry",
]

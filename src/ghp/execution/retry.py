"""Retry utilities for transient GitHub API failures.

Provides exponential backoff with jitter for:
- Rate limiting (429, 403 with rate-limit headers, GraphQL RATE_LIMITED)
- Server errors (5xx)
- Network errors (connection refused/reset, DNS, timeouts, broken pipes)

Everything else (auth failures, 404s, validation errors) is surfaced on the
first failure so callers can react immediately, e.g. by re-authenticating.

Errors are inspected structurally: exceptions, objects exposing ``status`` /
``status_code`` / ``response`` attributes, ``httpx`` errors, and plain dicts
shaped like a JSON API error are all understood.

Example usage:
    from ghp.execution.retry import RetryConfig, with_retry

    issue = await with_retry(
        lambda: client.get_issue(owner, repo, number),
        RetryConfig(max_retries=5),
    )
"""

from __future__ import annotations

import asyncio
import errno
import functools
import math
import random
import socket
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, ParamSpec, TypeVar

import httpx

from ghp.core.constants import (
    BACKOFF_MAX_EXPONENT,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
)
from ghp.core.logging import get_logger

_logger = get_logger("retry")

T = TypeVar("T")
P = ParamSpec("P")

RetryCallback = Callable[[BaseException, int, int], None]
"""Called as on_retry(error, attempt_number_one_based, delay_ms) before each wait."""

SleepFunction = Callable[[float], Awaitable[Any]]

# Network error codes that indicate transient failures
TRANSIENT_NETWORK_ERRORS: frozenset[str] = frozenset({
    "ECONNREFUSED",
    "ECONNRESET",
    "ENOTFOUND",
    "ETIMEDOUT",
    "EHOSTUNREACH",
    "ENETUNREACH",
    "EAI_AGAIN",
    "EPIPE",
    "EPROTO",
})

# Exception types that are transient regardless of their attributes
_TRANSIENT_EXCEPTION_TYPES: tuple[type[BaseException], ...] = (
    ConnectionError,  # refused, reset, aborted, broken pipe
    TimeoutError,
    socket.gaierror,  # DNS resolution failure
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)

_TRANSIENT_MESSAGE_FRAGMENTS = (
    "ECONNREFUSED",
    "ETIMEDOUT",
    "network",
    "socket hang up",
    "getaddrinfo",
)

_RATE_LIMIT_HEADERS = frozenset({"x-ratelimit-remaining", "x-ratelimit-reset", "retry-after"})


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying).
        base_delay_ms: Starting delay for exponential backoff.
        max_delay_ms: Cap for both backoff and rate-limit delays.
        on_retry: Optional callback invoked before each wait, for logging/metrics.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    on_retry: RetryCallback | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be positive")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")


DEFAULT_RETRY_CONFIG = RetryConfig()


def _get(obj: object, name: str) -> Any:
    """Read ``name`` as a mapping key or attribute, returning None if absent."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _get_status(error: object) -> int | None:
    for name in ("status", "status_code", "statusCode"):
        value = _get(error, name)
        if _is_number(value):
            return int(value)
    response = _get(error, "response")
    if response is not None:
        for name in ("status", "status_code"):
            value = _get(response, name)
            if _is_number(value):
                return int(value)
    return None


def _get_headers(error: object) -> Mapping[Any, Any] | None:
    headers = _get(error, "headers")
    if headers is None:
        response = _get(error, "response")
        if response is not None:
            headers = _get(response, "headers")
    return headers if isinstance(headers, Mapping) else None


def _get_network_code(error: object) -> str | None:
    code = _get(error, "code")
    if isinstance(code, str):
        return code
    if isinstance(error, OSError) and error.errno is not None:
        return errno.errorcode.get(error.errno)
    return None


def _get_message(error: object) -> str:
    message = _get(error, "message")
    if message is None and isinstance(error, BaseException):
        return str(error)
    return "" if message is None else str(message)


def has_rate_limit_headers(error: object) -> bool:
    """Check whether an error response carries rate-limit headers."""
    headers = _get_headers(error)
    if not headers:
        return False
    return any(str(key).lower() in _RATE_LIMIT_HEADERS for key in headers)


def is_transient_error(error: object) -> bool:
    """Determine whether an error is transient and worth retrying.

    Retries:
    - HTTP 429 and 5xx
    - HTTP 403 when the response carries rate-limit headers
    - Network failures (error codes, connection/timeout exceptions, httpx
      transport errors, well-known network message fragments)
    - GraphQL responses with a RATE_LIMITED error

    Does NOT retry auth failures, 404s, other 4xx, GraphQL errors such as
    NOT_FOUND or INSUFFICIENT_SCOPES, or validation errors. A numeric HTTP
    status, when present, decides on its own. Never raises.
    """
    if error is None or isinstance(error, str | bytes | int | float | bool):
        return False

    if isinstance(error, _TRANSIENT_EXCEPTION_TYPES):
        return True

    code = _get_network_code(error)
    if code is not None and code in TRANSIENT_NETWORK_ERRORS:
        return True

    status = _get_status(error)
    if status is not None:
        if status == 403 and has_rate_limit_headers(error):
            return True
        return status == 429 or 500 <= status <= 599

    message = _get_message(error)
    if any(fragment in message for fragment in _TRANSIENT_MESSAGE_FRAGMENTS):
        return True

    graphql_errors = _get(error, "errors")
    if isinstance(graphql_errors, list | tuple):
        for entry in graphql_errors:
            if _get(entry, "type") == "RATE_LIMITED":
                return True
            entry_message = _get(entry, "message")
            if isinstance(entry_message, str) and "rate limit" in entry_message.lower():
                return True

    return False


def _parse_retry_after(value: str, now: float) -> int | None:
    """Parse a Retry-After value (delta seconds or HTTP-date) into milliseconds."""
    value = value.strip()
    if value.isdigit():
        return int(value) * 1000
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)
    delta = retry_at - datetime.fromtimestamp(now, UTC)
    return max(0, math.ceil(delta.total_seconds() * 1000))


def parse_rate_limit_delay(error: object, *, now: float | None = None) -> int | None:
    """Extract the server-recommended retry delay in milliseconds.

    ``Retry-After`` (seconds, or an HTTP-date) takes precedence over
    ``X-RateLimit-Reset`` (absolute Unix seconds). Header names are matched
    case-insensitively.

    Args:
        error: The failed call's error.
        now: Current Unix time in seconds (defaults to ``time.time()``).

    Returns:
        Delay in milliseconds, or None when no usable header is present.
    """
    headers = _get_headers(error)
    if not headers:
        return None

    normalized = {
        str(key).lower(): value for key, value in headers.items() if isinstance(value, str)
    }
    current = time.time() if now is None else now

    retry_after = normalized.get("retry-after")
    if retry_after:
        delay = _parse_retry_after(retry_after, current)
        if delay is not None:
            return delay

    reset = normalized.get("x-ratelimit-reset")
    if reset:
        try:
            reset_seconds = int(reset.strip())
        except ValueError:
            return None
        return max(0, reset_seconds * 1000 - math.floor(current * 1000))

    return None


def calculate_backoff_delay(
    attempt: int,
    base_delay_ms: int,
    max_delay_ms: int,
    rand: Callable[[], float] | None = None,
) -> int:
    """Calculate a delay with exponential backoff and jitter.

    Formula: ``min(max_delay, base_delay * 2**attempt) * (0.5 + rand() * 0.5)``

    ``attempt`` is zero-based and clamped to ``BACKOFF_MAX_EXPONENT``.
    """
    safe_attempt = min(max(attempt, 0), BACKOFF_MAX_EXPONENT)
    capped = min(base_delay_ms * (2**safe_attempt), max_delay_ms)
    jitter = 0.5 + (rand or random.random)() * 0.5
    return math.floor(capped * jitter)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    sleep: SleepFunction | None = None,
    rand: Callable[[], float] | None = None,
) -> T:
    """Run an async operation, retrying transient failures.

    Non-transient errors are re-raised immediately. When retries are
    exhausted the last error is re-raised unchanged (same object), so
    callers can keep matching on the exception they expect.

    Args:
        operation: Zero-argument coroutine function to call.
        config: Retry configuration (defaults to DEFAULT_RETRY_CONFIG).
        sleep: Awaitable sleep taking seconds (defaults to asyncio.sleep).
        rand: Jitter source returning floats in [0, 1).

    Returns:
        The operation's result.
    """
    config = config or DEFAULT_RETRY_CONFIG
    sleep_fn = sleep or asyncio.sleep

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as error:
            if not is_transient_error(error):
                raise

            if attempt >= config.max_retries:
                _logger.warning(
                    "retry.exhausted",
                    attempts=attempt + 1,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                raise

            delay_ms = parse_rate_limit_delay(error)
            if delay_ms is None:
                delay_source = "backoff"
                delay_ms = calculate_backoff_delay(
                    attempt, config.base_delay_ms, config.max_delay_ms, rand
                )
            else:
                delay_source = "rate_limit"
                delay_ms = min(delay_ms, config.max_delay_ms)

            if config.on_retry is not None:
                config.on_retry(error, attempt + 1, delay_ms)

            _logger.info(
                "retry.scheduled",
                attempt=attempt + 1,
                max_retries=config.max_retries,
                delay_ms=delay_ms,
                delay_source=delay_source,
                error_type=type(error).__name__,
            )
            await sleep_fn(delay_ms / 1000)
            attempt += 1


def wrap_with_retry(
    fn: Callable[P, Awaitable[T]],
    config: RetryConfig | None = None,
) -> Callable[P, Awaitable[T]]:
    """Create a retry-wrapped version of an async function.

    Example:
        get_issue = wrap_with_retry(client.get_issue, RetryConfig(max_retries=2))
        issue = await get_issue("owner", "repo", 42)
    """

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return await with_retry(lambda: fn(*args, **kwargs), config)

    return wrapper


__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "RetryCallback",
    "RetryConfig",
    "TRANSIENT_NETWORK_ERRORS",
    "calculate_backoff_delay",
    "has_rate_limit_headers",
    "is_transient_error",
    "parse_rate_limit_delay",
    "with_retry",
    "wrap_with_retry",
]

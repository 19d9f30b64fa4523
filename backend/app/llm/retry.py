"""Adaptive retry for provider calls.

Failures are classified once into a closed ``FailureMarker`` tag derived from
the error's message and HTTP status. Transient markers (rate limit, quota,
network, timeout) are retried with exponential backoff, or with the wait the
provider asked for when the error carries a ``retry in Ns`` hint. Everything
else propagates untouched.
"""

import asyncio
import math
import re
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from backend.app.utils.logging import StructuredRetryLogger
from backend.app.utils.metrics import RetryMetrics

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 2000
# Added on top of a provider-requested wait
HINT_BUFFER_SECONDS = 1.0


class FailureMarker(str, Enum):
    """Closed classification of provider failures."""

    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CREDENTIAL = "credential"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_MARKERS


_RETRYABLE_MARKERS = frozenset(
    {
        FailureMarker.RATE_LIMITED,
        FailureMarker.QUOTA_EXHAUSTED,
        FailureMarker.NETWORK,
        FailureMarker.TIMEOUT,
    }
)


class RetryableTransientError(Exception):
    """Transient provider failure, tagged at the collaborator boundary."""

    def __init__(
        self,
        message: str,
        *,
        marker: FailureMarker,
        retry_after_seconds: float | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.marker = marker
        self.retry_after_seconds = retry_after_seconds
        self.status = status


_RATE_LIMIT_STATUS = re.compile(r"\b429\b")
_RETRY_HINT = re.compile(r"retry (?:in|after) (\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_CREDENTIAL = re.compile(r"api[ _-]?key|credential|unauthori[sz]ed|permission denied", re.IGNORECASE)
_TIMEOUT = re.compile(r"etimedout|timed out|timeout", re.IGNORECASE)
_NETWORK = re.compile(
    r"fetch failed|econnreset|econnrefused|enotfound|connection (?:error|reset|refused|aborted)",
    re.IGNORECASE,
)


def error_status(error: BaseException) -> int | None:
    """HTTP status carried by an error, if any."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_failure(error: BaseException) -> FailureMarker:
    """Derive the failure marker from an error's message and status."""
    if isinstance(error, RetryableTransientError):
        return error.marker

    message = str(error)
    lowered = message.lower()
    status = error_status(error)

    if status == 429 or _RATE_LIMIT_STATUS.search(message):
        return FailureMarker.RATE_LIMITED
    if "quota" in lowered or "resource_exhausted" in lowered:
        return FailureMarker.QUOTA_EXHAUSTED
    if status in (401, 403) or _CREDENTIAL.search(message):
        return FailureMarker.CREDENTIAL
    if isinstance(error, TimeoutError) or _TIMEOUT.search(message):
        return FailureMarker.TIMEOUT
    if isinstance(error, ConnectionError) or _NETWORK.search(message):
        return FailureMarker.NETWORK
    return FailureMarker.UNKNOWN


def parse_retry_after(error: BaseException) -> float | None:
    """Provider-requested wait in seconds (e.g. "Please retry in 28.07s")."""
    if isinstance(error, RetryableTransientError) and error.retry_after_seconds is not None:
        return error.retry_after_seconds
    match = _RETRY_HINT.search(str(error))
    if match:
        return float(match.group(1))
    return None


def hinted_wait_ms(retry_after_seconds: float) -> int:
    """Wait for a provider hint, with a one second safety buffer."""
    return math.ceil((retry_after_seconds + HINT_BUFFER_SECONDS) * 1000)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    *,
    name: str = "operation",
    sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    metrics: RetryMetrics | None = None,
    retry_logger: StructuredRetryLogger | None = None,
) -> T:
    """Run ``operation`` and retry transient failures.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Retries allowed after the first attempt
        base_delay_ms: First unhinted wait; doubles after each unhinted wait
        name: Operation name for logs and metrics
        sleep_fn: Injectable sleep function (default: asyncio.sleep)
        metrics: Metrics recorder (optional, defaults to no-op)
        retry_logger: Structured logger (optional)

    Returns:
        The operation's result

    Raises:
        The operation's error, unmodified, when it is not retryable or the
        retry budget is spent. Cancelling the caller cancels the wait.
    """
    sleep = sleep_fn or asyncio.sleep
    metrics = metrics or RetryMetrics()
    log = retry_logger or StructuredRetryLogger()

    retries_left = max_retries
    delay_ms = base_delay_ms
    attempt = 0

    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            marker = classify_failure(e)
            if not marker.retryable:
                raise
            if retries_left <= 0:
                log.log_attempt(
                    name, attempt, "exhausted", marker=marker.value, error_reason=str(e)
                )
                raise

            hint = parse_retry_after(e)
            if hint is not None:
                # Provider knows its own bucket state; honor it without doubling
                wait_ms = hinted_wait_ms(hint)
            else:
                wait_ms = delay_ms
                delay_ms *= 2

            retries_left -= 1
            metrics.inc_retry(name, marker.value)
            log.log_attempt(
                name,
                attempt,
                "retry",
                marker=marker.value,
                wait_ms=wait_ms,
                retries_left=retries_left,
                hinted=hint is not None,
            )
            await sleep(wait_ms / 1000)

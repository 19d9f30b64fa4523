"""Unit tests for adaptive retry of provider calls."""

import asyncio
import logging

import pytest

from backend.app.llm.retry import (
    FailureMarker,
    RetryableTransientError,
    classify_failure,
    hinted_wait_ms,
    parse_retry_after,
    with_retry,
)
from tests.helpers import RecordingMetrics, RecordingSleep, StatusError


class ScriptedOperation:
    """Operation that raises the scripted errors, then returns ``result``."""

    def __init__(self, *errors: Exception, result: str = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


@pytest.mark.asyncio
async def test_success_on_first_attempt_does_not_sleep() -> None:
    sleep = RecordingSleep()
    operation = ScriptedOperation()

    result = await with_retry(operation, sleep_fn=sleep)

    assert result == "ok"
    assert operation.calls == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_rate_limit_retries_with_exponential_backoff() -> None:
    """Two 429s then success: waits 2s then 4s."""
    sleep = RecordingSleep()
    metrics = RecordingMetrics()
    operation = ScriptedOperation(
        StatusError("Too Many Requests", status_code=429),
        StatusError("Too Many Requests", status_code=429),
    )

    result = await with_retry(
        operation, max_retries=3, base_delay_ms=2000, name="generate", sleep_fn=sleep, metrics=metrics
    )

    assert result == "ok"
    assert operation.calls == 3
    assert sleep.calls == [2.0, 4.0]
    assert metrics.retries == [("generate", "rate_limited"), ("generate", "rate_limited")]


@pytest.mark.asyncio
async def test_provider_hint_sets_wait() -> None:
    """A "retry in Ns" hint waits at least N+1 seconds."""
    sleep = RecordingSleep()
    operation = ScriptedOperation(Exception("429 Resource exhausted. Please retry in 5s."))

    await with_retry(operation, sleep_fn=sleep)

    assert len(sleep.calls) == 1
    assert sleep.calls[0] >= 6.0


@pytest.mark.asyncio
async def test_hinted_wait_does_not_double_delay() -> None:
    sleep = RecordingSleep()
    operation = ScriptedOperation(
        Exception("quota exceeded, retry in 1.5s"),
        ConnectionError("fetch failed"),
    )

    await with_retry(operation, base_delay_ms=2000, sleep_fn=sleep)

    assert sleep.calls == [2.5, 2.0]


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_without_sleep() -> None:
    sleep = RecordingSleep()
    error = ValueError("malformed request")
    operation = ScriptedOperation(error)

    with pytest.raises(ValueError) as exc_info:
        await with_retry(operation, sleep_fn=sleep)

    assert exc_info.value is error
    assert operation.calls == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_credential_error_is_not_retried() -> None:
    sleep = RecordingSleep()
    operation = ScriptedOperation(StatusError("Incorrect API key provided", status_code=401))

    with pytest.raises(StatusError):
        await with_retry(operation, sleep_fn=sleep)

    assert sleep.calls == []


@pytest.mark.asyncio
async def test_exhausted_retries_reraise_last_error() -> None:
    sleep = RecordingSleep()
    errors = [TimeoutError(f"timed out #{i}") for i in range(3)]
    operation = ScriptedOperation(*errors)

    with pytest.raises(TimeoutError) as exc_info:
        await with_retry(operation, max_retries=2, base_delay_ms=100, sleep_fn=sleep)

    assert exc_info.value is errors[2]
    assert operation.calls == 3
    assert sleep.calls == [0.1, 0.2]


@pytest.mark.asyncio
async def test_zero_retries_attempts_once() -> None:
    sleep = RecordingSleep()
    operation = ScriptedOperation(ConnectionError("connection reset"))

    with pytest.raises(ConnectionError):
        await with_retry(operation, max_retries=0, sleep_fn=sleep)

    assert operation.calls == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_cancellation_during_wait_propagates() -> None:
    sleeping = asyncio.Event()
    operation = ScriptedOperation(ConnectionError("fetch failed"))

    async def blocking_sleep(seconds: float) -> None:
        sleeping.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(with_retry(operation, sleep_fn=blocking_sleep))
    await sleeping.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert operation.calls == 1


@pytest.mark.asyncio
async def test_retry_logs_structured_decision(caplog: pytest.LogCaptureFixture) -> None:
    operation = ScriptedOperation(StatusError("slow down", status_code=429))

    with caplog.at_level(logging.WARNING, logger="backend.app.llm.retry"):
        await with_retry(operation, name="generate", sleep_fn=RecordingSleep())

    record = next(r for r in caplog.records if r.name == "backend.app.llm.retry")
    assert "Retrying in 2000ms" in record.getMessage()
    assert record.structured["marker"] == "rate_limited"
    assert record.structured["retries_left"] == 2


@pytest.mark.parametrize(
    ("error", "marker"),
    [
        (StatusError("boom", status_code=429), FailureMarker.RATE_LIMITED),
        (Exception("HTTP 429 Too Many Requests"), FailureMarker.RATE_LIMITED),
        (Exception("max_tokens 4290 exceeds limit"), FailureMarker.UNKNOWN),
        (Exception("You exceeded your current quota"), FailureMarker.QUOTA_EXHAUSTED),
        (Exception("RESOURCE_EXHAUSTED"), FailureMarker.QUOTA_EXHAUSTED),
        (Exception("TypeError: fetch failed"), FailureMarker.NETWORK),
        (ConnectionError("peer went away"), FailureMarker.NETWORK),
        (Exception("connect ETIMEDOUT 10.0.0.1:443"), FailureMarker.TIMEOUT),
        (TimeoutError(), FailureMarker.TIMEOUT),
        (StatusError("forbidden", status_code=403), FailureMarker.CREDENTIAL),
        (Exception("API key not valid"), FailureMarker.CREDENTIAL),
        (ValueError("bad input"), FailureMarker.UNKNOWN),
    ],
)
def test_classify_failure(error: Exception, marker: FailureMarker) -> None:
    assert classify_failure(error) is marker


def test_tagged_error_keeps_its_marker() -> None:
    error = RetryableTransientError("upstream", marker=FailureMarker.NETWORK, retry_after_seconds=3)

    assert classify_failure(error) is FailureMarker.NETWORK
    assert parse_retry_after(error) == 3


def test_parse_retry_after() -> None:
    assert parse_retry_after(Exception("Please retry in 28.07s.")) == 28.07
    assert parse_retry_after(Exception("retry after 4 s")) == 4.0
    assert parse_retry_after(Exception("try again later")) is None


def test_hinted_wait_rounds_up_with_buffer() -> None:
    assert hinted_wait_ms(28.5) == 29500
    assert hinted_wait_ms(0) == 1000


def test_only_transient_markers_are_retryable() -> None:
    assert {m for m in FailureMarker if m.retryable} == {
        FailureMarker.RATE_LIMITED,
        FailureMarker.QUOTA_EXHAUSTED,
        FailureMarker.NETWORK,
        FailureMarker.TIMEOUT,
    }


@pytest.mark.asyncio
async def test_digits_containing_429_are_not_rate_limits() -> None:
    sleep = RecordingSleep()
    operation = ScriptedOperation(ValueError("max_tokens 4290 exceeds limit"))

    with pytest.raises(ValueError):
        await with_retry(operation, sleep_fn=sleep)

    assert operation.calls == 1
    assert sleep.calls == []

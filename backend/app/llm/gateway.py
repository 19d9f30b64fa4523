"""Provider gateway - lazy, cached, degrade-on-missing-credential resolution.

State machine::

    unresolved -> resolving -> ready | degraded | failed

Every terminal state is kept for the gateway's lifetime. Concurrent first
callers wait on one lock and share the single resolution outcome.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from backend.app.llm.client import AnswerProvider, DegradedAnswerProvider
from backend.app.llm.retry import FailureMarker, classify_failure
from backend.app.utils.metrics import RetryMetrics

logger = logging.getLogger(__name__)

ProviderResolver = Callable[[], Awaitable[AnswerProvider]]


class ProviderInitError(Exception):
    """Answer provider could not be resolved for a non-credential reason."""

    pass


class ProviderState(str, Enum):
    """Gateway resolution state."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    READY = "ready"
    DEGRADED = "degraded"
    FAILED = "failed"


class ProviderGateway:
    """Resolves the answer provider at most once."""

    def __init__(self, resolver: ProviderResolver, metrics: RetryMetrics | None = None) -> None:
        """Initialize gateway.

        Args:
            resolver: Coroutine factory building the real provider
            metrics: Metrics recorder (optional, defaults to no-op)
        """
        self._resolver = resolver
        self._metrics = metrics or RetryMetrics()
        self._lock = asyncio.Lock()
        self._state = ProviderState.UNRESOLVED
        self._provider: AnswerProvider | None = None
        self._error: ProviderInitError | None = None

    @property
    def state(self) -> ProviderState:
        return self._state

    async def get_answer_provider(self) -> AnswerProvider:
        """Return the cached provider, resolving it on first use.

        Raises:
            ProviderInitError: If resolution failed for a non-credential reason
                (now or on the first attempt)
        """
        if self._provider is not None:
            return self._provider
        if self._error is not None:
            raise self._error

        async with self._lock:
            # Another caller may have finished while we waited
            if self._provider is not None:
                return self._provider
            if self._error is not None:
                raise self._error

            self._state = ProviderState.RESOLVING
            try:
                provider = await self._resolver()
            except Exception as e:
                if classify_failure(e) is FailureMarker.CREDENTIAL:
                    logger.warning(f"Answer provider not configured, degrading: {e}")
                    self._provider = DegradedAnswerProvider()
                    self._state = ProviderState.DEGRADED
                    self._metrics.inc_resolution(self._state.value)
                    return self._provider

                logger.error(f"Answer provider initialization failed: {e}")
                self._error = ProviderInitError(str(e))
                self._state = ProviderState.FAILED
                self._metrics.inc_resolution(self._state.value)
                raise self._error from e

            self._provider = provider
            self._state = ProviderState.READY
            self._metrics.inc_resolution(self._state.value)
            logger.info("Answer provider ready")
            return provider

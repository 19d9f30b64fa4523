"""Test doubles shared by unit and integration tests."""

from backend.app.llm.client import GroundedAnswerProvider
from backend.app.llm.gateway import ProviderResolver
from backend.app.models.answer import Source
from backend.app.utils.metrics import RetryMetrics


class FakeGenerator:
    """Scripted text generator: returns or raises the queued outcomes in order.

    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes: str | Exception) -> None:
        self.outcomes = list(outcomes) or ["I don't know."]
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    """Sleep replacement that records requested waits (seconds) without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingMetrics(RetryMetrics):
    """Metrics double that keeps every recorded event."""

    def __init__(self) -> None:
        self.retries: list[tuple[str, str]] = []
        self.generations: list[str] = []
        self.resolutions: list[str] = []

    def inc_retry(self, operation: str, marker: str) -> None:
        self.retries.append((operation, marker))

    def record_generation(self, outcome: str, latency_ms: float) -> None:
        self.generations.append(outcome)

    def inc_resolution(self, state: str) -> None:
        self.resolutions.append(state)


class StatusError(Exception):
    """Error carrying an HTTP status, like SDK API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def make_source(source_id: int, content: str) -> Source:
    """Helper to create test source."""
    return Source(id=source_id, content=content)


def provider_resolver(generator: FakeGenerator) -> ProviderResolver:
    """Resolver returning a grounded provider around ``generator``."""

    async def resolve() -> GroundedAnswerProvider:
        return GroundedAnswerProvider(generator)

    return resolve


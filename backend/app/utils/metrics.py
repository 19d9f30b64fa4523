"""Prometheus metrics for generation, retries and provider resolution."""

from prometheus_client import Counter, Histogram

llm_retry_attempts_total = Counter(
    "llm_retry_attempts_total",
    "Total retries scheduled after a transient failure",
    ["operation", "marker"],
)

llm_generation_latency_ms = Histogram(
    "llm_generation_latency_ms",
    "Grounded answer generation latency in milliseconds (retries included)",
    ["outcome"],
    buckets=[100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000, 64000],
)

provider_resolutions_total = Counter(
    "provider_resolutions_total",
    "Answer provider resolutions by terminal state",
    ["state"],
)


class RetryMetrics:
    """Interface for retry metrics (no-op default)."""

    def inc_retry(self, operation: str, marker: str) -> None:
        """Increment retry counter."""
        pass

    def record_generation(self, outcome: str, latency_ms: float) -> None:
        """Record generation latency."""
        pass

    def inc_resolution(self, state: str) -> None:
        """Increment provider resolution counter."""
        pass


class PrometheusRetryMetrics(RetryMetrics):
    """Prometheus-based metrics implementation."""

    def inc_retry(self, operation: str, marker: str) -> None:
        llm_retry_attempts_total.labels(operation=operation, marker=marker).inc()

    def record_generation(self, outcome: str, latency_ms: float) -> None:
        llm_generation_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_resolution(self, state: str) -> None:
        provider_resolutions_total.labels(state=state).inc()

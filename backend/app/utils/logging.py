"""Logging setup and structured retry logging."""

import logging
from typing import Any

logger = logging.getLogger("backend.app.llm.retry")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the service."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredRetryLogger:
    """Structured logger for retry attempts."""

    def log_attempt(
        self,
        operation: str,
        attempt: int,
        outcome: str,
        *,
        marker: str | None = None,
        wait_ms: int | None = None,
        retries_left: int | None = None,
        hinted: bool = False,
        error_reason: str | None = None,
    ) -> None:
        """Log a retry decision with structured data."""
        log_data: dict[str, Any] = {
            "operation": operation,
            "attempt": attempt,
            "outcome": outcome,
        }
        if marker:
            log_data["marker"] = marker
        if wait_ms is not None:
            log_data["wait_ms"] = wait_ms
            log_data["hinted"] = hinted
        if retries_left is not None:
            log_data["retries_left"] = retries_left
        if error_reason:
            log_data["error_reason"] = error_reason

        if outcome == "retry" and hinted:
            log_msg = f"Rate limit detected for {operation}. Provider requested wait; waiting {wait_ms}ms"
        elif outcome == "retry":
            log_msg = f"{operation} failed ({marker}). Retrying in {wait_ms}ms ({retries_left} retries left)"
        else:
            log_msg = f"{operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

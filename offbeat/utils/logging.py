"""Structured logging for trip sync and app startup."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredSyncLogger:
    """Structured logger for per-trip sync attempts."""

    def log_attempt(
        self,
        offline_id: str,
        attempt: int,
        outcome: str,
        latency_ms: float,
        server_id: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log trip sync attempt with structured data."""
        log_data: dict[str, Any] = {
            "offline_id": offline_id,
            "server_id": server_id,
            "attempt": attempt,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Trip sync: {offline_id} - {outcome}"

        if outcome == "synced":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

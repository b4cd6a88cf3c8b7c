"""Prometheus metrics for trip sync and normalization."""

from prometheus_client import Counter, Histogram

trip_sync_latency_ms = Histogram(
    "trip_sync_latency_ms",
    "Remote trip sync latency in milliseconds",
    ["outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, 10000, 30000],
)

trip_sync_total = Counter(
    "trip_sync_total",
    "Total trip sync attempts",
    ["outcome"],
)

trip_sync_errors_total = Counter(
    "trip_sync_errors_total",
    "Total trip sync errors",
    ["reason"],
)

trip_normalizer_results_total = Counter(
    "trip_normalizer_results_total",
    "Trip normalizer outcomes",
    ["outcome"],
)


class PrometheusSyncMetrics:
    """Prometheus-based sync metrics implementation."""

    def record_latency(self, outcome: str, latency_ms: float) -> None:
        """Record sync attempt latency."""
        trip_sync_latency_ms.labels(outcome=outcome).observe(latency_ms)
        trip_sync_total.labels(outcome=outcome).inc()

    def inc_error(self, reason: str) -> None:
        """Increment error counter."""
        trip_sync_errors_total.labels(reason=reason).inc()


def record_normalizer_outcome(outcome: str) -> None:
    """Count a normalizer result (trips, no_json, invalid_json, no_valid_trips)."""
    trip_normalizer_results_total.labels(outcome=outcome).inc()


chat_requests_total = Counter(
    "chat_requests_total",
    "Chat requests by outcome",
    ["outcome"],
)


def record_chat_outcome(outcome: str) -> None:
    """Count a chat request result (trips, text, llm_error)."""
    chat_requests_total.labels(outcome=outcome).inc()

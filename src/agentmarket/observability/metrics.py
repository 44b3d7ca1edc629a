"""Prometheus metrics for executions, webhook calls and API traffic."""

from typing import Optional

from prometheus_client import Counter, Histogram, generate_latest

# Webhooks are bounded by policy timeouts of up to ten minutes
_WEBHOOK_BUCKETS = (0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 30.0, 60.0, 120.0, 600.0)
_HTTP_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)

marketplace_executions_total = Counter(
    "marketplace_executions_total",
    "Agent executions by terminal status",
    labelnames=["status"],
)

webhook_request_duration_seconds = Histogram(
    "webhook_request_duration_seconds",
    "Wall-clock duration of agent webhook calls",
    labelnames=["provider"],
    buckets=_WEBHOOK_BUCKETS,
)

webhook_errors_total = Counter(
    "webhook_errors_total",
    "Agent webhook calls that failed, by failure category",
    labelnames=["category"],
)

http_requests_total = Counter(
    "http_requests_total",
    "Marketplace API requests",
    labelnames=["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Marketplace API request duration",
    labelnames=["method", "endpoint"],
    buckets=_HTTP_BUCKETS,
)


class MetricsCollector:
    """Thin recording facade over the module-level metrics.

    Example:
        >>> metrics = get_metrics_collector()
        >>> metrics.record_execution("completed")
        >>> metrics.record_webhook_error("timeout")
    """

    def record_execution(self, status: str) -> None:
        marketplace_executions_total.labels(status=status).inc()

    def record_webhook_call(self, provider: Optional[str], duration_seconds: float) -> None:
        """Observe one webhook call; calls without a provider adapter count as ``generic``."""
        webhook_request_duration_seconds.labels(provider=provider or "generic").observe(
            duration_seconds
        )

    def record_webhook_error(self, category: str) -> None:
        """Count a failed call.

        Args:
            category: ``timeout``, ``dns``, ``connection``, ``request`` for
                transport failures, ``http_status`` for non-2xx replies
        """
        webhook_errors_total.labels(category=category).inc()

    def record_http_request(
        self, method: str, endpoint: str, status_code: int, duration_seconds: float
    ) -> None:
        """Count and time one API request.

        ``endpoint`` should be the route template (``/api/agents/{agent_id}``),
        not the concrete path.
        """
        http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
            duration_seconds
        )

    def generate_metrics(self) -> bytes:
        """Render the default registry in the Prometheus text format."""
        return generate_latest()


_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector

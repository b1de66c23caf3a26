from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from devops_demo.exceptions import MetricsRenderError


REQUEST_LABELS = ("method", "route", "status_code")
DURATION_BUCKETS = (0.1, 0.5, 1.0, 2.0, 5.0)

# Pinned to the 0.0.4 text format; newer prometheus_client releases
# advertise a different version in CONTENT_TYPE_LATEST.
EXPOSITION_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class MetricsRegistry:
    """Process-wide HTTP metrics backed by a private Prometheus registry.

    Updates are append-only: counters and histogram observations only ever grow.
    """

    content_type = EXPOSITION_CONTENT_TYPE

    def __init__(self, registry: CollectorRegistry | None = None, *, include_process_metrics: bool = True) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        if include_process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            labelnames=REQUEST_LABELS,
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            labelnames=REQUEST_LABELS,
            registry=self.registry,
        )

    def record(self, method: str, route: str, status_code: int, duration_seconds: float) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self.http_request_duration_seconds.labels(**labels).observe(max(float(duration_seconds), 0.0))
        self.http_requests_total.labels(**labels).inc()

    def snapshot(self) -> bytes:
        """Render every registered collector in the Prometheus text format."""

        try:
            return generate_latest(self.registry)
        except Exception as exc:
            raise MetricsRenderError(f"Failed to render metrics: {exc}") from exc

    def sample_value(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        return self.registry.get_sample_value(name, labels or {})

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)


class HttpMetrics:
    """Process-wide Prometheus registry for the service.

    Each instance owns its registry, so building several apps in one process
    (tests) never trips over duplicate collector names.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, prefix: str = "guestbook_app_", registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.namespace = prefix.rstrip("_")

        # CPU, memory, open fds and start time, sampled at scrape time.
        ProcessCollector(namespace=self.namespace, registry=self.registry)
        PlatformCollector(registry=self.registry)
        GCCollector(registry=self.registry)

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "route", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "route"],
            registry=self.registry,
        )

    def observe_request(self, method: str, route: str, status: int, elapsed_seconds: float) -> None:
        self.http_requests_total.labels(method=method, route=route, status=str(status)).inc()
        self.http_request_duration_seconds.labels(method=method, route=route).observe(elapsed_seconds)

    def render(self) -> bytes:
        return generate_latest(self.registry)

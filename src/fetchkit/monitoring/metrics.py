"""
Metrics Collection
Prometheus metrics for cache, fetch and socket activity
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class MetricsCollector:
    """
    Collects and exposes Prometheus metrics for one fetch client.

    Each collector owns its registry, so several clients can coexist in one
    process without duplicate-timeseries errors.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        # Cache metrics
        self.cache_hits = Counter(
            "fetchkit_cache_hits_total",
            "Total number of cache hits",
            registry=self.registry,
        )
        self.cache_misses = Counter(
            "fetchkit_cache_misses_total",
            "Total number of cache misses",
            registry=self.registry,
        )
        self.cache_swept = Counter(
            "fetchkit_cache_swept_total",
            "Entries removed by the periodic sweep",
            registry=self.registry,
        )

        # Fetch metrics
        self.fetch_requests_total = Counter(
            "fetchkit_fetch_requests_total",
            "Total number of orchestrated fetches",
            ["endpoint", "policy", "status"],
            registry=self.registry,
        )
        self.fetch_duration = Histogram(
            "fetchkit_fetch_duration_seconds",
            "Orchestrated fetch duration in seconds",
            ["endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        # Socket metrics
        self.sockets_open = Gauge(
            "fetchkit_sockets_open",
            "Currently open multiplexed sockets",
            registry=self.registry,
        )
        self.stream_messages = Counter(
            "fetchkit_stream_messages_total",
            "Socket events fanned out to subscribers",
            ["type"],
            registry=self.registry,
        )
        self.stream_errors = Counter(
            "fetchkit_stream_errors_total",
            "Socket errors reported to subscribers",
            ["type"],
            registry=self.registry,
        )

    def record_cache_hit(self) -> None:
        self.cache_hits.inc()

    def record_cache_miss(self) -> None:
        self.cache_misses.inc()

    def record_sweep(self, removed: int) -> None:
        self.cache_swept.inc(removed)

    def record_fetch(self, endpoint: str, policy: str, status: str, duration: float) -> None:
        """Record an orchestrated fetch."""
        self.fetch_requests_total.labels(endpoint=endpoint, policy=policy, status=status).inc()
        self.fetch_duration.labels(endpoint=endpoint).observe(duration)

    def socket_opened(self) -> None:
        self.sockets_open.inc()

    def socket_closed(self) -> None:
        self.sockets_open.dec()

    def record_stream_message(self, msg_type: str) -> None:
        self.stream_messages.labels(type=msg_type).inc()

    def record_stream_error(self, error_type: str) -> None:
        self.stream_errors.labels(type=error_type).inc()

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        return generate_latest(self.registry)


__all__ = ["MetricsCollector"]

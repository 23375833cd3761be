"""Prometheus metrics for metering, search execution and enrichment."""

from contextlib import contextmanager
import time

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest


class MetricsCollector:
    """Centralized metrics collection with Prometheus integration."""

    def __init__(self, namespace: str = "idx_ai_gateway", registry: CollectorRegistry = REGISTRY):
        self.namespace = namespace
        self.registry = registry

        self.requests_total = Counter(
            f"{namespace}_requests_total",
            "Total number of HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )
        self.tokens_metered = Counter(
            f"{namespace}_tokens_metered_total",
            "Tokens metered against clients",
            ["capability", "sub_type"],
            registry=registry,
        )
        self.cost_metered = Counter(
            f"{namespace}_cost_usd_total",
            "Cost metered against clients in USD",
            ["capability", "sub_type"],
            registry=registry,
        )
        self.query_duration = Histogram(
            f"{namespace}_query_duration_seconds",
            "Target database query latency",
            ["dialect"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=registry,
        )
        self.query_timeouts = Counter(
            f"{namespace}_query_timeouts_total",
            "Target database queries abandoned on timeout",
            ["dialect"],
            registry=registry,
        )
        self.pool_evictions = Counter(
            f"{namespace}_pool_evictions_total",
            "Target connection pools evicted from the pool cache",
            ["dialect"],
            registry=registry,
        )
        self.enrichment_failures = Counter(
            f"{namespace}_enrichment_failures_total",
            "Best-effort enrichment lookups that failed",
            ["stage"],
            registry=registry,
        )
        self.rejected_queries = Counter(
            f"{namespace}_rejected_queries_total",
            "Generated queries rejected by validation",
            ["dialect", "reason"],
            registry=registry,
        )
        self.quota_warnings = Counter(
            f"{namespace}_quota_warnings_total",
            "Limited-plan clients whose usage crossed the warning threshold",
            ["capability"],
            registry=registry,
        )

    def record_request(self, method: str, endpoint: str, status: int) -> None:
        self.requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()

    def record_usage(self, capability: str, sub_type: str | None, tokens: int, cost: float) -> None:
        labels = {"capability": capability, "sub_type": sub_type or ""}
        self.tokens_metered.labels(**labels).inc(tokens)
        self.cost_metered.labels(**labels).inc(cost)

    @contextmanager
    def time_query(self, dialect: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.query_duration.labels(dialect=dialect).observe(time.perf_counter() - start)

    def export(self) -> bytes:
        return generate_latest(self.registry)


metrics = MetricsCollector()

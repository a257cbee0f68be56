"""
poolbalancer - Prometheus Metrics

Metrics exposed:
- poolbalancer_selections_total: Counter of successful selections by strategy, provider
- poolbalancer_selection_failures_total: Counter of failed selections by strategy, reason
- poolbalancer_provider_alive: Gauge of liveness per provider (1=alive, 0=excluded)
- poolbalancer_alive_providers: Gauge of alive provider count
- poolbalancer_capacity: Gauge of current cluster capacity
- poolbalancer_liveness_changes_total: Counter of exclude/include by provider, action, source
- poolbalancer_recovery_scans_total: Counter of completed recovery scans
- poolbalancer_recovery_errors_total: Counter of recovery scans that raised
- poolbalancer_recovery_scan_duration_seconds: Histogram of scan duration

Usage:
    from poolbalancer.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_selection(strategy="round_robin", provider="backend-1")

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Iterable, Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import Response


class MetricsCollector:
    """
    Central metrics collector using Prometheus client.

    One collector per CollectorRegistry; creating a second collector on a
    registry that already holds these metrics reuses the first one's.
    """

    _instance: Optional["MetricsCollector"] = None
    _by_registry: dict = {}

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        existing = MetricsCollector._by_registry.get(id(registry))
        if existing is not None and existing.registry is registry:
            self._copy_from(existing)
            return

        MetricsCollector._by_registry[id(registry)] = self

        self.selections_total = Counter(
            "poolbalancer_selections_total",
            "Total successful provider selections",
            labelnames=["strategy", "provider"],
            registry=registry,
        )

        self.selection_failures = Counter(
            "poolbalancer_selection_failures_total",
            "Total failed provider selections",
            labelnames=["strategy", "reason"],
            registry=registry,
        )

        # 1 = alive, 0 = excluded
        self.provider_alive = Gauge(
            "poolbalancer_provider_alive",
            "Provider liveness (1=alive, 0=excluded)",
            labelnames=["provider"],
            registry=registry,
        )

        self.alive_providers = Gauge(
            "poolbalancer_alive_providers",
            "Number of alive providers",
            registry=registry,
        )

        self.capacity = Gauge(
            "poolbalancer_capacity",
            "Cluster capacity (alive providers x per-provider capacity)",
            registry=registry,
        )

        # source = caller | recovery
        self.liveness_changes = Counter(
            "poolbalancer_liveness_changes_total",
            "Provider exclusions and inclusions",
            labelnames=["provider", "action", "source"],
            registry=registry,
        )

        self.recovery_scans = Counter(
            "poolbalancer_recovery_scans_total",
            "Completed recovery scans",
            registry=registry,
        )

        self.recovery_errors = Counter(
            "poolbalancer_recovery_errors_total",
            "Recovery scans that raised an error",
            registry=registry,
        )

        self.recovery_scan_duration = Histogram(
            "poolbalancer_recovery_scan_duration_seconds",
            "Recovery scan duration",
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, float("inf")),
            registry=registry,
        )

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        """Get singleton instance bound to the default registry."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None
        cls._by_registry.clear()

    def _copy_from(self, other: "MetricsCollector"):
        """Copy metrics references from another collector."""
        self.selections_total = other.selections_total
        self.selection_failures = other.selection_failures
        self.provider_alive = other.provider_alive
        self.alive_providers = other.alive_providers
        self.capacity = other.capacity
        self.liveness_changes = other.liveness_changes
        self.recovery_scans = other.recovery_scans
        self.recovery_errors = other.recovery_errors
        self.recovery_scan_duration = other.recovery_scan_duration

    def record_selection(self, strategy: str, provider: str):
        """Record a successful selection."""
        self.selections_total.labels(strategy=strategy, provider=provider).inc()

    def record_selection_failure(self, strategy: str, reason: str):
        """Record a failed selection."""
        self.selection_failures.labels(strategy=strategy, reason=reason).inc()

    def record_liveness_change(self, provider: str, action: str, source: str = "caller"):
        """Record an exclude or include applied to a known provider."""
        self.liveness_changes.labels(
            provider=provider,
            action=action,
            source=source,
        ).inc()

    def set_pool_state(
        self,
        alive: Iterable[str],
        all_providers: Iterable[str],
        capacity: int,
    ):
        """Update liveness and capacity gauges from a registry snapshot."""
        alive_set = set(alive)
        for provider in all_providers:
            self.provider_alive.labels(provider=provider).set(
                1 if provider in alive_set else 0
            )
        self.alive_providers.set(len(alive_set))
        self.capacity.set(capacity)

    def record_recovery_scan(self, duration_seconds: float):
        """Record a completed recovery scan."""
        self.recovery_scans.inc()
        self.recovery_scan_duration.observe(duration_seconds)

    def record_recovery_error(self):
        """Record a recovery scan that raised."""
        self.recovery_errors.inc()


# Module-level functions for convenience
_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times - returns existing instance.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = MetricsCollector(registry)
    if registry is REGISTRY:
        MetricsCollector._instance = _metrics_instance
    return _metrics_instance


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = MetricsCollector.get_instance()
    return _metrics_instance


def metrics_endpoint(registry: CollectorRegistry = REGISTRY) -> Response:
    """Generate Prometheus metrics endpoint response."""
    content = generate_latest(registry)
    return Response(
        content=content,
        media_type=CONTENT_TYPE_LATEST,
    )

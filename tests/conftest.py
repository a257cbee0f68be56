"""
poolbalancer - Pytest Configuration

Configures:
- Fresh Prometheus registries per test
- A balancer factory that shuts every balancer down after the test
- A polling helper for tests that wait on the recovery thread
"""

import time
from typing import Callable, List

import pytest
from prometheus_client import CollectorRegistry

from poolbalancer.core.config import BalancerConfig
from poolbalancer.observability.metrics import MetricsCollector
from poolbalancer.routing.balancer import LoadBalancer


# ============================================================
# Metrics
# ============================================================

@pytest.fixture
def fresh_registry():
    """Create a fresh registry for each test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(fresh_registry):
    """Metrics collector bound to a fresh registry."""
    return MetricsCollector(registry=fresh_registry)


# ============================================================
# Balancers
# ============================================================

@pytest.fixture
def make_balancer(metrics):
    """
    Factory for balancers that are shut down at teardown.

    The default heartbeat interval is long enough that the recovery
    thread never ticks during a unit test; tests drive scans explicitly.
    """
    created: List[LoadBalancer] = []

    def _make(identifiers, strategy="round_robin", rng=None, **config_overrides):
        config_overrides.setdefault("heartbeat_interval_seconds", 3600)
        balancer = LoadBalancer(
            identifiers,
            strategy=strategy,
            config=BalancerConfig(**config_overrides),
            metrics=metrics,
            rng=rng,
        )
        created.append(balancer)
        return balancer

    yield _make

    for balancer in created:
        balancer.shutdown(timeout=2)


# ============================================================
# Helpers
# ============================================================

def _wait_until(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """Polling helper for background-thread assertions."""
    return _wait_until

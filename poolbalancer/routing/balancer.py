"""
poolbalancer - Load Balancer

Composition root binding a provider registry, a selection strategy and
the recovery scheduler.

    with LoadBalancer(["a", "b", "c"], StrategyKind.ROUND_ROBIN) as lb:
        provider = lb.select()
        lb.exclude("b")
        lb.capacity()
"""

import random
import threading
import uuid
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple, Union

from ..core.config import BalancerConfig, parse_strategy
from ..core.errors import NoAliveProviders
from ..core.models import ProviderHandle, StrategyKind
from ..observability.logging import LogContext, get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from .recovery import RecoveryScheduler
from .registry import ProviderRegistry
from .strategies import BaseStrategy, get_strategy


logger = get_logger(__name__)


class LoadBalancer:
    """
    Selects an alive provider per request from a bounded pool.

    Construction validates the pool before anything starts; a pool of the
    wrong size raises InvalidPoolSize and no recovery thread is launched.
    """

    def __init__(
        self,
        identifiers: Optional[Iterable[str]],
        strategy: Optional[Union[StrategyKind, str]] = None,
        config: Optional[BalancerConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            identifiers: Ordered provider identifiers (1..10)
            strategy: Selection strategy; defaults to config.strategy
            config: Tuning knobs; defaults to BalancerConfig()
            metrics: Metrics collector; defaults to the process-wide one
            rng: Random source for the random strategy
        """
        self.config = config or BalancerConfig()
        self.registry = ProviderRegistry(identifiers)

        kind = parse_strategy(strategy if strategy is not None else self.config.strategy)
        self.strategy: BaseStrategy = get_strategy(kind, rng=rng)
        self.metrics = metrics or get_metrics()
        self.balancer_id = f"lb_{uuid.uuid4().hex[:12]}"
        self.log_context = LogContext(
            balancer_id=self.balancer_id,
            strategy=self.strategy_kind.value,
        )
        self._metrics_lock = threading.Lock()

        self.scheduler = RecoveryScheduler(
            self.registry,
            interval_seconds=self.config.heartbeat_interval_seconds,
            threshold=self.config.recovery_threshold_checks,
            metrics=self.metrics,
            on_recovered=lambda _recovered: self._refresh_pool_metrics(),
            name=f"{self.balancer_id}-recovery",
            log_context=self.log_context,
        )
        self._closed = False

        self._refresh_pool_metrics()
        self.scheduler.start()

        logger.info(
            "Load balancer started",
            balancer_id=self.balancer_id,
            strategy=self.strategy_kind.value,
            providers=list(self.registry.identifiers),
        )

    @property
    def strategy_kind(self) -> StrategyKind:
        return self.strategy.kind

    def _refresh_pool_metrics(self):
        # Held across the snapshot and the gauge writes
        with self._metrics_lock:
            alive = [p.identifier for p in self.registry.alive_providers()]
            self.metrics.set_pool_state(
                alive=alive,
                all_providers=self.registry.identifiers,
                capacity=len(alive) * self.config.per_provider_capacity,
            )

    def select(self) -> ProviderHandle:
        """
        Pick the provider that should serve the next request.

        Raises:
            NoAliveProviders: every provider is currently excluded
        """
        try:
            provider = self.strategy.pick(self.registry)
        except NoAliveProviders as e:
            e.error.retry_after = max(1, int(self.config.heartbeat_interval_seconds))
            self.metrics.record_selection_failure(
                self.strategy_kind.value, e.error.code
            )
            logger.warning(
                "No alive providers to select",
                balancer_id=self.balancer_id,
                strategy=self.strategy_kind.value,
            )
            raise

        self.metrics.record_selection(self.strategy_kind.value, provider.identifier)
        return provider

    def exclude(self, identifier: str) -> bool:
        """Exclude a provider. Unknown identifiers are ignored (returns False)."""
        return self._set_liveness(identifier, alive=False)

    def include(self, identifier: str) -> bool:
        """Include a provider. Unknown identifiers are ignored (returns False)."""
        return self._set_liveness(identifier, alive=True)

    def _set_liveness(self, identifier: str, alive: bool) -> bool:
        action = "include" if alive else "exclude"
        if alive:
            known = self.registry.include(identifier)
        else:
            known = self.registry.exclude(identifier)

        if not known:
            logger.debug(
                f"Ignoring {action} for unknown provider",
                balancer_id=self.balancer_id,
                provider=identifier,
            )
            return False

        self.metrics.record_liveness_change(identifier, action, source="caller")
        self._refresh_pool_metrics()
        logger.info(
            f"Provider {action}d",
            balancer_id=self.balancer_id,
            provider=identifier,
        )
        return True

    def capacity(self) -> int:
        """Alive providers times the per-provider capacity."""
        return self.registry.capacity(self.config.per_provider_capacity)

    def providers(self) -> Tuple[ProviderHandle, ...]:
        """Snapshot of every provider in pool order."""
        return self.registry.snapshot()

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self, timeout: Optional[float] = None):
        """Stop the recovery scheduler. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.scheduler.stop(timeout)
        logger.info("Load balancer stopped", balancer_id=self.balancer_id)

    def __enter__(self) -> "LoadBalancer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"LoadBalancer(id={self.balancer_id!r}, "
            f"strategy={self.strategy_kind.value!r}, "
            f"providers={list(self.registry.identifiers)!r})"
        )


def simulate(
    balancer: LoadBalancer,
    requests: Optional[int] = None,
    max_workers: int = 8,
) -> Counter:
    """
    Fire concurrent selections at a balancer.

    Args:
        balancer: Balancer to exercise
        requests: Number of selections; defaults to the current capacity
        max_workers: Thread pool size

    Returns:
        Count of selections per provider identifier

    Raises:
        NoAliveProviders: if a selection finds the pool empty
    """
    if requests is None:
        requests = balancer.capacity()

    def _request(number: int) -> str:
        provider = balancer.select()
        logger.debug(
            "Simulated request assigned",
            balancer_id=balancer.balancer_id,
            request_number=number,
            provider=provider.identifier,
        )
        return provider.identifier

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        assigned: List[str] = list(executor.map(_request, range(requests)))

    return Counter(assigned)

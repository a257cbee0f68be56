"""
poolbalancer - Routing System Tests

Verifies:
- Provider registry construction, exclude/include, snapshots, capacity
- Random and round-robin selection
- Round-robin behaviour under concurrency and a shrinking alive set
- LoadBalancer composition and the concurrent simulate() helper
"""

import random
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from poolbalancer.core.config import BalancerConfig
from poolbalancer.core.errors import (
    DuplicateProviderError,
    InvalidPoolSize,
    NoAliveProviders,
)
from poolbalancer.core.models import ProviderHandle, StrategyKind
from poolbalancer.routing.registry import ProviderRegistry
from poolbalancer.routing.strategies import (
    RandomStrategy,
    RoundRobinStrategy,
    get_strategy,
)
from poolbalancer.routing.balancer import LoadBalancer, simulate


def _ids(handles):
    return [h.identifier for h in handles]


# ============================================================
# Provider Registry Tests
# ============================================================

class TestProviderRegistry:
    """Test registry construction and liveness bookkeeping."""

    @pytest.mark.parametrize("size", range(1, 11))
    def test_valid_pool_sizes(self, size):
        """Pools of 1..10 providers are accepted."""
        registry = ProviderRegistry([f"p{i}" for i in range(size)])
        assert len(registry) == size
        assert len(registry.alive_providers()) == size

    @pytest.mark.parametrize("size", [0, 11, 25])
    def test_invalid_pool_sizes(self, size):
        """Empty or oversized pools are rejected."""
        with pytest.raises(InvalidPoolSize) as exc_info:
            ProviderRegistry([f"p{i}" for i in range(size)])
        assert exc_info.value.size == size
        assert exc_info.value.code == "invalid_pool_size"

    def test_none_pool_rejected(self):
        with pytest.raises(InvalidPoolSize):
            ProviderRegistry(None)

    def test_bare_string_rejected(self):
        """A single string is not split into one provider per character."""
        with pytest.raises(TypeError):
            ProviderRegistry("abc")

    def test_duplicate_identifier_rejected(self):
        with pytest.raises(DuplicateProviderError) as exc_info:
            ProviderRegistry(["a", "b", "a"])
        assert exc_info.value.identifier == "a"

    def test_initial_state(self):
        """Providers start alive with zero counters, in input order."""
        registry = ProviderRegistry(["a", "b", "c"])
        assert registry.identifiers == ("a", "b", "c")
        for handle in registry.snapshot():
            assert handle.alive is True
            assert handle.consecutive_excluded_checks == 0

    def test_exclude_removes_from_alive_view(self):
        registry = ProviderRegistry(["a", "b", "c"])
        assert registry.exclude("b") is True
        assert _ids(registry.alive_providers()) == ["a", "c"]
        assert registry.get("b").alive is False

    def test_include_restores_order(self):
        """Alive view keeps the original pool order after re-inclusion."""
        registry = ProviderRegistry(["a", "b", "c"])
        registry.exclude("a")
        registry.exclude("b")
        registry.include("a")
        assert _ids(registry.alive_providers()) == ["a", "c"]

    def test_unknown_identifier_is_noop(self):
        """exclude/include of an unknown identifier changes nothing."""
        registry = ProviderRegistry(["a", "b"])
        before = registry.snapshot()

        assert registry.exclude("zzz") is False
        assert registry.include("zzz") is False

        assert registry.snapshot() == before
        assert "zzz" not in registry
        assert registry.get("zzz") is None

    def test_include_alive_provider_only_resets_counter(self):
        """Including an alive provider is idempotent apart from the counter."""
        registry = ProviderRegistry(["a", "b"])
        registry.exclude("a")
        registry.age_exclusions(threshold=5)
        assert registry.get("a").consecutive_excluded_checks == 1

        registry.include("a")
        registry.include("a")
        assert registry.get("a") == ProviderHandle("a", alive=True, consecutive_excluded_checks=0)
        assert _ids(registry.alive_providers()) == ["a", "b"]

    def test_snapshot_is_immutable(self):
        registry = ProviderRegistry(["a"])
        handle = registry.snapshot()[0]
        with pytest.raises(AttributeError):
            handle.alive = False

    def test_capacity_tracks_alive_count(self):
        registry = ProviderRegistry(["a", "b", "c"])
        assert registry.capacity() == 150
        registry.exclude("a")
        assert registry.capacity() == 100
        assert registry.capacity(per_provider_capacity=10) == 20
        registry.exclude("b")
        registry.exclude("c")
        assert registry.capacity() == 0

    def test_age_exclusions_only_touches_excluded(self):
        registry = ProviderRegistry(["a", "b"])
        registry.exclude("b")
        assert registry.age_exclusions(threshold=2) == []
        assert registry.get("a").consecutive_excluded_checks == 0
        assert registry.get("b").consecutive_excluded_checks == 1

    def test_concurrent_toggles_keep_snapshots_consistent(self):
        """Snapshots taken during toggling always show a valid state."""
        registry = ProviderRegistry(["a", "b", "c", "d"])
        stop = threading.Event()
        bad = []

        def toggler():
            while not stop.is_set():
                registry.exclude("b")
                registry.include("b")

        def reader():
            for _ in range(2000):
                alive = _ids(registry.alive_providers())
                if alive not in (["a", "b", "c", "d"], ["a", "c", "d"]):
                    bad.append(alive)

        thread = threading.Thread(target=toggler)
        thread.start()
        try:
            reader()
        finally:
            stop.set()
            thread.join()

        assert bad == []


# ============================================================
# Random Strategy Tests
# ============================================================

class TestRandomStrategy:
    """Test uniform random selection."""

    def test_picks_only_alive(self):
        registry = ProviderRegistry(["a", "b", "c"])
        registry.exclude("b")
        strategy = RandomStrategy(rng=random.Random(7))

        picks = {strategy.pick(registry).identifier for _ in range(200)}
        assert picks == {"a", "c"}

    def test_roughly_uniform(self):
        """Each alive provider is picked with similar frequency."""
        registry = ProviderRegistry(["a", "b", "c"])
        strategy = RandomStrategy(rng=random.Random(1234))

        counts = Counter(strategy.pick(registry).identifier for _ in range(3000))
        assert set(counts) == {"a", "b", "c"}
        for identifier in ("a", "b", "c"):
            assert 800 <= counts[identifier] <= 1200

    def test_no_alive_providers(self):
        registry = ProviderRegistry(["a"])
        registry.exclude("a")
        with pytest.raises(NoAliveProviders) as exc_info:
            RandomStrategy().pick(registry)
        assert exc_info.value.error.strategy == "random"

    def test_single_provider(self):
        registry = ProviderRegistry(["only"])
        assert RandomStrategy().pick(registry).identifier == "only"


# ============================================================
# Round Robin Strategy Tests
# ============================================================

class TestRoundRobinStrategy:
    """Test round-robin ordering, wrap-around and shrink safety."""

    def test_cycles_in_order(self):
        """[A,B,C] -> A, B, C, A."""
        registry = ProviderRegistry(["A", "B", "C"])
        strategy = RoundRobinStrategy()

        picks = [strategy.pick(registry).identifier for _ in range(4)]
        assert picks == ["A", "B", "C", "A"]

    def test_skips_excluded(self):
        """[A,B,C] with B excluded -> A, C, A."""
        registry = ProviderRegistry(["A", "B", "C"])
        registry.exclude("B")
        strategy = RoundRobinStrategy()

        picks = [strategy.pick(registry).identifier for _ in range(3)]
        assert picks == ["A", "C", "A"]

    def test_wraps_after_last_index(self):
        registry = ProviderRegistry(["A", "B"])
        strategy = RoundRobinStrategy()

        assert strategy.pick(registry).identifier == "A"
        assert strategy.pick(registry).identifier == "B"
        assert strategy.cursor == 0
        assert strategy.pick(registry).identifier == "A"

    def test_shrink_below_cursor_wraps(self):
        """Cursor past the end of a shrunken view wraps to index 0."""
        registry = ProviderRegistry(["A", "B", "C", "D"])
        strategy = RoundRobinStrategy()

        strategy.pick(registry)  # A
        strategy.pick(registry)  # B
        strategy.pick(registry)  # C
        assert strategy.cursor == 3

        registry.exclude("A")
        registry.exclude("B")
        # alive view is [C, D], cursor 3 is out of range
        picks = [strategy.pick(registry).identifier for _ in range(4)]
        assert picks == ["C", "D", "C", "D"]

    def test_exclusion_before_cursor_does_not_starve(self):
        """Excluding an earlier provider never skips others indefinitely."""
        registry = ProviderRegistry(["A", "B", "C"])
        strategy = RoundRobinStrategy()

        strategy.pick(registry)  # A
        strategy.pick(registry)  # B
        registry.exclude("A")

        picks = [strategy.pick(registry).identifier for _ in range(6)]
        assert set(picks) == {"B", "C"}
        assert Counter(picks) == Counter({"B": 3, "C": 3})

    def test_growth_keeps_cycling(self):
        registry = ProviderRegistry(["A", "B", "C"])
        registry.exclude("C")
        strategy = RoundRobinStrategy()

        assert strategy.pick(registry).identifier == "A"
        registry.include("C")
        picks = [strategy.pick(registry).identifier for _ in range(3)]
        assert picks == ["B", "C", "A"]

    def test_no_alive_providers(self):
        """[A] with A excluded -> NoAliveProviders."""
        registry = ProviderRegistry(["A"])
        registry.exclude("A")
        with pytest.raises(NoAliveProviders) as exc_info:
            RoundRobinStrategy().pick(registry)
        assert exc_info.value.status_code == 503
        assert exc_info.value.error.retryable is True

    def test_error_releases_lock(self):
        """A failed pick leaves the strategy usable."""
        registry = ProviderRegistry(["A", "B"])
        registry.exclude("A")
        registry.exclude("B")
        strategy = RoundRobinStrategy()

        with pytest.raises(NoAliveProviders):
            strategy.pick(registry)

        registry.include("B")
        assert strategy.pick(registry).identifier == "B"

    def test_reset(self):
        registry = ProviderRegistry(["A", "B", "C"])
        strategy = RoundRobinStrategy()
        strategy.pick(registry)
        strategy.reset()
        assert strategy.pick(registry).identifier == "A"

    @pytest.mark.parametrize("calls,size", [(300, 3), (301, 3), (1000, 7), (64, 10)])
    def test_concurrent_picks_are_balanced(self, calls, size):
        """N concurrent picks over k providers give floor/ceil(N/k) each."""
        identifiers = [f"p{i}" for i in range(size)]
        registry = ProviderRegistry(identifiers)
        strategy = RoundRobinStrategy()

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(executor.map(
                lambda _: strategy.pick(registry).identifier, range(calls)
            ))

        counts = Counter(results)
        assert sum(counts.values()) == calls
        assert set(counts) == set(identifiers)
        low, high = calls // size, -(-calls // size)
        for identifier in identifiers:
            assert low <= counts[identifier] <= high

        # Serialized equivalence: next pick continues the same cycle
        assert strategy.cursor == calls % size


# ============================================================
# Strategy Factory Tests
# ============================================================

class TestStrategyFactory:

    def test_get_strategy_by_enum(self):
        assert isinstance(get_strategy(StrategyKind.RANDOM), RandomStrategy)
        assert isinstance(get_strategy(StrategyKind.ROUND_ROBIN), RoundRobinStrategy)

    @pytest.mark.parametrize("name", ["round_robin", "round-robin", "Round-Robin"])
    def test_get_strategy_by_name(self, name):
        assert isinstance(get_strategy(name), RoundRobinStrategy)

    def test_fresh_instances(self):
        """Each call returns its own cursor state."""
        assert get_strategy("round_robin") is not get_strategy("round_robin")

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            get_strategy("least_connections")


# ============================================================
# Load Balancer Tests
# ============================================================

class TestLoadBalancer:
    """Test the composition root."""

    def test_round_robin_scenario(self, make_balancer):
        balancer = make_balancer(["A", "B", "C"], strategy="round_robin")
        picks = [balancer.select().identifier for _ in range(4)]
        assert picks == ["A", "B", "C", "A"]

    def test_exclude_scenario(self, make_balancer):
        balancer = make_balancer(["A", "B", "C"], strategy="round_robin")
        balancer.exclude("B")
        picks = [balancer.select().identifier for _ in range(3)]
        assert picks == ["A", "C", "A"]

    def test_empty_pool_scenario(self, make_balancer):
        balancer = make_balancer(["A"])
        balancer.exclude("A")
        with pytest.raises(NoAliveProviders) as exc_info:
            balancer.select()
        assert exc_info.value.error.retry_after >= 1

    def test_random_strategy(self, make_balancer):
        balancer = make_balancer(["A", "B"], strategy="random", rng=random.Random(3))
        assert balancer.strategy_kind == StrategyKind.RANDOM
        assert {balancer.select().identifier for _ in range(50)} == {"A", "B"}

    def test_strategy_defaults_to_config(self, metrics):
        with LoadBalancer(
            ["A"],
            config=BalancerConfig(strategy="random", heartbeat_interval_seconds=3600),
            metrics=metrics,
        ) as balancer:
            assert balancer.strategy_kind == StrategyKind.RANDOM

    def test_capacity(self, make_balancer):
        balancer = make_balancer(["A", "B", "C"])
        assert balancer.capacity() == 150
        balancer.exclude("A")
        assert balancer.capacity() == 100
        balancer.include("A")
        assert balancer.capacity() == 150

    def test_custom_capacity(self, make_balancer):
        balancer = make_balancer(["A", "B"], per_provider_capacity=7)
        assert balancer.capacity() == 14

    def test_unknown_identifiers(self, make_balancer):
        balancer = make_balancer(["A", "B"])
        assert balancer.exclude("nope") is False
        assert balancer.include("nope") is False
        assert balancer.capacity() == 100

    def test_invalid_pool_starts_nothing(self, metrics):
        """Construction errors propagate before any thread is started."""
        before = {t.name for t in threading.enumerate()}
        with pytest.raises(InvalidPoolSize):
            LoadBalancer([f"p{i}" for i in range(11)], metrics=metrics)
        with pytest.raises(InvalidPoolSize):
            LoadBalancer([], metrics=metrics)
        after = {t.name for t in threading.enumerate()}
        assert after <= before

    def test_scheduler_lifecycle(self, make_balancer):
        balancer = make_balancer(["A"])
        assert balancer.scheduler.is_running is True

        balancer.shutdown(timeout=2)
        assert balancer.closed is True
        assert balancer.scheduler.is_running is False

        # Idempotent
        balancer.shutdown()

    def test_context_manager(self, metrics):
        with LoadBalancer(["A", "B"], metrics=metrics) as balancer:
            assert balancer.select().identifier == "A"
        assert balancer.closed is True
        assert balancer.scheduler.is_running is False

    def test_providers_snapshot(self, make_balancer):
        balancer = make_balancer(["A", "B"])
        balancer.exclude("B")
        assert balancer.providers() == (
            ProviderHandle("A", alive=True),
            ProviderHandle("B", alive=False),
        )

    def test_concurrent_select_and_toggle(self, make_balancer):
        """Selections never fail or return excluded-forever providers while toggling."""
        balancer = make_balancer(["A", "B", "C"])
        stop = threading.Event()

        def toggler():
            while not stop.is_set():
                balancer.exclude("B")
                balancer.include("B")

        thread = threading.Thread(target=toggler)
        thread.start()
        try:
            with ThreadPoolExecutor(max_workers=8) as executor:
                results = list(executor.map(lambda _: balancer.select().identifier, range(600)))
        finally:
            stop.set()
            thread.join()

        assert len(results) == 600
        assert set(results) <= {"A", "B", "C"}
        assert "A" in results and "C" in results


# ============================================================
# Simulation Tests
# ============================================================

class TestSimulate:

    def test_defaults_to_capacity(self, make_balancer):
        balancer = make_balancer(["A", "B", "C"], per_provider_capacity=10)
        counts = simulate(balancer)
        assert counts == Counter({"A": 10, "B": 10, "C": 10})

    def test_explicit_request_count(self, make_balancer):
        balancer = make_balancer(["A", "B", "C"])
        balancer.exclude("C")
        counts = simulate(balancer, requests=9, max_workers=4)
        assert sum(counts.values()) == 9
        assert set(counts) == {"A", "B"}
        assert abs(counts["A"] - counts["B"]) <= 1

    def test_empty_pool(self, make_balancer):
        balancer = make_balancer(["A"])
        balancer.exclude("A")
        with pytest.raises(NoAliveProviders):
            simulate(balancer, requests=3)

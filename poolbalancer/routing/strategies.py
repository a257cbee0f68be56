"""
poolbalancer - Selection Strategies

Picks one alive provider per call:
- RANDOM: uniform choice over the alive providers, no state between calls
- ROUND_ROBIN: cycles through the alive providers in pool order

Both are safe under concurrent invocation.
"""

import random
from abc import ABC, abstractmethod
from threading import Lock
from typing import Optional, Union

from ..core.config import parse_strategy
from ..core.errors import NoAliveProviders
from ..core.models import ProviderHandle, StrategyKind
from .registry import ProviderRegistry


class BaseStrategy(ABC):
    """Base class for selection strategies."""

    kind: StrategyKind

    @abstractmethod
    def pick(self, registry: ProviderRegistry) -> ProviderHandle:
        """
        Pick one alive provider.

        Raises:
            NoAliveProviders: if every provider is excluded
        """
        pass


class RandomStrategy(BaseStrategy):
    """Uniform random selection over the providers alive at call time."""

    kind = StrategyKind.RANDOM

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def pick(self, registry: ProviderRegistry) -> ProviderHandle:
        alive = registry.alive_providers()
        if not alive:
            raise NoAliveProviders(strategy=self.kind.value)
        return self._rng.choice(alive)


class RoundRobinStrategy(BaseStrategy):
    """
    Round-robin selection over the alive-providers view.

    The cursor indexes the alive view as it is at call time. Reading the
    view, choosing and advancing the cursor happen in one critical section,
    so concurrent callers behave as if serialized. If the view shrank below
    the cursor, the pick wraps to the first alive provider.
    """

    kind = StrategyKind.ROUND_ROBIN

    def __init__(self):
        self._cursor = 0
        self._lock = Lock()

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def reset(self):
        """Rewind to the first alive provider."""
        with self._lock:
            self._cursor = 0

    def pick(self, registry: ProviderRegistry) -> ProviderHandle:
        with self._lock:
            alive = registry.alive_providers()
            count = len(alive)
            if count == 0:
                raise NoAliveProviders(strategy=self.kind.value)

            index = self._cursor if self._cursor < count else 0
            self._cursor = index + 1
            if self._cursor >= count:
                self._cursor = 0

            return alive[index]


def get_strategy(
    kind: Union[StrategyKind, str],
    rng: Optional[random.Random] = None,
) -> BaseStrategy:
    """
    Factory function to get a fresh strategy instance.

    Raises:
        ValueError: for an unknown strategy name
    """
    kind = parse_strategy(kind)
    if kind == StrategyKind.RANDOM:
        return RandomStrategy(rng=rng)
    return RoundRobinStrategy()

"""
poolbalancer - Routing Module

Provider selection with:
- A bounded, lock-guarded provider registry
- Random and round-robin selection strategies
- Background recovery of excluded providers
"""

from .registry import ProviderRegistry
from .strategies import (
    BaseStrategy,
    RandomStrategy,
    RoundRobinStrategy,
    get_strategy,
)
from .recovery import RecoveryScheduler
from .balancer import LoadBalancer, simulate

__all__ = [
    # Registry
    "ProviderRegistry",
    # Strategies
    "BaseStrategy",
    "RandomStrategy",
    "RoundRobinStrategy",
    "get_strategy",
    # Recovery
    "RecoveryScheduler",
    # Balancer
    "LoadBalancer",
    "simulate",
]

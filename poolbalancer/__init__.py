"""
poolbalancer - Provider Pool Load Balancing

Selects an alive provider from a bounded pool per request, with random or
round-robin strategies and automatic re-admission of excluded providers.
"""

from .core import (
    BalancerConfig,
    DuplicateProviderError,
    InvalidPoolSize,
    LoadBalancerError,
    NoAliveProviders,
    ProviderHandle,
    StrategyKind,
)
from .routing import (
    LoadBalancer,
    ProviderRegistry,
    RandomStrategy,
    RecoveryScheduler,
    RoundRobinStrategy,
    get_strategy,
    simulate,
)

__version__ = "1.0.0"

__all__ = [
    "BalancerConfig",
    "DuplicateProviderError",
    "InvalidPoolSize",
    "LoadBalancer",
    "LoadBalancerError",
    "NoAliveProviders",
    "ProviderHandle",
    "ProviderRegistry",
    "RandomStrategy",
    "RecoveryScheduler",
    "RoundRobinStrategy",
    "StrategyKind",
    "get_strategy",
    "simulate",
]

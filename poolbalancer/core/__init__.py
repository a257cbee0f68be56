"""
poolbalancer Core Module

Contains provider models, configuration and the error taxonomy.
"""

from .models import (
    Provider,
    ProviderHandle,
    StrategyKind,
)
from .config import (
    BalancerConfig,
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_PER_PROVIDER_CAPACITY,
    DEFAULT_RECOVERY_THRESHOLD_CHECKS,
    get_providers_from_env,
    parse_provider_list,
    parse_strategy,
)
from .errors import (
    MAX_POOL_SIZE,
    MIN_POOL_SIZE,
    DuplicateProviderError,
    ErrorDetails,
    ErrorType,
    InfraError,
    InvalidPoolSize,
    LoadBalancerError,
    NoAliveProviders,
    SemanticError,
)

__all__ = [
    # Models
    "Provider",
    "ProviderHandle",
    "StrategyKind",

    # Config
    "BalancerConfig",
    "DEFAULT_HEARTBEAT_INTERVAL_SECONDS",
    "DEFAULT_PER_PROVIDER_CAPACITY",
    "DEFAULT_RECOVERY_THRESHOLD_CHECKS",
    "get_providers_from_env",
    "parse_provider_list",
    "parse_strategy",

    # Errors
    "MAX_POOL_SIZE",
    "MIN_POOL_SIZE",
    "DuplicateProviderError",
    "ErrorDetails",
    "ErrorType",
    "InfraError",
    "InvalidPoolSize",
    "LoadBalancerError",
    "NoAliveProviders",
    "SemanticError",
]

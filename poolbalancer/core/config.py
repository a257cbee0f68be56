"""
poolbalancer - Configuration

Balancer tuning knobs with defaults and environment overrides.

Environment:
- LB_PROVIDERS: comma-separated provider identifiers
- LB_STRATEGY: random | round_robin (round-robin accepted)
- LB_HEARTBEAT_INTERVAL_SECONDS: seconds between recovery scans (default 15)
- LB_RECOVERY_THRESHOLD_CHECKS: scans before an excluded provider is re-admitted (default 2)
- LB_PER_PROVIDER_CAPACITY: parallel requests per alive provider (default 50)
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Union

from .models import StrategyKind


DEFAULT_HEARTBEAT_INTERVAL_SECONDS = 15.0
DEFAULT_RECOVERY_THRESHOLD_CHECKS = 2
DEFAULT_PER_PROVIDER_CAPACITY = 50


def parse_strategy(value: Union[str, StrategyKind]) -> StrategyKind:
    """
    Parse a strategy name.

    Accepts the enum itself, "random", "round_robin" or "round-robin"
    (case-insensitive).
    """
    if isinstance(value, StrategyKind):
        return value
    normalized = str(value).lower().strip().replace("-", "_")
    try:
        return StrategyKind(normalized)
    except ValueError:
        raise ValueError(
            f"Invalid strategy '{value}'. Use one of: random, round_robin"
        ) from None


def parse_provider_list(raw: Optional[str]) -> List[str]:
    """Parse a comma-separated provider list, dropping blanks."""
    if not raw or not raw.strip():
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class BalancerConfig:
    """Configuration for a LoadBalancer and its recovery scheduler."""
    # Seconds between recovery scans
    heartbeat_interval_seconds: float = DEFAULT_HEARTBEAT_INTERVAL_SECONDS

    # Scans an excluded provider must sit out before re-admission
    recovery_threshold_checks: int = DEFAULT_RECOVERY_THRESHOLD_CHECKS

    # Parallel requests one alive provider can absorb
    per_provider_capacity: int = DEFAULT_PER_PROVIDER_CAPACITY

    strategy: StrategyKind = StrategyKind.ROUND_ROBIN

    def __post_init__(self):
        self.strategy = parse_strategy(self.strategy)
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on out-of-range settings."""
        if self.heartbeat_interval_seconds <= 0:
            raise ValueError("heartbeat_interval_seconds must be positive")
        if self.recovery_threshold_checks < 0:
            raise ValueError("recovery_threshold_checks cannot be negative")
        if self.per_provider_capacity < 1:
            raise ValueError("per_provider_capacity must be at least 1")

    @classmethod
    def from_env(cls) -> "BalancerConfig":
        """Build a config from LB_* environment variables."""
        try:
            return cls(
                heartbeat_interval_seconds=float(
                    os.getenv(
                        "LB_HEARTBEAT_INTERVAL_SECONDS",
                        str(DEFAULT_HEARTBEAT_INTERVAL_SECONDS),
                    )
                ),
                recovery_threshold_checks=int(
                    os.getenv(
                        "LB_RECOVERY_THRESHOLD_CHECKS",
                        str(DEFAULT_RECOVERY_THRESHOLD_CHECKS),
                    )
                ),
                per_provider_capacity=int(
                    os.getenv(
                        "LB_PER_PROVIDER_CAPACITY",
                        str(DEFAULT_PER_PROVIDER_CAPACITY),
                    )
                ),
                strategy=os.getenv("LB_STRATEGY", StrategyKind.ROUND_ROBIN.value),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid balancer configuration: {e}") from e


def get_providers_from_env() -> List[str]:
    """Provider identifiers listed in LB_PROVIDERS."""
    return parse_provider_list(os.getenv("LB_PROVIDERS"))

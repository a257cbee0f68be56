"""
poolbalancer - Core Data Models

Provider state and the enums shared by routing and the API layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StrategyKind(str, Enum):
    """Provider selection strategies."""
    RANDOM = "random"
    ROUND_ROBIN = "round_robin"


@dataclass
class Provider:
    """
    A backend unit of capacity.

    Mutable; only the owning registry touches it, and only while holding
    the registry lock.
    """
    identifier: str
    alive: bool = True
    consecutive_excluded_checks: int = 0

    def exclude(self):
        self.alive = False

    def include(self):
        self.alive = True
        self.consecutive_excluded_checks = 0

    def to_handle(self) -> "ProviderHandle":
        return ProviderHandle(
            identifier=self.identifier,
            alive=self.alive,
            consecutive_excluded_checks=self.consecutive_excluded_checks,
        )


@dataclass(frozen=True)
class ProviderHandle:
    """Immutable point-in-time view of a provider."""
    identifier: str
    alive: bool = True
    consecutive_excluded_checks: int = 0

    def __str__(self) -> str:
        return self.identifier

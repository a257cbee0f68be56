"""
poolbalancer - Provider Registry

Owns the fixed, ordered pool of providers and their liveness state.

Every read or write of provider fields happens under one lock, so
selections, caller exclude/include and recovery scans never observe a
provider mid-toggle.
"""

from threading import Lock
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.errors import (
    MAX_POOL_SIZE,
    MIN_POOL_SIZE,
    DuplicateProviderError,
    InvalidPoolSize,
)
from ..core.config import DEFAULT_PER_PROVIDER_CAPACITY
from ..core.models import Provider, ProviderHandle


class ProviderRegistry:
    """
    Registry for a bounded pool of providers.

    The provider sequence is frozen at construction; only each provider's
    liveness and exclusion counter change afterwards.
    """

    def __init__(self, identifiers: Optional[Iterable[str]]):
        if identifiers is None:
            raise InvalidPoolSize(None)
        if isinstance(identifiers, str):
            raise TypeError("identifiers must be a collection of strings, not a single string")

        identifiers = list(identifiers)
        if not MIN_POOL_SIZE <= len(identifiers) <= MAX_POOL_SIZE:
            raise InvalidPoolSize(len(identifiers))

        seen = set()
        for identifier in identifiers:
            if identifier in seen:
                raise DuplicateProviderError(identifier)
            seen.add(identifier)

        self._providers: Tuple[Provider, ...] = tuple(
            Provider(identifier=identifier) for identifier in identifiers
        )
        self._index: Dict[str, Provider] = {
            provider.identifier: provider for provider in self._providers
        }
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._index

    @property
    def identifiers(self) -> Tuple[str, ...]:
        """All provider identifiers in pool order."""
        return tuple(provider.identifier for provider in self._providers)

    def exclude(self, identifier: str) -> bool:
        """
        Mark a provider as not alive.

        Returns False (and changes nothing) for an unknown identifier.
        """
        provider = self._index.get(identifier)
        if provider is None:
            return False
        with self._lock:
            provider.exclude()
        return True

    def include(self, identifier: str) -> bool:
        """
        Mark a provider as alive and reset its exclusion counter.

        Returns False (and changes nothing) for an unknown identifier.
        """
        provider = self._index.get(identifier)
        if provider is None:
            return False
        with self._lock:
            provider.include()
        return True

    def alive_providers(self) -> Tuple[ProviderHandle, ...]:
        """Consistent, order-preserving snapshot of alive providers."""
        with self._lock:
            return tuple(
                provider.to_handle()
                for provider in self._providers
                if provider.alive
            )

    def snapshot(self) -> Tuple[ProviderHandle, ...]:
        """Consistent snapshot of every provider in pool order."""
        with self._lock:
            return tuple(provider.to_handle() for provider in self._providers)

    def get(self, identifier: str) -> Optional[ProviderHandle]:
        """Snapshot of a single provider, or None if unknown."""
        provider = self._index.get(identifier)
        if provider is None:
            return None
        with self._lock:
            return provider.to_handle()

    def capacity(self, per_provider_capacity: int = DEFAULT_PER_PROVIDER_CAPACITY) -> int:
        """Alive provider count times per-provider capacity."""
        return len(self.alive_providers()) * per_provider_capacity

    def age_exclusions(self, threshold: int) -> List[str]:
        """
        Run one recovery scan.

        Every excluded provider's counter is incremented; those whose counter
        then exceeds ``threshold`` are included again. The whole scan runs
        under the registry lock.

        Returns:
            Identifiers re-admitted by this scan, in pool order.
        """
        recovered = []
        with self._lock:
            for provider in self._providers:
                if provider.alive:
                    continue
                provider.consecutive_excluded_checks += 1
                if provider.consecutive_excluded_checks > threshold:
                    provider.include()
                    recovered.append(provider.identifier)
        return recovered

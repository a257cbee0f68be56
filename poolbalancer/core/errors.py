"""
poolbalancer - Error Definitions

Error taxonomy with infra vs semantic classification.

- Semantic errors: the caller must fix its input (bad pool definition).
- Infra errors: the pool is temporarily unable to serve (retry later).

Unknown identifiers passed to exclude/include are deliberately not errors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


MIN_POOL_SIZE = 1
MAX_POOL_SIZE = 10


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


@dataclass
class ErrorDetails:
    """Full error information for API responses and logs."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    provider: Optional[str] = None
    strategy: Optional[str] = None

    # Recovery fields
    retryable: bool = False
    retry_after: Optional[int] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.strategy:
            result["strategy"] = self.strategy
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.details:
            result["details"] = self.details

        return {"error": result}


class LoadBalancerError(Exception):
    """Base exception for all poolbalancer errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code


# ============================================================
# Semantic Errors (caller must fix input)
# ============================================================

class SemanticError(LoadBalancerError):
    """Base class for semantic errors."""
    pass


class InvalidPoolSize(SemanticError):
    """Pool constructed with no providers or more than MAX_POOL_SIZE."""

    def __init__(self, size: Optional[int]):
        shown = "no" if not size else str(size)
        super().__init__(
            ErrorDetails(
                code="invalid_pool_size",
                message=(
                    f"Provider pool must contain between {MIN_POOL_SIZE} and "
                    f"{MAX_POOL_SIZE} providers, got {shown}"
                ),
                type=ErrorType.SEMANTIC,
                retryable=False,
                details={
                    "size": size or 0,
                    "min_size": MIN_POOL_SIZE,
                    "max_size": MAX_POOL_SIZE,
                    "legacy_code": "ERROR_CODE:001",
                },
            ),
            status_code=400
        )
        self.size = size or 0


class DuplicateProviderError(SemanticError):
    """The same identifier was listed twice in one pool."""

    def __init__(self, identifier: str):
        super().__init__(
            ErrorDetails(
                code="duplicate_provider",
                message=f"Provider '{identifier}' is listed more than once",
                type=ErrorType.SEMANTIC,
                provider=identifier,
                retryable=False,
            ),
            status_code=400
        )
        self.identifier = identifier


# ============================================================
# Infra Errors (retryable)
# ============================================================

class InfraError(LoadBalancerError):
    """Base class for infrastructure errors."""
    pass


class NoAliveProviders(InfraError):
    """Selection attempted while every provider is excluded."""

    def __init__(self, strategy: str = "", retry_after: Optional[int] = None):
        super().__init__(
            ErrorDetails(
                code="no_alive_providers",
                message="No alive providers available to serve the request",
                type=ErrorType.INFRA,
                strategy=strategy or None,
                retryable=True,
                retry_after=retry_after,
            ),
            status_code=503
        )

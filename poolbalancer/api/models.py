"""
poolbalancer - API Request/Response Models

Pydantic models for the management API.
"""

from typing import List

from pydantic import BaseModel, Field

from ..core.models import ProviderHandle


class ProviderStatus(BaseModel):
    """Current state of one provider."""
    identifier: str
    alive: bool
    consecutive_excluded_checks: int = Field(default=0, ge=0)

    @classmethod
    def from_handle(cls, handle: ProviderHandle) -> "ProviderStatus":
        return cls(
            identifier=handle.identifier,
            alive=handle.alive,
            consecutive_excluded_checks=handle.consecutive_excluded_checks,
        )


class ProviderListResponse(BaseModel):
    """All providers in pool order."""
    object: str = "list"
    strategy: str
    data: List[ProviderStatus]


class SelectionResponse(BaseModel):
    """Provider chosen for the next request."""
    identifier: str
    strategy: str


class LivenessChangeResponse(BaseModel):
    """Outcome of an exclude/include call."""
    identifier: str
    known: bool
    alive: bool = False


class CapacityResponse(BaseModel):
    """Cluster capacity for admission control."""
    capacity: int = Field(..., ge=0)
    alive_providers: int = Field(..., ge=0)
    per_provider_capacity: int = Field(..., ge=1)

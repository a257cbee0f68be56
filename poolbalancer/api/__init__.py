"""
poolbalancer - API Layer

REST management surface for a LoadBalancer.
"""

from .management import router as management_router
from .dependencies import get_balancer
from .models import (
    CapacityResponse,
    LivenessChangeResponse,
    ProviderListResponse,
    ProviderStatus,
    SelectionResponse,
)


__all__ = [
    # Routers
    "management_router",
    # Dependencies
    "get_balancer",
    # Models
    "CapacityResponse",
    "LivenessChangeResponse",
    "ProviderListResponse",
    "ProviderStatus",
    "SelectionResponse",
]

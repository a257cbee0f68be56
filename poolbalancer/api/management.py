"""
poolbalancer - Management API

Endpoints an external health prober or request router calls into:
select a provider, exclude/include providers, read capacity.
"""

from fastapi import APIRouter, Depends

from ..routing.balancer import LoadBalancer
from .dependencies import get_balancer
from .models import (
    CapacityResponse,
    LivenessChangeResponse,
    ProviderListResponse,
    ProviderStatus,
    SelectionResponse,
)


router = APIRouter(prefix="/v1", tags=["management"])


def _liveness_response(balancer: LoadBalancer, identifier: str, known: bool) -> LivenessChangeResponse:
    handle = balancer.registry.get(identifier) if known else None
    return LivenessChangeResponse(
        identifier=identifier,
        known=known,
        alive=bool(handle and handle.alive),
    )


@router.get("/providers", response_model=ProviderListResponse)
async def list_providers(balancer: LoadBalancer = Depends(get_balancer)):
    """List every provider with its liveness and exclusion counter."""
    return ProviderListResponse(
        strategy=balancer.strategy_kind.value,
        data=[ProviderStatus.from_handle(p) for p in balancer.providers()],
    )


@router.post("/providers/select", response_model=SelectionResponse)
def select_provider(balancer: LoadBalancer = Depends(get_balancer)):
    """
    Pick the provider for the next request.

    Returns 503 with a no_alive_providers error when the pool is empty.
    """
    provider = balancer.select()
    return SelectionResponse(
        identifier=provider.identifier,
        strategy=balancer.strategy_kind.value,
    )


@router.post("/providers/{identifier}/exclude", response_model=LivenessChangeResponse)
def exclude_provider(identifier: str, balancer: LoadBalancer = Depends(get_balancer)):
    """Exclude a provider. Unknown identifiers answer known=false."""
    known = balancer.exclude(identifier)
    return _liveness_response(balancer, identifier, known)


@router.post("/providers/{identifier}/include", response_model=LivenessChangeResponse)
def include_provider(identifier: str, balancer: LoadBalancer = Depends(get_balancer)):
    """Include a provider. Unknown identifiers answer known=false."""
    known = balancer.include(identifier)
    return _liveness_response(balancer, identifier, known)


@router.get("/capacity", response_model=CapacityResponse)
async def get_capacity(balancer: LoadBalancer = Depends(get_balancer)):
    """Current capacity for admission control."""
    per_provider = balancer.config.per_provider_capacity
    capacity = balancer.capacity()
    return CapacityResponse(
        capacity=capacity,
        alive_providers=capacity // per_provider,
        per_provider_capacity=per_provider,
    )

"""
poolbalancer - API Dependencies

Shared dependencies for FastAPI routes.
"""

from fastapi import Request

from ..core.errors import ErrorDetails, ErrorType, InfraError
from ..routing.balancer import LoadBalancer


def get_balancer(request: Request) -> LoadBalancer:
    """
    Get the load balancer bound to the app.

    Set by create_app() on app.state.balancer.
    """
    balancer = getattr(request.app.state, "balancer", None)
    if balancer is None or balancer.closed:
        raise InfraError(
            ErrorDetails(
                code="service_unavailable",
                message="Load balancer not initialized or already shut down.",
                type=ErrorType.INFRA,
                retryable=True,
                retry_after=5,
            ),
            status_code=503
        )
    return balancer

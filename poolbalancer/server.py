"""
poolbalancer - API Server

FastAPI application exposing a LoadBalancer over HTTP.

    balancer = LoadBalancer(["a", "b", "c"], StrategyKind.ROUND_ROBIN)
    app = create_app(balancer)

When no balancer is passed, one is built from the LB_* environment
variables and shut down together with the app.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry, REGISTRY

from . import __version__
from .api import management_router
from .core.config import BalancerConfig, get_providers_from_env
from .core.errors import LoadBalancerError
from .observability.logging import get_logger
from .observability.metrics import metrics_endpoint
from .routing.balancer import LoadBalancer


logger = get_logger(__name__)


def build_balancer_from_env() -> LoadBalancer:
    """Build a LoadBalancer from LB_PROVIDERS and the other LB_* variables."""
    return LoadBalancer(get_providers_from_env(), config=BalancerConfig.from_env())


def create_app(
    balancer: Optional[LoadBalancer] = None,
    metrics_registry: CollectorRegistry = REGISTRY,
) -> FastAPI:
    """
    Create the management API app.

    Args:
        balancer: Balancer to serve; the caller keeps ownership of it.
            When omitted, one is built from the environment at startup and
            shut down at app shutdown.
        metrics_registry: Registry rendered by GET /metrics
    """
    owns_balancer = balancer is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_balancer:
            app.state.balancer = build_balancer_from_env()
        logger.info(
            "poolbalancer API starting",
            balancer_id=app.state.balancer.balancer_id,
        )
        try:
            yield
        finally:
            if owns_balancer:
                app.state.balancer.shutdown()
            logger.info("poolbalancer API stopped")

    app = FastAPI(
        title="poolbalancer",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.balancer = balancer
    app.include_router(management_router)

    @app.get("/health")
    async def health_check():
        current = app.state.balancer
        alive = len(current.registry.alive_providers()) if current else 0
        return {
            "status": "healthy" if alive else "degraded",
            "alive_providers": alive,
            "version": __version__,
        }

    @app.get("/metrics")
    async def prometheus_metrics():
        return metrics_endpoint(metrics_registry)

    @app.exception_handler(LoadBalancerError)
    async def balancer_exception_handler(request: Request, exc: LoadBalancerError):
        """Render canonical errors."""
        headers = {
            "X-Error-Type": exc.error.type.value,
            "X-Error-Code": exc.error.code,
        }
        if exc.error.retry_after:
            headers["Retry-After"] = str(exc.error.retry_after)

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.error.to_dict(),
            headers=headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Render standard HTTP exceptions in the same envelope."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": "http_error",
                    "message": str(exc.detail),
                    "type": "semantic_error" if exc.status_code < 500 else "infra_error",
                    "retryable": exc.status_code >= 500,
                }
            },
        )

    return app

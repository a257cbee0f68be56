"""
poolbalancer - Observability Module

- Prometheus metrics (Counter, Histogram, Gauge)
- Structured JSON logging with context injection

Usage:
    from poolbalancer.observability import get_metrics, get_logger

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    metrics_endpoint,
)
from .logging import (
    JSONFormatter,
    StructuredLogger,
    TimedOperation,
    get_logger,
    setup_logging,
    LogContext,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    "metrics_endpoint",
    # Logging
    "JSONFormatter",
    "StructuredLogger",
    "TimedOperation",
    "get_logger",
    "setup_logging",
    "LogContext",
]

"""
SmartRoute - Observability Module

- Prometheus metrics for polls, network state and routing decisions
- OpenTelemetry tracing of polls and routing
- Structured JSON logging with context injection

Usage:
    from smartroute.observability import setup_observability, get_logger, get_metrics

    setup_observability(service_name="smartroute")

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .logging import (
    LogContext,
    StructuredLogger,
    TimedOperation,
    bind_context,
    get_logger,
    setup_logging,
)
from .metrics import (
    MetricsCollector,
    get_metrics,
    metrics_endpoint,
    setup_metrics,
)
from .tracing import (
    TracingManager,
    get_tracing_manager,
    setup_tracing,
)
from .middleware import (
    ObservabilityMiddleware,
    setup_observability,
)

__all__ = [
    # Logging
    "LogContext",
    "StructuredLogger",
    "TimedOperation",
    "bind_context",
    "get_logger",
    "setup_logging",
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "metrics_endpoint",
    "setup_metrics",
    # Tracing
    "TracingManager",
    "get_tracing_manager",
    "setup_tracing",
    # Combined
    "ObservabilityMiddleware",
    "setup_observability",
]

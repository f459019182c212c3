"""
ccswitch - Observability Module

- Prometheus metrics for routes, channel attempts and probes
- OpenTelemetry spans around routes and channel calls
- Structured JSON logging with context injection

Usage:
    from ccswitch.observability import get_logger, get_metrics, setup_tracing

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from .tracing import (
    TracingManager,
    get_tracing_manager,
    setup_tracing,
    trace_channel_call,
)
from .logging import (
    StructuredLogger,
    get_logger,
    setup_logging,
    configure_from_env,
    LogContext,
    TimedOperation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    # Tracing
    "TracingManager",
    "get_tracing_manager",
    "setup_tracing",
    "trace_channel_call",
    # Logging
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    "configure_from_env",
    "LogContext",
    "TimedOperation",
]

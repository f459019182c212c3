"""
ccswitch - Routing Module

Channel selection and failover:
- Channel registry with deterministic (priority, name) ordering
- Health probing of channels
- Request execution with timeout and error classification
- Failover chain bounded by distinct channels
- Router orchestrating the above with cancellation support
"""

from .registry import ChannelRegistry
from .health import (
    HealthProber,
    HealthStatus,
    UnhealthyReason,
)
from .executor import (
    ExecutionResult,
    RequestExecutor,
    extract_content,
)
from .fallback import (
    FailoverChain,
    RouteFailureKind,
    RouteResult,
)
from .router import Router, run_cancellable

__all__ = [
    # Registry
    "ChannelRegistry",
    # Health
    "HealthProber",
    "HealthStatus",
    "UnhealthyReason",
    # Executor
    "ExecutionResult",
    "RequestExecutor",
    "extract_content",
    # Fallback
    "FailoverChain",
    "RouteFailureKind",
    "RouteResult",
    # Router
    "Router",
    "run_cancellable",
]

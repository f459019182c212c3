"""
ccswitch - Prometheus Metrics

Metrics exposed:
- ccswitch_routes_total: Counter of routed requests by model and terminal outcome
- ccswitch_channel_attempts_total: Counter of channel attempts by outcome and error kind
- ccswitch_channel_request_duration_seconds: Histogram of channel call latency
- ccswitch_health_checks_total: Counter of probe results per channel
- ccswitch_fallbacks_total: Counter of failover hops between channels

Usage:
    from ccswitch.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.record_route(model="gpt-4", outcome="success")
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    REGISTRY,
)


class MetricsCollector:
    """
    Central metrics collector using Prometheus client.

    One collector per CollectorRegistry; tests pass a fresh registry.
    """

    _instance: Optional["MetricsCollector"] = None

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.routes_total = Counter(
            "ccswitch_routes_total",
            "Total routed requests by terminal outcome",
            labelnames=["model", "outcome"],
            registry=registry,
        )

        self.channel_attempts = Counter(
            "ccswitch_channel_attempts_total",
            "Total channel attempts",
            labelnames=["channel", "outcome", "error_kind"],
            registry=registry,
        )

        # Chat calls range from sub-second to a minute or more
        self.channel_request_duration = Histogram(
            "ccswitch_channel_request_duration_seconds",
            "Channel request duration in seconds",
            labelnames=["channel"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=registry,
        )

        self.health_checks = Counter(
            "ccswitch_health_checks_total",
            "Channel probe results",
            labelnames=["channel", "healthy"],
            registry=registry,
        )

        self.fallbacks = Counter(
            "ccswitch_fallbacks_total",
            "Failover hops from one channel to the next",
            labelnames=["from_channel", "to_channel", "reason"],
            registry=registry,
        )

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def record_route(self, model: str, outcome: str):
        self.routes_total.labels(model=model, outcome=outcome).inc()

    def record_attempt(
        self,
        channel: str,
        outcome: str,
        error_kind: Optional[str] = None,
        duration_seconds: Optional[float] = None,
    ):
        """Record one probe/request attempt against a channel."""
        self.channel_attempts.labels(
            channel=channel,
            outcome=outcome,
            error_kind=error_kind or "none",
        ).inc()

        if duration_seconds is not None:
            self.channel_request_duration.labels(channel=channel).observe(duration_seconds)

    def record_health_check(self, channel: str, healthy: bool):
        self.health_checks.labels(
            channel=channel,
            healthy="true" if healthy else "false",
        ).inc()

    def record_fallback(self, from_channel: str, to_channel: str, reason: str):
        self.fallbacks.labels(
            from_channel=from_channel,
            to_channel=to_channel,
            reason=reason,
        ).inc()

    def export(self) -> bytes:
        """Prometheus text exposition of this collector's registry."""
        return generate_latest(self.registry)


_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times - returns the existing instance for the
    same registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = MetricsCollector(registry)
    MetricsCollector._instance = _metrics_instance
    return _metrics_instance


def get_metrics() -> MetricsCollector:
    """Get the metrics collector, initializing it on the default registry."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = MetricsCollector.get_instance()
    return _metrics_instance

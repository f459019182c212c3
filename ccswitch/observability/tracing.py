"""
ccswitch - OpenTelemetry Tracing

Spans around each routed request and each channel call.

Usage:
    from ccswitch.observability.tracing import setup_tracing, trace_channel_call

    setup_tracing(service_name="ccswitch")

    with trace_channel_call("primary", "gpt-4", "chat") as span:
        span.set_attribute("http.status_code", 200)
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.trace import SpanKind, Status, StatusCode

from .. import __version__

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


class TracingManager:
    """
    Owns the tracer provider and hands out spans.

    The provider belongs to the manager and is never installed as the
    global tracer provider.
    """

    _instance: Optional["TracingManager"] = None

    def __init__(
        self,
        service_name: str = "ccswitch",
        service_version: str = __version__,
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
    ):
        self.service_name = service_name
        self.service_version = service_version

        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
        })
        self.provider = TracerProvider(resource=resource)

        if otlp_endpoint and OTLP_AVAILABLE:
            self.provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )

        if console_export:
            self.provider.add_span_processor(
                SimpleSpanProcessor(ConsoleSpanExporter())
            )

        self.tracer = self.provider.get_tracer(service_name, service_version)

    @classmethod
    def get_instance(cls) -> "TracingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def start_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Context manager yielding a new current span."""
        return self.tracer.start_as_current_span(name, kind=kind, attributes=attributes)

    def shutdown(self):
        self.provider.shutdown()


def setup_tracing(
    service_name: str = "ccswitch",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
) -> TracingManager:
    """
    Setup tracing. Reads OTEL_EXPORTER_OTLP_ENDPOINT and OTEL_CONSOLE_EXPORT
    when the arguments are not given.
    """
    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    TracingManager._instance = TracingManager(
        service_name=service_name,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export,
    )
    return TracingManager._instance


def get_tracing_manager() -> TracingManager:
    return TracingManager.get_instance()


def mark_span_error(span, description: str):
    span.set_status(Status(StatusCode.ERROR, description))


@contextmanager
def trace_channel_call(
    channel: str,
    model: str,
    operation: str = "chat",
    tracing: Optional[TracingManager] = None,
):
    """
    Client span around one call to a channel.

    Usage:
        with trace_channel_call("primary", "gpt-4", "probe") as span:
            status = await prober.probe(channel, timeout)
    """
    tracing = tracing or get_tracing_manager()

    with tracing.start_span(
        name=f"ccswitch.{operation}",
        kind=SpanKind.CLIENT,
        attributes={
            "ccswitch.channel": channel,
            "ccswitch.model": model,
            "ccswitch.operation": operation,
        },
    ) as span:
        yield span

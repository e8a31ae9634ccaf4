"""
SmartRoute - OpenTelemetry Tracing

Spans around network polls and routing decisions, with optional OTLP export.

Usage:
    from smartroute.observability.tracing import setup_tracing, get_tracing_manager

    setup_tracing(service_name="smartroute", otlp_endpoint="http://localhost:4317")

    tracing = get_tracing_manager()
    with tracing.start_span("routing.route", attributes={"merchant_id": "m1"}):
        ...
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import SpanKind, Status, StatusCode

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


class TracingManager:
    """Owns the tracer provider and hands out spans."""

    def __init__(
        self,
        service_name: str = "smartroute",
        service_version: str = "1.0.0",
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
        set_global: bool = True,
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
            self.provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        if set_global:
            trace.set_tracer_provider(self.provider)

        self.tracer = self.provider.get_tracer(service_name, service_version)

    def start_span(
        self,
        name: str,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Context manager yielding a new current span."""
        return self.tracer.start_as_current_span(
            name,
            kind=kind,
            attributes={k: v for k, v in (attributes or {}).items() if v is not None},
        )

    @contextmanager
    def trace_rpc_call(self, network: str, method: str):
        """Client span for one RPC round trip; errors mark the span and re-raise."""
        with self.start_span(
            f"{network}.{method}",
            kind=SpanKind.CLIENT,
            attributes={"chain.network": network, "rpc.method": method},
        ) as span:
            try:
                yield span
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

    def shutdown(self):
        self.provider.shutdown()


_tracing_instance: Optional[TracingManager] = None


def setup_tracing(
    service_name: str = "smartroute",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
) -> TracingManager:
    """Setup tracing. Call once at application startup."""
    global _tracing_instance

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    _tracing_instance = TracingManager(
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export,
    )
    return _tracing_instance


def get_tracing_manager() -> TracingManager:
    """Get the tracing manager, creating a local-only one on first use."""
    global _tracing_instance
    if _tracing_instance is None:
        _tracing_instance = TracingManager(set_global=False)
    return _tracing_instance

"""
SmartRoute - Observability Middleware

Binds a request ID into the log context, wraps each request in a server span
and logs completion with its latency.

Usage:
    from smartroute.observability import setup_observability, ObservabilityMiddleware

    setup_observability(service_name="smartroute")
    app.add_middleware(ObservabilityMiddleware)
"""

import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request, Response
from opentelemetry.trace import SpanKind, Status, StatusCode
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .logging import LogContext, get_logger, setup_logging
from .metrics import setup_metrics
from .tracing import get_tracing_manager, setup_tracing


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request ID propagation, tracing and access logging."""

    EXCLUDE_PATHS = {"/health", "/metrics", "/openapi.json", "/docs", "/redoc"}

    def __init__(self, app: ASGIApp, exclude_paths: Optional[set] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or self.EXCLUDE_PATHS
        self.logger = get_logger("smartroute.http")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:24]}"
        LogContext.set_current(LogContext(request_id=request_id))

        start_time = time.perf_counter()
        tracing = get_tracing_manager()

        try:
            with tracing.start_span(
                f"{request.method} {request.url.path}",
                kind=SpanKind.SERVER,
                attributes={
                    "http.method": request.method,
                    "http.route": request.url.path,
                    "smartroute.request_id": request_id,
                },
            ) as span:
                response = await call_next(request)

                span.set_attribute("http.status_code", response.status_code)
                if response.status_code >= 400:
                    span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))

                duration_ms = (time.perf_counter() - start_time) * 1000
                self.logger.info(
                    "Request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

                response.headers["X-Request-Id"] = request_id
                return response
        finally:
            LogContext.clear()


def setup_observability(
    service_name: str = "smartroute",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    log_level: str = "INFO",
    json_logs: bool = True,
) -> Dict[str, Any]:
    """
    Setup logging, metrics and tracing in one call.

    Returns:
        Dict with "metrics" and "tracing" components
    """
    setup_logging(level=log_level, json_output=json_logs)

    return {
        "metrics": setup_metrics(),
        "tracing": setup_tracing(
            service_name=service_name,
            service_version=service_version,
            otlp_endpoint=otlp_endpoint,
        ),
    }

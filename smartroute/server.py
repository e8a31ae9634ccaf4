"""
SmartRoute - API Server

FastAPI application exposing the smart routing service.

Features:
- Background fee monitoring for every configured network
- Payment routing with merchant and customer preferences
- Routing analytics and simulation
- Full observability (metrics, tracing, logging)
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import dependencies as api_deps
from .api import smart_routing_router
from .core.config import Settings
from .core.errors import SmartRouteException
from .observability import (
    ObservabilityMiddleware,
    get_logger,
    metrics_endpoint,
    setup_observability,
)
from .routing.scoring import is_fresh
from .service import SmartRoutingService, create_service


SHUTDOWN_GRACE_SECONDS = 5.0


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[SmartRoutingService] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        service: Pre-built service (tests inject one with fake collaborators)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or (service.settings if service else Settings.from_env())

        # Observability first, so startup is logged
        observability = setup_observability(
            service_name="smartroute",
            service_version=__version__,
            otlp_endpoint=app_settings.otlp_endpoint,
            log_level=app_settings.log_level,
            json_logs=app_settings.log_format == "json",
        )
        logger = get_logger("smartroute.server")

        app_settings.validate()
        routing_service = service or create_service(
            app_settings,
            metrics=observability["metrics"],
            tracing=observability["tracing"],
        )
        api_deps.set_service(routing_service)
        await routing_service.start()

        logger.info(
            "SmartRoute server ready",
            networks=app_settings.network_keys(),
            default_network=app_settings.default_network,
        )

        yield

        await routing_service.stop(grace_seconds=SHUTDOWN_GRACE_SECONDS)
        api_deps.set_service(None)
        observability["tracing"].shutdown()
        logger.info("SmartRoute server stopped")

    app = FastAPI(
        title="SmartRoute",
        description="Smart network routing for crypto payments",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(ObservabilityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(smart_routing_router)
    _install_core_endpoints(app)
    _install_error_handlers(app)
    return app


# ============================================================
# Core Endpoints (not in routes)
# ============================================================

def _install_core_endpoints(app: FastAPI):

    @app.get("/health")
    async def health_check():
        """Healthy while at least one network has fresh data."""
        service = api_deps.get_service()
        snapshot = service.monitor.snapshot()
        now = service.clock()
        window = service.settings.freshness_window_seconds

        fresh = {key: is_fresh(state, now, window) for key, state in snapshot.items()}

        return {
            "status": "healthy" if any(fresh.values()) else "degraded",
            "version": __version__,
            "monitoring": service.monitor.is_running,
            "networks": {
                key: {
                    "status": "fresh" if fresh[key] else "stale",
                    "reliability": round(state.reliability, 4),
                }
                for key, state in snapshot.items()
            },
        }

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics in text exposition format."""
        return metrics_endpoint(api_deps.get_service().metrics)


# ============================================================
# Error handlers
# ============================================================

def _install_error_handlers(app: FastAPI):

    @app.exception_handler(SmartRouteException)
    async def smartroute_exception_handler(request: Request, exc: SmartRouteException):
        """Handle all SmartRoute canonical errors."""
        headers = {
            "X-Error-Type": exc.error.type.value,
            "X-Error-Code": exc.error.code,
        }
        if exc.error.network:
            headers["X-Network"] = exc.error.network

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.error.to_dict(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Render body and query validation failures as invalid_request errors."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        param = ".".join(str(p) for p in first.get("loc", ())[1:]) or None

        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": "invalid_request",
                    "message": first.get("msg", "Invalid request"),
                    "type": "semantic_error",
                    "param": param,
                    "retryable": False,
                }
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle standard HTTP exceptions."""
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

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        error_id = f"err_{uuid.uuid4().hex[:16]}"
        get_logger("smartroute.server").exception(
            "Unhandled error", error_id=error_id, path=request.url.path
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "internal_error",
                    "message": "An unexpected error occurred",
                    "type": "infra_error",
                    "retryable": True,
                    "details": {"error_id": error_id},
                }
            },
        )


app = create_app()


# ============================================================
# Run server
# ============================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "smartroute.server:app",
        host="0.0.0.0",
        port=8000,
    )

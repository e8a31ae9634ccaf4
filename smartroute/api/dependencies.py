"""
SmartRoute - API Dependencies

The running service is installed by the server lifespan and handed to routes
through `get_service`.
"""

from typing import Optional

from ..core.errors import ErrorDetails, ErrorType, InfraError
from ..service import SmartRoutingService


_service: Optional[SmartRoutingService] = None


def set_service(service: Optional[SmartRoutingService]):
    """Install (or clear) the service used by the routes."""
    global _service
    _service = service


def get_service() -> SmartRoutingService:
    """
    Get the routing service.

    Raises:
        InfraError: 503 while the server is starting up or shutting down
    """
    if _service is None:
        raise InfraError(
            ErrorDetails(
                code="service_unavailable",
                message="Smart routing service not initialized. Server may be starting up.",
                type=ErrorType.INFRA,
                retryable=True,
            ),
            status_code=503,
        )
    return _service

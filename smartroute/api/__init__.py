"""
SmartRoute - API Layer

REST endpoints for the smart routing service.
"""

from .dependencies import get_service, set_service
from .models import (
    CustomerPreferencesInput,
    OptimalRoutingRequest,
    PreferencesUpdateRequest,
    SimulateRequest,
    SimulationScenarioInput,
)
from .routes import router as smart_routing_router

__all__ = [
    "smart_routing_router",
    "get_service",
    "set_service",
    "CustomerPreferencesInput",
    "OptimalRoutingRequest",
    "PreferencesUpdateRequest",
    "SimulateRequest",
    "SimulationScenarioInput",
]

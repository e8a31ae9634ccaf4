"""
SmartRoute - Smart Routing API

Endpoints for routing payments, inspecting networks, merchant preferences,
analytics and what-if simulation. Every success response carries
`{"success": true, <payload>, "message": ...}`.
"""

from fastapi import APIRouter, Depends, Query

from ..core.models import Urgency
from ..service import SmartRoutingService
from .dependencies import get_service
from .models import OptimalRoutingRequest, PreferencesUpdateRequest, SimulateRequest


router = APIRouter(prefix="/api/smart-routing", tags=["smart-routing"])


@router.post("/optimal")
async def get_optimal_routing(
    request: OptimalRoutingRequest,
    service: SmartRoutingService = Depends(get_service),
):
    """
    Select the best network for a payment.

    Merchant preferences apply when `merchant_id` has stored preferences;
    `customer_preferences.network` overrides everything when it is usable.
    """
    customer = request.customer_preferences.model_dump() if request.customer_preferences else None

    decision = service.get_optimal_routing(
        request.amount,
        request.currency,
        urgency=request.urgency,
        customer_preferences=customer,
        merchant_id=request.merchant_id,
    )
    return {
        "success": True,
        "routing": decision.to_dict(),
        "message": "Optimal routing calculated successfully",
    }


@router.get("/status")
async def get_network_status(service: SmartRoutingService = Depends(get_service)):
    """Live fee, speed and reliability of every configured network."""
    return {
        "success": True,
        "status": service.get_network_status().to_dict(),
        "message": "Network status retrieved successfully",
    }


@router.get("/analytics/{merchant_id}")
async def get_routing_analytics(
    merchant_id: str,
    time_range: str = Query("7d", alias="timeRange", description="24h, 7d or 30d"),
    service: SmartRoutingService = Depends(get_service),
):
    analytics = service.get_routing_analytics(merchant_id, time_range)
    return {
        "success": True,
        "analytics": analytics.to_dict(),
        "message": "Routing analytics retrieved successfully",
    }


@router.post("/preferences/{merchant_id}")
async def set_merchant_preferences(
    merchant_id: str,
    request: PreferencesUpdateRequest,
    service: SmartRoutingService = Depends(get_service),
):
    """Merge the given fields over the merchant's current preferences."""
    preferences = service.set_merchant_preferences(
        merchant_id, **request.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Routing preferences updated successfully",
        "preferences": preferences.to_dict(),
    }


@router.get("/preferences/{merchant_id}")
async def get_merchant_preferences(
    merchant_id: str,
    service: SmartRoutingService = Depends(get_service),
):
    return {
        "success": True,
        "preferences": service.get_merchant_preferences(merchant_id).to_dict(),
        "message": "Routing preferences retrieved successfully",
    }


@router.post("/simulate")
async def simulate_routing(
    request: SimulateRequest,
    service: SmartRoutingService = Depends(get_service),
):
    """Would-be optimal network per scenario. Nothing is recorded."""
    results = service.simulate_routing([s.model_dump() for s in request.scenarios])
    return {
        "success": True,
        "simulations": [r.to_dict() for r in results],
        "message": "Routing simulation completed successfully",
    }


@router.get("/recommendations")
async def get_routing_recommendations(
    amount: float = Query(..., gt=0, allow_inf_nan=False),
    urgency: Urgency = Query(Urgency.NORMAL),
    service: SmartRoutingService = Depends(get_service),
):
    recommendations = service.get_routing_recommendations(amount, urgency)
    return {
        "success": True,
        "recommendations": recommendations.to_dict(),
        "message": "Routing recommendations retrieved successfully",
    }

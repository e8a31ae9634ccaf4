"""
SmartRoute - API Request Models

Pydantic models for request validation. Responses are built from the core
models' `to_dict()` inside the success envelope.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import Priority, Urgency


class CustomerPreferencesInput(BaseModel):
    """Per-payment customer override."""
    network: Optional[str] = Field(default=None, min_length=1)

    model_config = ConfigDict(extra="forbid")


class OptimalRoutingRequest(BaseModel):
    """Request for the optimal network of one payment."""
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    currency: str = Field(..., min_length=1, max_length=10)
    urgency: Urgency = Urgency.NORMAL
    merchant_id: Optional[str] = Field(default=None, min_length=1, max_length=255)
    customer_preferences: Optional[CustomerPreferencesInput] = None


class PreferencesUpdateRequest(BaseModel):
    """Partial update of a merchant's routing preferences."""
    priority: Optional[Priority] = None
    preferred_networks: Optional[List[str]] = None
    max_gas_price_gwei: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    min_reliability: Optional[float] = Field(default=None, ge=0, le=1)

    model_config = ConfigDict(extra="forbid")


class SimulationScenarioInput(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    urgency: Urgency = Urgency.NORMAL


class SimulateRequest(BaseModel):
    """Batch of what-if scenarios."""
    scenarios: List[SimulationScenarioInput] = Field(..., min_length=1, max_length=100)

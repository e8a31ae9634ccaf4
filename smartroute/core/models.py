"""
SmartRoute - Core Data Models

Network, preference and decision records shared by the monitor and the
routing engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================
# Enums
# ============================================================

class SpeedClass(str, Enum):
    """Coarse confirmation-latency rating of a network."""
    VERY_FAST = "very-fast"
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"

    @property
    def rank(self) -> int:
        """Ordering used by speed-priority overrides (higher is faster)."""
        return _SPEED_RANK[self]


_SPEED_RANK = {
    SpeedClass.VERY_FAST: 4,
    SpeedClass.FAST: 3,
    SpeedClass.MEDIUM: 2,
    SpeedClass.SLOW: 1,
}


class Urgency(str, Enum):
    """Payment urgency supplied by the caller."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Priority(str, Enum):
    """Merchant routing priority."""
    COST = "cost"
    SPEED = "speed"
    BALANCED = "balanced"


class TimeRange(str, Enum):
    """Analytics look-back windows."""
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def seconds(self) -> int:
        return _TIME_RANGE_SECONDS[self]


_TIME_RANGE_SECONDS = {
    TimeRange.DAY: 24 * 60 * 60,
    TimeRange.WEEK: 7 * 24 * 60 * 60,
    TimeRange.MONTH: 30 * 24 * 60 * 60,
}


# ============================================================
# Networks
# ============================================================

@dataclass(frozen=True)
class SpeedTier:
    """Gas prices strictly below `below_gwei` map to `speed`."""
    below_gwei: float
    speed: SpeedClass


@dataclass(frozen=True)
class NetworkDescriptor:
    """Static description of a monitored network."""
    key: str
    display_name: str
    chain_id: int
    native_currency: str
    rpc_url: str
    explorer_url: str
    initial_speed: SpeedClass = SpeedClass.MEDIUM
    initial_reliability: float = 0.95
    # Checked in order; the first matching tier wins
    speed_tiers: Tuple[SpeedTier, ...] = ()
    default_speed: SpeedClass = SpeedClass.MEDIUM
    high_fee: bool = False


@dataclass(frozen=True)
class NetworkState:
    """
    Live metrics for one network.

    Instances are never mutated; the monitor swaps in a new record per update
    so readers cannot observe a half-written state.
    """
    key: str
    gas_price_wei: Optional[int] = None
    gas_price_gwei: Optional[float] = None
    estimated_cost_usd: Optional[float] = None
    speed: SpeedClass = SpeedClass.MEDIUM
    reliability: float = 0.95
    last_updated: Optional[float] = None
    last_error: Optional[str] = None

    @classmethod
    def initial(cls, descriptor: NetworkDescriptor) -> "NetworkState":
        return cls(
            key=descriptor.key,
            speed=descriptor.initial_speed,
            reliability=descriptor.initial_reliability,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            # Wei values overflow JSON number precision
            "gas_price_wei": str(self.gas_price_wei) if self.gas_price_wei is not None else None,
            "gas_price_gwei": self.gas_price_gwei,
            "estimated_cost_usd": self.estimated_cost_usd,
            "speed": self.speed.value,
            "reliability": round(self.reliability, 4),
            "last_updated": _iso(self.last_updated),
            "last_error": self.last_error,
        }


# ============================================================
# Preferences
# ============================================================

@dataclass(frozen=True)
class RoutingPreferences:
    """Per-merchant routing preferences."""
    priority: Priority = Priority.BALANCED
    preferred_networks: Tuple[str, ...] = ()
    max_gas_price_gwei: Optional[float] = None
    min_reliability: float = 0.8

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority.value,
            "preferred_networks": list(self.preferred_networks),
            "max_gas_price_gwei": self.max_gas_price_gwei,
            "min_reliability": self.min_reliability,
        }


@dataclass(frozen=True)
class CustomerPreferences:
    """Per-call customer override."""
    network: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"network": self.network}


@dataclass(frozen=True)
class AppliedPreferences:
    """Snapshot of the preferences in effect for one decision."""
    merchant: Optional[RoutingPreferences] = None
    customer: Optional[CustomerPreferences] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "merchant": self.merchant.to_dict() if self.merchant else None,
            "customer": self.customer.to_dict() if self.customer else None,
        }


# ============================================================
# Scoring & Decisions
# ============================================================

@dataclass(frozen=True)
class ScoredNetwork:
    """A fresh network with its total score and breakdown."""
    state: NetworkState
    score: float
    breakdown: Dict[str, float] = field(default_factory=dict, compare=False)

    @property
    def key(self) -> str:
        return self.state.key

    @property
    def cost_usd(self) -> float:
        return self.state.estimated_cost_usd or 0.0


@dataclass(frozen=True)
class Savings:
    """Savings of the selected network against the priciest alternative."""
    amount_usd: float = 0.0
    percentage: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "amount_usd": round(self.amount_usd, 8),
            "percentage": round(self.percentage, 4),
        }


@dataclass(frozen=True)
class RoutingDecision:
    """The recorded outcome of one routing request."""
    routing_id: str
    merchant_id: Optional[str]
    timestamp: float
    payment_amount: float
    currency: str
    urgency: Urgency
    selected_network: str
    alternative_networks: Tuple[str, ...]
    estimated_savings_usd: float
    estimated_savings_percent: float
    applied_preferences: AppliedPreferences
    is_fallback: bool = False
    estimated_cost_usd: Optional[float] = None
    selected_speed: SpeedClass = SpeedClass.MEDIUM
    estimated_time: str = "Unknown"
    recommendation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routing_id": self.routing_id,
            "merchant_id": self.merchant_id,
            "timestamp": _iso(self.timestamp),
            "payment_amount": self.payment_amount,
            "currency": self.currency,
            "urgency": self.urgency.value,
            "selected_network": self.selected_network,
            "alternative_networks": list(self.alternative_networks),
            "estimated_savings_usd": round(self.estimated_savings_usd, 8),
            "estimated_savings_percent": round(self.estimated_savings_percent, 4),
            "applied_preferences": self.applied_preferences.to_dict(),
            "is_fallback": self.is_fallback,
            "estimated_cost_usd": self.estimated_cost_usd,
            "selected_speed": self.selected_speed.value,
            "estimated_time": self.estimated_time,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class RoutingRecommendation:
    """Preference-free recommendation for an amount and urgency."""
    optimal: NetworkState
    alternatives: Tuple[NetworkState, ...]
    savings: Savings
    recommendation: str
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimal": self.optimal.to_dict(),
            "alternatives": [a.to_dict() for a in self.alternatives],
            "savings": self.savings.to_dict(),
            "recommendation": self.recommendation,
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class SimulationScenario:
    amount: float
    urgency: Urgency = Urgency.NORMAL


@dataclass(frozen=True)
class SimulationResult:
    """Would-be optimal network for one scenario."""
    scenario: SimulationScenario
    optimal_network: str
    estimated_cost_usd: Optional[float]
    estimated_time: str
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": {
                "amount": self.scenario.amount,
                "urgency": self.scenario.urgency.value,
            },
            "optimal_network": self.optimal_network,
            "estimated_cost_usd": self.estimated_cost_usd,
            "estimated_time": self.estimated_time,
            "is_fallback": self.is_fallback,
        }


# ============================================================
# Analytics
# ============================================================

@dataclass(frozen=True)
class AnalyticsRecommendation:
    type: str
    message: str
    impact: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "message": self.message, "impact": self.impact}


@dataclass
class AnalyticsSummary:
    """Aggregated routing history for one merchant and time range."""
    merchant_id: str
    time_range: TimeRange
    total_payments: int = 0
    total_savings_usd: float = 0.0
    average_savings_usd: float = 0.0
    network_usage: Dict[str, int] = field(default_factory=dict)
    recommendations: List[AnalyticsRecommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "merchant_id": self.merchant_id,
            "time_range": self.time_range.value,
            "total_payments": self.total_payments,
            "total_savings_usd": round(self.total_savings_usd, 8),
            "average_savings_usd": round(self.average_savings_usd, 8),
            "network_usage": dict(self.network_usage),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass(frozen=True)
class NetworkStatus:
    """Monitor status for the status endpoint."""
    networks: Tuple[Dict[str, Any], ...]
    last_update: float
    monitoring: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "networks": list(self.networks),
            "last_update": _iso(self.last_update),
            "monitoring": self.monitoring,
        }


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()

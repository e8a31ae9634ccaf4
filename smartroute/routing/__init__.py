"""
SmartRoute - Routing Module

Network selection for payments:
- Weighted scoring of fresh networks
- Merchant priorities and preferred networks
- Customer overrides
- Bounded decision history with per-merchant analytics
"""

from .decision_log import DecisionLog, parse_time_range
from .engine import (
    RoutingEngine,
    calculate_savings,
    cheapest_first,
    generate_routing_id,
    parse_urgency,
)
from .preferences import PreferenceStore
from .scoring import (
    FRESHNESS_WINDOW_SECONDS,
    MIN_ROUTING_RELIABILITY,
    SPEED_SCORES,
    PriorityStrategy,
    CostPriority,
    SpeedPriority,
    BalancedPriority,
    cost_score,
    fresh_states,
    get_priority_strategy,
    is_fresh,
    is_recent,
    rank_networks,
    score_network,
)

__all__ = [
    "DecisionLog",
    "parse_time_range",
    "RoutingEngine",
    "calculate_savings",
    "cheapest_first",
    "generate_routing_id",
    "parse_urgency",
    "PreferenceStore",
    "FRESHNESS_WINDOW_SECONDS",
    "MIN_ROUTING_RELIABILITY",
    "SPEED_SCORES",
    "PriorityStrategy",
    "CostPriority",
    "SpeedPriority",
    "BalancedPriority",
    "cost_score",
    "fresh_states",
    "get_priority_strategy",
    "is_fresh",
    "is_recent",
    "rank_networks",
    "score_network",
]

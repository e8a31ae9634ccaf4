"""
SmartRoute Core Module

Data models, error taxonomy and configuration shared by every layer.
"""

from .models import (
    # Enums
    SpeedClass,
    Urgency,
    Priority,
    TimeRange,

    # Networks
    SpeedTier,
    NetworkDescriptor,
    NetworkState,

    # Preferences
    RoutingPreferences,
    CustomerPreferences,
    AppliedPreferences,

    # Decisions
    ScoredNetwork,
    Savings,
    RoutingDecision,
    RoutingRecommendation,
    SimulationScenario,
    SimulationResult,

    # Analytics
    AnalyticsRecommendation,
    AnalyticsSummary,
    NetworkStatus,
)

from .errors import (
    ErrorType,
    ErrorDetails,
    SmartRouteException,
    InfraError,
    RpcTimeoutError,
    RpcResponseError,
    PriceUnavailableError,
    SemanticError,
    InvalidRequestError,
    UnknownNetworkError,
    ConfigurationError,
    FallbackNotConfiguredError,
)

from .config import (
    Settings,
    DEFAULT_NETWORKS,
    STANDARD_TRANSFER_GAS,
)

__all__ = [
    "SpeedClass",
    "Urgency",
    "Priority",
    "TimeRange",
    "SpeedTier",
    "NetworkDescriptor",
    "NetworkState",
    "RoutingPreferences",
    "CustomerPreferences",
    "AppliedPreferences",
    "ScoredNetwork",
    "Savings",
    "RoutingDecision",
    "RoutingRecommendation",
    "SimulationScenario",
    "SimulationResult",
    "AnalyticsRecommendation",
    "AnalyticsSummary",
    "NetworkStatus",
    "ErrorType",
    "ErrorDetails",
    "SmartRouteException",
    "InfraError",
    "RpcTimeoutError",
    "RpcResponseError",
    "PriceUnavailableError",
    "SemanticError",
    "InvalidRequestError",
    "UnknownNetworkError",
    "ConfigurationError",
    "FallbackNotConfiguredError",
    "Settings",
    "DEFAULT_NETWORKS",
    "STANDARD_TRANSFER_GAS",
]

"""
SmartRoute - Smart Routing Service

Facade wiring the network monitor, routing engine, preference store and
decision log behind the external operations used by the HTTP layer.
"""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .core.config import Settings
from .core.models import (
    AnalyticsSummary,
    CustomerPreferences,
    NetworkStatus,
    RoutingDecision,
    RoutingPreferences,
    RoutingRecommendation,
    SimulationResult,
    SimulationScenario,
    TimeRange,
    Urgency,
)
from .monitoring.fee_client import BaseFeeClient, FeeClientConfig, JsonRpcFeeClient
from .monitoring.monitor import NetworkMonitor
from .monitoring.pricing import BasePriceOracle, StaticPriceOracle
from .monitoring.speed import estimated_time
from .observability.logging import get_logger
from .observability.metrics import MetricsCollector, get_metrics
from .observability.tracing import TracingManager, get_tracing_manager
from .routing.decision_log import DecisionLog
from .routing.engine import RoutingEngine
from .routing.preferences import PreferenceStore


logger = get_logger(__name__)


class SmartRoutingService:
    """
    Smart routing for crypto payments.

    Usage:
        service = create_service(Settings.from_env())
        await service.start()
        decision = service.get_optimal_routing(50, "USDC", urgency="normal")
        await service.stop()
    """

    def __init__(
        self,
        settings: Settings,
        fee_client: BaseFeeClient,
        price_oracle: BasePriceOracle,
        metrics: Optional[MetricsCollector] = None,
        tracing: Optional[TracingManager] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings.validate()

        self.settings = settings
        self.fee_client = fee_client
        self.clock = clock
        metrics = metrics or get_metrics()
        self.metrics = metrics
        tracing = tracing or get_tracing_manager()

        self.monitor = NetworkMonitor(
            settings,
            fee_client,
            price_oracle,
            metrics=metrics,
            tracing=tracing,
            clock=clock,
        )
        self.preferences = PreferenceStore(known_networks=settings.network_keys())
        self.decision_log = DecisionLog(
            capacity=settings.decision_log_capacity,
            high_fee_networks=[n.key for n in settings.networks if n.high_fee],
            clock=clock,
        )
        self.engine = RoutingEngine(
            settings,
            self.monitor,
            self.preferences,
            self.decision_log,
            metrics=metrics,
            tracing=tracing,
            clock=clock,
        )

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    async def start(self):
        await self.monitor.start()

    async def stop(self, grace_seconds: float = 0.0):
        await self.monitor.stop(grace_seconds=grace_seconds)
        await self.fee_client.close()

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------

    def get_optimal_routing(
        self,
        amount: float,
        currency: str,
        urgency: Union[Urgency, str] = Urgency.NORMAL,
        customer_preferences: Union[CustomerPreferences, Dict[str, Any], None] = None,
        merchant_id: Optional[str] = None,
    ) -> RoutingDecision:
        return self.engine.route(
            amount,
            currency,
            urgency=urgency,
            merchant_id=merchant_id,
            customer_preferences=customer_preferences,
        )

    def get_network_status(self) -> NetworkStatus:
        """Current state of every configured network."""
        snapshot = self.monitor.snapshot()
        networks = []
        for descriptor in self.monitor.descriptors:
            entry = snapshot[descriptor.key].to_dict()
            entry["display_name"] = descriptor.display_name
            entry["chain_id"] = descriptor.chain_id
            entry["native_currency"] = descriptor.native_currency
            entry["estimated_time"] = estimated_time(snapshot[descriptor.key].speed)
            networks.append(entry)

        return NetworkStatus(
            networks=tuple(networks),
            last_update=self.clock(),
            monitoring=self.monitor.is_running,
        )

    def get_routing_analytics(
        self,
        merchant_id: str,
        time_range: Union[TimeRange, str] = TimeRange.WEEK,
    ) -> AnalyticsSummary:
        return self.decision_log.analytics(merchant_id, time_range)

    def set_merchant_preferences(self, merchant_id: str, **partial: Any) -> RoutingPreferences:
        preferences = self.preferences.set(merchant_id, **partial)
        logger.info(
            "Merchant preferences updated",
            merchant_id=merchant_id,
            fields=sorted(partial),
        )
        return preferences

    def get_merchant_preferences(self, merchant_id: str) -> RoutingPreferences:
        return self.preferences.get(merchant_id)

    def simulate_routing(
        self,
        scenarios: Sequence[Union[SimulationScenario, Dict[str, Any]]],
    ) -> List[SimulationResult]:
        return self.engine.simulate(scenarios)

    def get_routing_recommendations(
        self,
        amount: float,
        urgency: Union[Urgency, str] = Urgency.NORMAL,
    ) -> RoutingRecommendation:
        return self.engine.recommend(amount, urgency)


def create_service(
    settings: Optional[Settings] = None,
    metrics: Optional[MetricsCollector] = None,
    tracing: Optional[TracingManager] = None,
) -> SmartRoutingService:
    """Build a service backed by JSON-RPC endpoints and the static price table."""
    settings = settings or Settings.from_env()
    fee_client = JsonRpcFeeClient(FeeClientConfig(timeout=settings.poll_timeout_seconds))
    return SmartRoutingService(
        settings,
        fee_client,
        StaticPriceOracle(),
        metrics=metrics,
        tracing=tracing,
    )

"""
SmartRoute - Routing Engine

Turns a payment intent into a network choice:
1. Validate the request
2. Keep the fresh networks from the monitor snapshot (fallback network if none)
3. Score and rank them
4. Apply merchant preferences (preferred networks, then priority)
5. Apply the customer override (final)
6. Attach alternatives, savings and a recommendation; record the decision

Routing never waits on a poll and never fails for lack of fresh data.
"""

import math
import time
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..core.config import Settings
from ..core.errors import FallbackNotConfiguredError, InvalidRequestError, UnknownNetworkError
from ..core.models import (
    AppliedPreferences,
    CustomerPreferences,
    NetworkState,
    RoutingDecision,
    RoutingPreferences,
    RoutingRecommendation,
    Savings,
    ScoredNetwork,
    SimulationResult,
    SimulationScenario,
    Urgency,
)
from ..monitoring.monitor import NetworkMonitor
from ..monitoring.speed import estimated_time
from ..observability.logging import bind_context, get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import TracingManager, get_tracing_manager
from .decision_log import DecisionLog
from .preferences import PreferenceStore
from .scoring import (
    LARGE_PAYMENT_USD,
    MIN_ROUTING_RELIABILITY,
    SMALL_PAYMENT_USD,
    fresh_states,
    get_priority_strategy,
    is_recent,
    rank_networks,
)


logger = get_logger(__name__)

# Customer overrides accept a slightly less reliable network than merchants
CUSTOMER_OVERRIDE_MIN_RELIABILITY = 0.7
MAX_ALTERNATIVES = 3


class RoutingEngine:
    """Scores networks and records routing decisions."""

    def __init__(
        self,
        settings: Settings,
        monitor: NetworkMonitor,
        preferences: PreferenceStore,
        decision_log: DecisionLog,
        metrics: Optional[MetricsCollector] = None,
        tracing: Optional[TracingManager] = None,
        clock: Callable[[], float] = time.time,
    ):
        if settings.default_network not in settings.network_map:
            raise FallbackNotConfiguredError(settings.default_network)

        self.settings = settings
        self.monitor = monitor
        self.preferences = preferences
        self.decision_log = decision_log
        self.metrics = metrics or get_metrics()
        self.tracing = tracing or get_tracing_manager()
        self.clock = clock

    # ------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------

    def route(
        self,
        amount: float,
        currency: str,
        urgency: Union[Urgency, str, None] = Urgency.NORMAL,
        merchant_id: Optional[str] = None,
        customer_preferences: Union[CustomerPreferences, Dict[str, Any], None] = None,
    ) -> RoutingDecision:
        """
        Route a payment and record the decision.

        Raises:
            InvalidRequestError: bad amount, currency, urgency or customer preference
            UnknownNetworkError: customer names a network that is not configured
        """
        amount = self._validate_amount(amount)
        currency = self._validate_currency(currency)
        urgency = parse_urgency(urgency)
        customer = self._validate_customer(customer_preferences)

        merchant = None
        if merchant_id and self.preferences.has(merchant_id):
            merchant = self.preferences.get(merchant_id)

        with self.tracing.start_span(
            "routing.route",
            attributes={
                "payment.amount": amount,
                "payment.currency": currency,
                "payment.urgency": urgency.value,
                "merchant.id": merchant_id,
            },
        ) as span:
            snapshot = self.monitor.snapshot()
            now = self.clock()
            ranked = rank_networks(
                fresh_states(snapshot, now, self.settings.freshness_window_seconds),
                amount,
                urgency,
            )

            if ranked:
                decision = self._decide(
                    ranked, snapshot, now, amount, currency, urgency, merchant_id, merchant, customer
                )
            else:
                decision = self._fallback_decision(
                    snapshot, amount, currency, urgency, merchant_id, merchant, customer
                )

            span.set_attribute("routing.selected_network", decision.selected_network)
            span.set_attribute("routing.fallback", decision.is_fallback)

        size = self.decision_log.record(decision)
        self.metrics.record_routing_decision(decision.selected_network, decision.is_fallback)
        self.metrics.set_decision_log_size(size)

        with bind_context(routing_id=decision.routing_id, merchant_id=merchant_id or ""):
            logger.info(
                "Payment routed",
                selected_network=decision.selected_network,
                fallback=decision.is_fallback,
                savings_usd=round(decision.estimated_savings_usd, 6),
            )
        return decision

    def _decide(
        self,
        ranked: List[ScoredNetwork],
        snapshot: Mapping[str, NetworkState],
        now: float,
        amount: float,
        currency: str,
        urgency: Urgency,
        merchant_id: Optional[str],
        merchant: Optional[RoutingPreferences],
        customer: Optional[CustomerPreferences],
    ) -> RoutingDecision:
        selected = ranked[0].state

        if merchant is not None:
            override = self._apply_merchant_preferences(ranked, merchant)
            if override is not None:
                selected = override.state

        if customer is not None and customer.network:
            chosen = snapshot.get(customer.network)
            if chosen is not None and self._customer_may_select(chosen, now):
                selected = chosen

        others = [s.state for s in ranked if s.key != selected.key]
        alternatives = cheapest_first(others)[:MAX_ALTERNATIVES]
        savings = calculate_savings(selected, others)

        return RoutingDecision(
            routing_id=generate_routing_id(),
            merchant_id=merchant_id,
            timestamp=self.clock(),
            payment_amount=amount,
            currency=currency,
            urgency=urgency,
            selected_network=selected.key,
            alternative_networks=tuple(s.key for s in alternatives),
            estimated_savings_usd=savings.amount_usd,
            estimated_savings_percent=savings.percentage,
            applied_preferences=AppliedPreferences(merchant=merchant, customer=customer),
            is_fallback=False,
            estimated_cost_usd=selected.estimated_cost_usd,
            selected_speed=selected.speed,
            estimated_time=estimated_time(selected.speed),
            recommendation=self.recommendation_text(selected, amount),
        )

    def _fallback_decision(
        self,
        snapshot: Mapping[str, NetworkState],
        amount: float,
        currency: str,
        urgency: Urgency,
        merchant_id: Optional[str],
        merchant: Optional[RoutingPreferences],
        customer: Optional[CustomerPreferences],
    ) -> RoutingDecision:
        state = self._fallback_state(snapshot)
        logger.warning(
            "No fresh network data, routing to default network",
            network=state.key,
            merchant_id=merchant_id,
        )
        return RoutingDecision(
            routing_id=generate_routing_id(),
            merchant_id=merchant_id,
            timestamp=self.clock(),
            payment_amount=amount,
            currency=currency,
            urgency=urgency,
            selected_network=state.key,
            alternative_networks=(),
            estimated_savings_usd=0.0,
            estimated_savings_percent=0.0,
            applied_preferences=AppliedPreferences(merchant=merchant, customer=customer),
            is_fallback=True,
            estimated_cost_usd=state.estimated_cost_usd,
            selected_speed=state.speed,
            estimated_time=estimated_time(state.speed),
            recommendation=self.fallback_text(state),
        )

    def _fallback_state(self, snapshot: Mapping[str, NetworkState]) -> NetworkState:
        key = self.settings.default_network
        state = snapshot.get(key)
        if state is None:
            state = NetworkState.initial(self.settings.network_map[key])
        return state

    def _customer_may_select(self, state: NetworkState, now: float) -> bool:
        """
        Customer overrides need current data but accept reliability down to
        the customer floor rather than the routing minimum.
        """
        if not is_recent(state, now, self.settings.freshness_window_seconds):
            return False
        return state.reliability > CUSTOMER_OVERRIDE_MIN_RELIABILITY

    def _apply_merchant_preferences(
        self,
        ranked: List[ScoredNetwork],
        merchant: RoutingPreferences,
    ) -> Optional[ScoredNetwork]:
        """Merchant-level override: preferred network first, then priority."""
        eligible = [s for s in ranked if _within_ceilings(s.state, merchant)]

        if merchant.preferred_networks:
            preferred = _find(eligible, merchant.preferred_networks[0])
            if preferred is not None and preferred.state.reliability > MIN_ROUTING_RELIABILITY:
                return preferred

        return get_priority_strategy(merchant.priority).select(eligible or ranked)

    # ------------------------------------------------------------
    # Preference-free queries (never recorded)
    # ------------------------------------------------------------

    def rank(self, amount: float, urgency: Union[Urgency, str, None] = Urgency.NORMAL) -> List[ScoredNetwork]:
        """Fresh networks scored for a payment, best first."""
        amount = self._validate_amount(amount)
        urgency = parse_urgency(urgency)
        return self._rank(self.monitor.snapshot(), amount, urgency)

    def _rank(
        self,
        snapshot: Mapping[str, NetworkState],
        amount: float,
        urgency: Urgency,
    ) -> List[ScoredNetwork]:
        states = fresh_states(snapshot, self.clock(), self.settings.freshness_window_seconds)
        return rank_networks(states, amount, urgency)

    def recommend(
        self,
        amount: float,
        urgency: Union[Urgency, str, None] = Urgency.NORMAL,
    ) -> RoutingRecommendation:
        """Optimal network, cheaper alternatives and savings, without preferences."""
        amount = self._validate_amount(amount)
        urgency = parse_urgency(urgency)

        snapshot = self.monitor.snapshot()
        ranked = self._rank(snapshot, amount, urgency)
        if not ranked:
            state = self._fallback_state(snapshot)
            return RoutingRecommendation(
                optimal=state,
                alternatives=(),
                savings=Savings(),
                recommendation=self.fallback_text(state),
                is_fallback=True,
            )

        optimal = ranked[0].state
        others = [s.state for s in ranked[1:]]
        return RoutingRecommendation(
            optimal=optimal,
            alternatives=tuple(cheapest_first(others)[:MAX_ALTERNATIVES]),
            savings=calculate_savings(optimal, others),
            recommendation=self.recommendation_text(optimal, amount),
        )

    def simulate(
        self,
        scenarios: Sequence[Union[SimulationScenario, Dict[str, Any]]],
    ) -> List[SimulationResult]:
        """Would-be optimal network per scenario; nothing is recorded."""
        parsed = [self._parse_scenario(s, i) for i, s in enumerate(scenarios)]
        snapshot = self.monitor.snapshot()

        results = []
        for scenario in parsed:
            ranked = self._rank(snapshot, scenario.amount, scenario.urgency)
            if ranked:
                state, fallback = ranked[0].state, False
            else:
                state, fallback = self._fallback_state(snapshot), True

            results.append(SimulationResult(
                scenario=scenario,
                optimal_network=state.key,
                estimated_cost_usd=state.estimated_cost_usd,
                estimated_time=estimated_time(state.speed),
                is_fallback=fallback,
            ))
        return results

    def _parse_scenario(
        self,
        scenario: Union[SimulationScenario, Dict[str, Any]],
        index: int,
    ) -> SimulationScenario:
        if isinstance(scenario, SimulationScenario):
            amount, urgency = scenario.amount, scenario.urgency
        elif isinstance(scenario, dict):
            if "amount" not in scenario:
                raise InvalidRequestError(
                    f"Scenario {index} is missing an amount", param=f"scenarios[{index}].amount"
                )
            amount, urgency = scenario["amount"], scenario.get("urgency")
        else:
            raise InvalidRequestError(
                f"Scenario {index} must be an object with amount and urgency",
                param=f"scenarios[{index}]",
            )
        return SimulationScenario(
            amount=self._validate_amount(amount),
            urgency=parse_urgency(urgency),
        )

    # ------------------------------------------------------------
    # Text
    # ------------------------------------------------------------

    def _display_name(self, key: str) -> str:
        descriptor = self.settings.network_map.get(key)
        return descriptor.display_name if descriptor else key

    def recommendation_text(self, state: NetworkState, amount: float) -> str:
        name = self._display_name(state.key)
        if amount < SMALL_PAYMENT_USD:
            return f"For small payments like ${amount:,.2f}, {name} offers the best value with ultra-low fees."
        if amount > LARGE_PAYMENT_USD:
            return f"For large payments like ${amount:,.2f}, {name} provides the best balance of cost and reliability."
        return f"{name} is optimal for this payment amount with {state.speed.value} confirmation times."

    def fallback_text(self, state: NetworkState) -> str:
        name = self._display_name(state.key)
        return f"Live network data is unavailable; routing through {name}, the default network."

    # ------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------

    def _validate_amount(self, amount: Any) -> float:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidRequestError("amount must be a number", param="amount", value=amount)
        if not math.isfinite(amount) or amount <= 0:
            raise InvalidRequestError("amount must be a positive number", param="amount", value=amount)
        return float(amount)

    def _validate_currency(self, currency: Any) -> str:
        if not isinstance(currency, str) or currency.upper() not in self.settings.supported_currencies:
            raise InvalidRequestError(
                f"currency must be one of: {', '.join(self.settings.supported_currencies)}",
                param="currency",
                value=currency,
            )
        return currency.upper()

    def _validate_customer(
        self,
        customer: Union[CustomerPreferences, Dict[str, Any], None],
    ) -> Optional[CustomerPreferences]:
        if customer is None:
            return None

        if isinstance(customer, dict):
            unknown = set(customer) - {"network"}
            if unknown:
                raise InvalidRequestError(
                    f"Unknown customer preference fields: {', '.join(sorted(unknown))}",
                    param="customer_preferences",
                )
            customer = CustomerPreferences(network=customer.get("network"))
        elif not isinstance(customer, CustomerPreferences):
            raise InvalidRequestError(
                "customer_preferences must be an object", param="customer_preferences"
            )

        network = customer.network
        if network is not None:
            if not isinstance(network, str) or not network:
                raise InvalidRequestError(
                    "customer_preferences.network must be a network key",
                    param="customer_preferences.network",
                    value=network,
                )
            if network not in self.settings.network_map:
                raise UnknownNetworkError(network, param="customer_preferences.network")
        return customer


def parse_urgency(urgency: Union[Urgency, str, None]) -> Urgency:
    if urgency is None:
        return Urgency.NORMAL
    if isinstance(urgency, Urgency):
        return urgency
    try:
        return Urgency(urgency)
    except ValueError:
        raise InvalidRequestError(
            "urgency must be one of: low, normal, high", param="urgency", value=urgency
        )


def generate_routing_id() -> str:
    return f"route_{uuid.uuid4().hex[:16]}"


def cheapest_first(states: Iterable[NetworkState]) -> List[NetworkState]:
    return sorted(states, key=lambda s: (s.estimated_cost_usd or 0.0, s.key))


def calculate_savings(selected: NetworkState, others: Sequence[NetworkState]) -> Savings:
    """Savings against the most expensive other fresh network, never negative."""
    if not others:
        return Savings()

    most_expensive = max(s.estimated_cost_usd or 0.0 for s in others)
    selected_cost = selected.estimated_cost_usd or 0.0
    if most_expensive <= 0 or most_expensive <= selected_cost:
        return Savings()

    amount = most_expensive - selected_cost
    return Savings(amount_usd=amount, percentage=amount / most_expensive * 100)


def _find(candidates: Sequence[ScoredNetwork], key: str) -> Optional[ScoredNetwork]:
    for candidate in candidates:
        if candidate.key == key:
            return candidate
    return None


def _within_ceilings(state: NetworkState, merchant: RoutingPreferences) -> bool:
    if state.reliability < merchant.min_reliability:
        return False
    if merchant.max_gas_price_gwei is not None and state.gas_price_gwei is not None:
        return state.gas_price_gwei <= merchant.max_gas_price_gwei
    return True

"""
SmartRoute - Network Scoring

Scores fresh networks for a payment and implements the merchant priority
overrides.

Base score per network:
- Cost (40%): max(0, 100 - cost_usd * 1000), nothing above $0.10
- Speed (30%): very-fast 100, fast 80, medium 60, slow 40
- Reliability (20%): reliability * 100

Adjustments:
- High urgency: + 10% of the speed score
- Payments under $100: + 20% of the cost score
- Payments over $1000: + 20% of the reliability score

Ranking is by score descending, then network key ascending, so identical
inputs always produce the identical ranking.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional, Sequence

from ..core.models import NetworkState, Priority, ScoredNetwork, SpeedClass, Urgency


FRESHNESS_WINDOW_SECONDS = 60.0
MIN_ROUTING_RELIABILITY = 0.8

SPEED_SCORES = {
    SpeedClass.VERY_FAST: 100.0,
    SpeedClass.FAST: 80.0,
    SpeedClass.MEDIUM: 60.0,
    SpeedClass.SLOW: 40.0,
}

COST_WEIGHT = 0.4
SPEED_WEIGHT = 0.3
RELIABILITY_WEIGHT = 0.2
URGENCY_WEIGHT = 0.1
AMOUNT_ADJUSTMENT_WEIGHT = 0.2

SMALL_PAYMENT_USD = 100
LARGE_PAYMENT_USD = 1000


def is_recent(
    state: NetworkState,
    now: float,
    window_seconds: float = FRESHNESS_WINDOW_SECONDS,
) -> bool:
    """Whether the last successful update is younger than the window."""
    if state.last_updated is None:
        return False
    return now - state.last_updated < window_seconds


def is_fresh(
    state: NetworkState,
    now: float,
    window_seconds: float = FRESHNESS_WINDOW_SECONDS,
) -> bool:
    """
    Whether a network state may be used for routing.

    Fresh means it has been updated successfully, the update is younger than
    the freshness window and reliability is above the routing minimum.
    """
    if not is_recent(state, now, window_seconds):
        return False
    return state.reliability > MIN_ROUTING_RELIABILITY


def fresh_states(
    snapshot: Mapping[str, NetworkState],
    now: float,
    window_seconds: float = FRESHNESS_WINDOW_SECONDS,
) -> List[NetworkState]:
    """Fresh subset of a snapshot, ordered by network key."""
    return [
        snapshot[key]
        for key in sorted(snapshot)
        if is_fresh(snapshot[key], now, window_seconds)
    ]


def cost_score(cost_usd: float) -> float:
    return max(0.0, 100.0 - cost_usd * 1000)


def score_network(state: NetworkState, amount: float, urgency: Urgency) -> ScoredNetwork:
    """Score one network for a payment."""
    breakdown = {}

    cost = cost_score(state.estimated_cost_usd or 0.0)
    speed = SPEED_SCORES[state.speed]
    reliability = state.reliability * 100

    breakdown["cost_component"] = cost * COST_WEIGHT
    breakdown["speed_component"] = speed * SPEED_WEIGHT
    breakdown["reliability_component"] = reliability * RELIABILITY_WEIGHT

    urgency_bonus = speed * URGENCY_WEIGHT if urgency == Urgency.HIGH else 0.0
    breakdown["urgency_bonus"] = urgency_bonus

    amount_adjustment = 0.0
    if amount < SMALL_PAYMENT_USD:
        amount_adjustment = cost * AMOUNT_ADJUSTMENT_WEIGHT
    elif amount > LARGE_PAYMENT_USD:
        amount_adjustment = reliability * AMOUNT_ADJUSTMENT_WEIGHT
    breakdown["amount_adjustment"] = amount_adjustment

    return ScoredNetwork(
        state=state,
        score=sum(breakdown.values()),
        breakdown=breakdown,
    )


def rank_networks(
    states: Iterable[NetworkState],
    amount: float,
    urgency: Urgency,
) -> List[ScoredNetwork]:
    """Score and sort networks, best first."""
    scored = [score_network(state, amount, urgency) for state in states]
    scored.sort(key=lambda s: (-s.score, s.key))
    return scored


# ============================================================
# Merchant priority overrides
# ============================================================

class PriorityStrategy(ABC):
    """Picks a network for a merchant priority, or None to keep the ranking."""

    @abstractmethod
    def select(self, ranked: Sequence[ScoredNetwork]) -> Optional[ScoredNetwork]:
        """
        Select from ranked candidates (best score first).

        Returns None when the strategy makes no override.
        """
        pass


class CostPriority(PriorityStrategy):
    """Cheapest network; the better-ranked one wins a cost tie."""

    def select(self, ranked: Sequence[ScoredNetwork]) -> Optional[ScoredNetwork]:
        if not ranked:
            return None
        return min(ranked, key=lambda s: s.cost_usd)


class SpeedPriority(PriorityStrategy):
    """Fastest speed class; the first found in ranking order wins a tie."""

    def select(self, ranked: Sequence[ScoredNetwork]) -> Optional[ScoredNetwork]:
        fastest = None
        for candidate in ranked:
            if fastest is None or candidate.state.speed.rank > fastest.state.speed.rank:
                fastest = candidate
        return fastest


class BalancedPriority(PriorityStrategy):
    """Keeps the base ranking."""

    def select(self, ranked: Sequence[ScoredNetwork]) -> Optional[ScoredNetwork]:
        return None


def get_priority_strategy(priority: Priority) -> PriorityStrategy:
    """Factory function to get a priority strategy instance."""
    strategies = {
        Priority.COST: CostPriority(),
        Priority.SPEED: SpeedPriority(),
        Priority.BALANCED: BalancedPriority(),
    }
    return strategies.get(priority, BalancedPriority())

"""
SmartRoute - Decision Log & Analytics

Bounded in-memory history of routing decisions shared by all merchants,
plus per-merchant aggregation:
- Total and average savings
- Network usage counts
- Rule-based recommendations (expensive or slow network usage)

History is lost on restart; durable storage belongs to the caller.
"""

import time
from collections import Counter, deque
from threading import Lock
from typing import Callable, Deque, Iterable, List, Optional, Union

from ..core.errors import InvalidRequestError
from ..core.models import (
    AnalyticsRecommendation,
    AnalyticsSummary,
    RoutingDecision,
    SpeedClass,
    TimeRange,
)


DEFAULT_CAPACITY = 1000

# Share of decisions above which a recommendation fires
EXPENSIVE_USAGE_THRESHOLD = 0.3
SLOW_USAGE_THRESHOLD = 0.5


class DecisionLog:
    """
    FIFO ring of the most recent routing decisions.

    Append and eviction happen in one critical section, so concurrent
    writers can neither lose entries nor push the log past capacity.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        high_fee_networks: Optional[Iterable[str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._entries: Deque[RoutingDecision] = deque(maxlen=capacity)
        self._lock = Lock()
        self.high_fee_networks = frozenset(high_fee_networks or ())
        self.clock = clock

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def record(self, decision: RoutingDecision) -> int:
        """
        Append a decision, evicting the oldest when full.

        Returns:
            Number of retained decisions
        """
        with self._lock:
            self._entries.append(decision)
            return len(self._entries)

    def entries(self) -> List[RoutingDecision]:
        """All retained decisions, oldest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def analytics(
        self,
        merchant_id: str,
        time_range: Union[TimeRange, str] = TimeRange.WEEK,
    ) -> AnalyticsSummary:
        """
        Aggregate a merchant's decisions within a look-back window.

        Args:
            merchant_id: Merchant to report on
            time_range: "24h", "7d" or "30d"

        Raises:
            InvalidRequestError: unsupported time range
        """
        time_range = parse_time_range(time_range)
        cutoff = self.clock() - time_range.seconds

        decisions = [
            d for d in self.entries()
            if d.merchant_id == merchant_id and d.timestamp >= cutoff
        ]

        summary = AnalyticsSummary(merchant_id=merchant_id, time_range=time_range)
        if not decisions:
            return summary

        total_savings = sum(d.estimated_savings_usd for d in decisions)

        summary.total_payments = len(decisions)
        summary.total_savings_usd = total_savings
        summary.average_savings_usd = total_savings / len(decisions)
        summary.network_usage = dict(Counter(d.selected_network for d in decisions))
        summary.recommendations = self._recommendations(decisions)
        return summary

    def _recommendations(self, decisions: List[RoutingDecision]) -> List[AnalyticsRecommendation]:
        recommendations = []
        total = len(decisions)

        expensive = sum(1 for d in decisions if d.selected_network in self.high_fee_networks)
        if expensive > total * EXPENSIVE_USAGE_THRESHOLD:
            recommendations.append(AnalyticsRecommendation(
                type="cost-optimization",
                message=(
                    "More than 30% of routed payments used a high-fee network; "
                    "consider switching your default priority to cost"
                ),
                impact="Could save up to 99% on transaction fees",
            ))

        slow = sum(1 for d in decisions if d.selected_speed == SpeedClass.SLOW)
        if slow > total * SLOW_USAGE_THRESHOLD:
            recommendations.append(AnalyticsRecommendation(
                type="speed-optimization",
                message=(
                    "Most routed payments confirmed on slow networks; "
                    "consider preferring faster networks for better customer experience"
                ),
                impact="Could reduce confirmation time from 15+ seconds to about 2 seconds",
            ))

        return recommendations


def parse_time_range(value: Union[TimeRange, str]) -> TimeRange:
    if isinstance(value, TimeRange):
        return value
    try:
        return TimeRange(value)
    except ValueError:
        raise InvalidRequestError(
            "time_range must be one of: 24h, 7d, 30d",
            param="time_range",
            value=value,
        )

"""
SmartRoute - Scoring Tests

Verifies:
- Freshness predicate (age and reliability)
- Score formula and amount/urgency adjustments
- Deterministic ranking with key tie-break
- Merchant priority strategies
"""

import pytest

from smartroute.core.models import Priority, SpeedClass, Urgency
from smartroute.routing.scoring import (
    BalancedPriority,
    CostPriority,
    SpeedPriority,
    cost_score,
    fresh_states,
    get_priority_strategy,
    is_fresh,
    is_recent,
    rank_networks,
    score_network,
)

from conftest import NOW, make_state


# ============================================================
# Freshness
# ============================================================

class TestFreshness:
    """Tests for the freshness predicate."""

    def test_never_polled_is_not_fresh(self):
        state = make_state("A", 0.001, age=None)
        assert is_fresh(state, NOW) is False
        assert is_recent(state, NOW) is False

    def test_young_and_reliable_is_fresh(self):
        assert is_fresh(make_state("A", 0.001, age=59.9, reliability=0.81), NOW) is True

    def test_age_at_window_is_stale(self):
        assert is_fresh(make_state("A", 0.001, age=60.0), NOW) is False

    def test_reliability_at_threshold_is_not_fresh(self):
        state = make_state("A", 0.001, reliability=0.8)
        assert is_recent(state, NOW) is True
        assert is_fresh(state, NOW) is False

    def test_custom_window(self):
        state = make_state("A", 0.001, age=90)
        assert is_fresh(state, NOW, window_seconds=120) is True
        assert is_fresh(state, NOW, window_seconds=60) is False

    def test_fresh_states_filters_and_orders_by_key(self):
        snapshot = {
            "c": make_state("c", 0.01),
            "a": make_state("a", 0.01),
            "b": make_state("b", 0.01, age=None),
            "d": make_state("d", 0.01, reliability=0.6),
        }
        assert [s.key for s in fresh_states(snapshot, NOW)] == ["a", "c"]


# ============================================================
# Score formula
# ============================================================

class TestScoreNetwork:
    """Tests for single-network scoring."""

    def test_cost_score_bounds(self):
        assert cost_score(0.0) == 100.0
        assert cost_score(0.05) == pytest.approx(50.0)
        assert cost_score(0.1) == pytest.approx(0.0)
        assert cost_score(2.5) == 0.0

    def test_base_score_mid_amount(self):
        state = make_state("A", 0.001, speed=SpeedClass.VERY_FAST, reliability=0.99)
        scored = score_network(state, amount=500, urgency=Urgency.NORMAL)

        # 0.4*99 + 0.3*100 + 0.2*99
        assert scored.score == pytest.approx(39.6 + 30.0 + 19.8)
        assert scored.breakdown["urgency_bonus"] == 0.0
        assert scored.breakdown["amount_adjustment"] == 0.0

    def test_high_urgency_adds_speed_bonus(self):
        state = make_state("A", 0.001, speed=SpeedClass.FAST)
        normal = score_network(state, 500, Urgency.NORMAL)
        high = score_network(state, 500, Urgency.HIGH)
        assert high.score - normal.score == pytest.approx(8.0)

    def test_low_urgency_matches_normal(self):
        state = make_state("A", 0.001)
        assert score_network(state, 500, Urgency.LOW).score == score_network(state, 500, Urgency.NORMAL).score

    def test_small_payment_rewards_cost(self):
        state = make_state("A", 0.001)
        scored = score_network(state, 50, Urgency.NORMAL)
        assert scored.breakdown["amount_adjustment"] == pytest.approx(0.2 * 99)

    def test_large_payment_rewards_reliability(self):
        state = make_state("A", 0.001, reliability=0.9)
        scored = score_network(state, 5000, Urgency.NORMAL)
        assert scored.breakdown["amount_adjustment"] == pytest.approx(0.2 * 90)

    @pytest.mark.parametrize("amount", [100, 1000])
    def test_bracket_edges_get_no_adjustment(self, amount):
        scored = score_network(make_state("A", 0.001), amount, Urgency.NORMAL)
        assert scored.breakdown["amount_adjustment"] == 0.0


# ============================================================
# Ranking
# ============================================================

class TestRanking:
    """Tests for ranking order and determinism."""

    def test_cheap_fast_network_ranks_first(self):
        a = make_state("A", 0.001, speed=SpeedClass.VERY_FAST, reliability=0.99)
        b = make_state("B", 0.50, speed=SpeedClass.SLOW, reliability=0.95)
        ranked = rank_networks([b, a], 50, Urgency.NORMAL)
        assert [s.key for s in ranked] == ["A", "B"]

    def test_ties_break_by_key(self):
        states = [make_state(k, 0.01) for k in ("zeta", "alpha", "mid")]
        ranked = rank_networks(states, 50, Urgency.NORMAL)
        assert [s.key for s in ranked] == ["alpha", "mid", "zeta"]

    def test_ranking_is_deterministic(self):
        states = [
            make_state("polygon", 0.0005, speed=SpeedClass.VERY_FAST, reliability=0.99),
            make_state("bsc", 0.0005, speed=SpeedClass.VERY_FAST, reliability=0.99),
            make_state("ethereum", 0.84, speed=SpeedClass.SLOW),
        ]
        first = [(s.key, s.score) for s in rank_networks(states, 250, Urgency.HIGH)]
        for _ in range(5):
            again = [(s.key, s.score) for s in rank_networks(list(reversed(states)), 250, Urgency.HIGH)]
            assert again == first


# ============================================================
# Priority strategies
# ============================================================

class TestPriorityStrategies:
    """Tests for merchant priority overrides."""

    @pytest.fixture
    def ranked(self):
        return rank_networks(
            [
                make_state("A", 0.010, speed=SpeedClass.FAST),
                make_state("B", 0.002, speed=SpeedClass.SLOW),
                make_state("C", 0.020, speed=SpeedClass.VERY_FAST),
            ],
            500,
            Urgency.NORMAL,
        )

    def test_cost_picks_cheapest(self, ranked):
        assert CostPriority().select(ranked).key == "B"

    def test_speed_picks_fastest(self, ranked):
        assert SpeedPriority().select(ranked).key == "C"

    def test_speed_tie_keeps_ranking_order(self):
        ranked = rank_networks(
            [
                make_state("A", 0.050, speed=SpeedClass.FAST),
                make_state("B", 0.001, speed=SpeedClass.FAST),
            ],
            500,
            Urgency.NORMAL,
        )
        assert ranked[0].key == "B"
        assert SpeedPriority().select(ranked).key == "B"

    def test_cost_tie_keeps_ranking_order(self):
        ranked = rank_networks(
            [
                make_state("A", 0.001, speed=SpeedClass.SLOW),
                make_state("B", 0.001, speed=SpeedClass.VERY_FAST),
            ],
            500,
            Urgency.NORMAL,
        )
        assert CostPriority().select(ranked).key == "B"

    def test_balanced_makes_no_override(self, ranked):
        assert BalancedPriority().select(ranked) is None

    def test_empty_candidates(self):
        assert CostPriority().select([]) is None
        assert SpeedPriority().select([]) is None

    def test_factory(self):
        assert isinstance(get_priority_strategy(Priority.COST), CostPriority)
        assert isinstance(get_priority_strategy(Priority.SPEED), SpeedPriority)
        assert isinstance(get_priority_strategy(Priority.BALANCED), BalancedPriority)

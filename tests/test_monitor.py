"""
SmartRoute - Network Monitor Tests

Verifies:
- Successful polls refresh gas price, cost, speed and timestamp
- Failures decay reliability (floored) and never propagate
- Per-network timeouts
- Background schedule start/stop
"""

import asyncio

import pytest

from smartroute.core.config import Settings
from smartroute.core.errors import RpcResponseError, UnknownNetworkError
from smartroute.core.models import SpeedClass
from smartroute.monitoring.monitor import NetworkMonitor
from smartroute.monitoring.pricing import StaticPriceOracle
from smartroute.routing.scoring import is_fresh

from conftest import GWEI, FakeFeeClient


def build_monitor(metrics, tracing, clock, fee_client=None, price_oracle=None, **settings_kwargs):
    return NetworkMonitor(
        Settings(**settings_kwargs),
        fee_client or FakeFeeClient(),
        price_oracle or StaticPriceOracle(),
        metrics=metrics,
        tracing=tracing,
        clock=clock,
    )


# ============================================================
# Initial state
# ============================================================

class TestInitialState:

    def test_states_start_unpolled(self, monitor, clock):
        snapshot = monitor.snapshot()

        assert set(snapshot) == {"polygon", "ethereum", "bsc", "arbitrum"}
        assert snapshot["polygon"].reliability == 0.99
        assert snapshot["ethereum"].speed == SpeedClass.SLOW
        assert all(s.last_updated is None for s in snapshot.values())
        assert not any(is_fresh(s, clock()) for s in snapshot.values())

    def test_snapshot_is_read_only(self, monitor):
        with pytest.raises(TypeError):
            monitor.snapshot()["polygon"] = None

    def test_unknown_network_queries(self, monitor):
        with pytest.raises(UnknownNetworkError):
            monitor.get_state("solana")
        with pytest.raises(UnknownNetworkError):
            monitor.get_descriptor("solana")

    def test_speed_class_for(self, monitor):
        assert monitor.speed_class_for("ethereum", 10) == SpeedClass.FAST
        assert monitor.speed_class_for("ethereum", 20) == SpeedClass.MEDIUM
        assert monitor.speed_class_for("ethereum", 50) == SpeedClass.SLOW
        assert monitor.speed_class_for("polygon", 49.9) == SpeedClass.VERY_FAST
        assert monitor.speed_class_for("polygon", 120) == SpeedClass.FAST
        assert monitor.speed_class_for("solana", 1) == SpeedClass.MEDIUM


# ============================================================
# Polling
# ============================================================

class TestPolling:

    @pytest.mark.asyncio
    async def test_successful_poll_refreshes_state(self, monitor, fee_client, clock):
        fee_client.prices["polygon"] = 30 * GWEI

        assert await monitor.poll_network("polygon") is True

        state = monitor.get_state("polygon")
        assert state.gas_price_wei == 30 * GWEI
        assert state.gas_price_gwei == pytest.approx(30.0)
        # 30 gwei * 21000 gas = 0.00063 MATIC at $0.80
        assert state.estimated_cost_usd == pytest.approx(0.000504)
        assert state.speed == SpeedClass.VERY_FAST
        assert state.last_updated == clock()
        assert state.reliability == 0.99
        assert state.last_error is None
        assert is_fresh(state, clock())

    @pytest.mark.asyncio
    async def test_ethereum_cost_and_speed(self, monitor, fee_client):
        fee_client.prices["ethereum"] = 25 * GWEI

        await monitor.poll_network("ethereum")

        state = monitor.get_state("ethereum")
        assert state.estimated_cost_usd == pytest.approx(1.05)
        assert state.speed == SpeedClass.MEDIUM

    @pytest.mark.asyncio
    async def test_price_update_applies_to_next_poll(self, monitor, fee_client, price_oracle):
        fee_client.prices["polygon"] = 30 * GWEI
        await monitor.poll_network("polygon")

        price_oracle.set_price("matic", 1.6)
        await monitor.poll_network("polygon")

        assert monitor.get_state("polygon").estimated_cost_usd == pytest.approx(0.001008)

    @pytest.mark.asyncio
    async def test_failure_decays_reliability(self, monitor, fee_client, clock):
        await monitor.poll_network("ethereum")
        polled_at = monitor.get_state("ethereum").last_updated

        fee_client.prices["ethereum"] = RpcResponseError("ethereum", "boom")
        clock.advance(30)

        assert await monitor.poll_network("ethereum") is False

        state = monitor.get_state("ethereum")
        assert state.reliability == pytest.approx(0.85)
        assert state.last_updated == polled_at
        assert state.last_error == "boom"
        assert state.gas_price_gwei == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_reliability_floor(self, monitor, fee_client):
        fee_client.prices["bsc"] = RpcResponseError("bsc", "down")

        for _ in range(10):
            await monitor.poll_network("bsc")

        assert monitor.get_state("bsc").reliability == 0.5

    @pytest.mark.asyncio
    async def test_success_does_not_restore_reliability(self, monitor, fee_client):
        fee_client.prices["arbitrum"] = RpcResponseError("arbitrum", "flaky")
        await monitor.poll_network("arbitrum")
        fee_client.prices["arbitrum"] = 1 * GWEI
        await monitor.poll_network("arbitrum")

        state = monitor.get_state("arbitrum")
        assert state.reliability == pytest.approx(0.87)
        assert state.last_error is None

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, metrics, tracing, clock):
        fee_client = FakeFeeClient(delays={"bsc": 1.0})
        monitor = build_monitor(metrics, tracing, clock, fee_client, poll_timeout_seconds=0.05)

        assert await monitor.poll_network("bsc") is False

        state = monitor.get_state("bsc")
        assert state.reliability == pytest.approx(0.88)
        assert "did not respond" in state.last_error

    @pytest.mark.asyncio
    async def test_missing_price_counts_as_failure(self, metrics, tracing, clock):
        monitor = build_monitor(
            metrics, tracing, clock, price_oracle=StaticPriceOracle({"ETH": 2000})
        )

        assert await monitor.poll_network("polygon") is False
        assert await monitor.poll_network("ethereum") is True
        assert "MATIC" in monitor.get_state("polygon").last_error

    @pytest.mark.asyncio
    async def test_unexpected_error_is_absorbed(self, monitor, fee_client):
        fee_client.prices["polygon"] = ValueError("bad payload")
        assert await monitor.poll_network("polygon") is False
        assert monitor.get_state("polygon").reliability == pytest.approx(0.89)

    @pytest.mark.asyncio
    async def test_unknown_network(self, monitor):
        with pytest.raises(UnknownNetworkError):
            await monitor.poll_network("solana")

    @pytest.mark.asyncio
    async def test_poll_all_isolates_failures(self, monitor, fee_client):
        fee_client.prices["ethereum"] = RpcResponseError("ethereum", "down")

        outcome = await monitor.poll_all()

        assert outcome == {"polygon": True, "ethereum": False, "bsc": True, "arbitrum": True}
        assert sorted(fee_client.calls) == ["arbitrum", "bsc", "ethereum", "polygon"]

    @pytest.mark.asyncio
    async def test_poll_metrics(self, monitor, fee_client, metrics):
        fee_client.prices["ethereum"] = RpcResponseError("ethereum", "down")

        await monitor.poll_all()

        registry = metrics.registry
        assert registry.get_sample_value(
            "smartroute_network_polls_total", {"network": "polygon", "status": "success"}
        ) == 1.0
        assert registry.get_sample_value(
            "smartroute_network_polls_total", {"network": "ethereum", "status": "failure"}
        ) == 1.0
        assert registry.get_sample_value(
            "smartroute_network_reliability", {"network": "ethereum"}
        ) == pytest.approx(0.85)
        assert registry.get_sample_value(
            "smartroute_network_gas_price_gwei", {"network": "polygon"}
        ) == pytest.approx(30.0)


# ============================================================
# Lifecycle
# ============================================================

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_polls_immediately_and_repeatedly(self, metrics, tracing, clock):
        fee_client = FakeFeeClient()
        monitor = build_monitor(metrics, tracing, clock, fee_client, update_interval_ms=20)

        await monitor.start()
        await asyncio.sleep(0.15)
        await monitor.stop(grace_seconds=1.0)

        assert fee_client.calls.count("polygon") >= 2
        assert monitor.is_running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, metrics, tracing, clock):
        monitor = build_monitor(metrics, tracing, clock, update_interval_ms=60_000)

        await monitor.start()
        task = monitor._schedule_task
        await monitor.start()

        assert monitor._schedule_task is task
        assert monitor.is_running is True
        await monitor.stop(grace_seconds=1.0)

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self, monitor):
        await monitor.stop()
        await monitor.stop(grace_seconds=0.1)
        assert monitor.is_running is False

    @pytest.mark.asyncio
    async def test_stop_lets_inflight_poll_finish(self, metrics, tracing, clock):
        fee_client = FakeFeeClient(delays={"polygon": 0.05})
        monitor = build_monitor(metrics, tracing, clock, fee_client, update_interval_ms=60_000)

        await monitor.start()
        await asyncio.sleep(0.01)
        await monitor.stop(grace_seconds=1.0)

        assert monitor.get_state("polygon").last_updated == clock()

    @pytest.mark.asyncio
    async def test_no_polls_after_stop(self, metrics, tracing, clock):
        fee_client = FakeFeeClient()
        monitor = build_monitor(metrics, tracing, clock, fee_client, update_interval_ms=20)

        await monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop(grace_seconds=1.0)
        calls = len(fee_client.calls)

        await asyncio.sleep(0.08)
        assert len(fee_client.calls) == calls

"""
SmartRoute - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fake fee clients and a controllable clock for unit tests
- Isolated metrics and tracing per test
"""

import asyncio
import os
from typing import Dict, Iterable, List, Optional, Union

import pytest
from prometheus_client import CollectorRegistry

from smartroute.core.config import Settings
from smartroute.core.models import NetworkDescriptor, NetworkState, SpeedClass
from smartroute.monitoring.fee_client import BaseFeeClient
from smartroute.monitoring.monitor import NetworkMonitor
from smartroute.monitoring.pricing import StaticPriceOracle
from smartroute.observability.metrics import MetricsCollector
from smartroute.observability.tracing import TracingManager
from smartroute.routing.decision_log import DecisionLog
from smartroute.routing.engine import RoutingEngine
from smartroute.routing.preferences import PreferenceStore


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Fakes
# ============================================================

GWEI = 10**9

NOW = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeFeeClient(BaseFeeClient):
    """
    Fee client answering from a table.

    Values are gas prices in wei, or exceptions to raise. `delays` makes a
    network hang for that many seconds before answering.
    """

    def __init__(
        self,
        prices: Optional[Dict[str, Union[int, Exception]]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.prices = dict(prices or {})
        self.delays = dict(delays or {})
        self.calls: List[str] = []
        self.closed = False

    async def get_gas_price(self, network: NetworkDescriptor) -> int:
        self.calls.append(network.key)
        delay = self.delays.get(network.key)
        if delay:
            await asyncio.sleep(delay)
        value = self.prices.get(network.key, 30 * GWEI)
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self):
        self.closed = True


class StubMonitor:
    """Serves a fixed snapshot to the routing engine."""

    def __init__(self, states: Iterable[NetworkState] = ()):
        self.states = {s.key: s for s in states}

    def snapshot(self):
        return dict(self.states)

    def put(self, state: NetworkState):
        self.states[state.key] = state


def make_descriptor(key: str, native_currency: str = "ETH", **kwargs) -> NetworkDescriptor:
    fields = dict(
        key=key,
        display_name=key.capitalize(),
        chain_id=1,
        native_currency=native_currency,
        rpc_url=f"https://rpc.example/{key.lower()}",
        explorer_url=f"https://explorer.example/{key.lower()}",
    )
    fields.update(kwargs)
    return NetworkDescriptor(**fields)


def make_state(
    key: str,
    cost: float,
    speed: SpeedClass = SpeedClass.MEDIUM,
    reliability: float = 0.95,
    age: Optional[float] = 0.0,
    gas_price_gwei: float = 10.0,
    now: float = NOW,
) -> NetworkState:
    """A polled network state `age` seconds old (None means never polled)."""
    return NetworkState(
        key=key,
        gas_price_wei=int(gas_price_gwei * GWEI),
        gas_price_gwei=gas_price_gwei,
        estimated_cost_usd=cost,
        speed=speed,
        reliability=reliability,
        last_updated=None if age is None else now - age,
    )


# ============================================================
# Fixtures
# ============================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    """Collector on its own registry so tests never collide."""
    return MetricsCollector(CollectorRegistry())


@pytest.fixture
def tracing():
    manager = TracingManager(set_global=False)
    yield manager
    manager.shutdown()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def two_network_settings():
    """Networks A and B with A as the fallback."""
    return Settings(
        networks=(
            make_descriptor("A"),
            make_descriptor("B", high_fee=True),
        ),
        default_network="A",
    )


@pytest.fixture
def fee_client():
    return FakeFeeClient()


@pytest.fixture
def price_oracle():
    return StaticPriceOracle()


@pytest.fixture
def monitor(settings, fee_client, price_oracle, metrics, tracing, clock):
    return NetworkMonitor(
        settings,
        fee_client,
        price_oracle,
        metrics=metrics,
        tracing=tracing,
        clock=clock,
    )


@pytest.fixture
def stub_monitor():
    return StubMonitor()


@pytest.fixture
def engine_factory(metrics, tracing, clock):
    """Build an engine over a stub snapshot: factory(settings, states)."""

    def factory(settings: Settings, states: Iterable[NetworkState] = ()):
        stub = StubMonitor(states)
        engine = RoutingEngine(
            settings,
            stub,
            PreferenceStore(known_networks=settings.network_keys()),
            DecisionLog(
                capacity=settings.decision_log_capacity,
                high_fee_networks=[n.key for n in settings.networks if n.high_fee],
                clock=clock,
            ),
            metrics=metrics,
            tracing=tracing,
            clock=clock,
        )
        return engine, stub

    return factory

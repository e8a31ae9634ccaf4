"""
SmartRoute - Network Monitor

Keeps a live NetworkState for every configured network:
- Immediate poll on start, then one tick every update interval
- Each tick polls all networks concurrently and waits for all to settle
- Per-poll timeout so a hung endpoint only delays its own network
- Reliability decay on failure (0.1 per failure, floored at 0.5)

State records are immutable and swapped in whole under a lock, so
`snapshot()` never returns a half-updated network.
"""

import asyncio
import time
from dataclasses import replace
from decimal import Decimal
from threading import Lock
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from ..core.config import STANDARD_TRANSFER_GAS, WEI_PER_ETHER, WEI_PER_GWEI, Settings
from ..core.errors import InfraError, RpcTimeoutError, UnknownNetworkError
from ..core.models import NetworkDescriptor, NetworkState, SpeedClass
from ..observability.logging import TimedOperation, get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import TracingManager, get_tracing_manager
from .fee_client import BaseFeeClient
from .pricing import BasePriceOracle
from .speed import classify_speed


logger = get_logger(__name__)


class NetworkMonitor:
    """Periodic multi-network fee collector."""

    RELIABILITY_DECREMENT = 0.1
    RELIABILITY_FLOOR = 0.5

    def __init__(
        self,
        settings: Settings,
        fee_client: BaseFeeClient,
        price_oracle: BasePriceOracle,
        metrics: Optional[MetricsCollector] = None,
        tracing: Optional[TracingManager] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.fee_client = fee_client
        self.price_oracle = price_oracle
        self.metrics = metrics or get_metrics()
        self.tracing = tracing or get_tracing_manager()
        self.clock = clock

        self._descriptors: Dict[str, NetworkDescriptor] = {
            n.key: n for n in settings.networks
        }

        self._lock = Lock()
        self._states: Dict[str, NetworkState] = {
            key: NetworkState.initial(descriptor)
            for key, descriptor in self._descriptors.items()
        }

        self._schedule_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._schedule_task is not None and not self._schedule_task.done()

    async def start(self):
        """Start polling. No-op if already running."""
        if self.is_running:
            return

        logger.info(
            "Starting network monitoring",
            networks=list(self._descriptors),
            update_interval_ms=self.settings.update_interval_ms,
        )
        self._schedule_task = asyncio.create_task(self._schedule_loop())

    async def stop(self, grace_seconds: float = 0.0):
        """
        Stop scheduling new ticks. No-op if not running.

        In-flight polls are left to finish; with `grace_seconds > 0` this
        waits up to that long for them to settle.
        """
        task = self._schedule_task
        self._schedule_task = None

        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Network monitoring stopped")

        if grace_seconds > 0 and self._inflight:
            done, pending = await asyncio.wait(set(self._inflight), timeout=grace_seconds)
            if pending:
                logger.warning(
                    "In-flight polls still running after grace period",
                    pending=len(pending),
                    grace_seconds=grace_seconds,
                )

    async def _schedule_loop(self):
        interval = self.settings.update_interval_ms / 1000
        while True:
            self._spawn_tick()
            await asyncio.sleep(interval)

    def _spawn_tick(self):
        # A tick runs as its own task so cancelling the schedule leaves it alone
        task = asyncio.create_task(self.poll_all())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    # ------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------

    async def poll_all(self) -> Dict[str, bool]:
        """
        Poll every network concurrently and wait for all to settle.

        Returns:
            Mapping of network key to poll success
        """
        keys = list(self._descriptors)
        with TimedOperation("poll_all", logger, extra={"networks": len(keys)}):
            results = await asyncio.gather(
                *(self.poll_network(key) for key in keys),
                return_exceptions=True,
            )

        outcome: Dict[str, bool] = {}
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                logger.error("Poll crashed", network=key, error=repr(result))
                outcome[key] = False
            else:
                outcome[key] = result
        return outcome

    async def poll_network(self, key: str) -> bool:
        """
        Refresh one network's state.

        Failures never propagate: they decay reliability and leave
        `last_updated` alone so the record ages out of freshness.

        Returns:
            True if the state was refreshed
        """
        descriptor = self._descriptors.get(key)
        if descriptor is None:
            raise UnknownNetworkError(key)

        timeout = self.settings.poll_timeout_seconds
        start = time.perf_counter()
        try:
            with self.tracing.trace_rpc_call(key, "eth_gasPrice"):
                gas_price_wei, native_price = await asyncio.wait_for(
                    self._fetch(descriptor), timeout=timeout
                )
        except asyncio.TimeoutError:
            self._record_failure(key, RpcTimeoutError(key, timeout), time.perf_counter() - start)
            return False
        except InfraError as e:
            self._record_failure(key, e, time.perf_counter() - start)
            return False
        except Exception as e:
            logger.exception("Unexpected poll error", network=key)
            self._record_failure(key, e, time.perf_counter() - start)
            return False

        self._record_success(descriptor, gas_price_wei, native_price, time.perf_counter() - start)
        return True

    async def _fetch(self, descriptor: NetworkDescriptor) -> Tuple[int, float]:
        gas_price_wei = await self.fee_client.get_gas_price(descriptor)
        native_price = await self.price_oracle.get_price(descriptor.native_currency)
        return gas_price_wei, native_price

    def _record_success(
        self,
        descriptor: NetworkDescriptor,
        gas_price_wei: int,
        native_price: float,
        duration: float,
    ):
        gas_price_gwei = float(Decimal(gas_price_wei) / WEI_PER_GWEI)
        gas_cost_native = Decimal(gas_price_wei * STANDARD_TRANSFER_GAS) / WEI_PER_ETHER
        estimated_cost_usd = float(gas_cost_native) * native_price
        speed = self.speed_class_for(descriptor.key, gas_price_gwei)

        with self._lock:
            current = self._states[descriptor.key]
            # Reliability is carried over: success alone never restores it
            state = replace(
                current,
                gas_price_wei=gas_price_wei,
                gas_price_gwei=gas_price_gwei,
                estimated_cost_usd=estimated_cost_usd,
                speed=speed,
                last_updated=self.clock(),
                last_error=None,
            )
            self._states[descriptor.key] = state

        self.metrics.record_poll(descriptor.key, success=True, duration_seconds=duration)
        self.metrics.set_network_state(
            descriptor.key,
            reliability=state.reliability,
            gas_price_gwei=gas_price_gwei,
            cost_usd=estimated_cost_usd,
        )
        logger.debug(
            "Network polled",
            network=descriptor.key,
            gas_price_gwei=round(gas_price_gwei, 4),
            estimated_cost_usd=round(estimated_cost_usd, 6),
            speed=speed.value,
        )

    def _record_failure(self, key: str, error: Exception, duration: float):
        with self._lock:
            current = self._states[key]
            reliability = max(
                self.RELIABILITY_FLOOR,
                round(current.reliability - self.RELIABILITY_DECREMENT, 6),
            )
            state = replace(current, reliability=reliability, last_error=str(error))
            self._states[key] = state

        self.metrics.record_poll(key, success=False, duration_seconds=duration)
        self.metrics.set_network_state(key, reliability=state.reliability)
        logger.warning(
            "Network poll failed",
            network=key,
            error=str(error),
            reliability=state.reliability,
        )

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def speed_class_for(self, key: str, gas_price_gwei: float) -> SpeedClass:
        """Speed class of a gas price on a network, from the static table."""
        return classify_speed(self._descriptors.get(key), gas_price_gwei)

    def snapshot(self) -> Mapping[str, NetworkState]:
        """Read-only copy of all network states keyed by network key."""
        with self._lock:
            return MappingProxyType(dict(self._states))

    def get_state(self, key: str) -> NetworkState:
        with self._lock:
            state = self._states.get(key)
        if state is None:
            raise UnknownNetworkError(key)
        return state

    def get_descriptor(self, key: str) -> NetworkDescriptor:
        descriptor = self._descriptors.get(key)
        if descriptor is None:
            raise UnknownNetworkError(key)
        return descriptor

    @property
    def descriptors(self) -> List[NetworkDescriptor]:
        return list(self._descriptors.values())

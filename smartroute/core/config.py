"""
SmartRoute - Configuration

Static network table plus environment-driven settings. `Settings.validate()`
is the startup safety check: a missing fallback network is fatal here rather
than at request time.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .errors import ConfigurationError, FallbackNotConfiguredError
from .models import NetworkDescriptor, SpeedClass, SpeedTier


# Gas units of a plain native-token transfer
STANDARD_TRANSFER_GAS = 21_000

WEI_PER_GWEI = 10**9
WEI_PER_ETHER = 10**18

DEFAULT_SUPPORTED_CURRENCIES = ("USDC", "USDT", "DAI", "ETH", "BTC")


DEFAULT_NETWORKS: Tuple[NetworkDescriptor, ...] = (
    NetworkDescriptor(
        key="polygon",
        display_name="Polygon",
        chain_id=137,
        native_currency="MATIC",
        rpc_url="https://polygon-rpc.com",
        explorer_url="https://polygonscan.com",
        initial_speed=SpeedClass.FAST,
        initial_reliability=0.99,
        speed_tiers=(SpeedTier(50, SpeedClass.VERY_FAST),),
        default_speed=SpeedClass.FAST,
    ),
    NetworkDescriptor(
        key="ethereum",
        display_name="Ethereum",
        chain_id=1,
        native_currency="ETH",
        rpc_url="https://eth.llamarpc.com",
        explorer_url="https://etherscan.io",
        initial_speed=SpeedClass.SLOW,
        initial_reliability=0.95,
        speed_tiers=(
            SpeedTier(20, SpeedClass.FAST),
            SpeedTier(50, SpeedClass.MEDIUM),
        ),
        default_speed=SpeedClass.SLOW,
        high_fee=True,
    ),
    NetworkDescriptor(
        key="bsc",
        display_name="BSC",
        chain_id=56,
        native_currency="BNB",
        rpc_url="https://bsc-dataseed1.binance.org/",
        explorer_url="https://bscscan.com",
        initial_speed=SpeedClass.MEDIUM,
        initial_reliability=0.98,
        speed_tiers=(SpeedTier(10, SpeedClass.FAST),),
        default_speed=SpeedClass.MEDIUM,
    ),
    NetworkDescriptor(
        key="arbitrum",
        display_name="Arbitrum",
        chain_id=42161,
        native_currency="ETH",
        rpc_url="https://arb1.arbitrum.io/rpc",
        explorer_url="https://arbiscan.io",
        initial_speed=SpeedClass.VERY_FAST,
        initial_reliability=0.97,
        default_speed=SpeedClass.VERY_FAST,
    ),
)

# Env var overriding each default network's RPC endpoint
RPC_URL_ENV = {
    "polygon": "POLYGON_RPC_URL",
    "ethereum": "ETHEREUM_RPC_URL",
    "bsc": "BSC_RPC_URL",
    "arbitrum": "ARBITRUM_RPC_URL",
}


@dataclass
class Settings:
    """Runtime settings for the monitor and the routing engine."""
    networks: Tuple[NetworkDescriptor, ...] = DEFAULT_NETWORKS
    default_network: str = "polygon"

    update_interval_ms: int = 30_000
    poll_timeout_seconds: float = 8.0

    freshness_window_seconds: float = 60.0
    decision_log_capacity: int = 1000

    supported_currencies: Tuple[str, ...] = DEFAULT_SUPPORTED_CURRENCIES

    log_level: str = "INFO"
    log_format: str = "json"
    otlp_endpoint: Optional[str] = None

    network_map: Dict[str, NetworkDescriptor] = field(init=False, repr=False)

    def __post_init__(self):
        self.network_map = {n.key: n for n in self.networks}

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables."""
        env = os.environ if env is None else env

        networks = []
        for descriptor in DEFAULT_NETWORKS:
            override = env.get(RPC_URL_ENV.get(descriptor.key, ""), "").strip()
            if override:
                descriptor = replace(descriptor, rpc_url=override)
            networks.append(descriptor)

        raw_currencies = env.get("SUPPORTED_CURRENCIES", "")
        currencies = tuple(
            c.strip().upper() for c in raw_currencies.split(",") if c.strip()
        ) or DEFAULT_SUPPORTED_CURRENCIES

        return cls(
            networks=tuple(networks),
            default_network=env.get("DEFAULT_NETWORK", "polygon").strip().lower(),
            update_interval_ms=_int(env, "MONITOR_UPDATE_INTERVAL_MS", 30_000),
            poll_timeout_seconds=_float(env, "MONITOR_POLL_TIMEOUT_SECONDS", 8.0),
            freshness_window_seconds=_float(env, "FRESHNESS_WINDOW_SECONDS", 60.0),
            decision_log_capacity=_int(env, "DECISION_LOG_CAPACITY", 1000),
            supported_currencies=currencies,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json").lower(),
            otlp_endpoint=env.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
        )

    def validate(self) -> None:
        """
        Fail fast on unusable configuration.

        Raises:
            FallbackNotConfiguredError: default network is not configured
            ConfigurationError: any other invalid setting
        """
        if not self.networks:
            raise ConfigurationError("At least one network must be configured", param="networks")

        if len(self.network_map) != len(self.networks):
            raise ConfigurationError("Network keys must be unique", param="networks")

        if self.default_network not in self.network_map:
            raise FallbackNotConfiguredError(self.default_network)

        if self.update_interval_ms <= 0:
            raise ConfigurationError(
                "update_interval_ms must be positive", param="update_interval_ms"
            )
        if self.poll_timeout_seconds <= 0:
            raise ConfigurationError(
                "poll_timeout_seconds must be positive", param="poll_timeout_seconds"
            )
        if self.freshness_window_seconds <= 0:
            raise ConfigurationError(
                "freshness_window_seconds must be positive", param="freshness_window_seconds"
            )
        if self.decision_log_capacity <= 0:
            raise ConfigurationError(
                "decision_log_capacity must be positive", param="decision_log_capacity"
            )
        if not self.supported_currencies:
            raise ConfigurationError(
                "At least one currency must be supported", param="supported_currencies"
            )

    def network_keys(self) -> List[str]:
        return [n.key for n in self.networks]


def _int(env, key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got `{raw}`", param=key)


def _float(env, key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got `{raw}`", param=key)

"""
SmartRoute - Monitoring Module

Live fee conditions for every configured network:
- Periodic concurrent polling with per-network timeouts
- Reliability decay on poll failure
- Static speed-class thresholds
- Pluggable fee data clients and price oracles
"""

from .fee_client import (
    BaseFeeClient,
    FeeClientConfig,
    JsonRpcFeeClient,
    parse_gas_price,
)
from .monitor import NetworkMonitor
from .pricing import (
    DEFAULT_PRICES,
    BasePriceOracle,
    StaticPriceOracle,
)
from .speed import (
    ESTIMATED_TIMES,
    classify_speed,
    estimated_time,
)

__all__ = [
    "BaseFeeClient",
    "FeeClientConfig",
    "JsonRpcFeeClient",
    "parse_gas_price",
    "NetworkMonitor",
    "DEFAULT_PRICES",
    "BasePriceOracle",
    "StaticPriceOracle",
    "ESTIMATED_TIMES",
    "classify_speed",
    "estimated_time",
]

"""
SmartRoute - Price Oracles

Native-token to USD prices used to turn gas costs into dollars. Price
sourcing belongs to the deployment; the static oracle covers local runs and
tests.
"""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Optional

from ..core.errors import PriceUnavailableError


# Reference prices for local runs (USD)
DEFAULT_PRICES: Dict[str, float] = {
    "ETH": 2000.0,
    "MATIC": 0.8,
    "BNB": 300.0,
    "USD": 1.0,
}


class BasePriceOracle(ABC):
    """Abstract price oracle."""

    @abstractmethod
    async def get_price(self, symbol: str) -> float:
        """
        Get the USD price of one unit of `symbol`.

        Raises:
            PriceUnavailableError: no price known for the symbol
        """
        pass


class StaticPriceOracle(BasePriceOracle):
    """In-memory price table, updatable at runtime."""

    def __init__(self, prices: Optional[Dict[str, float]] = None):
        self._prices = {
            k.upper(): float(v)
            for k, v in (DEFAULT_PRICES if prices is None else prices).items()
        }
        self._lock = Lock()

    async def get_price(self, symbol: str) -> float:
        with self._lock:
            price = self._prices.get(symbol.upper())
        if price is None or price <= 0:
            raise PriceUnavailableError(symbol)
        return price

    def set_price(self, symbol: str, price: float):
        with self._lock:
            self._prices[symbol.upper()] = float(price)

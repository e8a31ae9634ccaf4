"""
SmartRoute - Merchant Preference Store

In-memory per-merchant routing preferences. Records are created on first
write, merged in place on later writes and kept for the process lifetime.
"""

import math
from dataclasses import replace
from threading import Lock
from typing import Any, Dict, Iterable, Optional

from ..core.errors import InvalidRequestError, UnknownNetworkError
from ..core.models import Priority, RoutingPreferences


class PreferenceStore:
    """
    Thread-safe merchant preference store.

    A durable implementation can replace this one as long as it keeps the
    `get` / `set` contract.
    """

    FIELDS = ("priority", "preferred_networks", "max_gas_price_gwei", "min_reliability")

    def __init__(self, known_networks: Optional[Iterable[str]] = None):
        self._known_networks = set(known_networks) if known_networks is not None else None
        self._preferences: Dict[str, RoutingPreferences] = {}
        self._lock = Lock()

    def get(self, merchant_id: str) -> RoutingPreferences:
        """Stored preferences, or defaults without creating a record."""
        with self._lock:
            return self._preferences.get(merchant_id, RoutingPreferences())

    def has(self, merchant_id: str) -> bool:
        with self._lock:
            return merchant_id in self._preferences

    def set(self, merchant_id: str, **partial: Any) -> RoutingPreferences:
        """
        Merge partial fields over the existing (or default) record.

        Args:
            merchant_id: Merchant to update
            **partial: Any of priority, preferred_networks,
                max_gas_price_gwei, min_reliability

        Returns:
            The stored record

        Raises:
            InvalidRequestError: unknown field or invalid value
            UnknownNetworkError: preferred network not configured
        """
        if not merchant_id:
            raise InvalidRequestError("merchant_id is required", param="merchant_id")

        updates = self._validate(partial)

        with self._lock:
            current = self._preferences.get(merchant_id, RoutingPreferences())
            merged = replace(current, **updates)
            self._preferences[merchant_id] = merged
        return merged

    def _validate(self, partial: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(partial) - set(self.FIELDS)
        if unknown:
            raise InvalidRequestError(
                f"Unknown preference fields: {', '.join(sorted(unknown))}",
                param=sorted(unknown)[0],
            )

        updates: Dict[str, Any] = {}

        if "priority" in partial:
            try:
                updates["priority"] = Priority(partial["priority"])
            except ValueError:
                raise InvalidRequestError(
                    "priority must be one of: cost, speed, balanced",
                    param="priority",
                    value=partial["priority"],
                )

        if "preferred_networks" in partial:
            networks = partial["preferred_networks"]
            if networks is None:
                networks = ()
            if not isinstance(networks, (list, tuple)) or not all(isinstance(n, str) for n in networks):
                raise InvalidRequestError(
                    "preferred_networks must be a list of network keys",
                    param="preferred_networks",
                )
            if self._known_networks is not None:
                for network in networks:
                    if network not in self._known_networks:
                        raise UnknownNetworkError(network, param="preferred_networks")
            updates["preferred_networks"] = tuple(networks)

        if "max_gas_price_gwei" in partial:
            ceiling = partial["max_gas_price_gwei"]
            if ceiling is not None and (not _is_number(ceiling) or ceiling <= 0):
                raise InvalidRequestError(
                    "max_gas_price_gwei must be a positive number",
                    param="max_gas_price_gwei",
                    value=ceiling,
                )
            updates["max_gas_price_gwei"] = float(ceiling) if ceiling is not None else None

        if "min_reliability" in partial:
            floor = partial["min_reliability"]
            if not _is_number(floor) or not 0.0 <= floor <= 1.0:
                raise InvalidRequestError(
                    "min_reliability must be between 0 and 1",
                    param="min_reliability",
                    value=floor,
                )
            updates["min_reliability"] = float(floor)

        return updates


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )

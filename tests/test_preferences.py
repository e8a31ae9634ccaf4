"""
SmartRoute - Preference Store Tests

Verifies:
- Defaults without record creation
- Partial merges
- Validation of every field
- Concurrent writers
"""

import threading

import pytest

from smartroute.core.errors import InvalidRequestError, UnknownNetworkError
from smartroute.core.models import Priority, RoutingPreferences
from smartroute.routing.preferences import PreferenceStore


@pytest.fixture
def store():
    return PreferenceStore(known_networks=["polygon", "ethereum", "bsc", "arbitrum"])


class TestPreferenceStore:

    def test_defaults_without_record(self, store):
        prefs = store.get("m1")

        assert prefs == RoutingPreferences()
        assert prefs.priority == Priority.BALANCED
        assert prefs.preferred_networks == ()
        assert prefs.max_gas_price_gwei is None
        assert prefs.min_reliability == 0.8
        assert store.has("m1") is False

    def test_set_creates_record(self, store):
        prefs = store.set("m1", priority="cost")

        assert prefs.priority == Priority.COST
        assert store.has("m1") is True
        assert store.get("m1") == prefs

    def test_partial_updates_merge(self, store):
        store.set("m1", priority="speed", preferred_networks=["polygon", "bsc"])
        merged = store.set("m1", max_gas_price_gwei=40)

        assert merged.priority == Priority.SPEED
        assert merged.preferred_networks == ("polygon", "bsc")
        assert merged.max_gas_price_gwei == 40.0

    def test_merchants_are_isolated(self, store):
        store.set("m1", priority="cost")
        assert store.get("m2").priority == Priority.BALANCED

    def test_clear_optional_fields(self, store):
        store.set("m1", preferred_networks=["polygon"], max_gas_price_gwei=10)
        prefs = store.set("m1", preferred_networks=None, max_gas_price_gwei=None)

        assert prefs.preferred_networks == ()
        assert prefs.max_gas_price_gwei is None

    def test_empty_update_stores_defaults(self, store):
        assert store.set("m1") == RoutingPreferences()
        assert store.has("m1") is True

    @pytest.mark.parametrize("partial", [
        {"priority": "cheapest"},
        {"preferred_networks": "polygon"},
        {"preferred_networks": [1, 2]},
        {"preferred_networks": 5},
        {"preferred_networks": {"polygon": 1}},
        {"max_gas_price_gwei": 0},
        {"max_gas_price_gwei": -3},
        {"max_gas_price_gwei": "10"},
        {"min_reliability": 1.5},
        {"min_reliability": -0.1},
        {"min_reliability": None},
        {"min_reliability": True},
        {"colour": "blue"},
    ])
    def test_invalid_values(self, store, partial):
        with pytest.raises(InvalidRequestError):
            store.set("m1", **partial)
        assert store.has("m1") is False

    def test_unknown_preferred_network(self, store):
        with pytest.raises(UnknownNetworkError) as exc_info:
            store.set("m1", preferred_networks=["polygon", "solana"])
        assert exc_info.value.error.network == "solana"

    def test_any_network_without_known_list(self):
        store = PreferenceStore()
        assert store.set("m1", preferred_networks=["solana"]).preferred_networks == ("solana",)

    def test_merchant_id_required(self, store):
        with pytest.raises(InvalidRequestError):
            store.set("", priority="cost")

    def test_concurrent_partial_writes(self, store):
        def write(field, value):
            for _ in range(200):
                store.set("m1", **{field: value})

        threads = [
            threading.Thread(target=write, args=("priority", "cost")),
            threading.Thread(target=write, args=("max_gas_price_gwei", 25)),
            threading.Thread(target=write, args=("preferred_networks", ["bsc"])),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        prefs = store.get("m1")
        assert prefs.priority == Priority.COST
        assert prefs.max_gas_price_gwei == 25.0
        assert prefs.preferred_networks == ("bsc",)

"""
SmartRoute - Prometheus Metrics

Metrics exposed:
- smartroute_network_polls_total: Counter of polls by network and outcome
- smartroute_network_poll_duration_seconds: Histogram of poll latency
- smartroute_network_gas_price_gwei: Gauge of the latest gas price
- smartroute_network_transfer_cost_usd: Gauge of the latest transfer cost
- smartroute_network_reliability: Gauge of network reliability
- smartroute_routing_decisions_total: Counter of decisions by selected network
- smartroute_decision_log_size: Gauge of retained decisions

Usage:
    from smartroute.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_poll(network="polygon", success=True, duration_seconds=0.21)

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Dict, Optional

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class MetricsCollector:
    """
    Central metrics collector using the Prometheus client.

    Pass a fresh CollectorRegistry to get an isolated collector (tests);
    the module-level collector registers on the default REGISTRY once.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.info = Info(
            "smartroute",
            "SmartRoute service information",
            registry=registry,
        )
        self.info.info({"version": "1.0.0", "service": "smartroute"})

        self.polls_total = Counter(
            "smartroute_network_polls_total",
            "Total network polls",
            labelnames=["network", "status"],
            registry=registry,
        )

        # RPC calls usually settle well under a second; the tail is the timeout
        self.poll_duration = Histogram(
            "smartroute_network_poll_duration_seconds",
            "Network poll duration in seconds",
            labelnames=["network"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
            registry=registry,
        )

        self.gas_price_gwei = Gauge(
            "smartroute_network_gas_price_gwei",
            "Latest observed gas price in gwei",
            labelnames=["network"],
            registry=registry,
        )

        self.transfer_cost_usd = Gauge(
            "smartroute_network_transfer_cost_usd",
            "Latest estimated cost of a standard transfer in USD",
            labelnames=["network"],
            registry=registry,
        )

        self.reliability = Gauge(
            "smartroute_network_reliability",
            "Current reliability score (0-1)",
            labelnames=["network"],
            registry=registry,
        )

        self.routing_decisions = Counter(
            "smartroute_routing_decisions_total",
            "Total routing decisions",
            labelnames=["selected_network", "fallback"],
            registry=registry,
        )

        self.decision_log_size = Gauge(
            "smartroute_decision_log_size",
            "Routing decisions currently retained in memory",
            registry=registry,
        )

    def record_poll(
        self,
        network: str,
        success: bool,
        duration_seconds: float,
    ):
        """Record a poll outcome."""
        status = "success" if success else "failure"
        self.polls_total.labels(network=network, status=status).inc()
        self.poll_duration.labels(network=network).observe(duration_seconds)

    def set_network_state(
        self,
        network: str,
        reliability: float,
        gas_price_gwei: Optional[float] = None,
        cost_usd: Optional[float] = None,
    ):
        """Publish the current state of a network."""
        self.reliability.labels(network=network).set(reliability)
        if gas_price_gwei is not None:
            self.gas_price_gwei.labels(network=network).set(gas_price_gwei)
        if cost_usd is not None:
            self.transfer_cost_usd.labels(network=network).set(cost_usd)

    def record_routing_decision(self, selected_network: str, fallback: bool):
        self.routing_decisions.labels(
            selected_network=selected_network,
            fallback="true" if fallback else "false",
        ).inc()

    def set_decision_log_size(self, size: int):
        self.decision_log_size.set(size)


_metrics_instance: Optional[MetricsCollector] = None
_collectors: Dict[CollectorRegistry, MetricsCollector] = {}


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call repeatedly: each registry gets exactly one collector, and
    the latest call decides what `get_metrics()` returns.
    """
    global _metrics_instance

    collector = _collectors.get(registry)
    if collector is None:
        collector = MetricsCollector(registry)
        _collectors[registry] = collector

    _metrics_instance = collector
    return collector


def get_metrics() -> MetricsCollector:
    """Get the module-level collector, creating it on first use."""
    if _metrics_instance is None:
        return setup_metrics()
    return _metrics_instance


def metrics_endpoint(collector: Optional[MetricsCollector] = None) -> Response:
    """Render the Prometheus exposition for a collector's registry."""
    registry = (collector or get_metrics()).registry
    return Response(
        content=generate_latest(registry),
        media_type=CONTENT_TYPE_LATEST,
    )

"""
SmartRoute - Speed Classification

Maps a network's current gas price to a speed class using the threshold
table in its static descriptor. No history is involved.
"""

from typing import Dict, Optional

from ..core.models import NetworkDescriptor, SpeedClass


# Expected confirmation time per speed class
ESTIMATED_TIMES: Dict[SpeedClass, str] = {
    SpeedClass.VERY_FAST: "1-2 seconds",
    SpeedClass.FAST: "2-5 seconds",
    SpeedClass.MEDIUM: "5-15 seconds",
    SpeedClass.SLOW: "15+ seconds",
}


def classify_speed(descriptor: Optional[NetworkDescriptor], gas_price_gwei: float) -> SpeedClass:
    """
    Classify a gas price for a network.

    Tiers are checked in order; a price strictly below a tier's bound takes
    that tier's class. Prices above every bound take the network default.
    Unknown networks are medium.
    """
    if descriptor is None:
        return SpeedClass.MEDIUM

    for tier in descriptor.speed_tiers:
        if gas_price_gwei < tier.below_gwei:
            return tier.speed
    return descriptor.default_speed


def estimated_time(speed: SpeedClass) -> str:
    return ESTIMATED_TIMES.get(speed, "Unknown")

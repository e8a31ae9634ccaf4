"""
SmartRoute - Smart network routing for crypto payments.

Monitors fee conditions on several EVM networks and picks the cheapest,
fastest or most reliable one for each payment.
"""

__version__ = "1.0.0"

from .core.config import Settings
from .service import SmartRoutingService, create_service

__all__ = [
    "__version__",
    "Settings",
    "SmartRoutingService",
    "create_service",
]

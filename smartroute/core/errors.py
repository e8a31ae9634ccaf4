"""
SmartRoute - Error Definitions

Error taxonomy with infra vs semantic vs configuration classification.

- Infra errors come from collaborators (RPC endpoints, price oracles). The
  network monitor absorbs them; routing callers never see them.
- Semantic errors mean the caller must fix the request.
- Configuration errors are fatal and raised at startup validation time.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"
    CONFIGURATION = "configuration_error"


@dataclass
class ErrorDetails:
    """Full error information for API response."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    network: Optional[str] = None
    param: Optional[str] = None

    # Recovery fields
    retryable: bool = False

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "retryable": self.retryable,
        }

        if self.network:
            result["network"] = self.network
        if self.param:
            result["param"] = self.param
        if self.details:
            result["details"] = self.details

        return {"error": result}


class SmartRouteException(Exception):
    """Base exception for all SmartRoute errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)


# ============================================================
# Infra Errors (absorbed by the network monitor)
# ============================================================

class InfraError(SmartRouteException):
    """Base class for collaborator failures during a poll."""
    pass


class RpcTimeoutError(InfraError):
    """RPC endpoint did not answer within the poll timeout."""

    def __init__(self, network: str, timeout_seconds: float):
        super().__init__(
            ErrorDetails(
                code="rpc_timeout",
                message=f"{network} RPC did not respond within {timeout_seconds}s",
                type=ErrorType.INFRA,
                network=network,
                retryable=True,
                details={"timeout_seconds": timeout_seconds},
            ),
            status_code=504,
        )


class RpcResponseError(InfraError):
    """RPC endpoint returned an error or a malformed payload."""

    def __init__(self, network: str, message: str, status_code: Optional[int] = None):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["upstream_status"] = status_code
        super().__init__(
            ErrorDetails(
                code="rpc_bad_response",
                message=message,
                type=ErrorType.INFRA,
                network=network,
                retryable=True,
                details=details,
            ),
            status_code=502,
        )


class PriceUnavailableError(InfraError):
    """Price oracle has no USD price for a currency."""

    def __init__(self, symbol: str):
        super().__init__(
            ErrorDetails(
                code="price_unavailable",
                message=f"No USD price available for {symbol}",
                type=ErrorType.INFRA,
                retryable=True,
                details={"symbol": symbol},
            ),
            status_code=502,
        )


# ============================================================
# Semantic Errors (client must fix the request)
# ============================================================

class SemanticError(SmartRouteException):
    """Base class for semantic errors."""
    pass


class InvalidRequestError(SemanticError):
    """Request failed validation before any scoring ran."""

    def __init__(self, message: str, param: Optional[str] = None, value: Any = None):
        details: Dict[str, Any] = {}
        if isinstance(value, float) and not math.isfinite(value):
            details["value"] = repr(value)
        elif value is not None:
            details["value"] = value
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=message,
                type=ErrorType.SEMANTIC,
                param=param,
                retryable=False,
                details=details,
            ),
            status_code=400,
        )


class UnknownNetworkError(SemanticError):
    """A network key that is not configured."""

    def __init__(self, network: str, param: str = "network"):
        super().__init__(
            ErrorDetails(
                code="unknown_network",
                message=f"Network '{network}' is not configured",
                type=ErrorType.SEMANTIC,
                network=network,
                param=param,
                retryable=False,
            ),
            status_code=400,
        )


# ============================================================
# Configuration Errors (fatal at startup)
# ============================================================

class ConfigurationError(SmartRouteException):
    """Static configuration is unusable."""

    def __init__(self, message: str, param: Optional[str] = None):
        super().__init__(
            ErrorDetails(
                code="configuration_error",
                message=message,
                type=ErrorType.CONFIGURATION,
                param=param,
                retryable=False,
            ),
            status_code=500,
        )


class FallbackNotConfiguredError(ConfigurationError):
    """The designated default network is missing from the network table."""

    def __init__(self, network: str):
        super().__init__(
            f"Default network '{network}' is not among the configured networks",
            param="default_network",
        )

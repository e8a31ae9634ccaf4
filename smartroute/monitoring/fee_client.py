"""
SmartRoute - Fee Data Clients

A fee data client answers one question for the network monitor: what is the
current gas price on this network, in wei?

Any Web3-style JSON-RPC endpoint works through JsonRpcFeeClient, which calls
`eth_gasPrice` over httpx.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..core.errors import RpcResponseError, RpcTimeoutError
from ..core.models import NetworkDescriptor


class BaseFeeClient(ABC):
    """Abstract fee data client."""

    @abstractmethod
    async def get_gas_price(self, network: NetworkDescriptor) -> int:
        """
        Fetch the current gas price.

        Args:
            network: Network whose RPC endpoint to query

        Returns:
            Gas price in wei

        Raises:
            InfraError: endpoint unreachable, timed out or returned garbage
        """
        pass

    async def close(self):
        """Release any held connections."""
        pass


@dataclass
class FeeClientConfig:
    """Configuration for the JSON-RPC client."""
    timeout: float = 8.0
    max_connections: int = 20


class JsonRpcFeeClient(BaseFeeClient):
    """Reads gas prices with the standard `eth_gasPrice` JSON-RPC method."""

    METHOD = "eth_gasPrice"

    def __init__(
        self,
        config: Optional[FeeClientConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or FeeClientConfig()
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            limits=httpx.Limits(max_connections=self.config.max_connections),
            headers={"Content-Type": "application/json"},
        )
        self._request_id = 0

    def _next_payload(self) -> Dict[str, Any]:
        self._request_id += 1
        return {
            "jsonrpc": "2.0",
            "method": self.METHOD,
            "params": [],
            "id": self._request_id,
        }

    async def get_gas_price(self, network: NetworkDescriptor) -> int:
        try:
            response = await self.client.post(network.rpc_url, json=self._next_payload())
        except httpx.TimeoutException:
            raise RpcTimeoutError(network.key, self.config.timeout)
        except httpx.HTTPError as e:
            raise RpcResponseError(network.key, f"{network.display_name} RPC request failed: {e}")

        if response.status_code != 200:
            raise RpcResponseError(
                network.key,
                f"{network.display_name} RPC returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise RpcResponseError(network.key, f"{network.display_name} RPC returned non-JSON body")

        return parse_gas_price(network, body)

    async def close(self):
        await self.client.aclose()


def parse_gas_price(network: NetworkDescriptor, body: Any) -> int:
    """Extract a wei amount from a JSON-RPC response body."""
    if not isinstance(body, dict):
        raise RpcResponseError(network.key, f"{network.display_name} RPC returned a non-object body")

    if body.get("error"):
        error = body["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise RpcResponseError(network.key, f"{network.display_name} RPC error: {message}")

    result = body.get("result")
    if not isinstance(result, str) or not result.startswith("0x"):
        raise RpcResponseError(
            network.key, f"{network.display_name} RPC returned malformed gas price: {result!r}"
        )

    try:
        wei = int(result, 16)
    except ValueError:
        raise RpcResponseError(
            network.key, f"{network.display_name} RPC returned malformed gas price: {result!r}"
        )

    if wei < 0:
        raise RpcResponseError(network.key, f"{network.display_name} RPC returned negative gas price")
    return wei

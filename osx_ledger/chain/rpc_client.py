"""EVM JSON-RPC client with endpoint fallback — reads the collateral index."""
from __future__ import annotations

import asyncio
import itertools
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import ChainConfig

logger = logging.getLogger(__name__)

# First four bytes of keccak256("index()")
INDEX_SELECTOR = "0x2986c0e5"

# JSON-RPC error code nodes use for a reverted eth_call
EXECUTION_REVERTED = 3


class RpcError(RuntimeError):
    """A node answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"RPC Error {code}: {message}")

    @property
    def reverted(self) -> bool:
        return self.code == EXECUTION_REVERTED or "execution reverted" in self.message


class EvmRpcClient:
    """EVM RPC client that rotates to the next endpoint when one fails.

    All attempts for one call share a single HTTP session. A reverted
    ``eth_call`` is raised straight away, since every node would agree.
    """

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._ids = itertools.count(1)

    async def _post(
        self, session: aiohttp.ClientSession, url: str, payload: dict[str, Any]
    ) -> Any:
        async with session.post(
            url, json=payload, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            body = await response.json()
        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(int(error.get("code", 0)), str(error.get("message", "")))
            raise RpcError(0, str(error))
        return body.get("result")

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Call ``method``, starting at the last endpoint that worked."""
        if not self.endpoints:
            raise RuntimeError("No RPC endpoints configured")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        count = len(self.endpoints)

        last_error: Exception | None = None
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        async with aiohttp.ClientSession(connector=connector) as session:
            for offset in range(count):
                rpc_index = (self.current_rpc_index + offset) % count
                rpc_url = self.endpoints[rpc_index]
                try:
                    result = await self._post(session, rpc_url, payload)
                except RpcError as e:
                    if e.reverted:
                        raise
                    last_error = e
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
                    last_error = e
                else:
                    if rpc_index != self.current_rpc_index:
                        logger.info("Switched to RPC endpoint: %s", rpc_url)
                        self.current_rpc_index = rpc_index
                    return result

                logger.warning("%s via %s failed: %s", method, rpc_url, last_error)

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RuntimeError(f"Unexpected eth_call result: {result!r}")
        return result

    async def fetch_index(self, contract: str) -> int:
        """Read the collateral wrapper's current index."""
        if not contract:
            raise ValueError("No index contract configured")

        raw = await self.eth_call(contract, INDEX_SELECTOR)
        index = int(raw, 16) if raw != "0x" else 0
        if index <= 0:
            raise RuntimeError(f"Index contract {contract} returned {raw}")

        logger.info("Fetched collateral index %d from %s", index, contract)
        return index

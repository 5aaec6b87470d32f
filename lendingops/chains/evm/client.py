"""EVM JSON-RPC client with endpoint fallback."""
from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi
from eth_abi import decode
from eth_abi.exceptions import DecodingError

from ...config import NetworkConfig
from ...errors import RpcError

logger = logging.getLogger(__name__)

# Selector of Solidity's Error(string)
ERROR_STRING_SELECTOR = "0x08c379a0"


def decode_revert_reason(data: Any) -> str | None:
    """Extract the string from ``Error(string)`` revert data, if present."""
    if isinstance(data, dict):
        data = data.get("data")
    if not isinstance(data, str) or not data.lower().startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = decode(["string"], bytes.fromhex(data[len(ERROR_STRING_SELECTOR):]))
    except (DecodingError, ValueError):
        return None
    return reason


def _rpc_error(method: str, error: Any) -> RpcError:
    if not isinstance(error, dict):
        return RpcError(method, str(error))
    return RpcError(
        method,
        str(error.get("message", error)),
        code=error.get("code"),
        reason=decode_revert_reason(error.get("data")),
    )


def _hex(value: int) -> str:
    return hex(value)


def to_rpc_transaction(tx: dict[str, Any]) -> dict[str, Any]:
    """Quantity fields hex-encoded, as Ethereum JSON-RPC expects."""
    return {k: _hex(v) if isinstance(v, int) else v for k, v in tx.items()}


class EvmClient:
    """EVM node RPC client with automatic endpoint fallback.

    Transport failures rotate to the next endpoint; a JSON-RPC error object
    (revert, bad params) is deterministic and raised immediately.
    """

    def __init__(self, config: NetworkConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._request_id = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index

            if not isinstance(result, dict):
                raise RpcError(method, f"malformed response: {result!r}")
            if "error" in result:
                raise _rpc_error(method, result["error"])
            return result.get("result")

        raise RpcError(method, f"All RPC endpoints failed. Last error: {last_error}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def eth_call(self, to: str, data: str) -> bytes:
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise RpcError("eth_call", f"unexpected result: {result!r}")
        return bytes.fromhex(result.removeprefix("0x"))

    async def chain_id(self) -> int:
        return int(await self.rpc_call("eth_chainId", []), 16)

    async def gas_price(self) -> int:
        return int(await self.rpc_call("eth_gasPrice", []), 16)

    async def get_transaction_count(self, address: str) -> int:
        return int(
            await self.rpc_call("eth_getTransactionCount", [address, "pending"]), 16
        )

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return int(await self.rpc_call("eth_estimateGas", [to_rpc_transaction(tx)]), 16)

    async def accounts(self) -> list[str]:
        return list(await self.rpc_call("eth_accounts", []) or [])

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.rpc_call("eth_getTransactionReceipt", [tx_hash])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def send_raw_transaction(self, raw: bytes) -> str:
        return await self.rpc_call("eth_sendRawTransaction", ["0x" + raw.hex()])

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Send through a node-managed (unlocked) account."""
        return await self.rpc_call("eth_sendTransaction", [to_rpc_transaction(tx)])

    async def wait_for_receipt(
        self, tx_hash: str, poll_interval: float = 2.0
    ) -> dict[str, Any]:
        """Poll until the transaction is mined. Callers impose the timeout."""
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            logger.debug("Waiting for %s to be mined", tx_hash)
            await asyncio.sleep(poll_interval)

    # ------------------------------------------------------------------
    # Local-node time control
    # ------------------------------------------------------------------

    async def increase_time(self, seconds: int) -> None:
        await self.rpc_call("evm_increaseTime", [seconds])

    async def mine(self) -> None:
        await self.rpc_call("evm_mine", [])

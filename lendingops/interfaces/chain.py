"""Chain client protocol: EVM JSON-RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for blockchain RPC interactions."""

    async def eth_call(self, to: str, data: str) -> bytes: ...

    async def chain_id(self) -> int: ...

    async def gas_price(self) -> int: ...

    async def get_transaction_count(self, address: str) -> int: ...

    async def estimate_gas(self, tx: dict[str, Any]) -> int: ...

    async def accounts(self) -> list[str]: ...

    async def send_raw_transaction(self, raw: bytes) -> str: ...

    async def send_transaction(self, tx: dict[str, Any]) -> str: ...

    async def wait_for_receipt(
        self, tx_hash: str, poll_interval: float = 2.0
    ) -> dict[str, Any]: ...

    async def increase_time(self, seconds: int) -> None: ...

    async def mine(self) -> None: ...

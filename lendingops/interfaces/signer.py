"""Signer protocol: who sends write transactions."""
from typing import Any, Protocol

from .chain import ChainClient


class TransactionSigner(Protocol):
    """Submits an unsigned ``{to, data}`` call and returns the tx hash."""

    @property
    def address(self) -> str: ...

    async def send(self, client: ChainClient, tx: dict[str, Any]) -> str: ...

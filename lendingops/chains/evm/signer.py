"""Transaction signers: a local private key, or an unlocked node account."""
from __future__ import annotations

import logging
from typing import Any

from eth_account import Account
from web3 import Web3

from ...config import SignerSettings
from ...errors import MissingConfigurationError
from ...interfaces.chain import ChainClient

logger = logging.getLogger(__name__)


class LocalAccountSigner:
    """Signs transactions in-process with eth-account."""

    def __init__(self, private_key: str, gas_multiplier: float = 1.2) -> None:
        self._account = Account.from_key(private_key)
        self._gas_multiplier = gas_multiplier

    @property
    def address(self) -> str:
        return self._account.address

    async def send(self, client: ChainClient, tx: dict[str, Any]) -> str:
        call = {"from": self.address, "to": tx["to"], "data": tx["data"], "value": 0}
        gas = await client.estimate_gas(call)
        nonce = await client.get_transaction_count(self.address)
        gas_price = await client.gas_price()
        chain_id = await client.chain_id()

        signed = self._account.sign_transaction(
            {
                "to": Web3.to_checksum_address(tx["to"]),
                "data": tx["data"],
                "value": 0,
                "gas": int(gas * self._gas_multiplier),
                "gasPrice": gas_price,
                "nonce": nonce,
                "chainId": chain_id,
            }
        )
        return await client.send_raw_transaction(signed.raw_transaction)


class NodeAccountSigner:
    """Delegates signing to the node (hardhat/anvil unlocked accounts)."""

    def __init__(self, address: str, gas_multiplier: float = 1.2) -> None:
        self._address = Web3.to_checksum_address(address)
        self._gas_multiplier = gas_multiplier

    @property
    def address(self) -> str:
        return self._address

    async def send(self, client: ChainClient, tx: dict[str, Any]) -> str:
        call = {"from": self.address, "to": tx["to"], "data": tx["data"]}
        gas = await client.estimate_gas(call)
        return await client.send_transaction({**call, "gas": int(gas * self._gas_multiplier)})


async def build_signer(
    client: ChainClient, settings: SignerSettings, gas_multiplier: float = 1.2
) -> LocalAccountSigner | NodeAccountSigner:
    """Create the signer described by ``settings``."""
    if settings.private_key:
        return LocalAccountSigner(settings.private_key, gas_multiplier)

    accounts = await client.accounts()
    if not accounts:
        raise MissingConfigurationError(
            "signer", ("LOCAL_PRIVATE_KEY", "PRIVATE_KEY")
        )

    index = settings.account_index or 0
    if index >= len(accounts):
        logger.warning(
            "Node exposes %d account(s); using account[0] instead of account[%d]",
            len(accounts), index,
        )
        index = 0

    logger.info("Using node account[%d]: %s", index, accounts[index])
    return NodeAccountSigner(accounts[index], gas_multiplier)

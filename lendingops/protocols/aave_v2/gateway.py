"""Typed access to the lending pool, its data provider and ERC-20 tokens."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from eth_abi.exceptions import DecodingError
from web3 import Web3

from ...errors import (
    InvalidResponseError,
    MissingConfigurationError,
    SettlementTimeoutError,
    TransactionRevertedError,
)
from ...interfaces.chain import ChainClient
from ...interfaces.signer import TransactionSigner
from ...models import (
    AccountData,
    AddressSet,
    ReserveConfigurationData,
    ReserveData,
    ReserveToken,
    ReserveTokenAddresses,
    UserReserveData,
)
from . import abi, parser

logger = logging.getLogger(__name__)

REFERRAL_CODE = 0


class LendingPoolGateway:
    """Encodes calls, decodes results and submits signed transactions.

    Reads need only a chain client; writes also need a signer, whose
    address is used as ``onBehalfOf``/``to`` for every action.
    """

    def __init__(
        self,
        client: ChainClient,
        addresses: AddressSet,
        signer: TransactionSigner | None = None,
        poll_interval: float = 2.0,
    ) -> None:
        self._client = client
        self._addresses = addresses
        self._signer = signer
        self._poll_interval = poll_interval
        self._pool = Web3.to_checksum_address(addresses.lending_pool)
        self._data_provider = (
            Web3.to_checksum_address(addresses.data_provider)
            if addresses.data_provider
            else None
        )

    @property
    def pool_address(self) -> str:
        return self._pool

    @property
    def has_data_provider(self) -> bool:
        return self._data_provider is not None

    @property
    def signer_address(self) -> str:
        return self._require_signer().address

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    async def _call(self, target: str, fn: abi.ContractFunction, *args: Any) -> tuple[Any, ...]:
        data = await self._client.eth_call(target, fn.encode_call(*args))
        try:
            return fn.decode_output(data)
        except (DecodingError, ValueError) as e:
            raise InvalidResponseError(
                f"{fn.signature} on {target} returned undecodable data ({len(data)} bytes)"
            ) from e

    def _require_data_provider(self) -> str:
        if self._data_provider is None:
            raise MissingConfigurationError("data_provider", ("DATA_PROVIDER_ADDRESS",))
        return self._data_provider

    def _require_signer(self) -> TransactionSigner:
        if self._signer is None:
            raise RuntimeError("Gateway was created without a signer; writes are unavailable")
        return self._signer

    @staticmethod
    def _checksum(address: str) -> str:
        return Web3.to_checksum_address(address)

    # ------------------------------------------------------------------
    # Pool reads
    # ------------------------------------------------------------------

    async def paused(self) -> bool:
        (value,) = await self._call(self._pool, abi.POOL_PAUSED)
        return bool(value)

    async def get_reserve_data(self, asset: str) -> ReserveData:
        values = await self._call(self._pool, abi.POOL_GET_RESERVE_DATA, self._checksum(asset))
        return parser.parse_reserve_data(values)

    async def get_reserves_list(self) -> list[str]:
        (values,) = await self._call(self._pool, abi.POOL_GET_RESERVES_LIST)
        return parser.parse_address_list(values)

    async def get_user_account_data(self, user: str) -> AccountData:
        values = await self._call(
            self._pool, abi.POOL_GET_USER_ACCOUNT_DATA, self._checksum(user)
        )
        return parser.parse_account_data(values)

    # ------------------------------------------------------------------
    # Data provider reads
    # ------------------------------------------------------------------

    async def get_all_reserves_tokens(self) -> list[ReserveToken]:
        (entries,) = await self._call(
            self._require_data_provider(), abi.DP_GET_ALL_RESERVES_TOKENS
        )
        return parser.parse_reserve_tokens(entries)

    async def get_reserve_configuration_data(self, asset: str) -> ReserveConfigurationData:
        values = await self._call(
            self._require_data_provider(),
            abi.DP_GET_RESERVE_CONFIGURATION_DATA,
            self._checksum(asset),
        )
        return parser.parse_reserve_configuration_data(values)

    async def get_user_reserve_data(self, asset: str, user: str) -> UserReserveData:
        values = await self._call(
            self._require_data_provider(),
            abi.DP_GET_USER_RESERVE_DATA,
            self._checksum(asset),
            self._checksum(user),
        )
        return parser.parse_user_reserve_data(values)

    async def get_reserve_tokens_addresses(self, asset: str) -> ReserveTokenAddresses:
        values = await self._call(
            self._require_data_provider(),
            abi.DP_GET_RESERVE_TOKENS_ADDRESSES,
            self._checksum(asset),
        )
        return parser.parse_reserve_tokens_addresses(values)

    # ------------------------------------------------------------------
    # Token reads
    # ------------------------------------------------------------------

    async def balance_of(self, token: str, owner: str) -> int:
        (value,) = await self._call(
            self._checksum(token), abi.ERC20_BALANCE_OF, self._checksum(owner)
        )
        return int(value)

    async def symbol(self, token: str) -> str:
        (value,) = await self._call(self._checksum(token), abi.ERC20_SYMBOL)
        return str(value)

    async def name(self, token: str) -> str:
        (value,) = await self._call(self._checksum(token), abi.ERC20_NAME)
        return str(value)

    async def decimals(self, token: str) -> int:
        (value,) = await self._call(self._checksum(token), abi.ERC20_DECIMALS)
        return int(value)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _send(self, target: str, data: str, label: str) -> str:
        signer = self._require_signer()
        tx_hash = await signer.send(self._client, {"to": target, "data": data})
        logger.info("%s submitted: %s", label, tx_hash)
        return tx_hash

    async def approve(self, token: str, amount: int) -> str:
        data = abi.ERC20_APPROVE.encode_call(self._pool, amount)
        return await self._send(self._checksum(token), data, "approve")

    async def deposit(self, asset: str, amount: int) -> str:
        data = abi.POOL_DEPOSIT.encode_call(
            self._checksum(asset), amount, self.signer_address, REFERRAL_CODE
        )
        return await self._send(self._pool, data, "deposit")

    async def withdraw(self, asset: str, amount: int) -> str:
        data = abi.POOL_WITHDRAW.encode_call(
            self._checksum(asset), amount, self.signer_address
        )
        return await self._send(self._pool, data, "withdraw")

    async def borrow(self, asset: str, amount: int, rate_mode: int) -> str:
        data = abi.POOL_BORROW.encode_call(
            self._checksum(asset), amount, int(rate_mode), REFERRAL_CODE, self.signer_address
        )
        return await self._send(self._pool, data, "borrow")

    async def repay(self, asset: str, amount: int, rate_mode: int) -> str:
        data = abi.POOL_REPAY.encode_call(
            self._checksum(asset), amount, int(rate_mode), self.signer_address
        )
        return await self._send(self._pool, data, "repay")

    async def wait_for_settlement(self, tx_hash: str, timeout: float) -> dict[str, Any]:
        """Wait for the receipt; raise on timeout or a reverted status."""
        try:
            receipt = await asyncio.wait_for(
                self._client.wait_for_receipt(tx_hash, self._poll_interval), timeout
            )
        except asyncio.TimeoutError as e:
            raise SettlementTimeoutError(tx_hash, timeout) from e

        status = receipt.get("status")
        if isinstance(status, str):
            status = int(status, 16)
        if status == 0:
            raise TransactionRevertedError(tx_hash, receipt)
        logger.info("Transaction %s mined in block %s", tx_hash, receipt.get("blockNumber"))
        return receipt

    async def advance_time(self, seconds: int) -> None:
        """Local networks only: move the chain clock forward and mine a block."""
        await self._client.increase_time(seconds)
        await self._client.mine()

"""Lending pool protocol: typed reads and writes against the pool contracts."""
from typing import Any, Protocol

from ..models import (
    AccountData,
    ReserveConfigurationData,
    ReserveData,
    ReserveToken,
    ReserveTokenAddresses,
    UserReserveData,
)


class LendingPool(Protocol):
    """Abstract interface over the pool, its data provider and ERC-20 tokens."""

    @property
    def pool_address(self) -> str: ...

    @property
    def has_data_provider(self) -> bool: ...

    @property
    def signer_address(self) -> str: ...

    # Pool reads
    async def paused(self) -> bool: ...

    async def get_reserve_data(self, asset: str) -> ReserveData: ...

    async def get_reserves_list(self) -> list[str]: ...

    async def get_user_account_data(self, user: str) -> AccountData: ...

    # Data provider reads
    async def get_all_reserves_tokens(self) -> list[ReserveToken]: ...

    async def get_reserve_configuration_data(
        self, asset: str
    ) -> ReserveConfigurationData: ...

    async def get_user_reserve_data(self, asset: str, user: str) -> UserReserveData: ...

    async def get_reserve_tokens_addresses(self, asset: str) -> ReserveTokenAddresses: ...

    # Token reads
    async def balance_of(self, token: str, owner: str) -> int: ...

    async def symbol(self, token: str) -> str: ...

    async def decimals(self, token: str) -> int: ...

    async def name(self, token: str) -> str: ...

    # Writes (return the transaction hash)
    async def approve(self, token: str, amount: int) -> str: ...

    async def deposit(self, asset: str, amount: int) -> str: ...

    async def withdraw(self, asset: str, amount: int) -> str: ...

    async def borrow(self, asset: str, amount: int, rate_mode: int) -> str: ...

    async def repay(self, asset: str, amount: int, rate_mode: int) -> str: ...

    async def wait_for_settlement(self, tx_hash: str, timeout: float) -> dict[str, Any]: ...

    async def advance_time(self, seconds: int) -> None: ...

"""Wallet and deposited balances across the pool's reserves."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from ..errors import LendingOpsError
from ..interfaces.lending_pool import LendingPool
from ..models import (
    ReserveBalance,
    ReserveBalanceResult,
    ReserveToken,
    TokenBalance,
)
from .inspector import UNKNOWN_SYMBOL, list_reserves

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18


class BalanceAggregator:
    """Reads ``wallet`` and ``deposited`` amounts per reserve.

    Reserves are queried concurrently and independently: a failed read is
    recorded against its reserve and the others still complete. A missing
    symbol or decimals value degrades to a placeholder instead of failing.
    """

    def __init__(self, pool: LendingPool) -> None:
        self._pool = pool

    async def list_reserves(self) -> list[ReserveToken]:
        return await list_reserves(self._pool)

    async def balance_for(self, user: str, reserve: str) -> TokenBalance:
        """Wallet balance plus yield-bearing token balance for one reserve."""
        wallet, data = await asyncio.gather(
            self._pool.balance_of(reserve, user),
            self._pool.get_reserve_data(reserve),
        )
        deposited = 0
        if data.is_initialized:
            deposited = await self._pool.balance_of(data.yield_token_address, user)
        return TokenBalance(wallet=wallet, deposited=deposited)

    async def _symbol(self, token: ReserveToken) -> str:
        if token.symbol and token.symbol != UNKNOWN_SYMBOL:
            return token.symbol
        try:
            return await self._pool.symbol(token.address)
        except LendingOpsError as e:
            logger.warning("symbol() failed for %s: %s", token.address, e)
            return UNKNOWN_SYMBOL

    async def _decimals(self, token: ReserveToken) -> int:
        try:
            return await self._pool.decimals(token.address)
        except LendingOpsError as e:
            logger.warning(
                "decimals() failed for %s, assuming %d: %s", token.address, DEFAULT_DECIMALS, e
            )
            return DEFAULT_DECIMALS

    async def _read_reserve(self, user: str, token: ReserveToken) -> ReserveBalanceResult:
        symbol, decimals = await asyncio.gather(self._symbol(token), self._decimals(token))
        try:
            balance = await self.balance_for(user, token.address)
        except LendingOpsError as e:
            logger.warning("Balance read failed for %s (%s): %s", symbol, token.address, e)
            return ReserveBalanceResult(reserve=token.address, symbol=symbol, error=str(e))
        return ReserveBalanceResult(
            reserve=token.address,
            symbol=symbol,
            balance=ReserveBalance(
                reserve=token.address, symbol=symbol, decimals=decimals, balance=balance
            ),
        )

    async def aggregate(
        self, user: str, reserves: Iterable[ReserveToken] | None = None
    ) -> dict[str, ReserveBalanceResult]:
        """Balances for every reserve, keyed by reserve address."""
        tokens = list(reserves) if reserves is not None else await self.list_reserves()
        results = await asyncio.gather(*(self._read_reserve(user, t) for t in tokens))
        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "Aggregated %d reserve(s) for %s (%d failed)", len(results), user, failed
        )
        return {r.reserve: r for r in results}

    @staticmethod
    def with_balance(results: Mapping[str, ReserveBalanceResult]) -> list[ReserveBalance]:
        """Successful results whose combined balance is non-zero."""
        return [
            r.balance
            for r in results.values()
            if r.balance is not None and r.balance.balance.total > 0
        ]

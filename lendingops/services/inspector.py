"""Pool and reserve eligibility checks."""
from __future__ import annotations

import asyncio
import logging

from ..errors import LendingOpsError
from ..interfaces.lending_pool import LendingPool
from ..models import ReserveOverview, ReserveStatus, ReserveToken
from ..protocols.aave_v2.parser import decode_reserve_config

logger = logging.getLogger(__name__)

UNKNOWN_SYMBOL = "???"


async def list_reserves(pool: LendingPool) -> list[ReserveToken]:
    """Every reserve registered in the pool.

    The data provider's listing carries symbols; without it (or when it
    fails) the pool's bare address list is used and symbols are unknown.
    """
    if pool.has_data_provider:
        try:
            return await pool.get_all_reserves_tokens()
        except LendingOpsError as e:
            logger.warning("Data provider reserve listing failed, using pool list: %s", e)
    addresses = await pool.get_reserves_list()
    return [ReserveToken(symbol=UNKNOWN_SYMBOL, address=a) for a in addresses]


class PoolInspector:
    def __init__(self, pool: LendingPool) -> None:
        self._pool = pool

    async def is_paused(self) -> bool | None:
        """Pool pause flag, or ``None`` when it cannot be read."""
        try:
            return await self._pool.paused()
        except LendingOpsError as e:
            logger.warning("Could not read pool pause state: %s", e)
            return None

    async def reserve_status(self, asset: str) -> ReserveStatus:
        """Status of ``asset`` combined with the pool pause flag.

        A failed reserve read propagates; a failed pause read does not.
        """
        paused, data = await asyncio.gather(
            self.is_paused(), self._pool.get_reserve_data(asset)
        )
        return ReserveStatus(
            asset=asset,
            initialized=data.is_initialized,
            config=decode_reserve_config(data.configuration),
            paused=paused,
            yield_token_address=data.yield_token_address,
        )

    async def list_reserves(self) -> list[ReserveToken]:
        return await list_reserves(self._pool)

    async def _overview(self, token: ReserveToken) -> ReserveOverview:
        try:
            status = await self.reserve_status(token.address)
        except LendingOpsError as e:
            logger.warning("Reserve %s (%s): %s", token.symbol, token.address, e)
            return ReserveOverview(token=token, error=str(e))

        name: str | None = None
        decimals: int | None = None
        try:
            name, decimals = await asyncio.gather(
                self._pool.name(token.address), self._pool.decimals(token.address)
            )
        except LendingOpsError as e:
            logger.debug("Token metadata unavailable for %s: %s", token.address, e)
        return ReserveOverview(token=token, name=name, decimals=decimals, status=status)

    async def list_reserve_statuses(self) -> list[ReserveOverview]:
        tokens = await self.list_reserves()
        logger.info("Pool lists %d reserve(s)", len(tokens))
        return list(await asyncio.gather(*(self._overview(t) for t in tokens)))

"""Integration tests for the pool gateway: calldata encoding and result decoding."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_abi import decode, encode

from lendingops.errors import (
    InvalidResponseError,
    MissingConfigurationError,
    SettlementTimeoutError,
    TransactionRevertedError,
)
from lendingops.models import MAX_UINT256, ZERO_ADDRESS, AddressSet
from lendingops.protocols.aave_v2 import LendingPoolGateway, abi
from tests.factories import A_TOKEN, DATA_PROVIDER, POOL, TOKEN, TX_HASH, USER


@pytest.fixture()
def chain() -> MagicMock:
    client = MagicMock()
    client.eth_call = AsyncMock()
    client.wait_for_receipt = AsyncMock(return_value={"status": "0x1", "blockNumber": "0x5"})
    client.increase_time = AsyncMock()
    client.mine = AsyncMock()
    return client


@pytest.fixture()
def signer() -> MagicMock:
    s = MagicMock()
    s.address = USER
    s.send = AsyncMock(return_value=TX_HASH)
    return s


@pytest.fixture()
def gateway(chain: MagicMock, signer: MagicMock) -> LendingPoolGateway:
    return LendingPoolGateway(
        chain,
        AddressSet(lending_pool=POOL, data_provider=DATA_PROVIDER, token=TOKEN),
        signer=signer,
        poll_interval=0,
    )


def _args(data: str, fn: abi.ContractFunction) -> tuple:
    """Decode calldata back into arguments, checking the selector."""
    raw = bytes.fromhex(data.removeprefix("0x"))
    assert raw[:4] == fn.selector
    return tuple(decode(list(fn.inputs), raw[4:]))


class TestContractFunction:
    def test_known_selectors(self) -> None:
        assert abi.ERC20_BALANCE_OF.selector.hex() == "70a08231"
        assert abi.ERC20_APPROVE.selector.hex() == "095ea7b3"
        assert abi.POOL_DEPOSIT.signature == "deposit(address,uint256,address,uint16)"

    def test_argument_count(self) -> None:
        with pytest.raises(TypeError, match="takes 1 argument"):
            abi.ERC20_BALANCE_OF.encode_call()


class TestReads:
    @pytest.mark.asyncio
    async def test_paused(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        chain.eth_call.return_value = encode(["bool"], [True])
        assert await gateway.paused() is True
        target, data = chain.eth_call.await_args.args
        assert target == POOL
        assert data == "0x" + abi.POOL_PAUSED.selector.hex()

    @pytest.mark.asyncio
    async def test_get_reserve_data(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        chain.eth_call.return_value = encode(
            list(abi.POOL_GET_RESERVE_DATA.outputs),
            [(1 << 56,), 10**27, 10**27, 0, 0, 0, 1_700_000_000,
             A_TOKEN, ZERO_ADDRESS, ZERO_ADDRESS, ZERO_ADDRESS, 2],
        )
        data = await gateway.get_reserve_data(TOKEN)
        assert data.configuration == 1 << 56
        assert data.yield_token_address == A_TOKEN
        assert data.is_initialized

    @pytest.mark.asyncio
    async def test_get_user_account_data(
        self, gateway: LendingPoolGateway, chain: MagicMock
    ) -> None:
        chain.eth_call.return_value = encode(["uint256"] * 6, [1000, 0, 750, 8000, 7500, MAX_UINT256])
        data = await gateway.get_user_account_data(USER)
        assert data.total_collateral == 1000
        assert data.health_factor == MAX_UINT256
        _, calldata = chain.eth_call.await_args.args
        assert _args(calldata, abi.POOL_GET_USER_ACCOUNT_DATA) == (USER,)

    @pytest.mark.asyncio
    async def test_get_all_reserves_tokens(
        self, gateway: LendingPoolGateway, chain: MagicMock
    ) -> None:
        chain.eth_call.return_value = encode(
            ["(string,address)[]"], [[("USDC", TOKEN), ("WETH", A_TOKEN)]]
        )
        tokens = await gateway.get_all_reserves_tokens()
        assert [t.symbol for t in tokens] == ["USDC", "WETH"]
        assert chain.eth_call.await_args.args[0] == DATA_PROVIDER

    @pytest.mark.asyncio
    async def test_get_reserve_tokens_addresses(
        self, gateway: LendingPoolGateway, chain: MagicMock
    ) -> None:
        chain.eth_call.return_value = encode(["address"] * 3, [A_TOKEN, ZERO_ADDRESS, USER])
        tokens = await gateway.get_reserve_tokens_addresses(TOKEN)
        assert tokens.yield_token == A_TOKEN
        assert tokens.variable_debt_token == USER
        target, calldata = chain.eth_call.await_args.args
        assert target == DATA_PROVIDER
        assert _args(calldata, abi.DP_GET_RESERVE_TOKENS_ADDRESSES) == (TOKEN,)

    @pytest.mark.asyncio
    async def test_undecodable_result(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        chain.eth_call.return_value = b""
        with pytest.raises(InvalidResponseError, match="getUserAccountData"):
            await gateway.get_user_account_data(USER)

    @pytest.mark.asyncio
    async def test_data_provider_required(self, chain: MagicMock) -> None:
        gateway = LendingPoolGateway(chain, AddressSet(lending_pool=POOL))
        assert not gateway.has_data_provider
        with pytest.raises(MissingConfigurationError, match="DATA_PROVIDER_ADDRESS"):
            await gateway.get_user_reserve_data(TOKEN, USER)
        chain.eth_call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_metadata(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        chain.eth_call.side_effect = [encode(["string"], ["USDC"]), encode(["uint8"], [6])]
        assert await gateway.symbol(TOKEN) == "USDC"
        assert await gateway.decimals(TOKEN) == 6


class TestWrites:
    @pytest.mark.asyncio
    async def test_approve_targets_pool(self, gateway: LendingPoolGateway, signer: MagicMock) -> None:
        assert await gateway.approve(TOKEN, MAX_UINT256) == TX_HASH
        _, tx = signer.send.await_args.args
        assert tx["to"] == TOKEN
        assert _args(tx["data"], abi.ERC20_APPROVE) == (POOL, MAX_UINT256)

    @pytest.mark.asyncio
    async def test_deposit(self, gateway: LendingPoolGateway, signer: MagicMock) -> None:
        await gateway.deposit(TOKEN, 100)
        _, tx = signer.send.await_args.args
        assert tx["to"] == POOL
        assert _args(tx["data"], abi.POOL_DEPOSIT) == (TOKEN, 100, USER, 0)

    @pytest.mark.asyncio
    async def test_borrow(self, gateway: LendingPoolGateway, signer: MagicMock) -> None:
        await gateway.borrow(TOKEN, 5, 2)
        _, tx = signer.send.await_args.args
        assert _args(tx["data"], abi.POOL_BORROW) == (TOKEN, 5, 2, 0, USER)

    @pytest.mark.asyncio
    async def test_repay_full_stable(self, gateway: LendingPoolGateway, signer: MagicMock) -> None:
        await gateway.repay(TOKEN, MAX_UINT256, 1)
        _, tx = signer.send.await_args.args
        assert _args(tx["data"], abi.POOL_REPAY) == (TOKEN, MAX_UINT256, 1, USER)

    @pytest.mark.asyncio
    async def test_withdraw(self, gateway: LendingPoolGateway, signer: MagicMock) -> None:
        await gateway.withdraw(TOKEN, MAX_UINT256)
        _, tx = signer.send.await_args.args
        assert _args(tx["data"], abi.POOL_WITHDRAW) == (TOKEN, MAX_UINT256, USER)

    @pytest.mark.asyncio
    async def test_writes_need_signer(self, chain: MagicMock) -> None:
        gateway = LendingPoolGateway(chain, AddressSet(lending_pool=POOL))
        with pytest.raises(RuntimeError, match="without a signer"):
            await gateway.deposit(TOKEN, 1)


class TestSettlement:
    @pytest.mark.asyncio
    async def test_success(self, gateway: LendingPoolGateway) -> None:
        receipt = await gateway.wait_for_settlement(TX_HASH, timeout=1)
        assert receipt["blockNumber"] == "0x5"

    @pytest.mark.asyncio
    async def test_reverted(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        chain.wait_for_receipt.return_value = {"status": "0x0"}
        with pytest.raises(TransactionRevertedError):
            await gateway.wait_for_settlement(TX_HASH, timeout=1)

    @pytest.mark.asyncio
    async def test_timeout(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        async def never(*args, **kwargs):
            await asyncio.sleep(10)

        chain.wait_for_receipt.side_effect = never
        with pytest.raises(SettlementTimeoutError, match="may still settle"):
            await gateway.wait_for_settlement(TX_HASH, timeout=0.01)

    @pytest.mark.asyncio
    async def test_advance_time(self, gateway: LendingPoolGateway, chain: MagicMock) -> None:
        await gateway.advance_time(86400)
        chain.increase_time.assert_awaited_once_with(86400)
        chain.mine.assert_awaited_once()

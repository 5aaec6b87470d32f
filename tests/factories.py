"""Builders for on-chain structures used across tests."""
from __future__ import annotations

from lendingops.models import (
    ZERO_ADDRESS,
    AccountData,
    ReserveData,
    UserReserveData,
)

POOL = "0x1111111111111111111111111111111111111111"
DATA_PROVIDER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
A_TOKEN = "0x4444444444444444444444444444444444444444"
USER = "0x5555555555555555555555555555555555555555"
TX_HASH = "0x" + "ab" * 32

ACTIVE = 1 << 56
FROZEN = 1 << 57


def reserve_data(
    configuration: int = ACTIVE,
    yield_token: str = A_TOKEN,
) -> ReserveData:
    return ReserveData(
        configuration=configuration,
        liquidity_index=10**27,
        variable_borrow_index=10**27,
        current_liquidity_rate=0,
        current_variable_borrow_rate=0,
        current_stable_borrow_rate=0,
        last_update_timestamp=1_700_000_000,
        yield_token_address=yield_token,
        stable_debt_token_address=ZERO_ADDRESS,
        variable_debt_token_address=ZERO_ADDRESS,
        interest_rate_strategy_address=ZERO_ADDRESS,
        id=0,
    )


def account_data(
    collateral: int = 0,
    debt: int = 0,
    available: int = 0,
    health_factor: int = 2**256 - 1,
) -> AccountData:
    return AccountData(
        total_collateral=collateral,
        total_debt=debt,
        available_to_borrow=available,
        liquidation_threshold=8000,
        ltv=7500,
        health_factor=health_factor,
    )


def user_reserve(stable: int = 0, variable: int = 0, deposited: int = 0) -> UserReserveData:
    return UserReserveData(
        current_yield_token_balance=deposited,
        current_stable_debt=stable,
        current_variable_debt=variable,
        principal_stable_debt=stable,
        scaled_variable_debt=variable,
        stable_borrow_rate=0,
        liquidity_rate=0,
        stable_rate_last_updated=0,
        usage_as_collateral_enabled=True,
    )



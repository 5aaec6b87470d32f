"""Pure decoding functions for pool and data-provider results. No I/O.

The reserve configuration word packs every per-reserve parameter into one
uint256. Bit layout:

    bits  0-15  LTV (basis points)
    bits 16-31  liquidation threshold (basis points)
    bits 32-47  liquidation bonus (basis points)
    bits 48-55  decimals
    bit     56  reserve is active
    bit     57  reserve is frozen
    bit     58  borrowing enabled
    bit     59  stable rate borrowing enabled
    bits 60-63  reserved
    bits 64-79  reserve factor (basis points)
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from web3 import Web3

from ...errors import InvalidResponseError
from ...models import (
    MAX_UINT256,
    AccountData,
    ReserveConfig,
    ReserveConfigurationData,
    ReserveData,
    ReserveToken,
    ReserveTokenAddresses,
    UserReserveData,
)

LTV_START, LTV_BITS = 0, 16
LIQUIDATION_THRESHOLD_START, LIQUIDATION_THRESHOLD_BITS = 16, 16
LIQUIDATION_BONUS_START, LIQUIDATION_BONUS_BITS = 32, 16
DECIMALS_START, DECIMALS_BITS = 48, 8
ACTIVE_BIT = 56
FROZEN_BIT = 57
BORROWING_ENABLED_BIT = 58
STABLE_BORROWING_ENABLED_BIT = 59
RESERVE_FACTOR_START, RESERVE_FACTOR_BITS = 64, 16


def conf_bits(word: int, start: int, length: int) -> int:
    mask = (1 << length) - 1
    return (word >> start) & mask


def conf_flag(word: int, bit: int) -> bool:
    return conf_bits(word, bit, 1) == 1


def decode_reserve_config(word: int) -> ReserveConfig:
    """Unpack a configuration word. Never raises; zero decodes to all-off.

    The result says nothing about whether the reserve exists: check
    ``ReserveData.is_initialized`` before trusting the flags.
    """
    word = int(word) & MAX_UINT256
    return ReserveConfig(
        is_active=conf_flag(word, ACTIVE_BIT),
        is_frozen=conf_flag(word, FROZEN_BIT),
        ltv=conf_bits(word, LTV_START, LTV_BITS),
        liquidation_threshold=conf_bits(
            word, LIQUIDATION_THRESHOLD_START, LIQUIDATION_THRESHOLD_BITS
        ),
        decimals=conf_bits(word, DECIMALS_START, DECIMALS_BITS),
        reserve_factor=conf_bits(word, RESERVE_FACTOR_START, RESERVE_FACTOR_BITS),
        liquidation_bonus=conf_bits(word, LIQUIDATION_BONUS_START, LIQUIDATION_BONUS_BITS),
        borrowing_enabled=conf_flag(word, BORROWING_ENABLED_BIT),
        stable_borrow_rate_enabled=conf_flag(word, STABLE_BORROWING_ENABLED_BIT),
    )


# ---------------------------------------------------------------------------
# Boundary validation helpers
# ---------------------------------------------------------------------------


def _expect_length(name: str, values: Sequence[Any], length: int) -> None:
    if len(values) != length:
        raise InvalidResponseError(
            f"{name}: expected {length} fields, got {len(values)}"
        )


def _uint(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidResponseError(f"{name}: expected unsigned integer, got {value!r}")
    return value


def _bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidResponseError(f"{name}: expected bool, got {value!r}")
    return value


def _address(name: str, value: Any) -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidResponseError(f"{name}: expected address, got {value!r}")
    return Web3.to_checksum_address(value)


# ---------------------------------------------------------------------------
# Result parsers
# ---------------------------------------------------------------------------


def parse_reserve_data(values: Sequence[Any]) -> ReserveData:
    _expect_length("getReserveData", values, 12)
    configuration = values[0]
    if isinstance(configuration, (tuple, list)):
        if len(configuration) != 1:
            raise InvalidResponseError("getReserveData: malformed configuration struct")
        configuration = configuration[0]
    return ReserveData(
        configuration=_uint("configuration", configuration),
        liquidity_index=_uint("liquidityIndex", values[1]),
        variable_borrow_index=_uint("variableBorrowIndex", values[2]),
        current_liquidity_rate=_uint("currentLiquidityRate", values[3]),
        current_variable_borrow_rate=_uint("currentVariableBorrowRate", values[4]),
        current_stable_borrow_rate=_uint("currentStableBorrowRate", values[5]),
        last_update_timestamp=_uint("lastUpdateTimestamp", values[6]),
        yield_token_address=_address("aTokenAddress", values[7]),
        stable_debt_token_address=_address("stableDebtTokenAddress", values[8]),
        variable_debt_token_address=_address("variableDebtTokenAddress", values[9]),
        interest_rate_strategy_address=_address("interestRateStrategyAddress", values[10]),
        id=_uint("id", values[11]),
    )


def parse_account_data(values: Sequence[Any]) -> AccountData:
    _expect_length("getUserAccountData", values, 6)
    return AccountData(
        total_collateral=_uint("totalCollateral", values[0]),
        total_debt=_uint("totalDebt", values[1]),
        available_to_borrow=_uint("availableBorrows", values[2]),
        liquidation_threshold=_uint("currentLiquidationThreshold", values[3]),
        ltv=_uint("ltv", values[4]),
        health_factor=_uint("healthFactor", values[5]),
    )


def parse_user_reserve_data(values: Sequence[Any]) -> UserReserveData:
    _expect_length("getUserReserveData", values, 9)
    return UserReserveData(
        current_yield_token_balance=_uint("currentATokenBalance", values[0]),
        current_stable_debt=_uint("currentStableDebt", values[1]),
        current_variable_debt=_uint("currentVariableDebt", values[2]),
        principal_stable_debt=_uint("principalStableDebt", values[3]),
        scaled_variable_debt=_uint("scaledVariableDebt", values[4]),
        stable_borrow_rate=_uint("stableBorrowRate", values[5]),
        liquidity_rate=_uint("liquidityRate", values[6]),
        stable_rate_last_updated=_uint("stableRateLastUpdated", values[7]),
        usage_as_collateral_enabled=_bool("usageAsCollateralEnabled", values[8]),
    )


def parse_reserve_configuration_data(values: Sequence[Any]) -> ReserveConfigurationData:
    _expect_length("getReserveConfigurationData", values, 10)
    return ReserveConfigurationData(
        decimals=_uint("decimals", values[0]),
        ltv=_uint("ltv", values[1]),
        liquidation_threshold=_uint("liquidationThreshold", values[2]),
        liquidation_bonus=_uint("liquidationBonus", values[3]),
        reserve_factor=_uint("reserveFactor", values[4]),
        usage_as_collateral_enabled=_bool("usageAsCollateralEnabled", values[5]),
        borrowing_enabled=_bool("borrowingEnabled", values[6]),
        stable_borrow_rate_enabled=_bool("stableBorrowRateEnabled", values[7]),
        is_active=_bool("isActive", values[8]),
        is_frozen=_bool("isFrozen", values[9]),
    )


def parse_reserve_tokens(entries: Sequence[Any]) -> list[ReserveToken]:
    tokens: list[ReserveToken] = []
    for entry in entries:
        if not isinstance(entry, (tuple, list)) or len(entry) != 2:
            raise InvalidResponseError(f"getAllReservesTokens: malformed entry {entry!r}")
        symbol, address = entry
        if not isinstance(symbol, str):
            raise InvalidResponseError(f"getAllReservesTokens: bad symbol {symbol!r}")
        tokens.append(ReserveToken(symbol=symbol, address=_address("tokenAddress", address)))
    return tokens


def parse_address_list(values: Sequence[Any]) -> list[str]:
    return [_address("reserve", v) for v in values]


def parse_reserve_tokens_addresses(values: Sequence[Any]) -> ReserveTokenAddresses:
    _expect_length("getReserveTokensAddresses", values, 3)
    return ReserveTokenAddresses(
        yield_token=_address("aTokenAddress", values[0]),
        stable_debt_token=_address("stableDebtTokenAddress", values[1]),
        variable_debt_token=_address("variableDebtTokenAddress", values[2]),
    )

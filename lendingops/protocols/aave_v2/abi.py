"""Contract function descriptors for the pool, data provider and ERC-20 tokens."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from web3 import Web3


@dataclass(frozen=True)
class ContractFunction:
    name: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])

    def encode_call(self, *args: Any) -> str:
        """Hex calldata: selector followed by the ABI-encoded arguments."""
        if len(args) != len(self.inputs):
            raise TypeError(
                f"{self.signature} takes {len(self.inputs)} argument(s), got {len(args)}"
            )
        return "0x" + (self.selector + encode(list(self.inputs), list(args))).hex()

    def decode_output(self, data: bytes) -> tuple[Any, ...]:
        return tuple(decode(list(self.outputs), data))


# ---------------------------------------------------------------------------
# LendingPool
# ---------------------------------------------------------------------------

POOL_PAUSED = ContractFunction("paused", outputs=("bool",))

POOL_GET_RESERVES_LIST = ContractFunction("getReservesList", outputs=("address[]",))

# ReserveData is a static struct, so it encodes inline as a flat sequence
POOL_GET_RESERVE_DATA = ContractFunction(
    "getReserveData",
    inputs=("address",),
    outputs=(
        "(uint256)",  # configuration.data
        "uint128",  # liquidityIndex
        "uint128",  # variableBorrowIndex
        "uint128",  # currentLiquidityRate
        "uint128",  # currentVariableBorrowRate
        "uint128",  # currentStableBorrowRate
        "uint40",  # lastUpdateTimestamp
        "address",  # aTokenAddress
        "address",  # stableDebtTokenAddress
        "address",  # variableDebtTokenAddress
        "address",  # interestRateStrategyAddress
        "uint8",  # id
    ),
)

POOL_GET_USER_ACCOUNT_DATA = ContractFunction(
    "getUserAccountData",
    inputs=("address",),
    outputs=("uint256",) * 6,
)

POOL_DEPOSIT = ContractFunction(
    "deposit", inputs=("address", "uint256", "address", "uint16")
)
POOL_WITHDRAW = ContractFunction(
    "withdraw", inputs=("address", "uint256", "address"), outputs=("uint256",)
)
POOL_BORROW = ContractFunction(
    "borrow", inputs=("address", "uint256", "uint256", "uint16", "address")
)
POOL_REPAY = ContractFunction(
    "repay", inputs=("address", "uint256", "uint256", "address"), outputs=("uint256",)
)

# ---------------------------------------------------------------------------
# ProtocolDataProvider
# ---------------------------------------------------------------------------

DP_GET_ALL_RESERVES_TOKENS = ContractFunction(
    "getAllReservesTokens", outputs=("(string,address)[]",)
)

DP_GET_RESERVE_CONFIGURATION_DATA = ContractFunction(
    "getReserveConfigurationData",
    inputs=("address",),
    outputs=("uint256",) * 5 + ("bool",) * 5,
)

DP_GET_USER_RESERVE_DATA = ContractFunction(
    "getUserReserveData",
    inputs=("address", "address"),
    outputs=("uint256",) * 7 + ("uint40", "bool"),
)

DP_GET_RESERVE_TOKENS_ADDRESSES = ContractFunction(
    "getReserveTokensAddresses",
    inputs=("address",),
    outputs=("address", "address", "address"),
)

# ---------------------------------------------------------------------------
# ERC-20
# ---------------------------------------------------------------------------

ERC20_BALANCE_OF = ContractFunction("balanceOf", inputs=("address",), outputs=("uint256",))
ERC20_APPROVE = ContractFunction("approve", inputs=("address", "uint256"), outputs=("bool",))
ERC20_SYMBOL = ContractFunction("symbol", outputs=("string",))
ERC20_NAME = ContractFunction("name", outputs=("string",))
ERC20_DECIMALS = ContractFunction("decimals", outputs=("uint8",))

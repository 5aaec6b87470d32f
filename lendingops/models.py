"""Data models. All frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

MAX_UINT256 = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# 1.0 in the protocol's 18-decimal fixed-point health factor
WAD = 10**18


def is_zero_address(address: str | None) -> bool:
    """True for ``None``, empty strings and the all-zero address."""
    if not address:
        return True
    return int(address, 16) == 0


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class OperationKind(str, Enum):
    SUPPLY = "supply"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"

    @property
    def requires_approval(self) -> bool:
        """Supply and repay pull tokens from the wallet and need an allowance."""
        return self in (OperationKind.SUPPLY, OperationKind.REPAY)

    @property
    def accepts_full_amount(self) -> bool:
        """Only withdraw and repay may ask the protocol for the full balance."""
        return self in (OperationKind.WITHDRAW, OperationKind.REPAY)

    @property
    def uses_rate_mode(self) -> bool:
        return self in (OperationKind.BORROW, OperationKind.REPAY)


class RateMode(IntEnum):
    STABLE = 1
    VARIABLE = 2


class ErrorKind(str, Enum):
    """Closed set of protocol rejection reasons."""

    PAUSED = "Paused"
    RESERVE_INACTIVE = "ReserveInactive"
    RESERVE_FROZEN = "ReserveFrozen"
    INVALID_AMOUNT = "InvalidAmount"
    INSUFFICIENT_COLLATERAL = "InsufficientCollateral"
    BELOW_LIQUIDATION_THRESHOLD = "BelowLiquidationThreshold"
    INSUFFICIENT_LIQUIDITY = "InsufficientLiquidity"
    NO_MATCHING_DEBT = "NoMatchingDebt"
    AMOUNT_EXCEEDS_DEBT = "AmountExceedsDebt"
    UNRECOGNIZED = "Unrecognized"


class FailureCategory(str, Enum):
    MISSING_CONFIGURATION = "MissingConfiguration"
    VALIDATION = "Validation"
    PROTOCOL = "Protocol"
    READ_FAILURE = "ReadFailure"
    UNCONFIRMED = "Unconfirmed"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    APPROVING = "approving"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class HealthStatus(str, Enum):
    UNCONSTRAINED = "unconstrained"
    HEALTHY = "healthy"
    MODERATE = "moderate"
    AT_RISK = "at risk"


class HealthTransition(str, Enum):
    CHANGED = "changed"
    BECAME_INFINITE = "became infinite"
    DEBT_CLEARED = "debt fully cleared"
    BECAME_FINITE = "became finite"
    UNCHANGED_INFINITE = "unchanged (infinite)"


# ---------------------------------------------------------------------------
# Configuration values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NetworkProfile:
    """Target network; selects the variable prefix and local-only features."""

    name: str
    is_local: bool
    prefix: str


@dataclass(frozen=True)
class AddressSet:
    """Contract addresses resolved once per invocation."""

    lending_pool: str
    data_provider: str | None = None
    token: str | None = None


# ---------------------------------------------------------------------------
# Decoded on-chain structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReserveConfig:
    """Fields unpacked from a reserve's configuration word."""

    is_active: bool
    is_frozen: bool
    ltv: int
    liquidation_threshold: int
    decimals: int
    reserve_factor: int
    liquidation_bonus: int = 0
    borrowing_enabled: bool = False
    stable_borrow_rate_enabled: bool = False


@dataclass(frozen=True)
class ReserveData:
    """``LendingPool.getReserveData`` result."""

    configuration: int
    liquidity_index: int
    variable_borrow_index: int
    current_liquidity_rate: int
    current_variable_borrow_rate: int
    current_stable_borrow_rate: int
    last_update_timestamp: int
    yield_token_address: str
    stable_debt_token_address: str
    variable_debt_token_address: str
    interest_rate_strategy_address: str
    id: int

    @property
    def is_initialized(self) -> bool:
        return not is_zero_address(self.yield_token_address)


@dataclass(frozen=True)
class ReserveConfigurationData:
    """``ProtocolDataProvider.getReserveConfigurationData`` result."""

    decimals: int
    ltv: int
    liquidation_threshold: int
    liquidation_bonus: int
    reserve_factor: int
    usage_as_collateral_enabled: bool
    borrowing_enabled: bool
    stable_borrow_rate_enabled: bool
    is_active: bool
    is_frozen: bool


@dataclass(frozen=True)
class ReserveTokenAddresses:
    """``ProtocolDataProvider.getReserveTokensAddresses`` result."""

    yield_token: str
    stable_debt_token: str
    variable_debt_token: str


@dataclass(frozen=True)
class ReserveToken:
    symbol: str
    address: str


@dataclass(frozen=True)
class AccountData:
    """``LendingPool.getUserAccountData`` result, in protocol units."""

    total_collateral: int
    total_debt: int
    available_to_borrow: int
    liquidation_threshold: int
    ltv: int
    health_factor: int


@dataclass(frozen=True)
class UserReserveData:
    """``ProtocolDataProvider.getUserReserveData`` result."""

    current_yield_token_balance: int
    current_stable_debt: int
    current_variable_debt: int
    principal_stable_debt: int
    scaled_variable_debt: int
    stable_borrow_rate: int
    liquidity_rate: int
    stable_rate_last_updated: int
    usage_as_collateral_enabled: bool

    @property
    def total_debt(self) -> int:
        return self.current_stable_debt + self.current_variable_debt

    def debt_for(self, rate_mode: RateMode) -> int:
        if rate_mode == RateMode.STABLE:
            return self.current_stable_debt
        return self.current_variable_debt


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time account health, recomputed for every read.

    Monetary fields are in the protocol's base currency units; ``ltv`` and
    ``liquidation_threshold`` are basis points; ``health_factor`` is 1e18
    fixed point.
    """

    user: str
    total_collateral: int
    total_debt: int
    available_to_borrow: int
    liquidation_threshold: int
    ltv: int
    health_factor: int

    @property
    def has_debt(self) -> bool:
        return self.total_debt > 0


@dataclass(frozen=True)
class TokenBalance:
    """Wallet plus deposited (yield-bearing token) holdings of one reserve."""

    wallet: int
    deposited: int

    @property
    def total(self) -> int:
        return self.wallet + self.deposited


@dataclass(frozen=True)
class ReserveBalance:
    reserve: str
    symbol: str
    decimals: int
    balance: TokenBalance


@dataclass(frozen=True)
class ReserveBalanceResult:
    """Per-reserve aggregation result: exactly one of balance or error."""

    reserve: str
    symbol: str
    balance: ReserveBalance | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ReserveStatus:
    """Eligibility view of a reserve combined with the pool pause flag."""

    asset: str
    initialized: bool
    config: ReserveConfig
    paused: bool | None
    yield_token_address: str = ZERO_ADDRESS

    @property
    def problems(self) -> tuple[str, ...]:
        found: list[str] = []
        if not self.initialized:
            found.append("reserve is not initialized in this pool")
        else:
            if not self.config.is_active:
                found.append("reserve is not active")
            if self.config.is_frozen:
                found.append("reserve is frozen")
        if self.paused:
            found.append("pool is paused")
        return tuple(found)

    @property
    def usable(self) -> bool:
        return not self.problems


@dataclass(frozen=True)
class ReserveOverview:
    """One row of the reserve listing: metadata plus status, or the read error."""

    token: ReserveToken
    name: str | None = None
    decimals: int | None = None
    status: ReserveStatus | None = None
    error: str | None = None


@dataclass(frozen=True)
class HealthChange:
    transition: HealthTransition
    percent_change: float | None = None


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperationRequest:
    """A single protocol action.

    ``amount`` is in token base units. ``0``, ``None`` and ``MAX_UINT256``
    all mean "full amount", which only withdraw and repay accept.
    """

    kind: OperationKind
    reserve: str
    amount: int | None
    rate_mode: RateMode | None = None

    @property
    def wants_full_amount(self) -> bool:
        return self.amount is None or self.amount == 0 or self.amount == MAX_UINT256


@dataclass(frozen=True)
class OperationFailure:
    stage: OrchestratorState
    category: FailureCategory
    message: str
    kind: ErrorKind | None = None

    def describe(self) -> str:
        label = self.category.value
        if self.kind is not None:
            label = f"{label}/{self.kind.value}"
        return f"[{label}] {self.message}"


@dataclass(frozen=True)
class OperationOutcome:
    """Terminal result of an orchestrated operation.

    ``before_snapshot`` is None when the request is rejected before any chain
    read (bad amount or rate mode) or when the pre-operation reads fail.
    """

    request: OperationRequest
    state: OrchestratorState
    before_snapshot: AccountSnapshot | None = None
    after_snapshot: AccountSnapshot | None = None
    failure: OperationFailure | None = None
    before_balance: TokenBalance | None = None
    after_balance: TokenBalance | None = None
    before_position: UserReserveData | None = None
    after_position: UserReserveData | None = None
    health_change: HealthChange | None = None
    approval_tx: str | None = None
    action_tx: str | None = None

    def __post_init__(self) -> None:
        if self.failure is not None and self.after_snapshot is not None:
            raise ValueError("A failed outcome cannot carry an after snapshot")
        if self.state == OrchestratorState.FAILED and self.failure is None:
            raise ValueError("A failed outcome needs a failure description")
        if self.state == OrchestratorState.CONFIRMED and self.failure is not None:
            raise ValueError("A confirmed outcome cannot carry a failure")

    @property
    def succeeded(self) -> bool:
        return self.state == OrchestratorState.CONFIRMED

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.failure.kind if self.failure else None

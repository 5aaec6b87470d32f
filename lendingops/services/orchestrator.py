"""Drive a single supply, withdraw, borrow or repay through to a terminal state.

    IDLE -> VALIDATING -> (APPROVING) -> SUBMITTING -> CONFIRMED | FAILED

Every run ends in a structured ``OperationOutcome``. Only a mined revert is a
``PROTOCOL`` failure once a transaction is broadcast; a settlement timeout or
a failed receipt poll is ``UNCONFIRMED`` because the transaction may still be
mined later, and nothing is rolled back. Failed state reads before submission
are ``READ_FAILURE``: the node rejected nothing.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..config import OrchestratorConfig
from ..errors import (
    LendingOpsError,
    OperationInProgressError,
    TransactionRevertedError,
)
from ..interfaces.lending_pool import LendingPool
from ..models import (
    MAX_UINT256,
    AccountSnapshot,
    ErrorKind,
    FailureCategory,
    NetworkProfile,
    OperationFailure,
    OperationKind,
    OperationOutcome,
    OperationRequest,
    OrchestratorState,
    RateMode,
    ReserveStatus,
    TokenBalance,
    UserReserveData,
)
from ..protocols.aave_v2.error_codes import classify
from .balances import BalanceAggregator
from .health import AccountHealthReporter
from .inspector import PoolInspector

logger = logging.getLogger(__name__)


class OperationFailed(Exception):
    """Internal signal carrying the failure that ends a run."""

    def __init__(self, failure: OperationFailure) -> None:
        super().__init__(failure.describe())
        self.failure = failure


def _validation(stage: OrchestratorState, message: str, kind: ErrorKind | None = None) -> OperationFailed:
    return OperationFailed(OperationFailure(stage, FailureCategory.VALIDATION, message, kind))


def _protocol(stage: OrchestratorState, error: Exception) -> OperationFailed:
    classified = classify(str(error))
    return OperationFailed(
        OperationFailure(stage, FailureCategory.PROTOCOL, str(error), classified.kind)
    )


def _read_failure(stage: OrchestratorState, error: Exception) -> OperationFailed:
    return OperationFailed(OperationFailure(stage, FailureCategory.READ_FAILURE, str(error)))


def operative_amount(request: OperationRequest) -> int:
    """Amount passed to the protocol; ``MAX_UINT256`` means "full".

    Raises ``OperationFailed`` (VALIDATION / INVALID_AMOUNT) for amounts the
    operation does not accept.
    """
    if request.amount is not None and request.amount < 0:
        raise _validation(
            OrchestratorState.VALIDATING,
            f"{request.kind.value} amount must not be negative",
            ErrorKind.INVALID_AMOUNT,
        )
    if request.wants_full_amount:
        if request.kind.accepts_full_amount:
            return MAX_UINT256
        raise _validation(
            OrchestratorState.VALIDATING,
            f"{request.kind.value} requires an explicit positive amount",
            ErrorKind.INVALID_AMOUNT,
        )
    return request.amount


def check_reserve(
    kind: OperationKind, status: ReserveStatus, stage: OrchestratorState
) -> None:
    """Raise ``OperationFailed`` if the reserve or pool state blocks ``kind``."""
    if not status.initialized:
        raise _validation(
            stage, f"reserve {status.asset} is not initialized in this pool",
            ErrorKind.RESERVE_INACTIVE,
        )
    if not status.config.is_active:
        raise _validation(
            stage, f"reserve {status.asset} is not active", ErrorKind.RESERVE_INACTIVE
        )
    # Frozen reserves still allow withdraw and repay
    if status.config.is_frozen and kind in (OperationKind.SUPPLY, OperationKind.BORROW):
        raise _validation(
            stage, f"reserve {status.asset} is frozen", ErrorKind.RESERVE_FROZEN
        )
    if status.paused:
        raise _validation(stage, "lending pool is paused", ErrorKind.PAUSED)
    if status.paused is None:
        logger.warning("Pool pause state unknown; continuing")


class TransactionOrchestrator:
    """Validates, approves, submits and confirms protocol actions for the signer."""

    def __init__(
        self,
        pool: LendingPool,
        reporter: AccountHealthReporter | None = None,
        aggregator: BalanceAggregator | None = None,
        inspector: PoolInspector | None = None,
        config: OrchestratorConfig | None = None,
        profile: NetworkProfile | None = None,
        time_delay: int = 0,
    ) -> None:
        self._pool = pool
        self._reporter = reporter or AccountHealthReporter(pool)
        self._aggregator = aggregator or BalanceAggregator(pool)
        self._inspector = inspector or PoolInspector(pool)
        self._config = config or OrchestratorConfig()
        self._profile = profile
        self._time_delay = time_delay
        self._in_flight: set[str] = set()
        self.state = OrchestratorState.IDLE

    async def execute(self, request: OperationRequest) -> OperationOutcome:
        """Run ``request`` to CONFIRMED or FAILED.

        Raises ``OperationInProgressError`` when another write for the same
        signer has not finished; nothing is read or sent in that case.
        """
        user = self._pool.signer_address
        key = user.lower()
        if key in self._in_flight:
            raise OperationInProgressError(user)
        self._in_flight.add(key)
        try:
            return await self._run(request, user)
        finally:
            self._in_flight.discard(key)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(self, request: OperationRequest, user: str) -> OperationOutcome:
        self.state = OrchestratorState.VALIDATING
        logger.info("=== %s %s for %s ===", request.kind.value.upper(), request.reserve, user)

        before: AccountSnapshot | None = None
        before_balance: TokenBalance | None = None
        before_position: UserReserveData | None = None
        approval_tx: str | None = None
        action_tx: str | None = None

        try:
            amount = operative_amount(request)
            rate_mode = self._rate_mode(request)

            stage = OrchestratorState.VALIDATING
            before, status, before_balance = await self._read_state(request.reserve, user, stage)
            before_position = await self._position(request.reserve, user)
            self._reporter.log_snapshot(before, "Account before")

            check_reserve(request.kind, status, stage)
            self._preflight(
                request, amount, rate_mode, before, before_balance, before_position, stage
            )

            if request.kind.requires_approval:
                self.state = OrchestratorState.APPROVING
                approval_tx = await self._settle(
                    OrchestratorState.APPROVING,
                    lambda: self._pool.approve(request.reserve, amount),
                )

            await self._revalidate(request, user, amount, rate_mode, approval_tx is not None)

            self.state = OrchestratorState.SUBMITTING
            action_tx = await self._settle(
                OrchestratorState.SUBMITTING, self._action(request, amount, rate_mode)
            )
        except OperationFailed as failed:
            self.state = OrchestratorState.FAILED
            logger.error("%s failed: %s", request.kind.value, failed.failure.describe())
            return OperationOutcome(
                request=request,
                state=OrchestratorState.FAILED,
                before_snapshot=before,
                failure=failed.failure,
                before_balance=before_balance,
                before_position=before_position,
                approval_tx=approval_tx,
                action_tx=action_tx,
            )

        self.state = OrchestratorState.CONFIRMED
        logger.info("%s confirmed: %s", request.kind.value, action_tx)
        await self._advance_time()

        after, after_balance = await self._after_state(request.reserve, user)
        after_position = await self._position(request.reserve, user)
        change = None
        if after is not None:
            self._reporter.log_snapshot(after, "Account after")
            change = self._reporter.log_change(before, after)

        return OperationOutcome(
            request=request,
            state=OrchestratorState.CONFIRMED,
            before_snapshot=before,
            after_snapshot=after,
            before_balance=before_balance,
            after_balance=after_balance,
            before_position=before_position,
            after_position=after_position,
            health_change=change,
            approval_tx=approval_tx,
            action_tx=action_tx,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _rate_mode(request: OperationRequest) -> RateMode | None:
        if not request.kind.uses_rate_mode:
            return None
        try:
            return RateMode(request.rate_mode)
        except (TypeError, ValueError):
            raise _validation(
                OrchestratorState.VALIDATING,
                f"rate mode must be 1 (stable) or 2 (variable), got {request.rate_mode!r}",
            ) from None

    async def _read_state(
        self, reserve: str, user: str, stage: OrchestratorState
    ) -> tuple[AccountSnapshot, ReserveStatus, TokenBalance]:
        try:
            snapshot = await self._reporter.snapshot(user)
            status = await self._inspector.reserve_status(reserve)
            balance = await self._aggregator.balance_for(user, reserve)
        except LendingOpsError as e:
            raise _read_failure(stage, e) from e
        return snapshot, status, balance

    async def _revalidate(
        self,
        request: OperationRequest,
        user: str,
        amount: int,
        rate_mode: RateMode | None,
        approved: bool,
    ) -> None:
        """Repeat the checks right before submitting.

        Without an approval only the reserve and pause state are re-read; after
        one the account state may have moved while it settled, so the full
        pre-flight runs again on fresh reads.
        """
        stage = OrchestratorState.SUBMITTING
        if not approved:
            try:
                status = await self._inspector.reserve_status(request.reserve)
            except LendingOpsError as e:
                raise _read_failure(stage, e) from e
            check_reserve(request.kind, status, stage)
            return

        snapshot, status, balance = await self._read_state(request.reserve, user, stage)
        position = await self._position(request.reserve, user)
        check_reserve(request.kind, status, stage)
        self._preflight(request, amount, rate_mode, snapshot, balance, position, stage)

    def _preflight(
        self,
        request: OperationRequest,
        amount: int,
        rate_mode: RateMode | None,
        before: AccountSnapshot,
        balance: TokenBalance,
        position: UserReserveData | None,
        stage: OrchestratorState,
    ) -> None:
        kind = request.kind

        if kind == OperationKind.SUPPLY:
            if balance.wallet < amount:
                raise _validation(
                    stage,
                    f"insufficient wallet balance: have {balance.wallet}, need {amount}",
                    ErrorKind.INVALID_AMOUNT,
                )

        elif kind == OperationKind.WITHDRAW:
            if balance.deposited == 0:
                raise _validation(
                    stage, "nothing deposited in this reserve", ErrorKind.INVALID_AMOUNT
                )
            if amount != MAX_UINT256 and amount > balance.deposited:
                raise _validation(
                    stage,
                    f"withdraw amount {amount} exceeds deposited {balance.deposited}",
                    ErrorKind.INVALID_AMOUNT,
                )

        elif kind == OperationKind.BORROW:
            if before.total_collateral == 0:
                raise _validation(
                    stage, "no collateral deposited", ErrorKind.INSUFFICIENT_COLLATERAL
                )
            if before.available_to_borrow == 0:
                logger.warning("Available borrows is 0; the pool may reject this borrow")

        elif kind == OperationKind.REPAY:
            if position is not None:
                if position.debt_for(rate_mode) == 0:
                    raise _validation(
                        stage,
                        f"no {rate_mode.name.lower()} rate debt in this reserve "
                        f"(stable {position.current_stable_debt}, "
                        f"variable {position.current_variable_debt})",
                        ErrorKind.NO_MATCHING_DEBT,
                    )
            elif not before.has_debt:
                raise _validation(stage, "account has no debt", ErrorKind.NO_MATCHING_DEBT)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _action(
        self, request: OperationRequest, amount: int, rate_mode: RateMode | None
    ) -> Callable[[], Awaitable[str]]:
        pool = self._pool
        reserve = request.reserve
        if request.kind == OperationKind.SUPPLY:
            return lambda: pool.deposit(reserve, amount)
        if request.kind == OperationKind.WITHDRAW:
            return lambda: pool.withdraw(reserve, amount)
        if request.kind == OperationKind.BORROW:
            return lambda: pool.borrow(reserve, amount, int(rate_mode))
        return lambda: pool.repay(reserve, amount, int(rate_mode))

    async def _settle(
        self, stage: OrchestratorState, send: Callable[[], Awaitable[str]]
    ) -> str:
        """Send a transaction and wait for it; map failures to ``OperationFailed``."""
        try:
            tx_hash = await send()
        except LendingOpsError as e:
            raise _protocol(stage, e) from e

        try:
            await self._pool.wait_for_settlement(
                tx_hash, self._config.settlement_timeout_seconds
            )
        except TransactionRevertedError as e:
            raise _protocol(stage, e) from e
        except LendingOpsError as e:
            # Already broadcast: a timeout or lost receipt poll may still be mined
            raise OperationFailed(
                OperationFailure(stage, FailureCategory.UNCONFIRMED, str(e))
            ) from e
        return tx_hash

    # ------------------------------------------------------------------
    # After confirmation
    # ------------------------------------------------------------------

    async def _advance_time(self) -> None:
        if self._profile is None or not self._profile.is_local or self._time_delay <= 0:
            return
        try:
            await self._pool.advance_time(self._time_delay)
            logger.info("Advanced chain time by %d seconds", self._time_delay)
        except LendingOpsError as e:
            logger.warning("Could not advance chain time: %s", e)

    async def _after_state(
        self, reserve: str, user: str
    ) -> tuple[AccountSnapshot | None, TokenBalance | None]:
        try:
            after = await self._reporter.snapshot(user)
            balance = await self._aggregator.balance_for(user, reserve)
        except LendingOpsError as e:
            logger.warning("Transaction confirmed but post-state read failed: %s", e)
            return None, None
        return after, balance

    async def _position(self, reserve: str, user: str) -> UserReserveData | None:
        if not self._pool.has_data_provider:
            return None
        try:
            return await self._pool.get_user_reserve_data(reserve, user)
        except LendingOpsError as e:
            logger.warning("Position read failed for %s: %s", reserve, e)
            return None

"""Operator commands: wiring of chain client, gateway and services."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from ..chains.evm import EvmClient, build_signer
from ..config import (
    AppConfig,
    load_operation_settings,
    network_config,
    resolve_address_set,
    resolve_signer_settings,
)
from ..errors import LendingOpsError
from ..models import (
    AccountSnapshot,
    NetworkProfile,
    OperationKind,
    OperationOutcome,
    OperationRequest,
    ReserveOverview,
    ReserveStatus,
)
from ..protocols.aave_v2 import LendingPoolGateway
from ..units import format_units
from .balances import BalanceAggregator
from .health import AccountHealthReporter
from .inspector import PoolInspector
from .orchestrator import TransactionOrchestrator

logger = logging.getLogger(__name__)


class Console:
    """Runs one operator command against the selected network."""

    def __init__(
        self,
        config: AppConfig,
        profile: NetworkProfile,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config = config
        self._profile = profile
        self._env = env
        self._client = EvmClient(network_config(config, profile))
        self.settings = load_operation_settings(env)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    async def _gateway(self, require_token: bool, with_signer: bool) -> LendingPoolGateway:
        addresses = resolve_address_set(self._profile, self._env, require_token=require_token)
        signer = None
        if with_signer:
            signer = await build_signer(
                self._client,
                resolve_signer_settings(self._profile, self._env),
                self._config.orchestrator.gas_multiplier,
            )
        logger.info(
            "Network %s, lending pool %s", self._profile.name, addresses.lending_pool
        )
        return LendingPoolGateway(
            self._client,
            addresses,
            signer=signer,
            poll_interval=self._config.orchestrator.poll_interval_seconds,
        )

    def _token(self) -> str:
        addresses = resolve_address_set(self._profile, self._env, require_token=True)
        return addresses.token

    # ------------------------------------------------------------------
    # Read-only commands
    # ------------------------------------------------------------------

    async def paused(self) -> bool | None:
        gateway = await self._gateway(require_token=False, with_signer=False)
        paused = await PoolInspector(gateway).is_paused()
        if paused is None:
            logger.error("Pause state could not be read")
        elif paused:
            logger.warning("Lending pool is PAUSED: deposits, withdrawals and borrows are blocked")
        else:
            logger.info("Lending pool is active (not paused)")
        return paused

    async def status(self) -> ReserveStatus:
        """Reserve eligibility for the configured token."""
        gateway = await self._gateway(require_token=True, with_signer=False)
        token = self._token()
        status = await PoolInspector(gateway).reserve_status(token)

        logger.info("=== Reserve %s (%s) ===", self.settings.token_name, token)
        logger.info("  Initialized:        %s", status.initialized)
        if status.initialized:
            cfg = status.config
            logger.info("  Yield token:        %s", status.yield_token_address)
            logger.info("  Active:             %s", cfg.is_active)
            logger.info("  Frozen:             %s", cfg.is_frozen)
            logger.info("  Borrowing enabled:  %s", cfg.borrowing_enabled)
            logger.info("  Decimals:           %d", cfg.decimals)
            logger.info("  LTV:                %.2f%%", cfg.ltv / 100)
            logger.info("  Liq. threshold:     %.2f%%", cfg.liquidation_threshold / 100)
            logger.info("  Liq. bonus:         %.2f%%", cfg.liquidation_bonus / 100)
            logger.info("  Reserve factor:     %.2f%%", cfg.reserve_factor / 100)
        logger.info("  Pool paused:        %s", "unknown" if status.paused is None else status.paused)

        if gateway.has_data_provider and status.initialized:
            try:
                detail, tokens = await asyncio.gather(
                    gateway.get_reserve_configuration_data(token),
                    gateway.get_reserve_tokens_addresses(token),
                )
                logger.info("  Usable as collateral: %s", detail.usage_as_collateral_enabled)
                logger.info("  Stable debt token:  %s", tokens.stable_debt_token)
                logger.info("  Variable debt token: %s", tokens.variable_debt_token)
            except LendingOpsError as e:
                logger.warning("Data provider configuration read failed: %s", e)

        for problem in status.problems:
            logger.warning("Problem: %s", problem)
        if status.usable:
            logger.info("Reserve is usable")
        return status

    async def reserves(self) -> list[ReserveOverview]:
        gateway = await self._gateway(require_token=False, with_signer=False)
        rows = await PoolInspector(gateway).list_reserve_statuses()
        for i, row in enumerate(rows, start=1):
            if row.error is not None:
                logger.error("%d. %s %s: %s", i, row.token.symbol, row.token.address, row.error)
                continue
            status = row.status
            state = "usable" if status.usable else ", ".join(status.problems)
            logger.info(
                "%d. %s (%s) %s decimals=%s ltv=%.2f%% [%s]",
                i,
                row.token.symbol,
                row.name or "?",
                row.token.address,
                row.decimals if row.decimals is not None else "?",
                status.config.ltv / 100,
                state,
            )
        return rows

    @staticmethod
    def _user(gateway: LendingPoolGateway, user: str | None) -> str:
        if user:
            return user
        return gateway.signer_address

    async def balances(self, user: str | None = None, only_nonzero: bool = False) -> bool:
        """Log balances per reserve; ``False`` when any reserve failed."""
        gateway = await self._gateway(require_token=False, with_signer=user is None)
        owner = self._user(gateway, user)
        aggregator = BalanceAggregator(gateway)
        results = await aggregator.aggregate(owner)

        logger.info("=== Balances for %s ===", owner)
        if only_nonzero:
            rows = aggregator.with_balance(results)
        else:
            rows = [r.balance for r in results.values() if r.balance is not None]
        for bal in rows:
            logger.info(
                "  %-8s wallet=%s deposited=%s total=%s",
                bal.symbol,
                format_units(bal.balance.wallet, bal.decimals),
                format_units(bal.balance.deposited, bal.decimals),
                format_units(bal.balance.total, bal.decimals),
            )
        failed = [r for r in results.values() if not r.ok]
        for result in failed:
            logger.error("  %-8s %s: %s", result.symbol, result.reserve, result.error)
        return not failed

    async def health(self, user: str | None = None) -> AccountSnapshot:
        gateway = await self._gateway(require_token=False, with_signer=user is None)
        owner = self._user(gateway, user)
        reporter = AccountHealthReporter(gateway, self._config.health)
        snapshot = await reporter.snapshot(owner)
        reporter.log_snapshot(snapshot, f"Account {owner}")
        return snapshot

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def build_request(self, kind: OperationKind, amount_text: str | None = None) -> OperationRequest:
        token = self._token()
        amount = self.settings.amount_for(kind, amount_text)
        return OperationRequest(
            kind=kind,
            reserve=token,
            amount=amount,
            rate_mode=self.settings.rate_mode if kind.uses_rate_mode else None,
        )

    async def operate(
        self, kind: OperationKind, amount_text: str | None = None
    ) -> OperationOutcome:
        request = self.build_request(kind, amount_text)
        gateway = await self._gateway(require_token=True, with_signer=True)
        orchestrator = TransactionOrchestrator(
            gateway,
            reporter=AccountHealthReporter(gateway, self._config.health),
            config=self._config.orchestrator,
            profile=self._profile,
            time_delay=self.settings.time_delay,
        )
        outcome = await orchestrator.execute(request)
        if outcome.succeeded:
            self._log_balances(outcome)
        return outcome

    def _log_balances(self, outcome: OperationOutcome) -> None:
        decimals = self.settings.token_decimals
        name = self.settings.token_name
        for label, bal in (("before", outcome.before_balance), ("after", outcome.after_balance)):
            if bal is None:
                continue
            logger.info(
                "%s %s: wallet=%s deposited=%s",
                name,
                label,
                format_units(bal.wallet, decimals),
                format_units(bal.deposited, decimals),
            )
        for label, pos in (("before", outcome.before_position), ("after", outcome.after_position)):
            if pos is None:
                continue
            logger.info(
                "%s debt %s: stable=%s variable=%s",
                name,
                label,
                format_units(pos.current_stable_debt, decimals),
                format_units(pos.current_variable_debt, decimals),
            )

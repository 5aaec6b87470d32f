"""Account health snapshots and their interpretation."""
from __future__ import annotations

import logging

from ..config import HealthThresholds
from ..interfaces.lending_pool import LendingPool
from ..models import (
    AccountSnapshot,
    HealthChange,
    HealthStatus,
    HealthTransition,
)
from ..units import format_units

logger = logging.getLogger(__name__)

INFINITE_SYMBOL = "∞"


class AccountHealthReporter:
    """Reads ``getUserAccountData`` and classifies the result.

    A snapshot with no debt, or a health factor at or above
    ``thresholds.infinite``, is unconstrained: the raw health factor is then a
    sentinel and is never compared numerically.
    """

    def __init__(self, pool: LendingPool, thresholds: HealthThresholds | None = None) -> None:
        self._pool = pool
        self.thresholds = thresholds or HealthThresholds()

    async def snapshot(self, user: str) -> AccountSnapshot:
        data = await self._pool.get_user_account_data(user)
        return AccountSnapshot(
            user=user,
            total_collateral=data.total_collateral,
            total_debt=data.total_debt,
            available_to_borrow=data.available_to_borrow,
            liquidation_threshold=data.liquidation_threshold,
            ltv=data.ltv,
            health_factor=data.health_factor,
        )

    def is_unconstrained(self, snapshot: AccountSnapshot) -> bool:
        return not snapshot.has_debt or snapshot.health_factor >= self.thresholds.infinite

    def classify(self, snapshot: AccountSnapshot) -> HealthStatus:
        if self.is_unconstrained(snapshot):
            return HealthStatus.UNCONSTRAINED
        if snapshot.health_factor < self.thresholds.at_risk:
            return HealthStatus.AT_RISK
        if snapshot.health_factor >= self.thresholds.healthy:
            return HealthStatus.HEALTHY
        return HealthStatus.MODERATE

    def format_health_factor(self, snapshot: AccountSnapshot) -> str:
        if self.is_unconstrained(snapshot):
            return f"{INFINITE_SYMBOL} (no debt)"
        return format_units(snapshot.health_factor, 18, places=4)

    def compare(self, before: AccountSnapshot, after: AccountSnapshot) -> HealthChange:
        """Describe how the health factor moved between two snapshots."""
        before_inf = self.is_unconstrained(before)
        after_inf = self.is_unconstrained(after)

        if before_inf and after_inf:
            return HealthChange(HealthTransition.UNCHANGED_INFINITE)
        if after_inf:
            if not after.has_debt:
                return HealthChange(HealthTransition.DEBT_CLEARED)
            return HealthChange(HealthTransition.BECAME_INFINITE)
        if before_inf:
            return HealthChange(HealthTransition.BECAME_FINITE)

        if before.health_factor == 0:
            return HealthChange(HealthTransition.CHANGED)
        delta = (after.health_factor - before.health_factor) / before.health_factor * 100
        return HealthChange(HealthTransition.CHANGED, percent_change=delta)

    def log_snapshot(self, snapshot: AccountSnapshot, title: str) -> None:
        logger.info("=== %s ===", title)
        logger.info("  Total Collateral:      %s", format_units(snapshot.total_collateral, 18))
        logger.info("  Total Debt:            %s", format_units(snapshot.total_debt, 18))
        logger.info("  Available Borrow:      %s", format_units(snapshot.available_to_borrow, 18))
        logger.info("  Liquidation Threshold: %.2f%%", snapshot.liquidation_threshold / 100)
        logger.info("  Loan-to-Value:         %.2f%%", snapshot.ltv / 100)
        logger.info("  Health Factor:         %s", self.format_health_factor(snapshot))
        logger.info("  Status:                %s", self.classify(snapshot).value)

    def log_change(self, before: AccountSnapshot, after: AccountSnapshot) -> HealthChange:
        change = self.compare(before, after)
        if change.transition == HealthTransition.DEBT_CLEARED:
            logger.info("All debt repaid! Health factor: %s", INFINITE_SYMBOL)
            if not self.is_unconstrained(before):
                logger.info("Previous health factor: %s", self.format_health_factor(before))
        elif change.transition == HealthTransition.CHANGED and change.percent_change is not None:
            logger.info(
                "Health factor %s by %.2f%%: %s -> %s",
                "increased" if change.percent_change >= 0 else "decreased",
                abs(change.percent_change),
                self.format_health_factor(before),
                self.format_health_factor(after),
            )
        else:
            logger.info("Health factor %s", change.transition.value)

        status = self.classify(after)
        if status == HealthStatus.AT_RISK:
            logger.warning(
                "Health factor below %s: repay debt or add collateral",
                format_units(self.thresholds.at_risk, 18),
            )
        elif status == HealthStatus.MODERATE:
            logger.info("Moderate health; monitor the position")
        return change

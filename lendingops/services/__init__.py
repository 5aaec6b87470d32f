"""Services: balances, health, reserve inspection and transaction orchestration."""
from .balances import BalanceAggregator
from .console import Console
from .health import AccountHealthReporter
from .inspector import PoolInspector
from .orchestrator import TransactionOrchestrator

__all__ = [
    "AccountHealthReporter",
    "BalanceAggregator",
    "Console",
    "PoolInspector",
    "TransactionOrchestrator",
]

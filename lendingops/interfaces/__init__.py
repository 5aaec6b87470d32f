"""Protocol interfaces for the lending operations console."""
from .chain import ChainClient
from .lending_pool import LendingPool
from .signer import TransactionSigner

__all__ = ["ChainClient", "LendingPool", "TransactionSigner"]

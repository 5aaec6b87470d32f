"""EVM chain access."""
from .client import EvmClient
from .signer import LocalAccountSigner, NodeAccountSigner, build_signer

__all__ = ["EvmClient", "LocalAccountSigner", "NodeAccountSigner", "build_signer"]

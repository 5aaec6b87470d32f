"""Aave-V2-style lending pool: ABI, decoders, error codes and gateway."""
from .error_codes import ClassifiedError, classify
from .gateway import LendingPoolGateway
from .parser import decode_reserve_config

__all__ = ["ClassifiedError", "LendingPoolGateway", "classify", "decode_reserve_config"]

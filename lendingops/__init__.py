"""Operator console for Aave-V2-style lending pools."""

__version__ = "0.1.0"

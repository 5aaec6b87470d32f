"""Process-wide logging configuration."""
from __future__ import annotations

import logging
import sys

_NOISY_LOGGERS = ("aiohttp", "web3", "urllib3", "asyncio")


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger; unknown level names fall back to INFO."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

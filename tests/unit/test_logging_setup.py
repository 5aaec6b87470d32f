"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

import pytest

from lendingops.logging_setup import configure_logging


class TestConfigureLogging:
    def test_sets_info_level(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_sets_debug_level(self) -> None:
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.parametrize("name", ["aiohttp", "web3", "urllib3"])
    def test_silences_noisy_libraries(self, name: str) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger(name).level == logging.WARNING

    def test_invalid_level_defaults_to_info(self) -> None:
        configure_logging("NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

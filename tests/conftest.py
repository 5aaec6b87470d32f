"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from lendingops.config import HealthThresholds, NetworkConfig, OrchestratorConfig
from lendingops.models import NetworkProfile
from tests.factories import POOL, TOKEN, TX_HASH, USER, account_data, reserve_data, user_reserve


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def local_profile() -> NetworkProfile:
    return NetworkProfile(name="localhost", is_local=True, prefix="LOCAL")


@pytest.fixture()
def sepolia_profile() -> NetworkProfile:
    return NetworkProfile(name="sepolia", is_local=False, prefix="SEPOLIA")


@pytest.fixture()
def sample_network_config() -> NetworkConfig:
    return NetworkConfig(
        local=False,
        rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        rpc_timeout=10,
    )


@pytest.fixture()
def thresholds() -> HealthThresholds:
    return HealthThresholds()


@pytest.fixture()
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(
        settlement_timeout_seconds=5.0, poll_interval_seconds=0.01, gas_multiplier=1.2
    )


SAMPLE_YAML = textwrap.dedent("""\
    networks:
      localhost:
        local: true
        rpc_endpoints: ["http://127.0.0.1:8545"]
        rpc_timeout: 10
      sepolia:
        rpc_endpoints: ["https://rpc.example.com"]
    health:
      at_risk: 1.5
      healthy: 2.0
      infinite: 1000000
    orchestrator:
      settlement_timeout_seconds: 60
      poll_interval_seconds: 1
      gas_multiplier: 1.5
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Mocked lending pool
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_pool() -> MagicMock:
    """A pool whose reads describe an active reserve and an empty account."""
    pool = MagicMock()
    pool.pool_address = POOL
    pool.has_data_provider = True
    pool.signer_address = USER

    pool.paused = AsyncMock(return_value=False)
    pool.get_reserve_data = AsyncMock(return_value=reserve_data())
    pool.get_reserves_list = AsyncMock(return_value=[TOKEN])
    pool.get_user_account_data = AsyncMock(return_value=account_data())
    pool.get_all_reserves_tokens = AsyncMock(return_value=[])
    pool.get_reserve_configuration_data = AsyncMock()
    pool.get_user_reserve_data = AsyncMock(return_value=user_reserve())
    pool.get_reserve_tokens_addresses = AsyncMock()

    pool.balance_of = AsyncMock(return_value=0)
    pool.symbol = AsyncMock(return_value="TKN")
    pool.name = AsyncMock(return_value="Token")
    pool.decimals = AsyncMock(return_value=18)

    pool.approve = AsyncMock(return_value="0xapprove")
    pool.deposit = AsyncMock(return_value=TX_HASH)
    pool.withdraw = AsyncMock(return_value=TX_HASH)
    pool.borrow = AsyncMock(return_value=TX_HASH)
    pool.repay = AsyncMock(return_value=TX_HASH)
    pool.wait_for_settlement = AsyncMock(return_value={"status": "0x1"})
    pool.advance_time = AsyncMock()
    return pool

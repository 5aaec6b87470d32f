"""Unit tests for config loading, env interpolation, and environment resolution."""
from __future__ import annotations

from pathlib import Path

import pytest

from lendingops.config import (
    AddressRole,
    AppConfig,
    HealthThresholds,
    NetworkConfig,
    _interpolate_env,
    _validate,
    candidate_variables,
    load_config,
    load_operation_settings,
    network_config,
    resolve_address,
    resolve_address_set,
    resolve_network,
    resolve_signer_settings,
)
from lendingops.errors import ConfigurationError, MissingConfigurationError
from lendingops.models import WAD, NetworkProfile, OperationKind, RateMode


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RPC", "https://node")
        result = _interpolate_env({"rpc_endpoints": ["${RPC}", "plain"]})
        assert result == {"rpc_endpoints": ["https://node", "plain"]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.networks["localhost"].local is True
        assert cfg.networks["localhost"].rpc_timeout == 10
        assert cfg.networks["sepolia"].local is False
        assert cfg.health.at_risk == 15 * WAD // 10
        assert cfg.health.infinite == 1_000_000 * WAD
        assert cfg.orchestrator.settlement_timeout_seconds == 60.0
        assert cfg.orchestrator.gas_multiplier == 1.5

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_unset_endpoint_variable_is_dropped(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("UNSET_RPC_URL_XYZ", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "networks:\n"
            "  sepolia:\n"
            "    rpc_endpoints: ['${UNSET_RPC_URL_XYZ}', 'https://fallback.example.com']\n"
        )
        cfg = load_config(path)
        assert cfg.networks["sepolia"].rpc_endpoints == ("https://fallback.example.com",)

    def test_defaults_when_sections_missing(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("networks:\n  hardhat:\n    rpc_endpoints: ['http://127.0.0.1:8545']\n")
        cfg = load_config(path)
        assert cfg.networks["hardhat"].local is True
        assert cfg.health == HealthThresholds()
        assert cfg.orchestrator.settlement_timeout_seconds == 180.0

    @pytest.mark.parametrize("value", ["abc", "''", "NaN"])
    def test_non_numeric_threshold(self, tmp_path: Path, value: str) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "networks:\n  hardhat:\n    rpc_endpoints: ['http://127.0.0.1:8545']\n"
            f"health:\n  at_risk: {value}\n"
        )
        with pytest.raises(ValueError, match="health.at_risk must be a number"):
            load_config(path)


class TestValidate:
    def test_no_networks(self) -> None:
        with pytest.raises(ValueError, match="At least one network"):
            _validate(AppConfig())

    def test_threshold_order(self) -> None:
        cfg = AppConfig(
            networks={"localhost": NetworkConfig(local=True, rpc_endpoints=("http://x",))},
            health=HealthThresholds(at_risk=3 * WAD, healthy=2 * WAD),
        )
        with pytest.raises(ValueError, match="Health thresholds"):
            _validate(cfg)

    def test_network_without_endpoints(self, local_profile: NetworkProfile) -> None:
        cfg = AppConfig(networks={"localhost": NetworkConfig(local=True)})
        with pytest.raises(MissingConfigurationError, match="rpc_endpoints"):
            network_config(cfg, local_profile)

    def test_unknown_network(self, sepolia_profile: NetworkProfile) -> None:
        cfg = AppConfig(networks={"localhost": NetworkConfig(rpc_endpoints=("http://x",))})
        with pytest.raises(MissingConfigurationError, match="sepolia"):
            network_config(cfg, sepolia_profile)


class TestResolveNetwork:
    def test_defaults_to_localhost(self) -> None:
        profile = resolve_network({})
        assert profile == NetworkProfile(name="localhost", is_local=True, prefix="LOCAL")

    def test_hardhat_shares_local_prefix(self) -> None:
        profile = resolve_network({"NETWORK": "hardhat"})
        assert profile.is_local is True
        assert profile.prefix == "LOCAL"

    def test_live_network_prefix(self) -> None:
        profile = resolve_network({"NETWORK": "Sepolia"})
        assert profile.name == "sepolia"
        assert profile.is_local is False
        assert profile.prefix == "SEPOLIA"

    def test_override_wins(self) -> None:
        profile = resolve_network({"NETWORK": "sepolia"}, override="localhost")
        assert profile.is_local is True


class TestResolveAddress:
    def test_prefixed_wins_over_generic(self, sepolia_profile: NetworkProfile) -> None:
        env = {
            "SEPOLIA_LENDING_POOL_ADDRESS": "0xprefixed",
            "LENDING_POOL_ADDRESS": "0xgeneric",
        }
        assert resolve_address(AddressRole.LENDING_POOL, sepolia_profile, env) == "0xprefixed"

    def test_generic_used_alone(self, sepolia_profile: NetworkProfile) -> None:
        env = {"LENDING_POOL_ADDRESS": "0xgeneric"}
        assert resolve_address(AddressRole.LENDING_POOL, sepolia_profile, env) == "0xgeneric"

    def test_blank_prefixed_falls_through(self, local_profile: NetworkProfile) -> None:
        env = {"LOCAL_TOKEN_ADDRESS": "  ", "TOKEN_ADDRESS": "0xgeneric"}
        assert resolve_address(AddressRole.TOKEN, local_profile, env) == "0xgeneric"

    def test_neither_names_both(self, sepolia_profile: NetworkProfile) -> None:
        with pytest.raises(MissingConfigurationError) as exc:
            resolve_address(AddressRole.LENDING_POOL, sepolia_profile, {})
        assert exc.value.expected_variables == (
            "SEPOLIA_LENDING_POOL_ADDRESS",
            "LENDING_POOL_ADDRESS",
        )
        assert "SEPOLIA_LENDING_POOL_ADDRESS or LENDING_POOL_ADDRESS" in str(exc.value)

    def test_candidate_order(self, local_profile: NetworkProfile) -> None:
        assert candidate_variables("TOKEN_ADDRESS", local_profile) == (
            "LOCAL_TOKEN_ADDRESS",
            "TOKEN_ADDRESS",
        )

    def test_address_set_without_data_provider(self, local_profile: NetworkProfile) -> None:
        env = {"LOCAL_LENDING_POOL_ADDRESS": "0xpool", "TOKEN_ADDRESS": "0xtoken"}
        addresses = resolve_address_set(local_profile, env)
        assert addresses.lending_pool == "0xpool"
        assert addresses.token == "0xtoken"
        assert addresses.data_provider is None

    def test_address_set_token_optional(self, local_profile: NetworkProfile) -> None:
        env = {"LENDING_POOL_ADDRESS": "0xpool"}
        addresses = resolve_address_set(local_profile, env, require_token=False)
        assert addresses.token is None

    def test_address_set_token_required(self, local_profile: NetworkProfile) -> None:
        with pytest.raises(MissingConfigurationError, match="LOCAL_TOKEN_ADDRESS"):
            resolve_address_set(local_profile, {"LENDING_POOL_ADDRESS": "0xpool"})


class TestOperationSettings:
    def test_defaults(self) -> None:
        settings = load_operation_settings({})
        assert settings.token_decimals == 18
        assert settings.rate_mode == RateMode.VARIABLE
        assert settings.time_delay == 86400
        assert settings.amount_for(OperationKind.SUPPLY) == 100 * 10**18
        assert settings.amount_for(OperationKind.BORROW) == 100 * 10**18

    def test_zero_means_full_for_withdraw_and_repay(self) -> None:
        settings = load_operation_settings({})
        assert settings.amount_for(OperationKind.WITHDRAW) is None
        assert settings.amount_for(OperationKind.REPAY) is None
        assert settings.amount_for(OperationKind.REPAY, "max") is None

    def test_zero_stays_zero_for_supply(self) -> None:
        settings = load_operation_settings({"TOKEN_SUPPLY_AMOUNT": "0"})
        assert settings.amount_for(OperationKind.SUPPLY) == 0

    def test_fractional_amount_uses_decimals(self) -> None:
        settings = load_operation_settings({"TOKEN_DECIMALS": "6"})
        assert settings.amount_for(OperationKind.BORROW, "12.5") == 12_500_000

    def test_bad_amount(self) -> None:
        settings = load_operation_settings({"TOKEN_BORROW_AMOUNT": "lots"})
        with pytest.raises(ConfigurationError, match="TOKEN_BORROW_AMOUNT"):
            settings.amount_for(OperationKind.BORROW)

    def test_bad_rate_mode(self) -> None:
        with pytest.raises(ConfigurationError, match="INTEREST_RATE_MODE"):
            load_operation_settings({"INTEREST_RATE_MODE": "3"})

    def test_stable_rate_mode(self) -> None:
        assert load_operation_settings({"INTEREST_RATE_MODE": "1"}).rate_mode == RateMode.STABLE

    def test_negative_time_delay(self) -> None:
        with pytest.raises(ConfigurationError, match="TIME_DELAY"):
            load_operation_settings({"TIME_DELAY": "-1"})


class TestSignerSettings:
    def test_prefixed_private_key(self, sepolia_profile: NetworkProfile) -> None:
        settings = resolve_signer_settings(
            sepolia_profile, {"SEPOLIA_PRIVATE_KEY": "0xkey", "PRIVATE_KEY": "0xother"}
        )
        assert settings.private_key == "0xkey"

    def test_live_network_requires_key(self, sepolia_profile: NetworkProfile) -> None:
        with pytest.raises(MissingConfigurationError, match="SEPOLIA_PRIVATE_KEY"):
            resolve_signer_settings(sepolia_profile, {})

    def test_local_falls_back_to_node_account(self, local_profile: NetworkProfile) -> None:
        settings = resolve_signer_settings(local_profile, {})
        assert settings.private_key is None
        assert settings.account_index == 1

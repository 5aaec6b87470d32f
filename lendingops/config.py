"""Configuration loader and network/address resolution.

Two sources feed the process:

* ``config.yaml`` (RPC endpoints per network, health thresholds, settlement
  timings) with ``${VAR}`` interpolation, loaded into frozen dataclasses.
* Environment variables (``.env`` supported) for contract addresses, signer
  keys and operation amounts. Every address variable exists in a
  network-prefixed form (``SEPOLIA_LENDING_POOL_ADDRESS``) that wins over the
  generic form (``LENDING_POOL_ADDRESS``).

Resolution functions take the environment as a mapping and never modify it.
"""
from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError, MissingConfigurationError
from .models import WAD, AddressSet, NetworkProfile, OperationKind, RateMode
from .units import parse_units

logger = logging.getLogger(__name__)

LOCAL_NETWORKS = ("hardhat", "localhost")
DEFAULT_NETWORK = "localhost"
LOCAL_PREFIX = "LOCAL"

# Amount strings that ask for the full balance/debt
FULL_AMOUNT_TOKENS = ("", "0", "max", "all")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HealthThresholds:
    """Health-factor bands, 1e18 fixed point.

    These are display policy, not protocol rules: anything at or above
    ``infinite`` is shown as "no debt", below ``at_risk`` is flagged.
    """

    at_risk: int = 15 * WAD // 10
    healthy: int = 2 * WAD
    infinite: int = 1_000_000 * WAD


@dataclass(frozen=True)
class OrchestratorConfig:
    settlement_timeout_seconds: float = 180.0
    poll_interval_seconds: float = 2.0
    gas_multiplier: float = 1.2


@dataclass(frozen=True)
class NetworkConfig:
    local: bool = False
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class AppConfig:
    networks: dict[str, NetworkConfig] = field(default_factory=dict)
    health: HealthThresholds = field(default_factory=HealthThresholds)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _to_wad(name: str, value: Any) -> int:
    try:
        return int(Decimal(str(value)) * WAD)
    except (InvalidOperation, ValueError, OverflowError):
        raise ValueError(f"health.{name} must be a number, got {value!r}") from None


def _build_health(raw: dict[str, Any]) -> HealthThresholds:
    defaults = HealthThresholds()
    return HealthThresholds(
        at_risk=_to_wad("at_risk", raw["at_risk"]) if "at_risk" in raw else defaults.at_risk,
        healthy=_to_wad("healthy", raw["healthy"]) if "healthy" in raw else defaults.healthy,
        infinite=_to_wad("infinite", raw["infinite"]) if "infinite" in raw else defaults.infinite,
    )


def _build_orchestrator(raw: dict[str, Any]) -> OrchestratorConfig:
    return OrchestratorConfig(
        settlement_timeout_seconds=float(raw.get("settlement_timeout_seconds", 180.0)),
        poll_interval_seconds=float(raw.get("poll_interval_seconds", 2.0)),
        gas_multiplier=float(raw.get("gas_multiplier", 1.2)),
    )


def _build_networks(raw: dict[str, Any]) -> dict[str, NetworkConfig]:
    networks: dict[str, NetworkConfig] = {}
    for name, cfg in raw.items():
        cfg = cfg or {}
        # Endpoints whose ${VAR} was unset interpolate to "" and are dropped
        endpoints = tuple(e for e in cfg.get("rpc_endpoints", []) if e)
        networks[name] = NetworkConfig(
            local=bool(cfg.get("local", name in LOCAL_NETWORKS)),
            rpc_endpoints=endpoints,
            rpc_timeout=int(cfg.get("rpc_timeout", 30)),
        )
    return networks


# ---------------------------------------------------------------------------
# Public API: config file
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        networks=_build_networks(raw.get("networks", {})),
        health=_build_health(raw.get("health", {})),
        orchestrator=_build_orchestrator(raw.get("orchestrator", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.networks:
        raise ValueError("At least one network must be configured")

    h = cfg.health
    if not 0 < h.at_risk <= h.healthy < h.infinite:
        raise ValueError(
            "Health thresholds must satisfy 0 < at_risk <= healthy < infinite"
        )

    if cfg.orchestrator.settlement_timeout_seconds <= 0:
        raise ValueError("settlement_timeout_seconds must be positive")
    if cfg.orchestrator.poll_interval_seconds <= 0:
        raise ValueError("poll_interval_seconds must be positive")
    if cfg.orchestrator.gas_multiplier < 1.0:
        raise ValueError("gas_multiplier must be at least 1.0")


def network_config(cfg: AppConfig, profile: NetworkProfile) -> NetworkConfig:
    """Return the RPC settings for the selected network."""
    net = cfg.networks.get(profile.name)
    if net is None:
        raise MissingConfigurationError(
            f"network '{profile.name}'", (f"networks.{profile.name}",)
        )
    if not net.rpc_endpoints:
        raise MissingConfigurationError(
            f"{profile.name} RPC endpoint",
            (f"networks.{profile.name}.rpc_endpoints",),
        )
    return net


# ---------------------------------------------------------------------------
# Public API: network and address resolution
# ---------------------------------------------------------------------------


def _environment(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return dict(os.environ) if env is None else env


def resolve_network(
    env: Mapping[str, str] | None = None, override: str | None = None
) -> NetworkProfile:
    """Build the profile for ``override`` or ``$NETWORK`` (default localhost)."""
    env = _environment(env)
    name = (override or env.get("NETWORK") or DEFAULT_NETWORK).strip().lower()
    is_local = name in LOCAL_NETWORKS
    prefix = LOCAL_PREFIX if is_local else re.sub(r"[^A-Z0-9]", "_", name.upper())
    return NetworkProfile(name=name, is_local=is_local, prefix=prefix)


class AddressRole(str, Enum):
    LENDING_POOL = "LENDING_POOL"
    DATA_PROVIDER = "DATA_PROVIDER"
    TOKEN = "TOKEN"

    @property
    def variable(self) -> str:
        return f"{self.value}_ADDRESS"


def candidate_variables(name: str, profile: NetworkProfile) -> tuple[str, str]:
    """Variable names for ``name`` in lookup order: prefixed, then generic."""
    return (f"{profile.prefix}_{name}", name)


def resolve_variable(
    name: str, profile: NetworkProfile, env: Mapping[str, str] | None = None
) -> str | None:
    env = _environment(env)
    for variable in candidate_variables(name, profile):
        value = env.get(variable, "").strip()
        if value:
            return value
    return None


def resolve_address(
    role: AddressRole, profile: NetworkProfile, env: Mapping[str, str] | None = None
) -> str:
    """Resolve a contract address or raise naming both expected variables."""
    value = resolve_variable(role.variable, profile, env)
    if value is None:
        raise MissingConfigurationError(
            role.name.lower(), candidate_variables(role.variable, profile)
        )
    return value


def resolve_address_set(
    profile: NetworkProfile,
    env: Mapping[str, str] | None = None,
    require_token: bool = True,
) -> AddressSet:
    """Resolve every role once. The data provider is optional."""
    env = _environment(env)
    pool = resolve_address(AddressRole.LENDING_POOL, profile, env)
    token = (
        resolve_address(AddressRole.TOKEN, profile, env)
        if require_token
        else resolve_variable(AddressRole.TOKEN.variable, profile, env)
    )
    data_provider = resolve_variable(AddressRole.DATA_PROVIDER.variable, profile, env)
    if data_provider is None:
        logger.warning(
            "No data provider configured (%s); detailed position data unavailable",
            " or ".join(candidate_variables(AddressRole.DATA_PROVIDER.variable, profile)),
        )
    return AddressSet(lending_pool=pool, data_provider=data_provider, token=token)


# ---------------------------------------------------------------------------
# Public API: operation settings
# ---------------------------------------------------------------------------

_AMOUNT_VARIABLES = {
    OperationKind.SUPPLY: ("TOKEN_SUPPLY_AMOUNT", "100"),
    OperationKind.BORROW: ("TOKEN_BORROW_AMOUNT", "100"),
    OperationKind.REPAY: ("TOKEN_REPAY_AMOUNT", "0"),
    OperationKind.WITHDRAW: ("TOKEN_WITHDRAW_AMOUNT", "0"),
}


@dataclass(frozen=True)
class OperationSettings:
    token_name: str = "TOKEN"
    token_decimals: int = 18
    amounts: dict[OperationKind, str] = field(default_factory=dict)
    rate_mode: RateMode = RateMode.VARIABLE
    time_delay: int = 86400

    def amount_text(self, kind: OperationKind) -> str:
        return self.amounts.get(kind, _AMOUNT_VARIABLES[kind][1])

    def amount_for(self, kind: OperationKind, text: str | None = None) -> int | None:
        """Base-unit amount for ``kind``; ``None`` requests the full amount."""
        text = self.amount_text(kind) if text is None else text
        if text.strip().lower() in FULL_AMOUNT_TOKENS:
            return None if kind.accepts_full_amount else 0
        variable = _AMOUNT_VARIABLES[kind][0]
        try:
            return parse_units(text, self.token_decimals)
        except ValueError as e:
            raise ConfigurationError(variable, text, str(e)) from e


def _int_setting(env: Mapping[str, str], variable: str, default: int) -> int:
    text = env.get(variable, "").strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError as e:
        raise ConfigurationError(variable, text, "expected an integer") from e


def load_operation_settings(env: Mapping[str, str] | None = None) -> OperationSettings:
    env = _environment(env)

    decimals = _int_setting(env, "TOKEN_DECIMALS", 18)
    if not 0 <= decimals <= 77:
        raise ConfigurationError("TOKEN_DECIMALS", str(decimals), "out of range")

    mode = _int_setting(env, "INTEREST_RATE_MODE", int(RateMode.VARIABLE))
    try:
        rate_mode = RateMode(mode)
    except ValueError as e:
        raise ConfigurationError(
            "INTEREST_RATE_MODE", str(mode), "use 1 (stable) or 2 (variable)"
        ) from e

    time_delay = _int_setting(env, "TIME_DELAY", 86400)
    if time_delay < 0:
        raise ConfigurationError("TIME_DELAY", str(time_delay), "must not be negative")

    amounts = {
        kind: env.get(variable, default).strip()
        for kind, (variable, default) in _AMOUNT_VARIABLES.items()
    }

    return OperationSettings(
        token_name=env.get("TOKEN_NAME", "").strip() or "TOKEN",
        token_decimals=decimals,
        amounts=amounts,
        rate_mode=rate_mode,
        time_delay=time_delay,
    )


# ---------------------------------------------------------------------------
# Public API: signer selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignerSettings:
    """Either a private key, or (local networks only) a node account index."""

    private_key: str | None = None
    account_index: int | None = None


def resolve_signer_settings(
    profile: NetworkProfile, env: Mapping[str, str] | None = None
) -> SignerSettings:
    env = _environment(env)
    key = resolve_variable("PRIVATE_KEY", profile, env)
    if key:
        return SignerSettings(private_key=key)
    if profile.is_local:
        return SignerSettings(account_index=_int_setting(env, "LOCAL_ACCOUNT_INDEX", 1))
    raise MissingConfigurationError("signer", candidate_variables("PRIVATE_KEY", profile))

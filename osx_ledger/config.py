"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Protocol constants
# ---------------------------------------------------------------------------

# Interest is 1/30 of collateral growth, never of principal
INTEREST_DIVISOR = 30
# Operator receives reward / 10 on top of every emission
REWARD_SKIM_DIVISOR = 10
# Fixed-point scale of the reward accumulator
ACC_PRECISION = 10**12
# Reserve asset (18 decimals) per unit of debt asset (9 decimals)
DEBT_DECIMAL_SCALE = 10**9

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProtocolParams:
    interest_divisor: int = INTEREST_DIVISOR
    reward_skim_divisor: int = REWARD_SKIM_DIVISOR
    acc_precision: int = ACC_PRECISION
    debt_decimal_scale: int = DEBT_DECIMAL_SCALE


@dataclass(frozen=True)
class LedgerConfig:
    owner: str = ""
    ceiling: int = 0
    reward_per_block: int = 0
    start_block: int = 0


@dataclass(frozen=True)
class RewardsConfig:
    # False keeps the contract ordering: open settles rewards after the lp increase
    settle_before_open: bool = False


@dataclass(frozen=True)
class TokensConfig:
    collateral: str = "sOHM"
    debt: str = "OHM"
    paired: str = "OSX"
    reserve: str = "DAI"


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    index_contract: str = ""


@dataclass(frozen=True)
class AppConfig:
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    protocol: ProtocolParams = field(default_factory=ProtocolParams)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)
    tokens: TokensConfig = field(default_factory=TokensConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)


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


def _build_ledger(raw: dict[str, Any]) -> LedgerConfig:
    return LedgerConfig(
        owner=str(raw.get("owner", "")),
        ceiling=int(raw.get("ceiling", 0)),
        reward_per_block=int(raw.get("reward_per_block", 0)),
        start_block=int(raw.get("start_block", 0)),
    )


def _build_protocol(raw: dict[str, Any]) -> ProtocolParams:
    return ProtocolParams(
        interest_divisor=int(raw.get("interest_divisor", INTEREST_DIVISOR)),
        reward_skim_divisor=int(raw.get("reward_skim_divisor", REWARD_SKIM_DIVISOR)),
        acc_precision=int(raw.get("acc_precision", ACC_PRECISION)),
        debt_decimal_scale=int(raw.get("debt_decimal_scale", DEBT_DECIMAL_SCALE)),
    )


def _as_bool(value: Any) -> bool:
    """YAML booleans pass through; interpolated strings like "false" are parsed."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_rewards(raw: dict[str, Any]) -> RewardsConfig:
    return RewardsConfig(
        settle_before_open=_as_bool(raw.get("settle_before_open", False)),
    )


def _build_tokens(raw: dict[str, Any]) -> TokensConfig:
    return TokensConfig(
        collateral=str(raw.get("collateral", TokensConfig.collateral)),
        debt=str(raw.get("debt", TokensConfig.debt)),
        paired=str(raw.get("paired", TokensConfig.paired)),
        reserve=str(raw.get("reserve", TokensConfig.reserve)),
    )


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(e for e in raw.get("rpc_endpoints") or [] if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        index_contract=str(raw.get("index_contract", "")),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (the parent of the package directory).
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
        ledger=_build_ledger(raw.get("ledger") or {}),
        protocol=_build_protocol(raw.get("protocol") or {}),
        rewards=_build_rewards(raw.get("rewards") or {}),
        tokens=_build_tokens(raw.get("tokens") or {}),
        chain=_build_chain(raw.get("chain") or {}),
    )

    validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.ledger.owner:
        raise ValueError("Ledger owner must be configured")

    for name in ("ceiling", "reward_per_block", "start_block"):
        if getattr(cfg.ledger, name) < 0:
            raise ValueError(f"ledger.{name} must not be negative")

    for name in (
        "interest_divisor",
        "reward_skim_divisor",
        "acc_precision",
        "debt_decimal_scale",
    ):
        if getattr(cfg.protocol, name) <= 0:
            raise ValueError(f"protocol.{name} must be positive")

    symbols = [
        cfg.tokens.collateral,
        cfg.tokens.debt,
        cfg.tokens.paired,
        cfg.tokens.reserve,
    ]
    if not all(symbols):
        raise ValueError("Token symbols must not be empty")
    if len(set(symbols)) != len(symbols):
        raise ValueError(f"Token symbols must be distinct: {symbols}")

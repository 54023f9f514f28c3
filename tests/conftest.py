"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from osx_ledger.config import AppConfig, LedgerConfig, RewardsConfig
from osx_ledger.models import Info, UserInfo
from osx_ledger.simulation import SimEnvironment, build_environment

OWNER = "owner"
DEADLINE = 10**12

# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


def make_config(
    ceiling: int = 10_000,
    reward_per_block: int = 100,
    start_block: int = 0,
    settle_before_open: bool = False,
) -> AppConfig:
    return AppConfig(
        ledger=LedgerConfig(
            owner=OWNER,
            ceiling=ceiling,
            reward_per_block=reward_per_block,
            start_block=start_block,
        ),
        rewards=RewardsConfig(settle_before_open=settle_before_open),
    )


@pytest.fixture()
def app_config() -> AppConfig:
    return make_config()


# ---------------------------------------------------------------------------
# Simulation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_env() -> Callable[..., SimEnvironment]:
    """Build a vault with ledger overrides, e.g. ``make_env(ceiling=1000)``."""

    def _make(**overrides: object) -> SimEnvironment:
        return build_environment(make_config(**overrides))  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def env(app_config: AppConfig) -> SimEnvironment:
    """Vault on identity exchange rate (index == scale)."""
    return build_environment(app_config)


@pytest.fixture()
def deposit(env: SimEnvironment) -> Callable[[str, int], None]:
    """Fund ``user`` with collateral and add it to the vault."""

    def _deposit(user: str, amount: int) -> None:
        env.fund(user, env.collateral.symbol, amount)
        env.vault.add(user, amount)

    return _deposit


@pytest.fixture()
def open_position(
    env: SimEnvironment, deposit: Callable[[str, int], None]
) -> Callable[[str, int, int], None]:
    """Deposit ``collateral`` for ``user`` and open an ``amount``/``amount`` position."""

    def _open(user: str, collateral: int, amount: int) -> None:
        deposit(user, collateral)
        env.fund(user, env.paired.symbol, amount)
        env.vault.open(user, amount, 0, amount, 0, DEADLINE)

    return _open


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_user() -> UserInfo:
    return UserInfo(balance=2000, last=2000, debt=1000, lp=1000, reward_debt=0)


@pytest.fixture()
def sample_info() -> Info:
    return Info(
        balance=2000,
        last=2000,
        debt=1000,
        lp=1000,
        ceiling=10_000,
        reward_per_block=100,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    ledger:
      owner: "0xOWNER"
      ceiling: 1000000
      reward_per_block: 100
      start_block: 5
    protocol:
      interest_divisor: 30
      reward_skim_divisor: 10
      acc_precision: 1000000000000
      debt_decimal_scale: 1000000000
    rewards:
      settle_before_open: true
    tokens:
      collateral: sOHM
      debt: OHM
      paired: OSX
      reserve: DAI
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
      index_contract: "0xINDEX"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file

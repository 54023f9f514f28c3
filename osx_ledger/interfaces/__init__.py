"""Collaborator interfaces consumed by the ledger."""
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass

from .chain import BlockSource
from .exchange_rate import ExchangeRateAdapter
from .router import LiquidityRouter
from .staking import Staking
from .token import RewardToken, Token
from .treasury import Treasury


@dataclass(frozen=True)
class Collaborators:
    """Everything the vault calls out to, bundled for wiring."""

    rate: ExchangeRateAdapter
    treasury: Treasury
    staking: Staking
    router: LiquidityRouter
    blocks: BlockSource
    collateral_token: Token
    debt_token: Token
    paired_token: RewardToken
    # Must restore collaborator state if the wrapped operation raises
    atomic: Callable[[], AbstractContextManager[None]] = nullcontext


__all__ = [
    "BlockSource",
    "Collaborators",
    "ExchangeRateAdapter",
    "LiquidityRouter",
    "RewardToken",
    "Staking",
    "Token",
    "Treasury",
]

"""Wire a Vault to in-memory collaborators."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from ..config import AppConfig
from ..interfaces import Collaborators
from ..vault import Vault
from .chain import ManualChain
from .index import IndexExchangeRate
from .router import SimRouter
from .staking import SimStaking
from .tokens import RebasingToken, SimToken
from .treasury import TREASURY_ADDRESS, SimTreasury

logger = logging.getLogger(__name__)

VAULT_ADDRESS = "vault"
DEFAULT_INDEX_SCALE = 10**18
DEFAULT_TREASURY_RESERVES = 10**36


@dataclass
class SimEnvironment:
    """A vault plus every collaborator it talks to, all in memory."""

    config: AppConfig
    vault: Vault
    chain: ManualChain
    collateral: RebasingToken
    debt: SimToken
    paired: SimToken
    reserve: SimToken
    treasury: SimTreasury
    staking: SimStaking
    router: SimRouter

    def token(self, symbol: str) -> SimToken | RebasingToken:
        for token in (self.collateral, self.debt, self.paired, self.reserve):
            if token.symbol == symbol:
                return token
        raise KeyError(f"Unknown token {symbol}")

    def fund(self, account: str, symbol: str, amount: int) -> None:
        """Mint ``amount`` of ``symbol`` straight to ``account``."""
        self.token(symbol).mint(account, amount)


class _Journal:
    """Snapshots collaborator state and restores it when an operation fails."""

    def __init__(self, *parts: Any) -> None:
        self._parts = parts

    @contextmanager
    def atomic(self) -> Iterator[None]:
        saved = [(part, part.snapshot()) for part in self._parts]
        try:
            yield
        except Exception:
            for part, state in saved:
                part.restore(state)
            raise


def build_environment(
    config: AppConfig,
    index: int = DEFAULT_INDEX_SCALE,
    index_scale: int = DEFAULT_INDEX_SCALE,
    treasury_reserves: int = DEFAULT_TREASURY_RESERVES,
) -> SimEnvironment:
    """Create a vault wired to fresh in-memory collaborators.

    ``index == index_scale`` makes static and elastic units equal until the
    first rebase.
    """
    symbols = config.tokens
    chain = ManualChain(block=config.ledger.start_block)
    collateral = RebasingToken(symbols.collateral, index, index_scale)
    debt = SimToken(symbols.debt)
    paired = SimToken(symbols.paired)
    reserve = SimToken(symbols.reserve)
    reserve.mint(TREASURY_ADDRESS, treasury_reserves)

    treasury = SimTreasury(
        reserve, debt, VAULT_ADDRESS, scale=config.protocol.debt_decimal_scale
    )
    staking = SimStaking(debt, collateral, VAULT_ADDRESS)
    router = SimRouter({debt.symbol: debt, paired.symbol: paired}, chain)

    journal = _Journal(collateral, debt, paired, reserve, treasury, staking, router)
    collaborators = Collaborators(
        rate=IndexExchangeRate(collateral),
        treasury=treasury,
        staking=staking,
        router=router,
        blocks=chain,
        collateral_token=collateral,
        debt_token=debt,
        paired_token=paired,
        atomic=journal.atomic,
    )
    vault = Vault(VAULT_ADDRESS, config, collaborators)
    logger.debug("Simulation environment built at block %d", chain.block)

    return SimEnvironment(
        config=config,
        vault=vault,
        chain=chain,
        collateral=collateral,
        debt=debt,
        paired=paired,
        reserve=reserve,
        treasury=treasury,
        staking=staking,
        router=router,
    )

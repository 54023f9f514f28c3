"""Vault — public entry points over the ledger components.

Every public method runs inside one ledger transaction: collaborators are
called while writes are staged, and the staged state is committed only when
the method returns normally. Admin methods require the configured owner.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace

from .config import AppConfig
from .errors import InvalidAmount, InvariantViolation, Unauthorized
from .interfaces import Collaborators
from .ledger import (
    CollateralAccounting,
    DebtEngine,
    PositionLedger,
    PositionManager,
    RewardDistributor,
)
from .models import CloseResult, Info, OpenResult, UserInfo, UserSnapshot, VaultSnapshot

logger = logging.getLogger(__name__)


class Vault:
    """Collateralized-debt vault with leveraged liquidity positions and rewards."""

    def __init__(self, address: str, config: AppConfig, collaborators: Collaborators) -> None:
        self.address = address
        self.owner = config.ledger.owner
        self._c = collaborators
        params = config.protocol

        self._ledger = PositionLedger(
            Info(
                ceiling=config.ledger.ceiling,
                reward_per_block=config.ledger.reward_per_block,
                last_reward_block=config.ledger.start_block,
            )
        )
        self._collateral = CollateralAccounting(
            self._ledger, collaborators.rate, collaborators.collateral_token, address, params
        )
        self._debt = DebtEngine(
            self._ledger,
            self._collateral,
            collaborators.treasury,
            collaborators.staking,
            address,
            config.tokens.reserve,
            params,
        )
        self._rewards = RewardDistributor(
            self._ledger,
            collaborators.paired_token,
            collaborators.blocks,
            address,
            self.owner,
            params,
        )
        self._positions = PositionManager(
            self._ledger,
            self._collateral,
            self._debt,
            self._rewards,
            collaborators.router,
            collaborators.debt_token,
            collaborators.paired_token,
            address,
            settle_before_open=config.rewards.settle_before_open,
        )

    @contextmanager
    def _operation(self) -> Iterator[None]:
        """One all-or-nothing operation across collaborators and ledger."""
        with self._c.atomic(), self._ledger.transaction():
            yield

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def info(self) -> Info:
        return self._ledger.info

    def user_info(self, user: str) -> UserInfo:
        return self._ledger.user(user)

    def equity(self, user: str) -> int:
        return self._collateral.equity(user)

    def pending(self, user: str) -> int:
        return self._rewards.pending(user)

    def snapshot(self) -> VaultSnapshot:
        return VaultSnapshot(
            block=self._c.blocks.block_number(),
            info=self._ledger.info,
            users=tuple(
                UserSnapshot(
                    address=address,
                    user=self._ledger.user(address),
                    equity=self.equity(address),
                    pending=self.pending(address),
                )
                for address in self._ledger.addresses()
            ),
        )

    def check_invariants(self) -> None:
        """Raise InvariantViolation if aggregates drift from per-user records."""
        info = self._ledger.info
        users = [self._ledger.user(a) for a in self._ledger.addresses()]
        problems: list[str] = []

        for name in ("balance", "last", "debt", "lp"):
            total = sum(getattr(u, name) for u in users)
            if total != getattr(info, name):
                problems.append(f"info.{name}={getattr(info, name)} != sum {total}")

        for address in self._ledger.addresses():
            user = self._ledger.user(address)
            if user.debt > self._collateral.to_elastic(user.balance):
                problems.append(f"{address} debt {user.debt} exceeds collateral")

        if problems:
            raise InvariantViolation("; ".join(problems))

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    def add(self, caller: str, amount: int) -> int:
        with self._operation():
            return self._collateral.add(caller, amount)

    def remove(self, caller: str, amount: int) -> int:
        with self._operation():
            return self._collateral.remove(caller, amount)

    def collect_interest(self, user: str) -> int:
        with self._operation():
            return self._collateral.collect_interest(user)

    def open(
        self,
        caller: str,
        ohm_desired: int,
        ohm_min: int,
        osx_desired: int,
        osx_min: int,
        deadline: int,
    ) -> OpenResult:
        with self._operation():
            return self._positions.open(
                caller, ohm_desired, ohm_min, osx_desired, osx_min, deadline
            )

    def close(
        self, caller: str, lp: int, ohm_min: int, osx_min: int, deadline: int
    ) -> CloseResult:
        with self._operation():
            return self._positions.close(caller, lp, ohm_min, osx_min, deadline)

    def harvest(self, caller: str) -> int:
        with self._operation():
            return self._positions.harvest(caller)

    def update_pool(self) -> int:
        with self._operation():
            return self._rewards.update_pool()

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"{caller} is not the vault owner")

    def collect(self, caller: str, to: str) -> int:
        """Sweep accrued interest to ``to``; returns the elastic amount sent."""
        self._only_owner(caller)
        with self._operation():
            info = self._ledger.info
            amount = self._collateral.to_elastic(info.accrued)
            self._ledger.put_info(replace(info, accrued=0))
            if amount > 0:
                self._c.collateral_token.transfer(self.address, to, amount)
        logger.info("Interest collected to %s: %d", to, amount)
        return amount

    def set_rate(self, caller: str, reward_per_block: int) -> None:
        self._only_owner(caller)
        if reward_per_block < 0:
            raise InvalidAmount(f"Reward rate must not be negative, got {reward_per_block}")
        with self._operation():
            self._rewards.set_rate(reward_per_block)
        logger.info("Reward rate set to %d per block", reward_per_block)

    def set_ceiling(self, caller: str, ceiling: int) -> None:
        """Cap aggregate debt. A ceiling below outstanding debt only blocks new borrowing."""
        self._only_owner(caller)
        if ceiling < 0:
            raise InvalidAmount(f"Ceiling must not be negative, got {ceiling}")
        with self._operation():
            self._ledger.put_info(replace(self._ledger.info, ceiling=ceiling))
        logger.info("Debt ceiling set to %d", ceiling)

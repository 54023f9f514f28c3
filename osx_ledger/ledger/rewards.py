"""Reward distributor — per-block emission split by liquidity share.

Accumulator-per-share schedule: ``acc_osx_per_share`` grows by
``reward * PRECISION / total_lp`` per update, and a user's claim is
``lp * acc / PRECISION - reward_debt``.

Invariants:
    - Blocks with zero total lp advance ``last_reward_block`` without
      emission; those rewards are forfeited, not queued
    - ``settle_and_claim`` always resets ``reward_debt`` to the current
      baseline, even for users with no lp
    - Payouts are capped at the vault's reward-token balance (the one
      soft failure in the ledger)
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..config import ProtocolParams
from ..interfaces import BlockSource, RewardToken
from ..models import Info
from .state import PositionLedger, checked_sub

logger = logging.getLogger(__name__)


class RewardDistributor:
    def __init__(
        self,
        ledger: PositionLedger,
        token: RewardToken,
        blocks: BlockSource,
        vault_address: str,
        operator: str,
        params: ProtocolParams,
    ) -> None:
        self._ledger = ledger
        self._token = token
        self._blocks = blocks
        self._vault = vault_address
        self._operator = operator
        self._params = params

    def _project(self, info: Info, block: int) -> tuple[int, int]:
        """Return (accumulator, emission) as if the pool were updated at ``block``."""
        if block <= info.last_reward_block or info.lp == 0:
            return info.acc_osx_per_share, 0
        reward = info.reward_per_block * (block - info.last_reward_block)
        acc = info.acc_osx_per_share + reward * self._params.acc_precision // info.lp
        return acc, reward

    def _accrued_for(self, lp: int, acc: int) -> int:
        return lp * acc // self._params.acc_precision

    def update_pool(self) -> int:
        """Bring the accumulator up to the current block; returns the emission minted."""
        info = self._ledger.info
        block = self._blocks.block_number()
        if block <= info.last_reward_block:
            return 0

        if info.lp == 0:
            self._ledger.put_info(replace(info, last_reward_block=block))
            logger.debug("Pool empty, skipped emission up to block %d", block)
            return 0

        acc, reward = self._project(info, block)
        if reward > 0:
            self._token.mint(self._operator, reward // self._params.reward_skim_divisor)
            self._token.mint(self._vault, reward)

        self._ledger.put_info(
            replace(info, acc_osx_per_share=acc, last_reward_block=block)
        )
        logger.debug("Pool updated to block %d, minted %d reward", block, reward)
        return reward

    def pending(self, address: str) -> int:
        """Reward ``address`` could claim now, without touching state."""
        info = self._ledger.info
        user = self._ledger.user(address)
        acc, _ = self._project(info, self._blocks.block_number())
        return checked_sub(
            self._accrued_for(user.lp, acc), user.reward_debt, "pending reward"
        )

    def settle_and_claim(self, address: str) -> int:
        """Update the pool, pay out what ``address`` has earned, reset its baseline."""
        self.update_pool()

        acc = self._ledger.info.acc_osx_per_share
        user = self._ledger.user(address)
        accrued = self._accrued_for(user.lp, acc)

        paid = 0
        if user.lp > 0:
            owed = checked_sub(accrued, user.reward_debt, "reward owed")
            available = self._token.balance_of(self._vault)
            paid = min(owed, available)
            if paid < owed:
                logger.warning(
                    "Reward balance short: %s owed %d, paying %d", address, owed, paid
                )
            if paid > 0:
                self._token.transfer(self._vault, address, paid)
                logger.info("Reward paid for %s: %d", address, paid)

        self._ledger.put_user(address, replace(user, reward_debt=accrued))
        return paid

    def sync_reward_debt(self, address: str) -> None:
        """Recompute the baseline after ``lp`` changed."""
        user = self._ledger.user(address)
        accrued = self._accrued_for(user.lp, self._ledger.info.acc_osx_per_share)
        self._ledger.put_user(address, replace(user, reward_debt=accrued))

    def set_rate(self, reward_per_block: int) -> None:
        self.update_pool()
        info = self._ledger.info
        self._ledger.put_info(replace(info, reward_per_block=reward_per_block))

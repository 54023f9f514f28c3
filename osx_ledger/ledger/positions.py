"""Position manager — leveraged liquidity positions funded by borrowed debt asset."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..errors import InsufficientLiquidity, InvalidAmount
from ..interfaces import LiquidityRouter, Token
from ..models import CloseResult, OpenResult
from .collateral import CollateralAccounting
from .debt import DebtEngine
from .rewards import RewardDistributor
from .state import PositionLedger, checked_shift

logger = logging.getLogger(__name__)


class PositionManager:
    """Opens and closes positions, coordinating debt, rewards and the router.

    With ``settle_before_open`` unset, ``open`` settles rewards after the lp
    increase, the same sequence the on-chain contract uses. The new lp then
    shares in emission accrued before it existed.
    """

    def __init__(
        self,
        ledger: PositionLedger,
        collateral: CollateralAccounting,
        debt: DebtEngine,
        rewards: RewardDistributor,
        router: LiquidityRouter,
        debt_token: Token,
        paired_token: Token,
        vault_address: str,
        settle_before_open: bool = False,
    ) -> None:
        self._ledger = ledger
        self._collateral = collateral
        self._debt = debt
        self._rewards = rewards
        self._router = router
        self._debt_token = debt_token
        self._paired_token = paired_token
        self._vault = vault_address
        self._settle_before_open = settle_before_open

    def _shift_lp(self, address: str, delta: int) -> None:
        user = self._ledger.user(address)
        info = self._ledger.info
        self._ledger.put_user(
            address, replace(user, lp=checked_shift(user.lp, delta, "user lp"))
        )
        self._ledger.put_info(replace(info, lp=checked_shift(info.lp, delta, "total lp")))

    def open(
        self,
        address: str,
        ohm_desired: int,
        ohm_min: int,
        osx_desired: int,
        osx_min: int,
        deadline: int,
    ) -> OpenResult:
        if ohm_desired <= 0 or osx_desired <= 0:
            raise InvalidAmount(
                f"Desired amounts must be positive, got {ohm_desired}/{osx_desired}"
            )

        self._collateral.collect_interest(address)
        self._debt.check_borrow(address, ohm_desired)

        reward_paid = 0
        if self._settle_before_open:
            reward_paid = self._rewards.settle_and_claim(address)

        self._paired_token.transfer(address, self._vault, osx_desired)
        self._debt.borrow(address, ohm_desired)

        ohm_added, osx_added, liquidity = self._router.add_liquidity(
            self._debt_token.symbol,
            self._paired_token.symbol,
            ohm_desired,
            osx_desired,
            ohm_min,
            osx_min,
            self._vault,
            deadline,
        )
        self._shift_lp(address, liquidity)

        # Only what the pool took stays borrowed
        self._debt.repay(address, ohm_desired - ohm_added)
        if osx_desired > osx_added:
            self._paired_token.transfer(self._vault, address, osx_desired - osx_added)

        if self._settle_before_open:
            self._rewards.sync_reward_debt(address)
        else:
            reward_paid = self._rewards.settle_and_claim(address)

        logger.info(
            "Position opened for %s: %d %s + %d %s → %d lp",
            address,
            ohm_added,
            self._debt_token.symbol,
            osx_added,
            self._paired_token.symbol,
            liquidity,
        )
        return OpenResult(
            ohm_added=ohm_added,
            osx_added=osx_added,
            liquidity=liquidity,
            reward_paid=reward_paid,
        )

    def close(
        self, address: str, lp: int, ohm_min: int, osx_min: int, deadline: int
    ) -> CloseResult:
        owned = self._ledger.user(address).lp
        if lp <= 0 or lp > owned:
            raise InsufficientLiquidity(
                f"Cannot close {lp} lp: {address} holds {owned}"
            )

        self._collateral.collect_interest(address)
        reward_paid = self._rewards.settle_and_claim(address)

        ohm_removed, osx_removed = self._router.remove_liquidity(
            self._debt_token.symbol,
            self._paired_token.symbol,
            lp,
            ohm_min,
            osx_min,
            self._vault,
            deadline,
        )

        self._shift_lp(address, -lp)
        self._rewards.sync_reward_debt(address)

        repaid = self._debt.settle(address, lp, ohm_removed, owned)
        if osx_removed > 0:
            self._paired_token.transfer(self._vault, address, osx_removed)

        logger.info(
            "Position closed for %s: %d lp → %d %s + %d %s, repaid %d",
            address,
            lp,
            ohm_removed,
            self._debt_token.symbol,
            osx_removed,
            self._paired_token.symbol,
            repaid,
        )
        return CloseResult(
            ohm_removed=ohm_removed,
            osx_removed=osx_removed,
            debt_repaid=repaid,
            reward_paid=reward_paid,
        )

    def harvest(self, address: str) -> int:
        return self._rewards.settle_and_claim(address)

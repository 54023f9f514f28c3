"""Debt engine — borrow against equity under a global ceiling, settle on close."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..config import ProtocolParams
from ..errors import CollaboratorError, DebtCeilingExceeded, InsufficientEquity
from ..interfaces import Staking, Treasury
from .collateral import CollateralAccounting
from .state import PositionLedger, checked_sub

logger = logging.getLogger(__name__)


class DebtEngine:
    """Issues the debt asset through the treasury and books it per user."""

    def __init__(
        self,
        ledger: PositionLedger,
        collateral: CollateralAccounting,
        treasury: Treasury,
        staking: Staking,
        vault_address: str,
        reserve_asset: str,
        params: ProtocolParams,
    ) -> None:
        self._ledger = ledger
        self._collateral = collateral
        self._treasury = treasury
        self._staking = staking
        self._vault = vault_address
        self._reserve_asset = reserve_asset
        self._params = params

    def check_borrow(self, address: str, amount: int) -> None:
        """Raise unless ``address`` may borrow ``amount`` right now.

        The ceiling is checked first, so a borrow that breaks both limits
        reports DebtCeilingExceeded.
        """
        info = self._ledger.info
        if info.debt + amount > info.ceiling:
            raise DebtCeilingExceeded(
                f"Borrowing {amount} would take total debt to "
                f"{info.debt + amount}, ceiling is {info.ceiling}"
            )

        equity = self._collateral.equity(address)
        if amount > equity:
            raise InsufficientEquity(
                f"Cannot borrow {amount}: equity of {address} is {equity}"
            )

    def borrow(self, address: str, amount: int) -> int:
        """Incur treasury debt in the reserve asset and mint ``amount`` debt asset."""
        self.check_borrow(address, amount)

        reserve = amount * self._params.debt_decimal_scale
        self._treasury.incur_debt(reserve, self._reserve_asset)
        minted = self._treasury.deposit(reserve, self._reserve_asset, 0)
        if minted < amount:
            raise CollaboratorError(
                f"Treasury minted {minted}, expected at least {amount}"
            )

        user = self._ledger.user(address)
        info = self._ledger.info
        self._ledger.put_user(address, replace(user, debt=user.debt + amount))
        self._ledger.put_info(replace(info, debt=info.debt + amount))

        logger.info("Borrowed for %s: %d (total debt %d)", address, amount, info.debt + amount)
        return minted

    def repay(self, address: str, amount: int) -> None:
        """Hand ``amount`` debt asset back to the treasury and reduce the books."""
        if amount <= 0:
            return

        self._treasury.repay_debt_with_ohm(amount)

        user = self._ledger.user(address)
        info = self._ledger.info
        self._ledger.put_user(
            address, replace(user, debt=checked_sub(user.debt, amount, "user debt"))
        )
        self._ledger.put_info(
            replace(info, debt=checked_sub(info.debt, amount, "total debt"))
        )
        logger.debug("Repaid for %s: %d", address, amount)

    def settle(
        self, address: str, lp_fraction: int, ohm_removed: int, total_user_lp: int
    ) -> int:
        """Repay the debt share of ``lp_fraction / total_user_lp``; returns the amount repaid.

        A shortfall in ``ohm_removed`` is covered by unstaking the user's
        collateral; a surplus is staked and credited back as collateral.
        """
        user = self._ledger.user(address)
        amount = user.debt * lp_fraction // total_user_lp

        if ohm_removed < amount:
            shortfall = amount - ohm_removed
            self._collateral.debit(address, shortfall)
            self._staking.unstake(shortfall, False)
            logger.info("Close shortfall for %s: unstaked %d collateral", address, shortfall)
        elif ohm_removed > amount:
            surplus = ohm_removed - amount
            token = self._collateral.token
            before = token.balance_of(self._vault)
            self._staking.stake(surplus, self._vault)
            self._staking.claim(self._vault)
            claimed = token.balance_of(self._vault) - before
            if claimed > 0:
                self._collateral.credit(address, claimed)
            logger.info("Close profit for %s: restaked %d as collateral", address, claimed)

        self.repay(address, amount)
        return amount

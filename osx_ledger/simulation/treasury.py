"""In-memory treasury that lends reserves to one authorised debtor."""
from __future__ import annotations

import logging

from ..config import DEBT_DECIMAL_SCALE
from ..errors import CollaboratorError, Unauthorized
from .tokens import SimToken

logger = logging.getLogger(__name__)

TREASURY_ADDRESS = "treasury"


class SimTreasury:
    """Lends ``reserve`` to ``debtor`` and mints ``ohm`` against deposits.

    Reserves are valued at one debt-asset unit per ``scale`` reserve units.
    """

    def __init__(
        self,
        reserve: SimToken,
        ohm: SimToken,
        debtor: str,
        scale: int = DEBT_DECIMAL_SCALE,
        debt_limit: int | None = None,
    ) -> None:
        self.reserve = reserve
        self.ohm = ohm
        self.debtor = debtor
        self.scale = scale
        self.debt_limit = debt_limit
        self.authorized = True
        self.reserve_debt = 0

    def _check(self, asset: str) -> None:
        if not self.authorized:
            raise Unauthorized(f"{self.debtor} is not an approved debtor")
        if asset != self.reserve.symbol:
            raise CollaboratorError(f"Unknown reserve asset {asset}")

    def incur_debt(self, amount: int, asset: str) -> None:
        self._check(asset)
        if self.debt_limit is not None and self.reserve_debt + amount > self.debt_limit:
            raise CollaboratorError(
                f"Debt limit {self.debt_limit} exceeded by {self.reserve_debt + amount}"
            )
        self.reserve.transfer(TREASURY_ADDRESS, self.debtor, amount)
        self.reserve_debt += amount
        logger.debug("Treasury lent %d %s to %s", amount, asset, self.debtor)

    def deposit(self, amount: int, asset: str, profit: int) -> int:
        self._check(asset)
        value = amount // self.scale
        if profit > value:
            raise CollaboratorError(f"Profit {profit} exceeds deposit value {value}")
        self.reserve.transfer(self.debtor, TREASURY_ADDRESS, amount)
        minted = value - profit
        self.ohm.mint(self.debtor, minted)
        return minted

    def repay_debt_with_reserve(self, amount: int, asset: str) -> None:
        self._check(asset)
        if amount > self.reserve_debt:
            raise CollaboratorError(f"Repaying {amount} exceeds debt {self.reserve_debt}")
        self.reserve.transfer(self.debtor, TREASURY_ADDRESS, amount)
        self.reserve_debt -= amount

    def repay_debt_with_ohm(self, amount: int) -> None:
        if not self.authorized:
            raise Unauthorized(f"{self.debtor} is not an approved debtor")
        value = amount * self.scale
        if value > self.reserve_debt:
            raise CollaboratorError(f"Repaying {value} exceeds debt {self.reserve_debt}")
        self.ohm.burn(self.debtor, amount)
        self.reserve_debt -= value

    def snapshot(self) -> tuple[int, bool]:
        return self.reserve_debt, self.authorized

    def restore(self, state: tuple[int, bool]) -> None:
        self.reserve_debt, self.authorized = state

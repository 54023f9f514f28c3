"""Collateral accounting — deposits, withdrawals and the interest skim on growth."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..config import ProtocolParams
from ..errors import InsufficientEquity, InvalidAmount
from ..interfaces import ExchangeRateAdapter, Token
from .state import PositionLedger, checked_shift, checked_sub

logger = logging.getLogger(__name__)


class CollateralAccounting:
    """Tracks collateral in static units and skims 1/30 of its elastic growth.

    ``balance`` is the wrapped (static) amount; ``last`` is its elastic value
    at the last settlement. Growth is the difference between the two, so
    interest is only ever charged on passive yield.
    """

    def __init__(
        self,
        ledger: PositionLedger,
        rate: ExchangeRateAdapter,
        token: Token,
        vault_address: str,
        params: ProtocolParams,
    ) -> None:
        self._ledger = ledger
        self._rate = rate
        self._token = token
        self._vault = vault_address
        self._params = params

    @property
    def token(self) -> Token:
        return self._token

    def to_elastic(self, amount: int) -> int:
        return self._rate.static_to_elastic(amount)

    def to_static(self, amount: int) -> int:
        return self._rate.elastic_to_static(amount)

    def to_static_ceil(self, amount: int) -> int:
        """Static units needed to cover ``amount`` elastic units, rounded up."""
        static = self._rate.elastic_to_static(amount)
        if self._rate.static_to_elastic(static) < amount:
            static += 1
        return static

    def equity(self, address: str) -> int:
        """Elastic collateral value minus outstanding debt."""
        user = self._ledger.user(address)
        return self.to_elastic(user.balance) - user.debt

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def add(self, address: str, amount: int) -> int:
        """Pull ``amount`` elastic collateral from ``address`` and credit it."""
        if amount <= 0:
            raise InvalidAmount(f"Deposit amount must be positive, got {amount}")

        self._token.transfer(address, self._vault, amount)
        static = self.credit(address, amount)
        logger.info("Collateral added for %s: %d elastic (%d static)", address, amount, static)
        return static

    def credit(self, address: str, amount: int) -> int:
        """Book ``amount`` elastic units already held by the vault to ``address``."""
        static = self.to_static(amount)
        user = self._ledger.user(address)
        info = self._ledger.info

        self._ledger.put_user(
            address, replace(user, balance=user.balance + static, last=user.last + amount)
        )
        self._ledger.put_info(
            replace(info, balance=info.balance + static, last=info.last + amount)
        )
        return static

    def remove(self, address: str, amount: int) -> int:
        """Withdraw ``amount`` elastic collateral to ``address``."""
        if amount <= 0:
            raise InvalidAmount(f"Withdrawal amount must be positive, got {amount}")

        self.collect_interest(address)

        equity = self.equity(address)
        if amount > equity:
            raise InsufficientEquity(
                f"Cannot remove {amount}: equity of {address} is {equity}"
            )

        static = self.debit(address, amount)
        self._token.transfer(self._vault, address, amount)
        logger.info("Collateral removed for %s: %d elastic (%d static)", address, amount, static)
        return static

    def debit(self, address: str, amount: int) -> int:
        """Take ``amount`` elastic units off ``address``'s books, rounding against the user."""
        static = self.to_static_ceil(amount)
        user = self._ledger.user(address)
        info = self._ledger.info

        self._ledger.put_user(
            address,
            replace(
                user,
                balance=checked_sub(user.balance, static, "user balance"),
                last=checked_sub(user.last, amount, "user last"),
            ),
        )
        self._ledger.put_info(
            replace(
                info,
                balance=checked_sub(info.balance, static, "total balance"),
                last=checked_sub(info.last, amount, "total last"),
            )
        )
        return static

    def collect_interest(self, address: str) -> int:
        """Skim interest on growth since the last settlement; returns static interest.

        Idempotent: with no growth in between, a second call changes nothing.
        """
        user = self._ledger.user(address)
        current = self.to_elastic(user.balance)
        growth = current - user.last
        if growth <= 0:
            return 0

        interest = self.to_static(growth // self._params.interest_divisor)
        balance = checked_sub(user.balance, interest, "user balance")
        last = self.to_elastic(balance)

        info = self._ledger.info
        self._ledger.put_user(address, replace(user, balance=balance, last=last))
        self._ledger.put_info(
            replace(
                info,
                balance=checked_sub(info.balance, interest, "total balance"),
                last=checked_shift(info.last, last - user.last, "total last"),
                accrued=info.accrued + interest,
            )
        )

        logger.debug(
            "Interest collected for %s: growth %d elastic, interest %d static",
            address, growth, interest,
        )
        return interest

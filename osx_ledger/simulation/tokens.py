"""In-memory tokens: a plain mintable token and a rebasing collateral token."""
from __future__ import annotations

import logging

from ..errors import CollaboratorError, InvalidAmount

logger = logging.getLogger(__name__)


class SimToken:
    """Mintable fungible token with address-keyed balances."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self._balances: dict[str, int] = {}
        self.total_supply = 0

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"{self.symbol}: negative transfer {amount}")
        balance = self.balance_of(sender)
        if balance < amount:
            raise CollaboratorError(
                f"{self.symbol}: {sender} holds {balance}, cannot send {amount}"
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def mint(self, to: str, amount: int) -> None:
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        balance = self.balance_of(account)
        if balance < amount:
            raise CollaboratorError(
                f"{self.symbol}: cannot burn {amount} from {account} holding {balance}"
            )
        self._balances[account] = balance - amount
        self.total_supply -= amount

    def snapshot(self) -> tuple[dict[str, int], int]:
        return dict(self._balances), self.total_supply

    def restore(self, state: tuple[dict[str, int], int]) -> None:
        balances, self.total_supply = state
        self._balances = dict(balances)


class RebasingToken:
    """Elastic token backed by static (wrapped) balances and a growing index.

    ``balance_of`` reports ``static * index // scale``. Raising the index is
    a rebase: every holder's elastic balance grows without a transfer.
    """

    def __init__(self, symbol: str, index: int, scale: int = 10**18) -> None:
        if index <= 0 or scale <= 0:
            raise ValueError("index and scale must be positive")
        self.symbol = symbol
        self.index = index
        self.scale = scale
        self._static: dict[str, int] = {}

    def to_static(self, amount: int) -> int:
        return amount * self.scale // self.index

    def to_elastic(self, amount: int) -> int:
        return amount * self.index // self.scale

    def static_balance_of(self, account: str) -> int:
        return self._static.get(account, 0)

    def balance_of(self, account: str) -> int:
        return self.to_elastic(self.static_balance_of(account))

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"{self.symbol}: negative transfer {amount}")
        if self.balance_of(sender) < amount:
            raise CollaboratorError(
                f"{self.symbol}: {sender} holds {self.balance_of(sender)}, cannot send {amount}"
            )
        static = min(self.to_static(amount), self.static_balance_of(sender))
        self._static[sender] = self.static_balance_of(sender) - static
        self._static[recipient] = self.static_balance_of(recipient) + static

    def mint(self, to: str, amount: int) -> None:
        self._static[to] = self.static_balance_of(to) + self.to_static(amount)

    def burn(self, account: str, amount: int) -> None:
        if self.balance_of(account) < amount:
            raise CollaboratorError(
                f"{self.symbol}: cannot burn {amount} from {account}"
            )
        static = min(self.to_static(amount), self.static_balance_of(account))
        self._static[account] = self.static_balance_of(account) - static

    def rebase(self, index: int) -> None:
        if index < self.index:
            raise ValueError(f"Index may only grow ({self.index} → {index})")
        logger.debug("%s rebased: index %d → %d", self.symbol, self.index, index)
        self.index = index

    def snapshot(self) -> tuple[dict[str, int], int]:
        return dict(self._static), self.index

    def restore(self, state: tuple[dict[str, int], int]) -> None:
        static, self.index = state
        self._static = dict(static)

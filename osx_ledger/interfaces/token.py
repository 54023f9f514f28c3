"""Token protocols — balances and transfers seen from the vault."""
from typing import Protocol


class Token(Protocol):
    """Fungible token. ``transfer`` raises when ``sender`` cannot cover ``amount``."""

    @property
    def symbol(self) -> str: ...

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class RewardToken(Token, Protocol):
    """Token the vault is allowed to mint."""

    def mint(self, to: str, amount: int) -> None: ...

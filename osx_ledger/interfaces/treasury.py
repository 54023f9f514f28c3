"""Treasury protocol — issues and takes back the debt asset."""
from typing import Protocol


class Treasury(Protocol):
    """Debt-issuing treasury. Fails when the caller is unauthorised or reserves are short."""

    def incur_debt(self, amount: int, asset: str) -> None: ...

    def deposit(self, amount: int, asset: str, profit: int) -> int: ...

    def repay_debt_with_reserve(self, amount: int, asset: str) -> None: ...

    def repay_debt_with_ohm(self, amount: int) -> None: ...

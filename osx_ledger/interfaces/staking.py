"""Staking protocol — converts the debt asset to and from rebasing collateral."""
from typing import Protocol


class Staking(Protocol):
    def stake(self, amount: int, recipient: str) -> bool: ...

    def claim(self, recipient: str) -> None: ...

    def unstake(self, amount: int, trigger: bool) -> None: ...

"""In-memory staking: debt asset in, rebasing collateral out after a warmup claim."""
from __future__ import annotations

from ..errors import CollaboratorError
from .tokens import RebasingToken, SimToken


class SimStaking:
    """Stakes on behalf of ``caller``; staked amounts are claimable immediately."""

    def __init__(self, ohm: SimToken, sohm: RebasingToken, caller: str) -> None:
        self.ohm = ohm
        self.sohm = sohm
        self.caller = caller
        self.warmup: dict[str, int] = {}

    def stake(self, amount: int, recipient: str) -> bool:
        self.ohm.burn(self.caller, amount)
        self.warmup[recipient] = self.warmup.get(recipient, 0) + amount
        return True

    def claim(self, recipient: str) -> None:
        amount = self.warmup.pop(recipient, 0)
        if amount:
            self.sohm.mint(recipient, amount)

    def unstake(self, amount: int, trigger: bool) -> None:
        if trigger:
            raise CollaboratorError("Rebase trigger is not supported")
        self.sohm.burn(self.caller, amount)
        self.ohm.mint(self.caller, amount)

    def snapshot(self) -> dict[str, int]:
        return dict(self.warmup)

    def restore(self, state: dict[str, int]) -> None:
        self.warmup = dict(state)

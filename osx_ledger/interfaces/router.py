"""Liquidity router protocol."""
from typing import Protocol


class LiquidityRouter(Protocol):
    """Pool router. Raises SlippageExceeded / DeadlineExpired on failure."""

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        desired_a: int,
        desired_b: int,
        min_a: int,
        min_b: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int, int]: ...

    def remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        liquidity: int,
        min_a: int,
        min_b: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int]: ...

"""In-memory constant-product router (Uniswap V2 style amounts, no fee)."""
from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field

from ..errors import CollaboratorError, DeadlineExpired, InvalidAmount, SlippageExceeded
from .chain import ManualChain
from .tokens import SimToken

logger = logging.getLogger(__name__)

ROUTER_ADDRESS = "router"


@dataclass
class Pool:
    reserve_a: int = 0
    reserve_b: int = 0
    total_supply: int = 0
    balances: dict[str, int] = field(default_factory=dict)


class SimRouter:
    """Pools keyed by ordered token pair; tokens are pulled from and paid to ``to``."""

    def __init__(self, tokens: dict[str, SimToken], chain: ManualChain) -> None:
        self._tokens = tokens
        self._chain = chain
        self.pools: dict[tuple[str, str], Pool] = {}

    def _check_deadline(self, deadline: int) -> None:
        if self._chain.timestamp > deadline:
            raise DeadlineExpired(
                f"Deadline {deadline} passed (now {self._chain.timestamp})"
            )

    def pool(self, token_a: str, token_b: str) -> Pool:
        return self.pools.setdefault((token_a, token_b), Pool())

    def lp_balance(self, token_a: str, token_b: str, account: str) -> int:
        return self.pool(token_a, token_b).balances.get(account, 0)

    def _optimal(
        self, pool: Pool, desired_a: int, desired_b: int, min_a: int, min_b: int
    ) -> tuple[int, int]:
        if pool.reserve_a == 0 and pool.reserve_b == 0:
            return desired_a, desired_b

        b_optimal = desired_a * pool.reserve_b // pool.reserve_a
        if b_optimal <= desired_b:
            if b_optimal < min_b:
                raise SlippageExceeded(f"Insufficient B amount: {b_optimal} < {min_b}")
            return desired_a, b_optimal

        a_optimal = desired_b * pool.reserve_a // pool.reserve_b
        if a_optimal < min_a:
            raise SlippageExceeded(f"Insufficient A amount: {a_optimal} < {min_a}")
        return a_optimal, desired_b

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
    ) -> tuple[int, int, int]:
        self._check_deadline(deadline)
        pool = self.pool(token_a, token_b)
        amount_a, amount_b = self._optimal(pool, desired_a, desired_b, min_a, min_b)

        if pool.total_supply == 0:
            liquidity = math.isqrt(amount_a * amount_b)
        else:
            liquidity = min(
                amount_a * pool.total_supply // pool.reserve_a,
                amount_b * pool.total_supply // pool.reserve_b,
            )
        if liquidity <= 0:
            raise InvalidAmount("Insufficient liquidity minted")

        for symbol, amount in ((token_a, amount_a), (token_b, amount_b)):
            held = self._tokens[symbol].balance_of(to)
            if held < amount:
                raise CollaboratorError(f"{to} holds {held} {symbol}, needs {amount}")

        self._tokens[token_a].transfer(to, ROUTER_ADDRESS, amount_a)
        self._tokens[token_b].transfer(to, ROUTER_ADDRESS, amount_b)

        pool.reserve_a += amount_a
        pool.reserve_b += amount_b
        pool.total_supply += liquidity
        pool.balances[to] = pool.balances.get(to, 0) + liquidity
        logger.debug("Added %d/%d to %s-%s → %d lp", amount_a, amount_b, token_a, token_b, liquidity)
        return amount_a, amount_b, liquidity

    def remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        liquidity: int,
        min_a: int,
        min_b: int,
        to: str,
        deadline: int,
    ) -> tuple[int, int]:
        self._check_deadline(deadline)
        pool = self.pool(token_a, token_b)
        held = pool.balances.get(to, 0)
        if liquidity > held:
            raise CollaboratorError(f"{to} holds {held} lp, cannot burn {liquidity}")

        amount_a = liquidity * pool.reserve_a // pool.total_supply
        amount_b = liquidity * pool.reserve_b // pool.total_supply
        if amount_a < min_a:
            raise SlippageExceeded(f"Insufficient A amount: {amount_a} < {min_a}")
        if amount_b < min_b:
            raise SlippageExceeded(f"Insufficient B amount: {amount_b} < {min_b}")

        pool.balances[to] = held - liquidity
        pool.total_supply -= liquidity
        pool.reserve_a -= amount_a
        pool.reserve_b -= amount_b

        self._tokens[token_a].transfer(ROUTER_ADDRESS, to, amount_a)
        self._tokens[token_b].transfer(ROUTER_ADDRESS, to, amount_b)
        return amount_a, amount_b

    def swap(self, token_in: str, token_out: str, amount_in: int, trader: str) -> int:
        """Swap against the pool to move its price; returns the amount out."""
        if (token_in, token_out) in self.pools:
            pool = self.pools[(token_in, token_out)]
            reserve_in, reserve_out = pool.reserve_a, pool.reserve_b
        else:
            pool = self.pools[(token_out, token_in)]
            reserve_in, reserve_out = pool.reserve_b, pool.reserve_a

        amount_out = amount_in * reserve_out // (reserve_in + amount_in)
        self._tokens[token_in].transfer(trader, ROUTER_ADDRESS, amount_in)
        self._tokens[token_out].transfer(ROUTER_ADDRESS, trader, amount_out)

        if (token_in, token_out) in self.pools:
            pool.reserve_a += amount_in
            pool.reserve_b -= amount_out
        else:
            pool.reserve_b += amount_in
            pool.reserve_a -= amount_out
        return amount_out

    def snapshot(self) -> dict[tuple[str, str], Pool]:
        return copy.deepcopy(self.pools)

    def restore(self, state: dict[tuple[str, str], Pool]) -> None:
        self.pools = copy.deepcopy(state)

"""Integration tests for the vault against in-memory collaborators."""
from __future__ import annotations

from collections.abc import Callable

import pytest

from osx_ledger.errors import (
    DeadlineExpired,
    DebtCeilingExceeded,
    InsufficientEquity,
    InsufficientLiquidity,
    InvalidAmount,
    SlippageExceeded,
    Unauthorized,
)
from osx_ledger.models import UserInfo
from osx_ledger.simulation import SimEnvironment
from osx_ledger.simulation.environment import VAULT_ADDRESS

SCALE = 10**18
DEADLINE = 10**12

Deposit = Callable[[str, int], None]
OpenPosition = Callable[[str, int, int], None]


def _swap(env: SimEnvironment, symbol_in: str, symbol_out: str, amount: int) -> int:
    env.fund("trader", symbol_in, amount)
    return env.router.swap(symbol_in, symbol_out, amount, "trader")


class TestCollateral:
    def test_add_then_remove_returns_everything(
        self, env: SimEnvironment, deposit: Deposit
    ) -> None:
        deposit("alice", 100)
        assert env.vault.user_info("alice").balance == 100
        assert env.collateral.balance_of("alice") == 0

        env.vault.remove("alice", 100)
        assert env.collateral.balance_of("alice") == 100
        assert env.vault.user_info("alice").balance == 0
        env.vault.check_invariants()

    def test_remove_above_equity(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        assert env.vault.equity("alice") == 1000
        with pytest.raises(InsufficientEquity):
            env.vault.remove("alice", 1001)
        env.vault.remove("alice", 1000)
        assert env.vault.equity("alice") == 0

    def test_interest_on_rebase(self, env: SimEnvironment, deposit: Deposit) -> None:
        deposit("alice", 3000)
        env.collateral.rebase(SCALE * 11 // 10)

        assert env.vault.collect_interest("alice") == 9
        assert env.vault.collect_interest("alice") == 0

        user = env.vault.user_info("alice")
        assert (user.balance, user.last) == (2991, 3290)
        assert env.vault.info.accrued == 9
        env.vault.check_invariants()

    def test_collect_sweeps_accrued_interest(
        self, env: SimEnvironment, deposit: Deposit
    ) -> None:
        deposit("alice", 3000)
        env.collateral.rebase(SCALE * 11 // 10)
        env.vault.collect_interest("alice")

        assert env.vault.collect(env.vault.owner, "treasury-multisig") == 9
        assert env.collateral.static_balance_of("treasury-multisig") == 8
        assert env.vault.info.accrued == 0
        assert env.vault.collect(env.vault.owner, "treasury-multisig") == 0

    def test_invalid_amounts(self, env: SimEnvironment) -> None:
        with pytest.raises(InvalidAmount):
            env.vault.add("alice", 0)
        with pytest.raises(InvalidAmount):
            env.vault.remove("alice", -5)


class TestOpen:
    def test_open_books_debt_and_lp(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)

        user = env.vault.user_info("alice")
        assert user.debt == 1000
        assert user.lp == 1000
        assert env.vault.info.debt == 1000
        assert env.router.lp_balance("OHM", "OSX", VAULT_ADDRESS) == 1000
        assert env.treasury.reserve_debt == 1000 * env.config.protocol.debt_decimal_scale
        env.vault.check_invariants()

    def test_ceiling_scenario(self, make_env: Callable[..., SimEnvironment]) -> None:
        env = make_env(ceiling=1000)
        env.fund("alice", "sOHM", 1000)
        env.fund("alice", "OSX", 1001)
        env.vault.add("alice", 1000)

        env.vault.open("alice", 1000, 0, 1000, 0, DEADLINE)
        with pytest.raises(DebtCeilingExceeded):
            env.vault.open("alice", 1, 0, 1, 0, DEADLINE)
        assert env.vault.info.debt == 1000

    def test_open_above_equity(self, env: SimEnvironment, deposit: Deposit) -> None:
        deposit("alice", 500)
        env.fund("alice", "OSX", 1000)
        with pytest.raises(InsufficientEquity):
            env.vault.open("alice", 501, 0, 501, 0, DEADLINE)

    def test_unused_amounts_returned(
        self, env: SimEnvironment, open_position: OpenPosition, deposit: Deposit
    ) -> None:
        open_position("alice", 2000, 1000)
        deposit("bob", 2000)
        env.fund("bob", "OSX", 800)

        # Pool is 1:1, so 300 of the OSX comes back
        result = env.vault.open("bob", 500, 0, 800, 0, DEADLINE)
        assert (result.ohm_added, result.osx_added) == (500, 500)
        assert env.paired.balance_of("bob") == 300

        result = env.vault.open("bob", 800, 0, 200, 0, DEADLINE)
        assert (result.ohm_added, result.osx_added) == (200, 200)
        assert env.vault.user_info("bob").debt == 700
        assert env.debt.balance_of(VAULT_ADDRESS) == 0
        env.vault.check_invariants()

    def test_failed_open_rolls_back_everything(
        self, env: SimEnvironment, deposit: Deposit
    ) -> None:
        deposit("alice", 2000)
        env.fund("alice", "OSX", 1000)
        env.chain.advance(10)
        before = env.vault.user_info("alice")
        info_before = env.vault.info

        with pytest.raises(DeadlineExpired):
            env.vault.open("alice", 1000, 0, 1000, 0, 0)

        assert env.vault.user_info("alice") == before
        assert env.vault.info == info_before
        assert env.paired.balance_of("alice") == 1000
        assert env.debt.total_supply == 0
        assert env.treasury.reserve_debt == 0
        assert env.router.pool("OHM", "OSX").total_supply == 0

    def test_slippage_rolls_back(
        self, env: SimEnvironment, open_position: OpenPosition, deposit: Deposit
    ) -> None:
        open_position("alice", 2000, 1000)
        deposit("bob", 2000)
        env.fund("bob", "OSX", 1000)
        with pytest.raises(SlippageExceeded):
            env.vault.open("bob", 500, 0, 1000, 600, DEADLINE)
        assert env.vault.user_info("bob").debt == 0
        assert env.paired.balance_of("bob") == 1000


class TestClose:
    def test_close_at_par(self, env: SimEnvironment, open_position: OpenPosition) -> None:
        open_position("alice", 2000, 1000)
        result = env.vault.close("alice", 1000, 0, 0, DEADLINE)

        assert result.debt_repaid == 1000
        assert (result.ohm_removed, result.osx_removed) == (1000, 1000)
        user = env.vault.user_info("alice")
        assert (user.balance, user.debt, user.lp) == (2000, 0, 0)
        assert env.paired.balance_of("alice") == 1000
        assert env.treasury.reserve_debt == 0
        env.vault.check_invariants()

    def test_profit_restaked_as_collateral(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        _swap(env, "OHM", "OSX", 1000)

        result = env.vault.close("alice", 1000, 0, 0, DEADLINE)
        assert (result.ohm_removed, result.osx_removed) == (2000, 500)

        user = env.vault.user_info("alice")
        assert user.balance == 3000
        assert user.debt == 0
        assert env.vault.info.balance == 3000
        env.vault.check_invariants()

    def test_shortfall_covered_by_collateral(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        _swap(env, "OSX", "OHM", 1000)

        result = env.vault.close("alice", 1000, 0, 0, DEADLINE)
        assert (result.ohm_removed, result.osx_removed) == (500, 2000)

        user = env.vault.user_info("alice")
        assert user.balance == 1500
        assert user.debt == 0
        assert env.paired.balance_of("alice") == 2000
        env.vault.check_invariants()

    def test_partial_close_then_overdraw(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        env.vault.close("alice", 600, 0, 0, DEADLINE)
        assert env.vault.user_info("alice").debt == 400

        with pytest.raises(InsufficientLiquidity):
            env.vault.close("alice", 600, 0, 0, DEADLINE)
        assert env.vault.user_info("alice").lp == 400

    def test_close_without_position(self, env: SimEnvironment) -> None:
        with pytest.raises(InsufficientLiquidity):
            env.vault.close("alice", 1, 0, 0, DEADLINE)
        with pytest.raises(InsufficientLiquidity):
            env.vault.close("alice", 0, 0, 0, DEADLINE)


class TestRewards:
    def test_pending_split_by_share(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        open_position("bob", 1000, 500)
        env.chain.advance(10)

        assert env.vault.pending("alice") == 666
        assert env.vault.pending("bob") == 333

    def test_harvest_pays_pending(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        env.chain.advance(10)

        assert env.vault.harvest("alice") == 1000
        assert env.paired.balance_of("alice") == 1000
        assert env.paired.balance_of(env.vault.owner) == 100
        assert env.vault.pending("alice") == 0

    def test_harvest_capped_at_vault_balance(
        self, make_env: Callable[..., SimEnvironment]
    ) -> None:
        env = make_env(reward_per_block=10)
        env.fund("alice", "sOHM", 200)
        env.vault.add("alice", 200)
        env.fund("alice", "OSX", 100)
        env.vault.open("alice", 100, 0, 100, 0, DEADLINE)

        env.chain.advance(1)
        assert env.vault.update_pool() == 10
        # Half of the minted reward leaves the vault before anyone claims
        env.paired.transfer(VAULT_ADDRESS, "elsewhere", 5)

        assert env.vault.harvest("alice") == 5
        assert env.paired.balance_of("alice") == 5
        assert env.paired.balance_of(VAULT_ADDRESS) == 0
        assert env.vault.pending("alice") == 0

    def test_late_opener_shares_earlier_emission(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        env.chain.advance(10)
        open_position("bob", 1000, 500)

        # bob's lp is counted before the pool update, so he collects a share
        # of the ten blocks that passed before he joined
        assert env.paired.balance_of("bob") == 333
        assert env.vault.pending("alice") == 666

    def test_settle_before_open_excludes_earlier_emission(
        self, make_env: Callable[..., SimEnvironment]
    ) -> None:
        env = make_env(settle_before_open=True)
        for user, collateral, amount in (("alice", 2000, 1000), ("bob", 1000, 500)):
            env.fund(user, "sOHM", collateral)
            env.vault.add(user, collateral)
            env.fund(user, "OSX", amount)
            if user == "bob":
                env.chain.advance(10)
            env.vault.open(user, amount, 0, amount, 0, DEADLINE)

        assert env.paired.balance_of("bob") == 0
        assert env.vault.pending("alice") == 1000
        assert env.vault.pending("bob") == 0

    def test_empty_pool_forfeits_emission(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        env.chain.advance(10)
        assert env.vault.update_pool() == 0
        assert env.vault.info.last_reward_block == 10

        open_position("alice", 2000, 1000)
        assert env.paired.balance_of("alice") == 0
        assert env.paired.balance_of(env.vault.owner) == 0

    def test_set_rate_freezes_pending(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        env.chain.advance(10)
        env.vault.set_rate(env.vault.owner, 0)
        env.chain.advance(10)
        assert env.vault.pending("alice") == 1000


class TestAdmin:
    def test_non_owner_rejected(self, env: SimEnvironment) -> None:
        with pytest.raises(Unauthorized):
            env.vault.set_rate("mallory", 1)
        with pytest.raises(Unauthorized):
            env.vault.set_ceiling("mallory", 1)
        with pytest.raises(Unauthorized):
            env.vault.collect("mallory", "mallory")

    def test_lowering_ceiling_below_debt_pauses_borrowing(
        self, env: SimEnvironment, open_position: OpenPosition
    ) -> None:
        open_position("alice", 2000, 1000)
        env.vault.set_ceiling(env.vault.owner, 0)
        assert env.vault.info.ceiling == 0
        env.vault.check_invariants()

        env.fund("alice", "OSX", 1)
        with pytest.raises(DebtCeilingExceeded):
            env.vault.open("alice", 1, 0, 1, 0, DEADLINE)

        # Existing positions can still be unwound
        env.vault.close("alice", 1000, 0, 0, DEADLINE)
        assert env.vault.info.debt == 0

    def test_negative_ceiling_rejected(self, env: SimEnvironment) -> None:
        with pytest.raises(InvalidAmount):
            env.vault.set_ceiling(env.vault.owner, -1)

    def test_negative_rate_rejected(self, env: SimEnvironment) -> None:
        with pytest.raises(InvalidAmount):
            env.vault.set_rate(env.vault.owner, -1)


class TestViews:
    def test_unknown_user_defaults(self, env: SimEnvironment) -> None:
        assert env.vault.user_info("nobody") == UserInfo()
        assert env.vault.equity("nobody") == 0
        assert env.vault.pending("nobody") == 0

    def test_snapshot(self, env: SimEnvironment, open_position: OpenPosition) -> None:
        open_position("alice", 2000, 1000)
        env.chain.advance(2)
        snap = env.vault.snapshot()

        assert snap.block == 2
        assert snap.info.debt == 1000
        assert [u.address for u in snap.users] == ["alice"]
        assert snap.users[0].equity == 1000
        assert snap.users[0].pending == 200

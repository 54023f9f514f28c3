"""Data models — all frozen (immutable).

Ledger state changes by replacing records (``dataclasses.replace``), never by
mutating them in place, so a staged transaction can be dropped wholesale.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UserInfo:
    """Per-user position record. The zero value is the default for unknown users."""

    balance: int = 0
    last: int = 0
    debt: int = 0
    lp: int = 0
    reward_debt: int = 0


@dataclass(frozen=True)
class Info:
    """Aggregate ledger state shared by every operation."""

    balance: int = 0
    last: int = 0
    debt: int = 0
    lp: int = 0
    ceiling: int = 0
    accrued: int = 0
    reward_per_block: int = 0
    last_reward_block: int = 0
    acc_osx_per_share: int = 0


@dataclass(frozen=True)
class OpenResult:
    """Amounts actually deployed by ``open``."""

    ohm_added: int
    osx_added: int
    liquidity: int
    reward_paid: int = 0


@dataclass(frozen=True)
class CloseResult:
    """Amounts returned and repaid by ``close``."""

    ohm_removed: int
    osx_removed: int
    debt_repaid: int
    reward_paid: int = 0


@dataclass(frozen=True)
class UserSnapshot:
    address: str
    user: UserInfo
    equity: int
    pending: int


@dataclass(frozen=True)
class VaultSnapshot:
    """Read-only view of the whole ledger at one block."""

    block: int
    info: Info
    users: tuple[UserSnapshot, ...] = ()

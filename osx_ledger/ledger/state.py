"""Position ledger — owns every UserInfo record and the Info aggregate.

Invariants:
    - ``user(address)`` never fails: unknown addresses read as ``UserInfo()``
    - Writes are only accepted inside ``transaction()``; they are staged and
      become visible to readers inside the transaction immediately
    - A transaction commits only if its body returns normally; any exception
      discards every staged write and propagates
    - Records are never deleted once committed
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..errors import InvariantViolation
from ..models import Info, UserInfo

logger = logging.getLogger(__name__)


def checked_sub(value: int, amount: int, what: str) -> int:
    """Subtract, raising instead of going negative."""
    result = value - amount
    if result < 0:
        raise InvariantViolation(f"{what} would go negative ({value} - {amount})")
    return result


def checked_shift(value: int, delta: int, what: str) -> int:
    """Apply a signed delta, raising instead of going negative."""
    result = value + delta
    if result < 0:
        raise InvariantViolation(f"{what} would go negative ({value} + {delta})")
    return result


@dataclass
class _Staged:
    info: Info
    users: dict[str, UserInfo] = field(default_factory=dict)


class PositionLedger:
    """Address-keyed user records plus the singleton aggregate."""

    def __init__(self, info: Info) -> None:
        self._info = info
        self._users: dict[str, UserInfo] = {}
        self._staged: _Staged | None = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def info(self) -> Info:
        if self._staged is not None:
            return self._staged.info
        return self._info

    def user(self, address: str) -> UserInfo:
        """Get-or-default accessor for a user record."""
        if self._staged is not None and address in self._staged.users:
            return self._staged.users[address]
        return self._users.get(address, UserInfo())

    def addresses(self) -> tuple[str, ...]:
        """Addresses with a committed record, in first-write order."""
        return tuple(self._users)

    @property
    def in_transaction(self) -> bool:
        return self._staged is not None

    # ------------------------------------------------------------------
    # Staged writes
    # ------------------------------------------------------------------

    def put_user(self, address: str, user: UserInfo) -> None:
        self._require_transaction().users[address] = user

    def put_info(self, info: Info) -> None:
        self._require_transaction().info = info

    def _require_transaction(self) -> _Staged:
        if self._staged is None:
            raise RuntimeError("Ledger writes require an open transaction")
        return self._staged

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Stage writes and commit them atomically on normal exit.

        Nested use joins the outer transaction.
        """
        if self._staged is not None:
            yield
            return

        self._staged = _Staged(info=self._info)
        try:
            yield
        except Exception:
            logger.debug("Transaction rolled back")
            raise
        else:
            self._info = self._staged.info
            self._users.update(self._staged.users)
            logger.debug(
                "Transaction committed (%d user record(s))", len(self._staged.users)
            )
        finally:
            self._staged = None

"""Ledger error hierarchy.

Every failure aborts the whole operation: the vault discards the staged
ledger state and re-raises. Each class carries a stable ``code`` so callers
(CLI, scenario runner) can report failures without string matching.
"""
from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    code = "ledger_error"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(self.message)


class InsufficientEquity(LedgerError):
    """Borrow or withdrawal exceeds the user's collateral minus debt."""

    code = "insufficient_equity"


class DebtCeilingExceeded(LedgerError):
    """Aggregate debt would exceed the global ceiling."""

    code = "debt_ceiling_exceeded"


class InsufficientLiquidity(LedgerError):
    """Close requests more liquidity than the user owns."""

    code = "insufficient_liquidity"


class SlippageExceeded(LedgerError):
    """Router could not meet the caller's minimum amounts."""

    code = "slippage_exceeded"


class DeadlineExpired(LedgerError):
    """Router call arrived after the caller's deadline."""

    code = "deadline_expired"


class Unauthorized(LedgerError):
    """Caller is not allowed to perform this action."""

    code = "unauthorized"


class InvalidAmount(LedgerError):
    """Amount is zero or negative where a positive amount is required."""

    code = "invalid_amount"


class InvariantViolation(LedgerError):
    """An accounting invariant would break (e.g. a field going negative)."""

    code = "invariant_violation"


class CollaboratorError(LedgerError):
    """An external collaborator could not honour a call."""

    code = "collaborator_error"

"""Collateralized-debt and reward-accrual ledger."""
from .errors import LedgerError
from .models import Info, UserInfo
from .vault import Vault

__all__ = ["Info", "LedgerError", "UserInfo", "Vault"]

"""Ledger components."""
from .collateral import CollateralAccounting
from .debt import DebtEngine
from .positions import PositionManager
from .rewards import RewardDistributor
from .state import PositionLedger

__all__ = [
    "CollateralAccounting",
    "DebtEngine",
    "PositionLedger",
    "PositionManager",
    "RewardDistributor",
]

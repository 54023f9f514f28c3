"""In-memory collaborators for running the ledger without a chain."""
from .chain import ManualChain
from .environment import VAULT_ADDRESS, SimEnvironment, build_environment
from .index import IndexExchangeRate
from .router import SimRouter
from .staking import SimStaking
from .tokens import RebasingToken, SimToken
from .treasury import SimTreasury

__all__ = [
    "IndexExchangeRate",
    "ManualChain",
    "RebasingToken",
    "SimEnvironment",
    "SimRouter",
    "SimStaking",
    "SimToken",
    "SimTreasury",
    "VAULT_ADDRESS",
    "build_environment",
]

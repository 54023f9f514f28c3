"""On-chain readers."""
from .rpc_client import EvmRpcClient, RpcError

__all__ = ["EvmRpcClient", "RpcError"]

"""Service layer for the pool migration tool."""

from .checkpoint import CheckpointSet, CheckpointStore
from .rpc_client import SolanaRPCClient

__all__ = [
    "CheckpointSet",
    "CheckpointStore",
    "SolanaRPCClient",
]

"""Remote directories that enumerate records to migrate."""

from .base import BaseDirectory
from .pool_directory import PoolDirectory, decode_pool_state

__all__ = [
    "BaseDirectory",
    "PoolDirectory",
    "decode_pool_state",
]

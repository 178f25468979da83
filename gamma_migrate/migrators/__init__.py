"""Record migrators that apply remote updates."""

from .base import BaseMigrator
from .pool_migrator import UpdatePoolMigrator, build_update_pool_instruction, encode_update_pool

__all__ = [
    "BaseMigrator",
    "UpdatePoolMigrator",
    "build_update_pool_instruction",
    "encode_update_pool",
]

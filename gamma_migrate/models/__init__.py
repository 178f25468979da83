"""Data models for the pool migration tool."""

from .migration import (
    MigrationConfig,
    MigrationRun,
    RunStatus,
)
from .record import (
    Confirmation,
    MigrationOutcome,
    OutcomeStatus,
    PoolRecord,
    UpdateParams,
)

__all__ = [
    "MigrationConfig",
    "MigrationRun",
    "RunStatus",
    "Confirmation",
    "MigrationOutcome",
    "OutcomeStatus",
    "PoolRecord",
    "UpdateParams",
]

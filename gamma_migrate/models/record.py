"""Record models for pool migration."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone


class OutcomeStatus(str, Enum):
    """Per-record result of a migration run."""
    SKIPPED = "skipped"  # Already checkpointed
    APPLIED = "applied"  # Update confirmed by the cluster
    FAILED = "failed"  # Update raised a MigrationError


@dataclass(frozen=True)
class UpdateParams:
    """
    Target parameters for the `update_pool` instruction.

    `param` selects the field the program updates and must be one the deployed
    program handles. The Gamma `update_pool` handler accepts 0-5 (status, max
    trade fee rate, volatility factor, max shared token0, max shared token1,
    open time) and rejects anything else with `InvalidInput`, which fails
    every pool. The default of 10 is the selector of the pool data migration
    and needs a program build that handles it; pass another selector otherwise.
    """
    param: int = 10  # u32 selector
    value: int = 10  # u64 argument

    def __post_init__(self):
        if not 0 <= self.param <= 0xFFFFFFFF:
            raise ValueError(f"param out of u32 range: {self.param}")
        if not 0 <= self.value <= 0xFFFFFFFFFFFFFFFF:
            raise ValueError(f"value out of u64 range: {self.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {"param": self.param, "value": self.value}


@dataclass
class PoolRecord:
    """A snapshot of one PoolState account, fetched fresh each run."""
    id: str  # Pool account address (base58)
    token_0_vault: str
    token_1_vault: str
    amm_config: str = ""
    pool_creator: str = ""
    token_0_mint: str = ""
    token_1_mint: str = ""
    status: int = 0
    lamports: int = 0
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw_data: Optional[bytes] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "amm_config": self.amm_config,
            "pool_creator": self.pool_creator,
            "token_0_vault": self.token_0_vault,
            "token_1_vault": self.token_1_vault,
            "token_0_mint": self.token_0_mint,
            "token_1_mint": self.token_1_mint,
            "status": self.status,
            "lamports": self.lamports,
            "fetched_at": self.fetched_at.isoformat(),
        }


@dataclass(frozen=True)
class Confirmation:
    """Proof that the cluster accepted an update."""
    record_id: str
    signature: str
    simulated: bool = False


@dataclass
class MigrationOutcome:
    """Result of processing one record. Reporting only."""
    record_id: str
    status: OutcomeStatus
    error: Optional[str] = None
    signature: Optional[str] = None
    checkpointed: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def skipped(cls, record_id: str) -> "MigrationOutcome":
        return cls(record_id=record_id, status=OutcomeStatus.SKIPPED, checkpointed=True)

    @classmethod
    def applied(cls, confirmation: Confirmation, checkpointed: bool) -> "MigrationOutcome":
        return cls(
            record_id=confirmation.record_id,
            status=OutcomeStatus.APPLIED,
            signature=confirmation.signature,
            checkpointed=checkpointed,
        )

    @classmethod
    def failed(cls, record_id: str, error: str) -> "MigrationOutcome":
        return cls(record_id=record_id, status=OutcomeStatus.FAILED, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "record_id": self.record_id,
            "status": self.status.value,
            "error": self.error,
            "signature": self.signature,
            "checkpointed": self.checkpointed,
            "timestamp": self.timestamp.isoformat(),
        }

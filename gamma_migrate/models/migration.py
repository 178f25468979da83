"""Migration execution models."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional
from enum import Enum
from datetime import datetime, timezone
import os
import uuid

from .record import MigrationOutcome, OutcomeStatus, UpdateParams

DEFAULT_PROGRAM_ID = "GAMMA7meSFWaBXF25oSUgmGRwaW6sCMFLmBNiMSdbHVT"
DEFAULT_CHECKPOINT_PATH = "scripts/poolDataMigration.json"

# Environment variable -> config field. Earlier names win.
ENV_VARS = {
    "rpc_url": ("RPC_URL", "ANCHOR_PROVIDER_URL"),
    "keypair_path": ("KEYPAIR_PATH", "ANCHOR_WALLET"),
    "program_id": ("GAMMA_PROGRAM",),
    "checkpoint_path": ("CHECKPOINT_PATH",),
}


class RunStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    LOADING_CHECKPOINT = "loading_checkpoint"
    LISTING = "listing"
    MIGRATING = "migrating"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class MigrationRun:
    """A complete migration run."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: RunStatus = RunStatus.PENDING
    dry_run: bool = False
    params: Optional[UpdateParams] = None

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Progress
    total_records_listed: int = 0
    outcomes: List[MigrationOutcome] = field(default_factory=list)

    # Errors
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, outcome: MigrationOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeStatus.SKIPPED)

    @property
    def applied(self) -> int:
        return self.count(OutcomeStatus.APPLIED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    @property
    def unrecorded(self) -> int:
        """Applied on chain but not persisted to the checkpoint."""
        return sum(
            1 for o in self.outcomes
            if o.status == OutcomeStatus.APPLIED and not o.checkpointed and not self.dry_run
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> Dict[str, int]:
        return {
            "skipped": self.skipped,
            "applied": self.applied,
            "failed": self.failed,
            "unrecorded": self.unrecorded,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "params": self.params.to_dict() if self.params else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "total_records_listed": self.total_records_listed,
            "summary": self.summary(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "errors": self.errors,
        }


@dataclass
class MigrationConfig:
    """Configuration for a pool migration."""
    # Cluster and identity
    rpc_url: str = ""
    keypair_path: str = ""
    program_id: str = DEFAULT_PROGRAM_ID
    commitment: str = "confirmed"

    # Checkpoint
    checkpoint_path: str = DEFAULT_CHECKPOINT_PATH

    # Target parameters; update_param must be a selector the deployed program handles
    update_param: int = 10
    update_value: int = 10

    # Transport
    request_timeout: float = 30.0
    confirm_timeout: float = 60.0
    poll_interval: float = 1.0
    max_retries: int = 3
    backoff_factor: float = 0.5

    # Execution options
    dry_run: bool = False
    report_dir: Optional[str] = None

    @property
    def update_params(self) -> UpdateParams:
        return UpdateParams(param=self.update_param, value=self.update_value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(
        cls,
        base: Optional["MigrationConfig"] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> "MigrationConfig":
        """Overlay environment variables on top of `base`."""
        environ = os.environ if environ is None else environ
        data = (base or cls()).to_dict()
        for name, env_names in ENV_VARS.items():
            for env_name in env_names:
                if environ.get(env_name):
                    data[name] = environ[env_name]
                    break
        return cls.from_dict(data)

    def with_overrides(self, **overrides: Any) -> "MigrationConfig":
        """Return a copy with every non-None override applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return self.from_dict(data)

    def validate(self) -> List[str]:
        """
        Validate the configuration.

        Returns:
            List of validation error messages
        """
        errors = []
        if not self.rpc_url:
            errors.append("RPC URL is required (--rpc-url, RPC_URL or ANCHOR_PROVIDER_URL)")
        if not self.keypair_path:
            errors.append("Keypair path is required (--keypair, KEYPAIR_PATH or ANCHOR_WALLET)")
        if not self.checkpoint_path:
            errors.append("Checkpoint path is required")
        if self.commitment not in ("processed", "confirmed", "finalized"):
            errors.append(f"Unknown commitment level: {self.commitment}")
        try:
            self.update_params
        except ValueError as e:
            errors.append(str(e))
        return errors

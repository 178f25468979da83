"""Migration runner - drives the checkpointed update loop."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from .directory.base import BaseDirectory
from .exceptions import CheckpointWriteError, MigrateError, MigrationError
from .migrators.base import BaseMigrator
from .models.migration import MigrationConfig, MigrationRun, RunStatus
from .models.record import MigrationOutcome, OutcomeStatus, PoolRecord, UpdateParams
from .services.checkpoint import CheckpointSet, CheckpointStore

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[MigrationOutcome], None]


class MigrationRunner:
    """
    Runs one migration pass over every record in a directory.

    Handles:
    - Loading the checkpoint (fatal if corrupt)
    - Listing the directory (fatal if unavailable)
    - Skipping checkpointed records
    - Applying the update to each remaining record, one at a time
    - Persisting the checkpoint after each confirmed update
    - Isolating per-record failures
    - Reporting outcomes as they happen, then a summary
    """

    def __init__(
        self,
        store: CheckpointStore,
        directory: BaseDirectory,
        migrator: BaseMigrator,
        params: Optional[UpdateParams] = None,
        report_dir: Optional[str] = None,
        on_outcome: Optional[OutcomeCallback] = None
    ):
        """
        Initialize the runner.

        Args:
            store: Checkpoint store for migrated record ids
            directory: Remote directory to enumerate records from
            migrator: Migrator that applies the update
            params: Target parameters sent with every update
            report_dir: Directory for the JSON run report, if any
            on_outcome: Called with each outcome as soon as it is known
        """
        self.store = store
        self.directory = directory
        self.migrator = migrator
        self.params = params or UpdateParams()
        self.report_dir = Path(report_dir) if report_dir else None
        self.on_outcome = on_outcome

        # Runtime state
        self.run: Optional[MigrationRun] = None
        self.checkpoint: Optional[CheckpointSet] = None

    @classmethod
    def from_config(
        cls,
        config: MigrationConfig,
        directory: BaseDirectory,
        migrator: BaseMigrator,
        on_outcome: Optional[OutcomeCallback] = None
    ) -> "MigrationRunner":
        return cls(
            store=CheckpointStore(config.checkpoint_path),
            directory=directory,
            migrator=migrator,
            params=config.update_params,
            report_dir=config.report_dir,
            on_outcome=on_outcome,
        )

    def run_migration(self) -> MigrationRun:
        """
        Run the complete migration.

        Returns:
            MigrationRun with outcomes and counts

        Raises:
            CorruptStoreError: the checkpoint could not be parsed
            RemoteUnavailableError: the directory could not be listed
        """
        self.run = MigrationRun(dry_run=self.migrator.dry_run, params=self.params)
        self.run.started_at = datetime.now(timezone.utc)

        try:
            self.run.status = RunStatus.LOADING_CHECKPOINT
            self.checkpoint = self.store.load()

            self.run.status = RunStatus.LISTING
            records = self.directory.list_all()
            self.run.total_records_listed = len(records)

            self.run.status = RunStatus.MIGRATING
            self._migrate_all(records)

            self.run.status = RunStatus.COMPLETED
            logger.info("=== MIGRATION COMPLETED ===")

        except MigrateError as e:
            logger.error(f"Migration aborted during {self.run.status.value}: {e}")
            self.run.errors.append({
                "phase": self.run.status.value,
                "error": str(e),
                "code": e.code.value,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })
            self.run.status = RunStatus.FAILED
            raise

        finally:
            self.run.completed_at = datetime.now(timezone.utc)
            self._log_summary()
            if self.report_dir:
                self._save_report()

        return self.run

    def _migrate_all(self, records: List[PoolRecord]) -> None:
        """Process records strictly in directory order, one at a time."""
        for record in records:
            self._report(self._migrate_one(record))

    def _migrate_one(self, record: PoolRecord) -> MigrationOutcome:
        if self.store.contains(self.checkpoint, record.id):
            return MigrationOutcome.skipped(record.id)

        try:
            confirmation = self.migrator.migrate(record, self.params)
        except MigrationError as e:
            self.run.errors.append({"record_id": record.id, **e.to_dict()})
            return MigrationOutcome.failed(record.id, str(e))

        if confirmation.simulated:
            return MigrationOutcome.applied(confirmation, checkpointed=False)

        try:
            self.store.append(self.checkpoint, record.id)
        except CheckpointWriteError as e:
            logger.critical(
                f"Pool {record.id} was updated ({confirmation.signature}) but NOT checkpointed; "
                f"the next run will apply it again: {e}"
            )
            self.run.errors.append({"record_id": record.id, **e.to_dict()})
            return MigrationOutcome.applied(confirmation, checkpointed=False)

        return MigrationOutcome.applied(confirmation, checkpointed=True)

    def _report(self, outcome: MigrationOutcome) -> None:
        self.run.record(outcome)

        if outcome.status == OutcomeStatus.SKIPPED:
            logger.info(f"{outcome.record_id}: already migrated")
        elif outcome.status == OutcomeStatus.APPLIED:
            prefix = "simulated" if self.run.dry_run else "applied"
            logger.info(f"{outcome.record_id}: {prefix} ({outcome.signature})")
        else:
            logger.error(f"{outcome.record_id}: failed - {outcome.error}")

        if self.on_outcome:
            self.on_outcome(outcome)

    def _log_summary(self) -> None:
        summary = self.run.summary()
        logger.info(
            f"Skipped: {summary['skipped']}, Applied: {summary['applied']}, "
            f"Failed: {summary['failed']}, Unrecorded: {summary['unrecorded']}"
        )

    def _save_report(self) -> None:
        """Save the migration report. A failed write never replaces the run's own outcome."""
        filepath = self.report_dir / f"migration_report_{self.run.completed_at.strftime('%Y%m%d_%H%M%S')}.json"
        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(self.run.to_dict(), f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Failed to save migration report to {filepath}: {e}")
            return
        logger.info(f"Saved migration report to {filepath}")

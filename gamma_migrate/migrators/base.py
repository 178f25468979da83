"""Base migrator interface."""

from abc import ABC, abstractmethod
import logging

from ..exceptions import MigrationError
from ..models.record import Confirmation, PoolRecord, UpdateParams

logger = logging.getLogger(__name__)


class BaseMigrator(ABC):
    """
    Base class for record migrators.

    A migrator applies one remote update to one record. It does not retry:
    a later full re-run, gated by the checkpoint, is the retry mechanism.
    """

    def __init__(self, dry_run: bool = False):
        """
        Initialize the migrator.

        Args:
            dry_run: If True, simulate without making changes
        """
        self.dry_run = dry_run

    @abstractmethod
    def apply(self, record: PoolRecord, params: UpdateParams) -> Confirmation:
        """
        Apply the update to a single record.

        Returns:
            Confirmation once the remote service accepted the update
        """
        pass

    def migrate(self, record: PoolRecord, params: UpdateParams) -> Confirmation:
        """
        Apply the update, classifying every failure as MigrationError.

        Raises:
            MigrationError: carrying the record id and the original diagnostic
        """
        try:
            return self.apply(record, params)
        except MigrationError:
            raise
        except Exception as e:
            raise MigrationError(
                f"Update failed for {record.id}: {e}",
                record.id,
                {"exception": type(e).__name__},
            ) from e

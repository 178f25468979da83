"""Base directory interface."""

from abc import ABC, abstractmethod
from typing import List

from ..models.record import PoolRecord


class BaseDirectory(ABC):
    """
    Base class for remote directories.

    A directory is the read path of a migration: one bulk read that returns
    the complete current set of records of a kind. It never returns a partial
    listing; any failure raises RemoteUnavailableError.
    """

    kind: str = ""

    @abstractmethod
    def list_all(self, kind: str = "") -> List[PoolRecord]:
        """
        List every record of `kind`.

        Args:
            kind: Record kind, defaults to the directory's own kind

        Returns:
            All records at call time, in the order the remote returned them

        Raises:
            RemoteUnavailableError: the listing could not be completed
            ConfigError: the directory does not hold records of this kind
        """
        pass

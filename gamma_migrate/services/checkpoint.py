"""File-backed checkpoint of migrated record identifiers."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Union

from ..exceptions import CheckpointWriteError, CorruptStoreError

logger = logging.getLogger(__name__)


class CheckpointSet:
    """
    Ordered, append-only sequence of record identifiers.

    Membership is exact string equality. Duplicates in the backing file are
    kept in order but never change the result of a membership test.
    """

    def __init__(self, ids: Optional[Iterable[str]] = None):
        self._ids: List[str] = list(ids or [])
        self._index: Set[str] = set(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"CheckpointSet({self._ids!r})"

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def _add(self, record_id: str) -> None:
        self._ids.append(record_id)
        self._index.add(record_id)

    def _discard_last(self, record_id: str) -> None:
        self._ids.pop()
        if record_id not in self._ids:
            self._index.discard(record_id)


class CheckpointStore:
    """
    Durable set of record identifiers whose update was confirmed.

    The file holds a JSON array of strings. Every append rewrites the full
    array through a temp file and `os.replace`, so the file on disk is always
    a complete encoding of the set.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def initialize(self) -> bool:
        """
        Create an empty checkpoint file if none exists.

        Returns:
            True if a file was created
        """
        if self.path.exists():
            return False
        self._write([])
        logger.info(f"Created empty checkpoint at {self.path}")
        return True

    def load(self) -> CheckpointSet:
        """Load the checkpoint. Missing or empty files load as an empty set."""
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No checkpoint at {self.path}, starting from an empty set")
            return CheckpointSet()
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptStoreError(f"Cannot read checkpoint {self.path}: {e}", str(self.path)) from e

        if not content.strip():
            return CheckpointSet()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise CorruptStoreError(
                f"Checkpoint {self.path} is not valid JSON: {e}", str(self.path)
            ) from e

        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise CorruptStoreError(
                f"Checkpoint {self.path} must be a JSON array of strings", str(self.path)
            )

        checkpoint = CheckpointSet(data)
        logger.info(f"Loaded {len(checkpoint)} migrated records from {self.path}")
        return checkpoint

    @staticmethod
    def contains(checkpoint: CheckpointSet, record_id: str) -> bool:
        return record_id in checkpoint

    def append(self, checkpoint: CheckpointSet, record_id: str) -> CheckpointSet:
        """
        Add `record_id` and persist the full set before returning.

        Raises:
            CheckpointWriteError: the file could not be rewritten. The id is
                removed from `checkpoint` again so memory matches disk.
        """
        checkpoint._add(record_id)
        try:
            self._write(checkpoint.ids)
        except OSError as e:
            checkpoint._discard_last(record_id)
            raise CheckpointWriteError(
                f"Failed to persist checkpoint for {record_id} to {self.path}: {e}",
                str(self.path),
                record_id,
            ) from e
        logger.debug(f"Checkpointed {record_id} ({len(checkpoint)} total)")
        return checkpoint

    def _write(self, ids: List[str]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename
        fd, temp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(ids, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise

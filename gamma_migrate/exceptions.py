"""Error hierarchy for the pool migration tool."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    UNKNOWN = "unknown_error"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    MALFORMED_RECORD = "malformed_record"
    MIGRATION_FAILED = "migration_failed"
    CORRUPT_STORE = "corrupt_store"
    CHECKPOINT_WRITE = "checkpoint_write"
    RPC_ERROR = "rpc_error"
    CONFIG_ERROR = "config_error"


class MigrateError(Exception):
    """Base class for all migration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class RPCError(MigrateError):
    """Raised by the JSON-RPC client on transport or protocol failure."""

    def __init__(self, message: str, method: str = "", rpc_code: Optional[int] = None):
        super().__init__(message, ErrorCode.RPC_ERROR, {"method": method, "rpc_code": rpc_code})
        self.method = method
        self.rpc_code = rpc_code


class RemoteUnavailableError(MigrateError):
    """Raised when the remote directory cannot be listed. Fatal for the run."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.REMOTE_UNAVAILABLE, details)


class MalformedRecordError(RemoteUnavailableError):
    """Raised when a listed account cannot be decoded."""

    def __init__(self, message: str, record_id: str):
        super().__init__(message, {"record_id": record_id})
        self.code = ErrorCode.MALFORMED_RECORD
        self.record_id = record_id


class MigrationError(MigrateError):
    """Raised when the update for one record fails. Recovered by the runner."""

    def __init__(self, message: str, record_id: str, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details["record_id"] = record_id
        super().__init__(message, ErrorCode.MIGRATION_FAILED, details)
        self.record_id = record_id


class CorruptStoreError(MigrateError):
    """Raised when the checkpoint file holds something other than a JSON list of strings."""

    def __init__(self, message: str, path: str):
        super().__init__(message, ErrorCode.CORRUPT_STORE, {"path": path})
        self.path = path


class CheckpointWriteError(MigrateError):
    """Raised when a checkpoint could not be persisted after a successful update."""

    def __init__(self, message: str, path: str, record_id: str):
        super().__init__(message, ErrorCode.CHECKPOINT_WRITE, {"path": path, "record_id": record_id})
        self.path = path
        self.record_id = record_id


class ConfigError(MigrateError):
    """Raised on missing or invalid configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.CONFIG_ERROR, details)

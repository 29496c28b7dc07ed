"""quizsync: Offline-first synchronization of amateur radio question pools."""

__version__ = "0.1.0"

from quizsync.content import Record, parse_records
from quizsync.errors import (
    InvalidRecord,
    MalformedContent,
    NotFound,
    QuizSyncError,
    StorageError,
    TransportError,
    UnknownName,
)
from quizsync.sync import SyncOrchestrator, SyncOutcome, SyncResult, SyncState

__all__ = [
    "Record",
    "parse_records",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncResult",
    "SyncState",
    "QuizSyncError",
    "UnknownName",
    "TransportError",
    "StorageError",
    "NotFound",
    "MalformedContent",
    "InvalidRecord",
    "__version__",
]

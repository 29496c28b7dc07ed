"""Exception taxonomy for quizsync.

Component methods raise these; the sync orchestrator catches them and reports
them as the reason of a failed sync instead of propagating.
"""


class QuizSyncError(Exception):
    """Base exception for quizsync errors."""

    pass


class UnknownName(QuizSyncError, KeyError):
    """Raised when a content set name has no remote location."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class TransportError(QuizSyncError):
    """Raised when the remote source cannot be reached or returns no content."""

    pass


class StorageError(QuizSyncError):
    """Raised when the local cache cannot be written."""

    pass


class NotFound(QuizSyncError, FileNotFoundError):
    """Raised when a cached content set is absent or unreadable."""

    pass


class MalformedContent(QuizSyncError, ValueError):
    """Raised when bytes are not a usable, non-empty record list."""

    pass


class InvalidRecord(QuizSyncError, ValueError):
    """Raised when a record violates its invariants."""

    pass

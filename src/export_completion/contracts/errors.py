"""Exceptions raised across subsystem boundaries.

Retry exhaustion itself is MaxRetriesExceeded (engine/retry.py); the store
narrows it to StatusStoreUnavailableError so callers can tell a dead store
from a dead sink.
"""


class CompletionError(Exception):
    """Base class for completion-tracking errors."""


class CollectionNotFoundError(CompletionError):
    """Raised when a write targets a status record that does not exist.

    Producers create records; this package never does. Not retried.
    """

    def __init__(self, run_id: str, collection_name: str) -> None:
        self.run_id = run_id
        self.collection_name = collection_name
        super().__init__(f"No status record for run '{run_id}', collection '{collection_name}'")


class SuccessIndicatorError(CompletionError):
    """Raised when the success indicator endpoint rejects a post."""

    def __init__(self, file_name: str, status_code: int) -> None:
        self.file_name = file_name
        self.status_code = status_code
        super().__init__(f"Failed to post success indicator {file_name}, response: {status_code}")


class TopicNameError(CompletionError, ValueError):
    """Raised when a topic name does not follow <prefix>.<database>.<collection>."""

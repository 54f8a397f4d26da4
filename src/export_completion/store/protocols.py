"""Protocol for the status store.

The store is shared with producer workers that write concurrently. Every
implementation must provide:
- a strongly consistent point read
- a server-side atomic increment of FilesSent
- an idempotent assignment of status Sent to an existing record

Neither write creates a record; producers own record creation.

Counts return None when the backend cannot produce a value; callers treat
None as "not complete".
"""

from typing import Protocol, runtime_checkable

from export_completion.contracts.records import CollectionStatusRecord


@runtime_checkable
class StatusStore(Protocol):
    """Key-value/counter view of the status table keyed by (run_id, collection_name)."""

    def get(self, run_id: str, collection_name: str) -> CollectionStatusRecord:
        """Consistent read of one record; absent attributes default to "" / 0."""
        ...

    def count_exporting(self, run_id: str) -> int | None:
        """Records of the run whose status is Exporting."""
        ...

    def count_pending_send(self, run_id: str) -> int | None:
        """Records of the run whose status is Exported with FilesExported > 0."""
        ...

    def count_with_exported_files(self, run_id: str) -> int | None:
        """Records of the run with FilesExported > 0, whatever their status."""
        ...

    def increment_files_sent(self, run_id: str, collection_name: str) -> int:
        """Atomically add one to FilesSent and return the new value.

        Raises:
            CollectionNotFoundError: If the record does not exist
        """
        ...

    def set_status_sent(self, run_id: str, collection_name: str) -> None:
        """Set status to Sent whatever its current value.

        Raises:
            CollectionNotFoundError: If the record does not exist
        """
        ...

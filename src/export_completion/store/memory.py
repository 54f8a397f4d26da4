"""In-memory status store.

Used by tests and dry runs. A single lock serialises every operation, which
gives increment_files_sent the same no-lost-update guarantee as the
server-side increment in DynamoDB.
"""

import threading
from collections.abc import Iterable
from dataclasses import replace

from export_completion.contracts.enums import CollectionStatus
from export_completion.contracts.errors import CollectionNotFoundError
from export_completion.contracts.records import CollectionKey, CollectionStatusRecord


class InMemoryStatusStore:
    """StatusStore backed by a dict of records."""

    def __init__(self, records: Iterable[CollectionStatusRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[CollectionKey, CollectionStatusRecord] = {record.key: record for record in records}
        self.writes = 0

    def put(self, record: CollectionStatusRecord) -> None:
        """Create or replace a record, as a producer worker would."""
        with self._lock:
            self._records[record.key] = record

    def get(self, run_id: str, collection_name: str) -> CollectionStatusRecord:
        with self._lock:
            record = self._records.get(CollectionKey(run_id, collection_name))
        if record is None:
            return CollectionStatusRecord(run_id=run_id, collection_name=collection_name)
        return record

    def _count(self, run_id: str, status: str | None, require_files: bool) -> int:
        with self._lock:
            return sum(
                1
                for record in self._records.values()
                if record.run_id == run_id
                and (status is None or record.status == status)
                and (not require_files or record.files_exported > 0)
            )

    def count_exporting(self, run_id: str) -> int | None:
        return self._count(run_id, CollectionStatus.EXPORTING, require_files=False)

    def count_pending_send(self, run_id: str) -> int | None:
        return self._count(run_id, CollectionStatus.EXPORTED, require_files=True)

    def count_with_exported_files(self, run_id: str) -> int | None:
        return self._count(run_id, None, require_files=True)

    def increment_files_sent(self, run_id: str, collection_name: str) -> int:
        key = CollectionKey(run_id, collection_name)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                raise CollectionNotFoundError(run_id, collection_name)
            updated = replace(record, files_sent=record.files_sent + 1)
            self._records[key] = updated
            self.writes += 1
            return updated.files_sent

    def set_status_sent(self, run_id: str, collection_name: str) -> None:
        key = CollectionKey(run_id, collection_name)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                raise CollectionNotFoundError(run_id, collection_name)
            self._records[key] = replace(record, status=CollectionStatus.SENT.value)
            self.writes += 1

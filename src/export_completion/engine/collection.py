# src/export_completion/engine/collection.py
"""CollectionCompletionEvaluator: marks a collection Sent once fully delivered.

try_mark_sent() is read-then-maybe-write, not a compare-and-swap. Two
concurrent callers can both see an eligible record and both write Sent.
That is harmless only because set_status_sent is a plain,
idempotent assignment; it must not become additive or conditional on
the current status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from export_completion.contracts.enums import CollectionStatus
from export_completion.contracts.results import CollectionEvaluation

if TYPE_CHECKING:
    from export_completion.contracts.records import CollectionStatusRecord
    from export_completion.store.protocols import StatusStore
    from export_completion.telemetry.metrics import CompletionMetrics

logger = structlog.get_logger(__name__)


class CollectionCompletionEvaluator:
    """Decides from one consistent read whether a collection is fully sent."""

    def __init__(self, store: StatusStore, metrics: CompletionMetrics | None = None) -> None:
        self._store = store
        self._metrics = metrics

    def try_mark_sent(self, run_id: str, collection_name: str) -> bool:
        """Transition the collection to Sent if it is eligible.

        Eligible means status Exported, FilesExported == FilesSent, and
        FilesExported > 0. Ineligible records are not written.

        Returns:
            True if Sent was written
        """
        return self._mark_if_eligible(self._store.get(run_id, collection_name))

    def set_collection_status(self, run_id: str, collection_name: str) -> CollectionStatus | None:
        """Apply the Sent transition and report where the collection stands.

        Returns:
            SENT if the collection is Sent, whether written now or earlier.
            NO_FILES_EXPORTED if the collection is Exported with no files and
            the whole run has finished exporting without a single file.
            Otherwise the stored status, or None if it is unrecognised.
        """
        return self.evaluate(run_id, collection_name).status

    def evaluate(self, run_id: str, collection_name: str) -> CollectionEvaluation:
        """Apply the Sent transition and say whether this call made it.

        marked_sent is True only when this call wrote Sent, so a re-run over
        an already Sent collection reports SENT without marked_sent.
        """
        record = self._store.get(run_id, collection_name)
        if self._mark_if_eligible(record):
            return CollectionEvaluation(CollectionStatus.SENT, marked_sent=True)

        if record.has_no_files and self._run_has_no_files(run_id):
            logger.info("No files exported across the run", run_id=run_id, collection_name=collection_name)
            return CollectionEvaluation(CollectionStatus.NO_FILES_EXPORTED)
        return CollectionEvaluation(record.collection_status)

    def _mark_if_eligible(self, record: CollectionStatusRecord) -> bool:
        is_complete = record.is_eligible_for_sent
        logger.info(
            "Collection completion evaluated",
            run_id=record.run_id,
            collection_name=record.collection_name,
            current_status=record.status,
            files_exported=record.files_exported,
            files_sent=record.files_sent,
            is_complete=is_complete,
        )
        if not is_complete:
            return False

        self._store.set_status_sent(record.run_id, record.collection_name)
        if self._metrics is not None:
            self._metrics.record_collection_sent(record.collection_name)
        return True

    def _run_has_no_files(self, run_id: str) -> bool:
        # Unknown counts never confirm an empty run
        exporting_count = self._store.count_exporting(run_id)
        if exporting_count is None or exporting_count > 0:
            return False
        return self._store.count_with_exported_files(run_id) == 0

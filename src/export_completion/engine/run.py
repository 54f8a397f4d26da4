# src/export_completion/engine/run.py
"""RunCompletionEvaluator: is any collection in the run still in flight?

Two scoped count queries instead of a scan:

    1. exporting   = records with status Exporting
    2. pending     = records with status Exported and FilesExported > 0

The run is complete only when both are confirmed zero. An unknown count
(None) means "not complete". Phase 2 is skipped when phase 1 already
decides the answer.

The two queries are not one snapshot. Skew can only delay a "complete"
answer, because every write made here is idempotent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from export_completion.contracts.enums import SendingCompletionStatus

if TYPE_CHECKING:
    from export_completion.store.protocols import StatusStore

logger = structlog.get_logger(__name__)


class RunCompletionEvaluator:
    """Decides from two count queries whether the whole run has finished."""

    def __init__(self, store: StatusStore) -> None:
        self._store = store

    def run_is_complete(self, run_id: str) -> bool:
        exporting_count = self._store.count_exporting(run_id)
        if exporting_count is None:
            logger.warning("Could not check current exporting collections count", run_id=run_id)
            return False
        if exporting_count > 0:
            logger.info(
                "Collections still exporting so full run has not finished",
                run_id=run_id,
                exporting_count=exporting_count,
            )
            return False

        logger.info("No collections currently still exporting", run_id=run_id, exporting_count=exporting_count)

        pending_count = self._store.count_pending_send(run_id)
        if pending_count is None:
            logger.warning(
                "Could not check count of exported collections with one or more files",
                run_id=run_id,
            )
            return False
        if pending_count > 0:
            logger.info(
                "Collections with one or more files are still sending so full run has not finished",
                run_id=run_id,
                pending_send_count=pending_count,
            )
            return False

        logger.info("No collections with one or more files are still sending", run_id=run_id, pending_send_count=0)
        return True

    def sending_completion_status(self, run_id: str) -> SendingCompletionStatus:
        return SendingCompletionStatus.from_run_complete(self.run_is_complete(run_id))

# src/export_completion/engine/orchestrator.py
"""CompletionOrchestrator: the batch job's after-job hook.

Invoked once per job, after the last work unit:

    job failed       -> log, emit nothing, write nothing
    job completed
      legacy mode    -> post the full-run indicator, skip the evaluators
      otherwise      -> set the collection status
                        post the full-run indicator if the run exported no files
                        post the collection indicator if enabled and Sent by this pass
                        publish the monitoring message for the run

The final metrics push runs on every path, including errors. Errors from
the store and sinks are logged with run context and re-raised. Nothing is
rolled back: every write is idempotent, so the pass can be re-run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from export_completion.contracts.enums import CollectionStatus, JobExitStatus, SuccessIndicatorKind
from export_completion.contracts.results import CompletionOutcome

if TYPE_CHECKING:
    from export_completion.contracts.enums import SendingCompletionStatus
    from export_completion.contracts.records import CollectionKey
    from export_completion.engine.collection import CollectionCompletionEvaluator
    from export_completion.engine.run import RunCompletionEvaluator
    from export_completion.sinks.protocols import MonitoringPublisherProtocol, SuccessIndicatorSinkProtocol
    from export_completion.telemetry.metrics import CompletionMetrics

logger = structlog.get_logger(__name__)


class CompletionOrchestrator:
    """Routes a finished job to the right success and monitoring signals.

    Example:
        orchestrator = CompletionOrchestrator(
            CollectionKey("correlation.id", "db.core.contract"),
            collections=CollectionCompletionEvaluator(store),
            runs=RunCompletionEvaluator(store),
            success_sink=sink,
            monitoring=publisher,
            metrics=metrics,
        )
        outcome = orchestrator.after_job(JobExitStatus.COMPLETED)
    """

    def __init__(
        self,
        context: CollectionKey,
        *,
        collections: CollectionCompletionEvaluator,
        runs: RunCompletionEvaluator,
        success_sink: SuccessIndicatorSinkProtocol,
        monitoring: MonitoringPublisherProtocol,
        metrics: CompletionMetrics,
        legacy_mode: bool = False,
        post_collection_indicator: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            context: Run id and collection name this process handles
            collections: Evaluator for the current collection
            runs: Evaluator for the whole correlated run
            success_sink: Posts success indicator files
            monitoring: Publishes the run monitoring message
            metrics: Counters, pushed on the way out
            legacy_mode: Post the full-run indicator on success without
                consulting the status store
            post_collection_indicator: Post the collection indicator when the
                collection transitions to Sent
        """
        self._context = context
        self._collections = collections
        self._runs = runs
        self._success_sink = success_sink
        self._monitoring = monitoring
        self._metrics = metrics
        self._legacy_mode = legacy_mode
        self._post_collection_indicator = post_collection_indicator

    def after_job(self, exit_status: JobExitStatus) -> CompletionOutcome:
        """Handle the end of the batch job.

        Raises:
            Exception: Any store or sink failure, after the metrics push
        """
        run_id = self._context.run_id
        collection_name = self._context.collection_name
        try:
            if exit_status is not JobExitStatus.COMPLETED:
                logger.error(
                    "Not setting status or sending success indicator",
                    run_id=run_id,
                    collection_name=collection_name,
                    job_exit_status=exit_status.value,
                )
                return CompletionOutcome(exit_status=exit_status)

            if self._legacy_mode:
                self._success_sink.post_full_run_indicator(run_id)
                return CompletionOutcome(
                    exit_status=exit_status,
                    legacy_mode=True,
                    indicators_posted=(SuccessIndicatorKind.FULL_RUN,),
                )

            return self._evaluate(exit_status)
        except Exception as e:
            logger.error(
                "Completion handling failed",
                run_id=run_id,
                collection_name=collection_name,
                job_exit_status=exit_status.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise  # Observability never suppresses errors
        finally:
            self._metrics.push_final()

    def _evaluate(self, exit_status: JobExitStatus) -> CompletionOutcome:
        run_id = self._context.run_id
        collection_name = self._context.collection_name
        posted: list[SuccessIndicatorKind] = []

        evaluation = self._collections.evaluate(run_id, collection_name)
        collection_status = evaluation.status
        if collection_status is CollectionStatus.NO_FILES_EXPORTED:
            self._success_sink.post_full_run_indicator(run_id)
            posted.append(SuccessIndicatorKind.FULL_RUN)
        elif evaluation.marked_sent and self._post_collection_indicator:
            if self._success_sink.post_collection_indicator(collection_name) is not None:
                posted.append(SuccessIndicatorKind.COLLECTION)

        sending_status = self._send_monitoring_message(run_id)

        return CompletionOutcome(
            exit_status=exit_status,
            collection_status=collection_status,
            marked_sent=evaluation.marked_sent,
            sending_status=sending_status,
            indicators_posted=tuple(posted),
        )

    def _send_monitoring_message(self, run_id: str) -> SendingCompletionStatus:
        sending_status = self._runs.sending_completion_status(run_id)
        logger.info("Run sending completion status", run_id=run_id, sending_status=sending_status.value)
        self._monitoring.send_monitoring_message(sending_status, run_id)
        return sending_status

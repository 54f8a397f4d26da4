"""Result of a single completion-handling pass."""

from dataclasses import dataclass, field

from export_completion.contracts.enums import (
    CollectionStatus,
    JobExitStatus,
    SendingCompletionStatus,
    SuccessIndicatorKind,
)


@dataclass(frozen=True, slots=True)
class CollectionEvaluation:
    """Where one collection stands after a completion pass.

    status is SENT both for a collection marked now and for one marked by an
    earlier pass; only marked_sent tells them apart.
    """

    status: CollectionStatus | None
    marked_sent: bool = False


@dataclass(frozen=True)
class CompletionOutcome:
    """What CompletionOrchestrator.after_job observed and emitted.

    Attributes:
        exit_status: Exit status of the batch job
        legacy_mode: True if the unconditional full-run indicator path ran
        collection_status: Outcome of the collection status transition, None
            when the evaluators were not consulted or the stored value was
            unrecognised
        sending_status: Status carried by the monitoring message, None when
            no message was dispatched
        marked_sent: True if this pass wrote Sent for the collection
        indicators_posted: Success indicator kinds posted, in order
    """

    exit_status: JobExitStatus
    legacy_mode: bool = False
    collection_status: CollectionStatus | None = None
    sending_status: SendingCompletionStatus | None = None
    marked_sent: bool = False
    indicators_posted: tuple[SuccessIndicatorKind, ...] = field(default_factory=tuple)

    @property
    def job_succeeded(self) -> bool:
        return self.exit_status is JobExitStatus.COMPLETED

    def to_dict(self) -> dict[str, object]:
        return {
            "exit_status": self.exit_status.value,
            "legacy_mode": self.legacy_mode,
            "collection_status": self.collection_status.value if self.collection_status else None,
            "sending_status": self.sending_status.value if self.sending_status else None,
            "marked_sent": self.marked_sent,
            "indicators_posted": [kind.value for kind in self.indicators_posted],
        }

"""All status codes and kinds used across subsystem boundaries.

Values of CollectionStatus are the literal strings stored in the status
table, so they must never be renamed.
"""

from enum import StrEnum


class CollectionStatus(StrEnum):
    """Status of one collection within an export run.

    Stored in the status table (CollectionStatus attribute).

    Values:
        EXPORTING: Producer is still writing files
        EXPORTED: All files written, delivery may still be in progress
        SENT: Every exported file has been delivered
        NO_FILES_EXPORTED: Evaluation outcome only, never written. The run
            finished exporting without producing a single file.
    """

    EXPORTING = "Exporting"
    EXPORTED = "Exported"
    SENT = "Sent"
    NO_FILES_EXPORTED = "No_Files_Exported"

    @classmethod
    def parse(cls, value: str) -> "CollectionStatus | None":
        """Map a stored attribute value to a status, None if unrecognised."""
        try:
            return cls(value)
        except ValueError:
            return None


class SendingCompletionStatus(StrEnum):
    """Whether every collection in the run has been exported and sent."""

    COMPLETED_SUCCESSFULLY = "CompletedSuccessfully"
    COMPLETED_UNSUCCESSFULLY = "CompletedUnsuccessfully"

    @classmethod
    def from_run_complete(cls, complete: bool) -> "SendingCompletionStatus":
        return cls.COMPLETED_SUCCESSFULLY if complete else cls.COMPLETED_UNSUCCESSFULLY


class JobExitStatus(StrEnum):
    """Exit status reported by the batch job that ran the export.

    Only COMPLETED counts as success.
    """

    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class SuccessIndicatorKind(StrEnum):
    """Which sentinel file a success indicator represents."""

    COLLECTION = "collection"
    FULL_RUN = "full_run"


class MetricsExporter(StrEnum):
    """Destination for completion metrics."""

    NONE = "none"
    CONSOLE = "console"
    OTLP = "otlp"

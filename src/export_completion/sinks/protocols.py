"""Protocols for the external signal sinks the orchestrator drives."""

from typing import Protocol, runtime_checkable

from export_completion.contracts.enums import SendingCompletionStatus


@runtime_checkable
class SuccessIndicatorSinkProtocol(Protocol):
    """Posts zero-length sentinel files marking success."""

    def post_collection_indicator(self, topic_name: str) -> str | None:
        """Post the collection indicator; returns the file name, None if skipped."""
        ...

    def post_full_run_indicator(self, run_id: str) -> str:
        """Post the full-run indicator; returns the file name."""
        ...


@runtime_checkable
class MonitoringPublisherProtocol(Protocol):
    """Publishes the run monitoring message."""

    def send_monitoring_message(self, status: SendingCompletionStatus, run_id: str) -> bool:
        """Publish the message; returns False when no destination is configured."""
        ...

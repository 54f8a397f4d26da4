"""External signal sinks: HTTP success indicators and SNS monitoring messages."""

from export_completion.sinks.monitoring import MonitoringPublisher
from export_completion.sinks.protocols import MonitoringPublisherProtocol, SuccessIndicatorSinkProtocol
from export_completion.sinks.success import SuccessIndicatorSink

__all__ = [
    "MonitoringPublisher",
    "MonitoringPublisherProtocol",
    "SuccessIndicatorSink",
    "SuccessIndicatorSinkProtocol",
]

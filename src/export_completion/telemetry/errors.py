"""Telemetry-specific exceptions.

These are for metrics setup errors only. Recording and flushing metrics
must never fail the completion flow.
"""


class MetricsExporterError(Exception):
    """Raised when a metrics exporter cannot be configured.

    Attributes:
        exporter_name: Name of the exporter that failed
        message: Human-readable error description
    """

    def __init__(self, exporter_name: str, message: str) -> None:
        self.exporter_name = exporter_name
        self.message = message
        super().__init__(f"Exporter '{exporter_name}' failed: {message}")

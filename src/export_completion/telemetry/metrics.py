# src/export_completion/telemetry/metrics.py
"""OpenTelemetry counters for completion handling.

CompletionMetrics owns a private MeterProvider so one process run maps to one
set of counters. push_final() is called from the orchestrator's cleanup path
and is best-effort: a failing exporter is logged, never raised, so it cannot
mask the error that is already propagating.

Counters:
    export_completion.files_sent             labels: collection
    export_completion.collections_sent       labels: collection
    export_completion.success_indicators     labels: kind
    export_completion.monitoring_messages    labels: status
    export_completion.retries                labels: collaborator, operation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from export_completion.contracts.enums import MetricsExporter, SendingCompletionStatus, SuccessIndicatorKind
from export_completion.telemetry.errors import MetricsExporterError

if TYPE_CHECKING:
    from opentelemetry.sdk.metrics.export import MetricReader

    from export_completion.core.config import MetricsSettings

logger = structlog.get_logger(__name__)

# Readers export on push_final(); the periodic timer should never fire first.
_EXPORT_INTERVAL_MILLIS = 24 * 60 * 60 * 1000


class CompletionMetrics:
    """Counters for one completion-handling process.

    Example:
        >>> metrics = CompletionMetrics(reader=InMemoryMetricReader())
        >>> metrics.record_files_sent("db.core.contract")
        >>> metrics.push_final()
    """

    def __init__(
        self,
        reader: MetricReader | None = None,
        *,
        service_name: str = "export-completion",
    ) -> None:
        self._provider = MeterProvider(
            resource=Resource.create({SERVICE_NAME: service_name}),
            metric_readers=[reader] if reader is not None else [],
        )
        meter = self._provider.get_meter("export_completion")
        self._files_sent = meter.create_counter(
            "export_completion.files_sent",
            unit="{file}",
            description="Files recorded as delivered",
        )
        self._collections_sent = meter.create_counter(
            "export_completion.collections_sent",
            unit="{collection}",
            description="Collections transitioned to Sent",
        )
        self._success_indicators = meter.create_counter(
            "export_completion.success_indicators",
            unit="{indicator}",
            description="Success indicator files posted",
        )
        self._monitoring_messages = meter.create_counter(
            "export_completion.monitoring_messages",
            unit="{message}",
            description="Monitoring messages published",
        )
        self._retries = meter.create_counter(
            "export_completion.retries",
            unit="{retry}",
            description="Retries of remote store and sink operations",
        )
        self._pushed = False

    def record_files_sent(self, collection_name: str) -> None:
        self._files_sent.add(1, {"collection": collection_name})

    def record_collection_sent(self, collection_name: str) -> None:
        self._collections_sent.add(1, {"collection": collection_name})

    def record_success_indicator(self, kind: SuccessIndicatorKind) -> None:
        self._success_indicators.add(1, {"kind": kind.value})

    def record_monitoring_message(self, status: SendingCompletionStatus) -> None:
        self._monitoring_messages.add(1, {"status": status.value})

    def record_retry(self, collaborator: str, operation: str) -> None:
        self._retries.add(1, {"collaborator": collaborator, "operation": operation})

    @property
    def pushed(self) -> bool:
        return self._pushed

    def push_final(self) -> None:
        """Flush every reader and shut the provider down.

        Safe to call more than once; later calls are no-ops.
        """
        if self._pushed:
            return
        self._pushed = True
        try:
            flushed = self._provider.force_flush()
            if not flushed:
                logger.warning("Final metrics flush timed out")
            self._provider.shutdown()
        except Exception as e:
            logger.warning("Failed to push final metrics", error=str(e), error_type=type(e).__name__)
        else:
            logger.info("Pushed final metrics")


def create_metrics(settings: MetricsSettings) -> CompletionMetrics:
    """Build CompletionMetrics with the reader selected in settings.

    Raises:
        MetricsExporterError: If the OTLP exporter is selected but unavailable
            or has no endpoint
    """
    from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader

    if settings.exporter is MetricsExporter.NONE:
        return CompletionMetrics(service_name=settings.service_name)

    if settings.exporter is MetricsExporter.CONSOLE:
        reader = PeriodicExportingMetricReader(ConsoleMetricExporter(), export_interval_millis=_EXPORT_INTERVAL_MILLIS)
        return CompletionMetrics(reader, service_name=settings.service_name)

    if not settings.endpoint:
        raise MetricsExporterError("otlp", "metrics.endpoint is required for the otlp exporter")
    try:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
    except ImportError as e:
        raise MetricsExporterError(
            "otlp",
            f"OpenTelemetry OTLP exporter not installed: {e}. Install with: pip install 'export-completion[otlp]'",
        ) from e

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=settings.endpoint),
        export_interval_millis=_EXPORT_INTERVAL_MILLIS,
    )
    logger.debug("OTLP metrics exporter configured", endpoint=settings.endpoint)
    return CompletionMetrics(reader, service_name=settings.service_name)

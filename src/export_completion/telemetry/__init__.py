"""Completion metrics."""

from export_completion.telemetry.errors import MetricsExporterError
from export_completion.telemetry.metrics import CompletionMetrics, create_metrics

__all__ = ["CompletionMetrics", "MetricsExporterError", "create_metrics"]

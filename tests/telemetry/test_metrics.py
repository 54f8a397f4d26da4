# tests/telemetry/test_metrics.py
"""Tests for CompletionMetrics and create_metrics."""

from typing import Any
from unittest.mock import patch

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from export_completion.contracts.enums import MetricsExporter, SendingCompletionStatus, SuccessIndicatorKind
from export_completion.core.config import MetricsSettings
from export_completion.telemetry.errors import MetricsExporterError
from export_completion.telemetry.metrics import CompletionMetrics, create_metrics


def _points(reader: InMemoryMetricReader, name: str) -> list[tuple[dict[str, Any], int]]:
    """(attributes, value) for every data point of one counter."""
    data = reader.get_metrics_data()
    if data is None:
        return []
    return [
        (dict(point.attributes or {}), point.value)
        for resource_metrics in data.resource_metrics
        for scope_metrics in resource_metrics.scope_metrics
        for metric in scope_metrics.metrics
        if metric.name == name
        for point in metric.data.data_points
    ]


class TestCounters:
    def test_files_sent_counted_per_collection(self) -> None:
        reader = InMemoryMetricReader()
        metrics = CompletionMetrics(reader)

        metrics.record_files_sent("db.core.contract")
        metrics.record_files_sent("db.core.contract")
        metrics.record_files_sent("db.core.other")

        points = dict((attrs["collection"], value) for attrs, value in _points(reader, "export_completion.files_sent"))
        assert points == {"db.core.contract": 2, "db.core.other": 1}

    def test_signal_counters(self) -> None:
        reader = InMemoryMetricReader()
        metrics = CompletionMetrics(reader)

        metrics.record_collection_sent("db.core.contract")
        metrics.record_success_indicator(SuccessIndicatorKind.FULL_RUN)
        metrics.record_monitoring_message(SendingCompletionStatus.COMPLETED_UNSUCCESSFULLY)
        metrics.record_retry("status_store", "get_item")

        assert _points(reader, "export_completion.collections_sent") == [({"collection": "db.core.contract"}, 1)]
        assert _points(reader, "export_completion.success_indicators") == [({"kind": "full_run"}, 1)]
        assert _points(reader, "export_completion.monitoring_messages") == [
            ({"status": "CompletedUnsuccessfully"}, 1)
        ]
        assert _points(reader, "export_completion.retries") == [
            ({"collaborator": "status_store", "operation": "get_item"}, 1)
        ]


class TestPushFinal:
    def test_push_is_idempotent(self) -> None:
        metrics = CompletionMetrics(InMemoryMetricReader())

        with patch.object(MeterProvider, "shutdown") as shutdown:
            metrics.push_final()
            metrics.push_final()

        assert metrics.pushed is True
        shutdown.assert_called_once()

    def test_push_failure_is_not_raised(self) -> None:
        metrics = CompletionMetrics(InMemoryMetricReader())

        with patch.object(MeterProvider, "force_flush", side_effect=RuntimeError("collector unreachable")):
            metrics.push_final()

        assert metrics.pushed is True

    def test_push_without_reader(self) -> None:
        metrics = CompletionMetrics()

        metrics.record_files_sent("db.core.contract")
        metrics.push_final()

        assert metrics.pushed is True


class TestCreateMetrics:
    @pytest.mark.parametrize("exporter", [MetricsExporter.NONE, MetricsExporter.CONSOLE])
    def test_builds_metrics(self, exporter: MetricsExporter) -> None:
        metrics = create_metrics(MetricsSettings(exporter=exporter))

        assert isinstance(metrics, CompletionMetrics)
        metrics.push_final()

    def test_otlp_requires_endpoint(self) -> None:
        with pytest.raises(MetricsExporterError, match="endpoint"):
            create_metrics(MetricsSettings(exporter=MetricsExporter.OTLP))

    def test_otlp_missing_package(self) -> None:
        settings = MetricsSettings(exporter=MetricsExporter.OTLP, endpoint="http://localhost:4317")

        with (
            patch.dict("sys.modules", {"opentelemetry.exporter.otlp.proto.grpc.metric_exporter": None}),
            pytest.raises(MetricsExporterError, match="not installed"),
        ):
            create_metrics(settings)

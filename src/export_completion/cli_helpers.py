"""CLI helper functions for wiring collaborators from settings."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from export_completion.contracts.records import CollectionKey
from export_completion.engine.collection import CollectionCompletionEvaluator
from export_completion.engine.orchestrator import CompletionOrchestrator
from export_completion.engine.run import RunCompletionEvaluator
from export_completion.sinks.monitoring import MonitoringPublisher
from export_completion.sinks.success import SuccessIndicatorSink
from export_completion.store.dynamodb import DynamoDBStatusStore
from export_completion.telemetry.metrics import CompletionMetrics, create_metrics

if TYPE_CHECKING:
    from export_completion.core.config import CompletionSettings


@dataclass
class Components:
    """Everything one completion pass needs, built from settings."""

    context: CollectionKey
    store: DynamoDBStatusStore
    metrics: CompletionMetrics
    success_sink: SuccessIndicatorSink
    monitoring: MonitoringPublisher
    orchestrator: CompletionOrchestrator

    def close(self) -> None:
        self.success_sink.close()


def run_context(settings: "CompletionSettings") -> CollectionKey:
    """The (run id, collection name) pair this process handles."""
    return CollectionKey(settings.run.correlation_id, settings.run.topic_name)


def build_components(settings: "CompletionSettings") -> Components:
    """Instantiate the store, sinks, metrics and orchestrator.

    Args:
        settings: Validated CompletionSettings instance

    Raises:
        MetricsExporterError: If the configured metrics exporter is unusable
    """
    metrics = create_metrics(settings.metrics)
    store = DynamoDBStatusStore.from_settings(settings.status_store, metrics=metrics)
    success_sink = SuccessIndicatorSink.from_settings(settings, metrics=metrics)
    monitoring = MonitoringPublisher.from_settings(settings, metrics=metrics)
    context = run_context(settings)

    orchestrator = CompletionOrchestrator(
        context,
        collections=CollectionCompletionEvaluator(store, metrics),
        runs=RunCompletionEvaluator(store),
        success_sink=success_sink,
        monitoring=monitoring,
        metrics=metrics,
        legacy_mode=settings.send_success_indicator,
        post_collection_indicator=settings.post_collection_indicator,
    )
    return Components(
        context=context,
        store=store,
        metrics=metrics,
        success_sink=success_sink,
        monitoring=monitoring,
        orchestrator=orchestrator,
    )

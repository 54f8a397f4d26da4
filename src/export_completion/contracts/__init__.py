"""Shared contracts for cross-boundary data types.

This package is a leaf module with no dependencies on core/engine. Settings
classes live in export_completion.core.config.
"""

from export_completion.contracts.enums import (
    CollectionStatus,
    JobExitStatus,
    MetricsExporter,
    SendingCompletionStatus,
    SuccessIndicatorKind,
)
from export_completion.contracts.errors import (
    CollectionNotFoundError,
    CompletionError,
    SuccessIndicatorError,
    TopicNameError,
)
from export_completion.contracts.records import CollectionKey, CollectionStatusRecord
from export_completion.contracts.results import CollectionEvaluation, CompletionOutcome

__all__ = [
    "CollectionEvaluation",
    "CollectionKey",
    "CollectionNotFoundError",
    "CollectionStatus",
    "CollectionStatusRecord",
    "CompletionError",
    "CompletionOutcome",
    "JobExitStatus",
    "MetricsExporter",
    "SendingCompletionStatus",
    "SuccessIndicatorError",
    "SuccessIndicatorKind",
    "TopicNameError",
]

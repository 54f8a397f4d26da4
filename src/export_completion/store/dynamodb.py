# src/export_completion/store/dynamodb.py
"""DynamoDB-backed status store.

Table layout (shared with the producer workers):

    CorrelationId     S  hash key
    CollectionName    S  range key
    CollectionStatus  S  Exporting | Exported | Sent
    FilesExported     N  written by producers
    FilesSent         N  incremented here, once per delivered file

Counts query the run's partition with a FilterExpression and Select=COUNT,
so no records are transferred. Filters apply per page, so page counts are
summed; a page without a Count makes the whole count unknown (None).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from export_completion.contracts.enums import CollectionStatus
from export_completion.contracts.errors import CollectionNotFoundError
from export_completion.contracts.records import CollectionStatusRecord
from export_completion.engine.retry import MaxRetriesExceeded, RetryConfig, RetryManager
from export_completion.store.errors import StatusStoreUnavailableError

if TYPE_CHECKING:
    from export_completion.core.config import StatusStoreSettings
    from export_completion.telemetry.metrics import CompletionMetrics

T = TypeVar("T")

logger = structlog.get_logger(__name__)

# Client errors that will fail the same way on every attempt
_PERMANENT_ERROR_CODES = frozenset(
    {
        "ConditionalCheckFailedException",
        "ResourceNotFoundException",
        "ValidationException",
        "AccessDeniedException",
    }
)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def is_retryable(error: BaseException) -> bool:
    """Transient unless DynamoDB says the request itself is wrong."""
    if isinstance(error, CollectionNotFoundError):
        return False
    if isinstance(error, ClientError):
        return _error_code(error) not in _PERMANENT_ERROR_CODES
    return isinstance(error, Exception)


def _string(value: str) -> dict[str, str]:
    return {"S": value}


def _number(value: int) -> dict[str, str]:
    return {"N": str(value)}


def _read_string(item: dict[str, Any], name: str) -> str:
    attribute = item.get(name)
    if attribute is None:
        return ""
    return str(attribute.get("S", ""))


def _read_number(item: dict[str, Any], name: str) -> int:
    attribute = item.get(name)
    if attribute is None:
        return 0
    return int(attribute.get("N", "0"))


class DynamoDBStatusStore:
    """StatusStore over a DynamoDB table.

    Every operation runs through the RetryManager; exhausting it raises
    StatusStoreUnavailableError.
    """

    _COLLABORATOR = "status_store"

    def __init__(
        self,
        client: Any,
        table_name: str,
        *,
        retry: RetryManager,
        metrics: CompletionMetrics | None = None,
    ) -> None:
        """Initialize with a boto3 DynamoDB client.

        Args:
            client: boto3 DynamoDB client (low-level API)
            table_name: Name of the status table
            retry: Retry policy applied to every call
            metrics: Optional counters for retries and sent files
        """
        self._client = client
        self._table_name = table_name
        self._retry = retry
        self._metrics = metrics

    @classmethod
    def from_settings(
        cls,
        settings: StatusStoreSettings,
        *,
        metrics: CompletionMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> DynamoDBStatusStore:
        client = boto3.client(
            "dynamodb",
            region_name=settings.region_name,
            endpoint_url=settings.endpoint_url,
        )
        retry = RetryManager(RetryConfig.from_settings(settings.retry), name=cls._COLLABORATOR, sleep=sleep)
        return cls(client, settings.table_name, retry=retry, metrics=metrics)

    @property
    def table_name(self) -> str:
        return self._table_name

    def _call(self, description: str, operation: Callable[[], T]) -> T:
        def on_retry(attempt: int, error: BaseException) -> None:
            if self._metrics is not None:
                self._metrics.record_retry(self._COLLABORATOR, description)

        try:
            return self._retry.execute_with_retry(
                operation,
                description=description,
                is_retryable=is_retryable,
                on_retry=on_retry,
            )
        except MaxRetriesExceeded as e:
            raise StatusStoreUnavailableError(description, e.attempts, e.last_error) from e.last_error

    @staticmethod
    def _key(run_id: str, collection_name: str) -> dict[str, dict[str, str]]:
        return {"CorrelationId": _string(run_id), "CollectionName": _string(collection_name)}

    def get(self, run_id: str, collection_name: str) -> CollectionStatusRecord:
        def operation() -> CollectionStatusRecord:
            response = self._client.get_item(
                TableName=self._table_name,
                Key=self._key(run_id, collection_name),
                ConsistentRead=True,
            )
            item = response.get("Item") or {}
            return CollectionStatusRecord(
                run_id=run_id,
                collection_name=collection_name,
                status=_read_string(item, "CollectionStatus"),
                files_exported=_read_number(item, "FilesExported"),
                files_sent=_read_number(item, "FilesSent"),
            )

        record = self._call("get_item", operation)
        logger.info(
            "Collection status",
            run_id=run_id,
            collection_name=collection_name,
            current_status=record.status,
            files_exported=record.files_exported,
            files_sent=record.files_sent,
        )
        return record

    def _count(self, description: str, run_id: str, filter_expression: str, values: dict[str, Any]) -> int | None:
        def operation() -> int | None:
            total = 0
            paginator = self._client.get_paginator("query")
            pages = paginator.paginate(
                TableName=self._table_name,
                KeyConditionExpression="CorrelationId = :correlation_id",
                FilterExpression=filter_expression,
                ExpressionAttributeValues={":correlation_id": _string(run_id), **values},
                Select="COUNT",
                ConsistentRead=True,
            )
            for page in pages:
                count = page.get("Count")
                if count is None:
                    return None
                total += int(count)
            return total

        return self._call(description, operation)

    def count_exporting(self, run_id: str) -> int | None:
        return self._count(
            "count_exporting",
            run_id,
            "CollectionStatus = :status",
            {":status": _string(CollectionStatus.EXPORTING.value)},
        )

    def count_pending_send(self, run_id: str) -> int | None:
        return self._count(
            "count_pending_send",
            run_id,
            "CollectionStatus = :status AND FilesExported > :zero",
            {":status": _string(CollectionStatus.EXPORTED.value), ":zero": _number(0)},
        )

    def count_with_exported_files(self, run_id: str) -> int | None:
        return self._count(
            "count_with_exported_files",
            run_id,
            "FilesExported > :zero",
            {":zero": _number(0)},
        )

    def increment_files_sent(self, run_id: str, collection_name: str) -> int:
        def operation() -> int:
            try:
                response = self._client.update_item(
                    TableName=self._table_name,
                    Key=self._key(run_id, collection_name),
                    UpdateExpression="SET FilesSent = if_not_exists(FilesSent, :zero) + :one",
                    ConditionExpression="attribute_exists(CorrelationId)",
                    ExpressionAttributeValues={":zero": _number(0), ":one": _number(1)},
                    ReturnValues="UPDATED_NEW",
                )
            except ClientError as e:
                if _error_code(e) == "ConditionalCheckFailedException":
                    raise CollectionNotFoundError(run_id, collection_name) from e
                raise
            return _read_number(response.get("Attributes") or {}, "FilesSent")

        files_sent = self._call("increment_files_sent", operation)
        logger.info("Incremented files sent", run_id=run_id, collection_name=collection_name, files_sent=files_sent)
        if self._metrics is not None:
            self._metrics.record_files_sent(collection_name)
        return files_sent

    def set_status_sent(self, run_id: str, collection_name: str) -> None:
        def operation() -> str:
            try:
                response = self._client.update_item(
                    TableName=self._table_name,
                    Key=self._key(run_id, collection_name),
                    UpdateExpression="SET CollectionStatus = :status",
                    ConditionExpression="attribute_exists(CorrelationId)",
                    ExpressionAttributeValues={":status": _string(CollectionStatus.SENT.value)},
                    ReturnValues="ALL_NEW",
                )
            except ClientError as e:
                if _error_code(e) == "ConditionalCheckFailedException":
                    raise CollectionNotFoundError(run_id, collection_name) from e
                raise
            return _read_string(response.get("Attributes") or {}, "CollectionStatus")

        status = self._call("set_status_sent", operation)
        logger.info(
            "Collection status after update",
            run_id=run_id,
            collection_name=collection_name,
            collection_status=status,
        )

# src/export_completion/sinks/success.py
"""Success indicator sink.

A success indicator is an empty gzip file POSTed to the downstream
collector. Its meaning is carried entirely by the file name and headers:

    collection:  _<database>_<collection>_successful.gz
    full run:    _<correlation_id>_successful.gz

Any non-2xx response is a failure and the whole post is retried.
"""

from __future__ import annotations

import gzip
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx
import structlog

from export_completion.contracts.enums import SuccessIndicatorKind
from export_completion.contracts.errors import CompletionError, SuccessIndicatorError
from export_completion.core.topics import ExportTopic
from export_completion.engine.retry import RetryConfig, RetryManager

if TYPE_CHECKING:
    from export_completion.core.config import CompletionSettings
    from export_completion.telemetry.metrics import CompletionMetrics

logger = structlog.get_logger(__name__)

NOT_APPLICABLE = "NOT_APPLICABLE"


def zero_bytes_compressed() -> bytes:
    """Gzip encoding of an empty payload."""
    return gzip.compress(b"")


class SuccessIndicatorSink:
    """Posts success indicator files over HTTP.

    Example:
        sink = SuccessIndicatorSink(
            "https://collector.example.com/upload",
            export_date="2020-01-01",
            environment="production",
            retry=RetryManager(RetryConfig(max_attempts=10)),
        )
        sink.post_full_run_indicator("correlation.id")
    """

    _COLLABORATOR = "success_indicator"

    def __init__(
        self,
        url: str,
        *,
        export_date: str,
        environment: str,
        retry: RetryManager,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
        metrics: CompletionMetrics | None = None,
    ) -> None:
        self._url = url
        self._export_date = export_date
        self._environment = environment
        self._retry = retry
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self._metrics = metrics

    @classmethod
    def from_settings(
        cls,
        settings: CompletionSettings,
        *,
        metrics: CompletionMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> SuccessIndicatorSink:
        indicator = settings.success_indicator
        retry = RetryManager(RetryConfig.from_settings(indicator.retry), name=cls._COLLABORATOR, sleep=sleep)
        return cls(
            indicator.url,
            export_date=settings.export_date,
            environment=settings.environment,
            retry=retry,
            timeout=indicator.timeout_seconds,
            metrics=metrics,
        )

    def post(self, kind: SuccessIndicatorKind, *, run_id: str, topic_name: str) -> str | None:
        if kind is SuccessIndicatorKind.COLLECTION:
            return self.post_collection_indicator(topic_name)
        return self.post_full_run_indicator(run_id)

    def post_collection_indicator(self, topic_name: str) -> str | None:
        """Post the indicator for one collection.

        Returns:
            The posted file name, or None when the topic name is blank or
            cannot be split into database and collection
        """
        topic = ExportTopic.try_parse(topic_name)
        if topic is None:
            logger.warning("Not posting collection success indicator, unrecognised topic", topic=topic_name)
            return None

        file_name = topic.success_file_name
        headers = {
            "database": topic.database,
            "collection": topic.collection,
            "topic": topic.name,
        }
        self._post(SuccessIndicatorKind.COLLECTION, file_name, headers)
        return file_name

    def post_full_run_indicator(self, run_id: str) -> str:
        """Post the indicator that the whole correlated run succeeded."""
        file_name = f"_{run_id}_successful.gz"
        headers = {
            "database": NOT_APPLICABLE,
            "collection": NOT_APPLICABLE,
            "topic": NOT_APPLICABLE,
        }
        self._post(SuccessIndicatorKind.FULL_RUN, file_name, headers)
        return file_name

    def _post(self, kind: SuccessIndicatorKind, file_name: str, extra_headers: dict[str, str]) -> None:
        if not self._url:
            raise CompletionError("success_indicator.url is not configured")

        headers = {
            "filename": file_name,
            "environment": f"aws/{self._environment}",
            "export_date": self._export_date,
            **extra_headers,
        }
        logger.info("Writing success indicator", kind=kind.value, file_name=file_name)

        def operation() -> None:
            response = self._client.post(
                self._url,
                content=zero_bytes_compressed(),
                headers={"Content-Type": "application/octet-stream", **headers},
            )
            if not response.is_success:
                logger.warning(
                    "Failed to post success indicator",
                    kind=kind.value,
                    file_name=file_name,
                    response=response.status_code,
                    url=self._url,
                )
                raise SuccessIndicatorError(file_name, response.status_code)
            logger.info(
                "Successfully posted success indicator",
                kind=kind.value,
                file_name=file_name,
                response=response.status_code,
                url=self._url,
            )

        self._retry.execute_with_retry(
            operation,
            description=f"post_{kind.value}_indicator",
            on_retry=self._on_retry,
        )
        if self._metrics is not None:
            self._metrics.record_success_indicator(kind)

    def _on_retry(self, attempt: int, error: BaseException) -> None:
        if self._metrics is not None:
            self._metrics.record_retry(self._COLLABORATOR, "post")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

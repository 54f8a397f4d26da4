# src/export_completion/sinks/monitoring.py
"""Monitoring message publisher (Amazon SNS).

Publishes one structured message per completion pass describing whether the
whole run finished sending. The alerting service downstream renders it; the
shape here is its contract:

    {
        "severity": "Critical" | "High",
        "notification_type": "Information" | "Error",
        "slack_username": "...",
        "title_text": "<Snapshot type> - All files sent - success|failed",
        "custom_elements": [
            {"key": "Export date", "value": "..."},
            {"key": "Correlation Id", "value": "..."}
        ]
    }

No topic ARN means monitoring is switched off: publishing is a no-op.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import boto3
import structlog

from export_completion.contracts.enums import SendingCompletionStatus
from export_completion.engine.retry import RetryConfig, RetryManager

if TYPE_CHECKING:
    from export_completion.core.config import CompletionSettings
    from export_completion.telemetry.metrics import CompletionMetrics

logger = structlog.get_logger(__name__)

_SEVERITY = {
    SendingCompletionStatus.COMPLETED_SUCCESSFULLY: ("Critical", "Information", "success"),
    SendingCompletionStatus.COMPLETED_UNSUCCESSFULLY: ("High", "Error", "failed"),
}


class MonitoringPublisher:
    """Publishes run monitoring messages to an SNS topic."""

    _COLLABORATOR = "monitoring"

    def __init__(
        self,
        client: Any,
        topic_arn: str,
        *,
        export_date: str,
        snapshot_type: str,
        slack_username: str,
        retry: RetryManager,
        metrics: CompletionMetrics | None = None,
    ) -> None:
        """Initialize with a boto3 SNS client.

        Args:
            client: boto3 SNS client
            topic_arn: Destination topic; empty disables publishing
            export_date: Date of the export, shown in the message
            snapshot_type: e.g. "full" or "incremental", used in the title
            slack_username: Display name for the alert
            retry: Retry policy for publish calls
            metrics: Optional message and retry counters
        """
        self._client = client
        self._topic_arn = topic_arn
        self._export_date = export_date
        self._snapshot_type = snapshot_type
        self._slack_username = slack_username
        self._retry = retry
        self._metrics = metrics

    @classmethod
    def from_settings(
        cls,
        settings: CompletionSettings,
        *,
        metrics: CompletionMetrics | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> MonitoringPublisher:
        monitoring = settings.monitoring
        client = boto3.client("sns", region_name=monitoring.region_name, endpoint_url=monitoring.endpoint_url)
        retry = RetryManager(RetryConfig.from_settings(monitoring.retry), name=cls._COLLABORATOR, sleep=sleep)
        return cls(
            client,
            monitoring.topic_arn,
            export_date=settings.export_date,
            snapshot_type=settings.snapshot_type,
            slack_username=monitoring.slack_username,
            retry=retry,
            metrics=metrics,
        )

    @property
    def enabled(self) -> bool:
        return bool(self._topic_arn.strip())

    def build_message(self, status: SendingCompletionStatus, run_id: str) -> dict[str, Any]:
        severity, notification_type, outcome = _SEVERITY[status]
        return {
            "severity": severity,
            "notification_type": notification_type,
            "slack_username": self._slack_username,
            "title_text": f"{self._snapshot_type.capitalize()} - All files sent - {outcome}",
            "custom_elements": [
                {"key": "Export date", "value": self._export_date},
                {"key": "Correlation Id", "value": run_id},
            ],
        }

    def send_monitoring_message(self, status: SendingCompletionStatus, run_id: str) -> bool:
        if not self.enabled:
            logger.info("Not sending monitoring message, no topic configured", status=status.value)
            return False

        message = json.dumps(self.build_message(status, run_id))
        logger.info("Sending monitoring message", status=status.value, topic_arn=self._topic_arn, run_id=run_id)

        def on_retry(attempt: int, error: BaseException) -> None:
            if self._metrics is not None:
                self._metrics.record_retry(self._COLLABORATOR, "publish")

        response = self._retry.execute_with_retry(
            lambda: self._client.publish(TopicArn=self._topic_arn, Message=message),
            description="publish",
            on_retry=on_retry,
        )
        logger.info(
            "Sent monitoring message",
            status=status.value,
            message_id=response.get("MessageId") if isinstance(response, dict) else None,
        )
        if self._metrics is not None:
            self._metrics.record_monitoring_message(status)
        return True

# tests/conftest.py
"""Shared test fixtures and helpers.

AWS:
- aws_credentials: fake credentials so boto3 never reaches a real account
- dynamodb_client: moto-backed client with the status table created
- sns_client / monitoring_topic_arn: moto-backed SNS topic

Retry:
- RecordingSleep replaces time.sleep so retry schedules are observable
  and tests never actually wait.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator
from typing import Any

import boto3
import pytest
from hypothesis import Phase, Verbosity, settings
from moto import mock_aws

from export_completion.contracts.records import CollectionStatusRecord
from export_completion.engine.retry import RetryConfig, RetryManager

TABLE_NAME = "UCExportToCrownStatus"
REGION = "eu-west-2"
RUN_ID = "correlation.id"
TOPIC = "db.core.contract"


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_retry(max_attempts: int = 5, sleep: RecordingSleep | None = None, **kwargs: Any) -> RetryManager:
    """RetryManager that never waits."""
    return RetryManager(
        RetryConfig(max_attempts=max_attempts, **kwargs),
        name="test",
        sleep=sleep if sleep is not None else RecordingSleep(),
    )


def record(
    collection_name: str = TOPIC,
    status: str = "Exported",
    files_exported: int = 10,
    files_sent: int = 10,
    run_id: str = RUN_ID,
) -> CollectionStatusRecord:
    return CollectionStatusRecord(
        run_id=run_id,
        collection_name=collection_name,
        status=status,
        files_exported=files_exported,
        files_sent=files_sent,
    )


def put_item(client: Any, item: CollectionStatusRecord, table_name: str = TABLE_NAME) -> None:
    """Write a record the way a producer worker does."""
    client.put_item(
        TableName=table_name,
        Item={
            "CorrelationId": {"S": item.run_id},
            "CollectionName": {"S": item.collection_name},
            "CollectionStatus": {"S": item.status},
            "FilesExported": {"N": str(item.files_exported)},
            "FilesSent": {"N": str(item.files_sent)},
        },
    )


def create_status_table(client: Any, table_name: str = TABLE_NAME) -> None:
    client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "CorrelationId", "KeyType": "HASH"},
            {"AttributeName": "CollectionName", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "CorrelationId", "AttributeType": "S"},
            {"AttributeName": "CollectionName", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Moto recommends clearing real credentials out of the environment."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def mocked_aws(aws_credentials: None) -> Iterator[None]:
    with mock_aws():
        yield


@pytest.fixture
def dynamodb_client(mocked_aws: None) -> Any:
    client = boto3.client("dynamodb", region_name=REGION)
    create_status_table(client)
    return client


@pytest.fixture
def sns_client(mocked_aws: None) -> Any:
    return boto3.client("sns", region_name=REGION)


@pytest.fixture
def monitoring_topic_arn(sns_client: Any) -> str:
    return str(sns_client.create_topic(Name="monitoring")["TopicArn"])


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))

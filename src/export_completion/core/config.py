# src/export_completion/core/config.py
"""
Configuration schema and loading for export completion handling.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from export_completion.contracts.enums import MetricsExporter

DEFAULT_STATUS_TABLE = "UCExportToCrownStatus"
DEFAULT_SLACK_USERNAME = "Crown Export Poller"


class RetrySettings(BaseModel):
    """Retry behavior configuration."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=5, gt=0, description="Total attempts, including the first")
    initial_delay_seconds: float = Field(default=1.0, ge=0, description="Delay before the first retry")
    max_delay_seconds: float = Field(default=300.0, gt=0, description="Maximum backoff delay")
    exponential_base: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")


def _sink_retry() -> RetrySettings:
    return RetrySettings(max_attempts=10)


class RunSettings(BaseModel):
    """Identifiers of the run and collection this process handles.

    Fixed for the lifetime of the process; threaded explicitly into every
    store and sink call.
    """

    model_config = {"frozen": True}

    correlation_id: str = Field(min_length=1, description="Correlation id shared by every collection in the run")
    topic_name: str = Field(default="", description="Topic the collection was exported from; also its status key")

    @field_validator("correlation_id", "topic_name", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        # Environment overrides are parsed as TOML, so "20240101" arrives as an int
        if isinstance(v, str):
            return v.strip()
        if v is None:
            return v
        return str(v)


class StatusStoreSettings(BaseModel):
    """DynamoDB status table configuration."""

    model_config = {"frozen": True}

    table_name: str = Field(default=DEFAULT_STATUS_TABLE, min_length=1)
    region_name: str | None = Field(default=None, description="AWS region, falls back to the boto3 default chain")
    endpoint_url: str | None = Field(default=None, description="Override endpoint, e.g. a local DynamoDB")
    retry: RetrySettings = Field(default_factory=RetrySettings)


class SuccessIndicatorSettings(BaseModel):
    """HTTP endpoint that receives the zero-length success indicator files."""

    model_config = {"frozen": True}

    url: str = Field(default="", description="Endpoint URL; required when an indicator is posted")
    timeout_seconds: float = Field(default=30.0, gt=0)
    retry: RetrySettings = Field(default_factory=_sink_retry)


class MonitoringSettings(BaseModel):
    """SNS topic that receives the run monitoring message."""

    model_config = {"frozen": True}

    topic_arn: str = Field(default="", description="Empty disables monitoring messages")
    region_name: str | None = None
    endpoint_url: str | None = None
    slack_username: str = DEFAULT_SLACK_USERNAME
    retry: RetrySettings = Field(default_factory=_sink_retry)


class MetricsSettings(BaseModel):
    """Completion metrics export configuration."""

    model_config = {"frozen": True}

    exporter: MetricsExporter = MetricsExporter.NONE
    endpoint: str | None = Field(default=None, description="OTLP collector endpoint")
    service_name: str = "export-completion"


class CompletionSettings(BaseModel):
    """Top-level configuration.

    This is the single source of truth for one completion-handling process.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    run: RunSettings
    export_date: str = Field(default="", description="Date of the export, carried in every signal")
    environment: str = Field(default="", description="Deployment environment name")
    snapshot_type: str = Field(default="full", min_length=1)

    send_success_indicator: bool = Field(
        default=False,
        description="Legacy mode: post the full-run indicator on job success without consulting the store",
    )
    post_collection_indicator: bool = Field(
        default=False,
        description="Post the collection indicator when a collection transitions to Sent",
    )

    status_store: StatusStoreSettings = Field(default_factory=StatusStoreSettings)
    success_indicator: SuccessIndicatorSettings = Field(default_factory=SuccessIndicatorSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    @field_validator("export_date", "environment", mode="before")
    @classmethod
    def coerce_to_text(cls, v: Any) -> Any:
        # YAML turns 2020-01-01 into a date
        if v is None or isinstance(v, str):
            return v
        return str(v)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (validation will likely reject it)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lowercase_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lowercase_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> CompletionSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (EXPORT_COMPLETION_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: EXPORT_COMPLETION_RUN__CORRELATION_ID for
    nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated CompletionSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="EXPORT_COMPLETION",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys and its own bookkeeping entries
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = _lowercase_keys(raw_config)

    raw_config = _expand_env_vars(raw_config)

    return CompletionSettings(**raw_config)

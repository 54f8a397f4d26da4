# src/export_completion/core/logging.py
"""Structured logging configuration.

Uses structlog for structured logging. Configures BOTH structlog and stdlib
logging so that modules using logging.getLogger(__name__) (boto3, httpx)
produce the same output format as modules using structlog.get_logger().

Log events go to stderr. stdout belongs to the CLI's result output, which
callers parse when --format json is used.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Third-party loggers that are excessively verbose at DEBUG level.
# boto3/botocore log every signed request and credential lookup.
_NOISY_LOGGERS: tuple[str, ...] = (
    "boto3",
    "botocore",
    "s3transfer",
    "urllib3",
    "urllib3.connectionpool",
    "httpx",
    "httpcore",
    "opentelemetry",
    "opentelemetry.sdk",
    "opentelemetry.exporter",
)

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop the _record and _from_structlog keys ProcessorFormatter adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _shared_processors() -> list[Any]:
    """Processors for every event, whether it came from structlog or stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def _render_processors(json_output: bool, colors: bool) -> list[Any]:
    if json_output:
        return [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        _remove_internal_fields,
        structlog.dev.ConsoleRenderer(colors=colors),
    ]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Console output is colored only when the stream is a terminal; batch runs
    ship stderr to a log collector where escape codes are noise.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Destination, sys.stderr by default.

    Raises:
        ValueError: If level is not a known level name
    """
    level_name = level.upper()
    if level_name not in _LEVELS:
        raise ValueError(f"Unknown log level {level!r}, expected one of {', '.join(_LEVELS)}")
    log_level = logging.getLevelName(level_name)

    if stream is None:
        stream = sys.stderr
    shared_processors = _shared_processors()

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Caching off so tests can reconfigure
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        ProcessorFormatter(
            processors=_render_processors(json_output, colors=stream.isatty()),
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the configured root level
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def bind_run_context(run_id: str, collection_name: str) -> None:
    """Attach run identifiers to every log event on this thread of control."""
    structlog.contextvars.bind_contextvars(run_id=run_id, collection_name=collection_name)


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()

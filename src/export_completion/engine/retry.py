# src/export_completion/engine/retry.py
"""RetryManager: bounded exponential-backoff retry with tenacity.

Every status store and sink call goes through execute_with_retry(). The
delay before retry n is:

    initial_delay * exponential_base ** (n - 1)

capped at max_delay. There is no jitter, so the schedule is deterministic.
Each retry is logged and reported to an optional on_retry callback, but the
caller sees one logical call: either the result, or a single
MaxRetriesExceeded once the budget is spent.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from export_completion.core.config import RetrySettings

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class MaxRetriesExceeded(Exception):
    """Raised when max retry attempts are exceeded."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries ({attempts}) exceeded: {last_error}")


def retry_all(error: BaseException) -> bool:
    """Default predicate: every Exception is transient."""
    return isinstance(error, Exception)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    max_attempts is the TOTAL number of tries, not the number of retries.
    So max_attempts=5 means: try, then retry four times.
    """

    max_attempts: int = 5
    initial_delay: float = 1.0  # seconds
    exponential_base: float = 2.0  # backoff multiplier
    max_delay: float = 300.0  # seconds

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.exponential_base < 1:
            raise ValueError("exponential_base must be >= 1")

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Factory for no-retry configuration (single attempt)."""
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings: "RetrySettings") -> "RetryConfig":
        """Factory from RetrySettings config model."""
        return cls(
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay_seconds,
            exponential_base=settings.exponential_base,
            max_delay=settings.max_delay_seconds,
        )

    def delay_before_retry(self, retry_number: int) -> float:
        """Seconds slept before retry number retry_number (1-based)."""
        return min(self.initial_delay * self.exponential_base ** (retry_number - 1), self.max_delay)


class RetryManager:
    """Runs operations against remote collaborators with retry.

    Example:
        manager = RetryManager(RetryConfig(max_attempts=5), name="status_store")

        record = manager.execute_with_retry(
            lambda: client.get_item(...),
            description="get_item",
            on_retry=lambda attempt, error: metrics.record_retry("get_item"),
        )
    """

    def __init__(
        self,
        config: RetryConfig,
        *,
        name: str = "remote",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize with config.

        Args:
            config: Retry configuration
            name: Collaborator name used in log events
            sleep: Sleep function, replaceable in tests
        """
        self._config = config
        self._name = name
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    def execute_with_retry(
        self,
        operation: Callable[[], T],
        *,
        description: str = "operation",
        is_retryable: Callable[[BaseException], bool] = retry_all,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Execute operation with retry logic.

        Args:
            operation: Zero-argument callable to execute
            description: Operation name for log events
            is_retryable: Returns False for errors that must propagate at once
            on_retry: Called before each retry with (0-based attempt, error)

        Returns:
            Result of operation

        Raises:
            MaxRetriesExceeded: If every attempt failed with a retryable error
            Exception: A non-retryable error, unwrapped
        """

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            assert error is not None, "before_sleep only runs after a failed attempt"
            attempt = retry_state.attempt_number - 1
            logger.warning(
                "Retrying remote operation",
                collaborator=self._name,
                operation=description,
                attempt=attempt,
                max_attempts=self._config.max_attempts,
                delay_seconds=retry_state.upcoming_sleep,
                error=str(error),
                error_type=type(error).__name__,
            )
            if on_retry is not None:
                on_retry(attempt, error)

        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(
                multiplier=self._config.initial_delay,
                exp_base=self._config.exponential_base,
                max=self._config.max_delay,
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep,
            sleep=self._sleep,
            reraise=False,  # RetryError is converted to MaxRetriesExceeded below
        )

        try:
            return retrying(operation)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            assert last_error is not None, "RetryError without exception is impossible"
            attempts = e.last_attempt.attempt_number
            logger.error(
                "Remote operation failed after retries",
                collaborator=self._name,
                operation=description,
                attempts=attempts,
                error=str(last_error),
                error_type=type(last_error).__name__,
            )
            raise MaxRetriesExceeded(attempts, last_error) from last_error

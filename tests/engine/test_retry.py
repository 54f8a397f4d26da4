# tests/engine/test_retry.py
"""Tests for RetryManager."""

import pytest

from export_completion.core.config import RetrySettings
from export_completion.engine.retry import MaxRetriesExceeded, RetryConfig, RetryManager
from tests.conftest import RecordingSleep


class TestRetryManager:
    """Retry logic with tenacity."""

    def test_returns_result_without_retry(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(RetryConfig(max_attempts=5), sleep=sleep)

        assert manager.execute_with_retry(lambda: "ok") == "ok"
        assert sleep.delays == []

    def test_retry_until_success(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(RetryConfig(max_attempts=5), sleep=sleep)
        call_count = 0

        def flaky_operation() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise RuntimeError("Transient error")
            return "success"

        assert manager.execute_with_retry(flaky_operation) == "success"
        assert call_count == 3
        assert sleep.delays == [1.0, 2.0]

    def test_exhaustion_raises_once_after_max_attempts(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(
            RetryConfig(max_attempts=5, initial_delay=1.0, exponential_base=2.0),
            sleep=sleep,
        )
        call_count = 0

        def always_fails() -> None:
            nonlocal call_count
            call_count += 1
            raise RuntimeError(f"failure {call_count}")

        with pytest.raises(MaxRetriesExceeded) as exc_info:
            manager.execute_with_retry(always_fails)

        assert call_count == 5
        assert exc_info.value.attempts == 5
        assert str(exc_info.value.last_error) == "failure 5"
        assert exc_info.value.__cause__ is exc_info.value.last_error
        # initial_delay * multiplier ** (n - 1) before each of the four retries
        assert sleep.delays == [1.0, 2.0, 4.0, 8.0]

    def test_delays_follow_configured_multiplier(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(RetryConfig(max_attempts=4, initial_delay=0.5, exponential_base=3.0), sleep=sleep)

        with pytest.raises(MaxRetriesExceeded):
            manager.execute_with_retry(lambda: (_ for _ in ()).throw(ValueError("Fail")))

        assert sleep.delays == [0.5, 1.5, 4.5]

    def test_delays_capped_at_max_delay(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(
            RetryConfig(max_attempts=6, initial_delay=1.0, exponential_base=2.0, max_delay=5.0),
            sleep=sleep,
        )

        with pytest.raises(MaxRetriesExceeded):
            manager.execute_with_retry(lambda: (_ for _ in ()).throw(ValueError("Fail")))

        assert sleep.delays == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_no_retry_on_non_retryable(self) -> None:
        manager = RetryManager(RetryConfig(max_attempts=3), sleep=RecordingSleep())
        call_count = 0

        def failing_operation() -> None:
            nonlocal call_count
            call_count += 1
            raise TypeError("Not retryable")

        with pytest.raises(TypeError):
            manager.execute_with_retry(
                failing_operation,
                is_retryable=lambda e: isinstance(e, ValueError),
            )

        assert call_count == 1

    def test_on_retry_uses_zero_based_attempts(self) -> None:
        manager = RetryManager(RetryConfig(max_attempts=3), sleep=RecordingSleep())
        attempts: list[tuple[int, str]] = []
        call_count = 0

        def flaky_with_tracking() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise ValueError("Fail")
            return "ok"

        result = manager.execute_with_retry(
            flaky_with_tracking,
            on_retry=lambda attempt, error: attempts.append((attempt, str(error))),
        )

        assert result == "ok"
        assert attempts == [(0, "Fail")]

    def test_on_retry_not_called_on_final_attempt(self) -> None:
        """With all attempts failing, on_retry fires once per retry, not per failure."""
        manager = RetryManager(RetryConfig(max_attempts=3), sleep=RecordingSleep())
        attempts: list[int] = []

        with pytest.raises(MaxRetriesExceeded):
            manager.execute_with_retry(
                lambda: (_ for _ in ()).throw(ValueError("Always fails")),
                on_retry=lambda attempt, error: attempts.append(attempt),
            )

        assert attempts == [0, 1]

    def test_single_attempt_config_never_sleeps(self) -> None:
        sleep = RecordingSleep()
        manager = RetryManager(RetryConfig.no_retry(), sleep=sleep)

        with pytest.raises(MaxRetriesExceeded) as exc_info:
            manager.execute_with_retry(lambda: (_ for _ in ()).throw(ValueError("Fail")))

        assert exc_info.value.attempts == 1
        assert sleep.delays == []


class TestRetryConfig:
    """RetryConfig validation and factories."""

    def test_from_settings_maps_fields(self) -> None:
        settings = RetrySettings(
            max_attempts=10,
            initial_delay_seconds=2.0,
            max_delay_seconds=120.0,
            exponential_base=3.0,
        )

        config = RetryConfig.from_settings(settings)

        assert config.max_attempts == 10
        assert config.initial_delay == 2.0
        assert config.max_delay == 120.0
        assert config.exponential_base == 3.0

    def test_default_values(self) -> None:
        config = RetryConfig()

        assert config.max_attempts == 5
        assert config.initial_delay == 1.0
        assert config.exponential_base == 2.0

    def test_delay_before_retry(self) -> None:
        config = RetryConfig(initial_delay=1.0, exponential_base=2.0, max_delay=10.0)

        assert [config.delay_before_retry(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_invalid_max_attempts_raises(self) -> None:
        with pytest.raises(ValueError, match="max_attempts must be >= 1"):
            RetryConfig(max_attempts=0)

    def test_invalid_multiplier_raises(self) -> None:
        with pytest.raises(ValueError, match="exponential_base must be >= 1"):
            RetryConfig(exponential_base=0.5)


class TestMaxRetriesExceeded:
    """MaxRetriesExceeded exception."""

    def test_preserves_attempt_count(self) -> None:
        original = ValueError("original error")
        exc = MaxRetriesExceeded(attempts=3, last_error=original)

        assert exc.attempts == 3
        assert exc.last_error is original

    def test_message_format(self) -> None:
        exc = MaxRetriesExceeded(attempts=5, last_error=ValueError("original error"))

        assert str(exc) == "Max retries (5) exceeded: original error"

"""Tests for the retry policy and retry wrapper."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from signal_pipeline.extraction.errors import ExternalServiceError, RateLimitError
from signal_pipeline.extraction.retry import RetryPolicy, is_retryable_error, with_retry


class TestIsRetryableError:
    def test_rate_limit_is_retryable(self) -> None:
        assert is_retryable_error(RateLimitError("slow down", service="tavily"))

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_are_retryable(self, status: int) -> None:
        assert is_retryable_error(ExternalServiceError("boom", status_code=status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors_are_permanent(self, status: int) -> None:
        assert not is_retryable_error(ExternalServiceError("bad", status_code=status))

    def test_flagged_error_is_retryable(self) -> None:
        assert is_retryable_error(ExternalServiceError("timeout after 30s", retryable=True))

    def test_httpx_timeout_is_retryable(self) -> None:
        assert is_retryable_error(httpx.ReadTimeout("read timed out"))

    def test_message_marker_is_retryable(self) -> None:
        assert is_retryable_error(RuntimeError("Too Many Requests from upstream"))

    def test_plain_error_is_permanent(self) -> None:
        assert not is_retryable_error(ValueError("invalid input"))


class TestRetryPolicy:
    def test_exponential_delays(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=30.0)
        assert [policy.delay_for(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_capped(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0)
        assert policy.delay_for(10) == 5.0

    def test_jitter_only_increases_delay(self) -> None:
        policy = RetryPolicy(base_delay=2.0, max_delay=30.0, jitter_factor=0.5)
        for _ in range(20):
            assert 2.0 <= policy.delay_for(0) <= 3.0

    def test_from_settings(self, test_settings) -> None:
        policy = RetryPolicy.from_settings(test_settings)
        assert policy.max_attempts == test_settings.max_retry_attempts
        assert policy.base_delay == test_settings.retry_base_delay


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_first_success(self) -> None:
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, RetryPolicy()) == "ok"
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self) -> None:
        fn = AsyncMock(side_effect=[RateLimitError("429"), RateLimitError("429"), "ok"])

        with patch("signal_pipeline.extraction.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await with_retry(fn, RetryPolicy(max_attempts=3, base_delay=1.0))

        assert result == "ok"
        assert fn.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self) -> None:
        fn = AsyncMock(side_effect=ExternalServiceError("forbidden", status_code=403))

        with pytest.raises(ExternalServiceError, match="forbidden"):
            await with_retry(fn, RetryPolicy(max_attempts=5, base_delay=0.0))

        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self) -> None:
        fn = AsyncMock(
            side_effect=[
                ExternalServiceError("first", status_code=503),
                ExternalServiceError("second", status_code=503),
            ]
        )

        with pytest.raises(ExternalServiceError, match="second"):
            await with_retry(fn, RetryPolicy(max_attempts=2, base_delay=0.0))

        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_independent_calls_have_own_attempt_count(self) -> None:
        policy = RetryPolicy(max_attempts=2, base_delay=0.0)
        first = AsyncMock(side_effect=[RateLimitError("429"), "a"])
        second = AsyncMock(side_effect=[RateLimitError("429"), "b"])

        assert await with_retry(first, policy) == "a"
        assert await with_retry(second, policy) == "b"

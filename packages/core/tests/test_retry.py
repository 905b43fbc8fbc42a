"""Retry 包装器单元测试

测试内容：
1. 首次成功不等待
2. 失败后按 initial 翻倍、封顶 max 等待
3. 耗尽后原样抛出最后一次异常，尝试次数精确
4. should_retry 拒绝的异常立即抛出，不再等待
"""

from unittest.mock import AsyncMock

import pytest
from taskboard.core.retry import RetryPolicy, retry_async, retry_with_policy


class TestRetryPolicy:
    def test_delay_doubles_and_caps(self):
        policy = RetryPolicy(max_attempts=5, initial_delay=0.5, max_delay=5.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [0.5, 1.0, 2.0, 4.0, 5.0]

    def test_write_side_defaults(self):
        policy = RetryPolicy(initial_delay=1.0)
        assert policy.max_attempts == 3
        assert policy.delay_for(1) == 1.0
        assert policy.delay_for(4) == 5.0

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestRetryAsync:
    async def test_success_first_try(self, fake_sleep, sleep_calls):
        operation = AsyncMock(return_value=["t1"])

        result = await retry_async(operation, sleep=fake_sleep)

        assert result == ["t1"]
        operation.assert_awaited_once()
        assert sleep_calls == []

    async def test_recovers_after_transient_failure(self, fake_sleep, sleep_calls):
        operation = AsyncMock(side_effect=[ConnectionError("blip"), "ok"])

        result = await retry_async(operation, sleep=fake_sleep)

        assert result == "ok"
        assert operation.await_count == 2
        assert sleep_calls == [0.5]

    async def test_exhaustion_raises_last_error(self, fake_sleep, sleep_calls):
        errors = [TimeoutError("1"), TimeoutError("2"), TimeoutError("3")]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(TimeoutError) as exc_info:
            await retry_async(
                operation,
                max_attempts=3,
                initial_delay=0.5,
                max_delay=5.0,
                sleep=fake_sleep,
            )

        assert exc_info.value is errors[-1]
        assert operation.await_count == 3
        # 最后一次失败后不再等待
        assert sleep_calls == [0.5, 1.0]

    async def test_delay_capped(self, fake_sleep, sleep_calls):
        operation = AsyncMock(side_effect=OSError("down"))

        with pytest.raises(OSError):
            await retry_async(
                operation,
                max_attempts=5,
                initial_delay=2.0,
                max_delay=5.0,
                sleep=fake_sleep,
            )

        assert sleep_calls == [2.0, 4.0, 5.0, 5.0]


class TestShouldRetry:
    async def test_non_retryable_error_raised_immediately(self, fake_sleep, sleep_calls):
        error = ValueError("bad request")
        operation = AsyncMock(side_effect=[error, "unreachable"])

        with pytest.raises(ValueError) as exc_info:
            await retry_async(
                operation,
                sleep=fake_sleep,
                should_retry=lambda e: not isinstance(e, ValueError),
            )

        assert exc_info.value is error
        operation.assert_awaited_once()
        assert sleep_calls == []

    async def test_retryable_errors_still_back_off(self, fake_sleep, sleep_calls):
        operation = AsyncMock(side_effect=[OSError("down"), ValueError("bad"), "ok"])

        with pytest.raises(ValueError):
            await retry_with_policy(
                operation,
                RetryPolicy(max_attempts=3, initial_delay=0.5),
                sleep=fake_sleep,
                should_retry=lambda e: isinstance(e, OSError),
            )

        assert operation.await_count == 2
        assert sleep_calls == [0.5]

"""Retry 包装器 -- 确定性指数退避

任意可失败的零参数异步操作：失败后等待 delay 再试，
delay 从 initial_delay 起每次翻倍、封顶 max_delay，不加抖动。
尝试次数耗尽后原样抛出最后一次的异常；
should_retry 判定为不可重试的异常（如客户端错误）不再等待，直接抛出。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from pydantic import BaseModel, Field

from . import config

log = structlog.get_logger()

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
ShouldRetry = Callable[[Exception], bool]


class RetryPolicy(BaseModel):
    """重试策略

    读路径与写路径的默认起始延迟不同（0.5s vs 1.0s），两者分别可配。
    """

    max_attempts: int = Field(default=3, ge=1, description="最大尝试次数（含首次）")
    initial_delay: float = Field(default=0.5, ge=0, description="首次重试前等待（秒）")
    max_delay: float = Field(default=5.0, ge=0, description="单次等待上限（秒）")

    def delay_for(self, attempt: int) -> float:
        """第 attempt 次失败后的等待时长（attempt 从 1 开始）"""
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)


def load_read_policy() -> RetryPolicy:
    """读路径策略（TASKBOARD_READ_* 环境变量）"""
    return RetryPolicy(
        max_attempts=config.READ_MAX_ATTEMPTS,
        initial_delay=config.READ_INITIAL_DELAY_S,
        max_delay=config.READ_MAX_DELAY_S,
    )


def load_write_policy() -> RetryPolicy:
    """写队列策略（TASKBOARD_WRITE_* 环境变量）"""
    return RetryPolicy(
        max_attempts=config.WRITE_MAX_ATTEMPTS,
        initial_delay=config.WRITE_INITIAL_DELAY_S,
        max_delay=config.WRITE_MAX_DELAY_S,
    )


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    max_delay: float = 5.0,
    sleep: Sleep = asyncio.sleep,
    operation_name: str = "operation",
    should_retry: ShouldRetry | None = None,
) -> T:
    """带指数退避地执行 operation

    Args:
        operation: 零参数协程工厂，每次尝试调用一次
        max_attempts: 最大尝试次数
        initial_delay: 首次重试前等待（秒）
        max_delay: 单次等待上限（秒）
        sleep: 等待函数，测试中可替换
        operation_name: 日志中的操作名
        should_retry: 判断异常是否值得重试，返回 False 时立即抛出；None 表示全部重试

    Returns:
        operation 首次成功的返回值

    Raises:
        Exception: 全部尝试失败或遇到不可重试的异常时，最后一次的异常
    """
    policy = RetryPolicy(
        max_attempts=max_attempts,
        initial_delay=initial_delay,
        max_delay=max_delay,
    )
    return await retry_with_policy(
        operation,
        policy,
        sleep=sleep,
        operation_name=operation_name,
        should_retry=should_retry,
    )


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    operation_name: str = "operation",
    should_retry: ShouldRetry | None = None,
) -> T:
    """同 retry_async，参数取自 RetryPolicy"""
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            retryable = should_retry is None or should_retry(e)
            final = not retryable or attempt >= policy.max_attempts
            delay = None if final else policy.delay_for(attempt)
            log.warning(
                "retry_attempt_failed",
                operation=operation_name,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                retryable=retryable,
                error=str(e),
                error_type=type(e).__name__,
                delay_s=delay,
            )
            if delay is None:
                raise
        await sleep(delay)

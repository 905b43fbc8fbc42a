"""WriteQueue -- 单集合写入串行化

每个集合显式构造一个实例（不使用模块级单例）。保证：
- 同一集合任意时刻最多一个写入在途
- 排队期间只写最新提交的快照（整文档覆盖，只有最终状态有意义），
  被取代的旧快照永远不会被写入或广播
- 写入失败按指数退避重试同一快照；重试耗尽只通知该批次的提交者，
  队列自行复位，后续提交不受影响
- should_retry 判定为不可重试的失败不再等待，批次立即失败

处理流程：
1. 取待写列表中最新的一项，之前的项视为被取代
2. commit(snapshot)；失败则 retry_count+1，等待 delay_for(n) 后重试同一快照
3. 成功：on_committed(snapshot) 广播，批次内所有 future 置成功
4. 耗尽或不可重试：批次内所有 future 置 WriteFailedError（attempts 为实际尝试次数）
5. 处理期间新到达的项保留，继续处理其中最新的一项
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from .exceptions import WriteFailedError
from .retry import RetryPolicy, ShouldRetry, Sleep

log = structlog.get_logger()

Commit = Callable[[Any], Awaitable[None]]
OnCommitted = Callable[[Any], Awaitable[None] | None]


@dataclass
class _PendingWrite:
    snapshot: Any
    future: asyncio.Future


class WriteQueue:
    """单集合写队列 -- 以处理标志 + 待写列表合并模拟互斥锁"""

    def __init__(
        self,
        collection: str,
        commit: Commit,
        *,
        on_committed: OnCommitted | None = None,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        should_retry: ShouldRetry | None = None,
    ) -> None:
        """
        Args:
            collection: 集合名（日志与错误信息用）
            commit: 持久化一次快照，失败时抛异常
            on_committed: 持久化成功后的回调（广播），同步或异步均可
            policy: 重试策略，默认 3 次、1s 起步、封顶 5s
            sleep: 等待函数，测试中可替换
            should_retry: 判断提交异常是否值得重试；返回 False 时该批次立即失败
        """
        self._collection = collection
        self._commit = commit
        self._on_committed = on_committed
        self._policy = policy or RetryPolicy(initial_delay=1.0, max_delay=5.0)
        self._sleep = sleep
        self._should_retry = should_retry

        self._pending: list[_PendingWrite] = []
        self._processing = False
        self._retry_count = 0
        self._drain_task: asyncio.Task | None = None

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def retry_count(self) -> int:
        return self._retry_count

    def submit(self, snapshot: Any) -> asyncio.Future:
        """提交快照，返回该快照所在批次的结果 future

        空闲时立即启动后台处理；处理中则只追加，等待当前写入结束。
        """
        loop = asyncio.get_running_loop()
        entry = _PendingWrite(snapshot=snapshot, future=loop.create_future())
        self._pending.append(entry)
        log.debug(
            "write_enqueued",
            collection=self._collection,
            pending=len(self._pending),
            processing=self._processing,
        )

        if not self._processing:
            self._processing = True
            self._drain_task = loop.create_task(self._drain())
        return entry.future

    async def enqueue(self, snapshot: Any) -> None:
        """提交快照并等待其批次落盘

        Raises:
            WriteFailedError: 该批次重试耗尽
        """
        # 调用方被取消时不影响队列内的 future
        await asyncio.shield(self.submit(snapshot))

    async def wait_idle(self) -> None:
        """等待当前所有待写项处理完毕"""
        while self._drain_task is not None:
            await asyncio.shield(self._drain_task)

    async def _drain(self) -> None:
        try:
            while self._pending:
                batch_size = len(self._pending)
                target = self._pending[batch_size - 1]
                if batch_size > 1:
                    log.debug(
                        "write_superseded",
                        collection=self._collection,
                        dropped=batch_size - 1,
                    )

                error = await self._commit_with_retry(target.snapshot)

                batch = self._pending[:batch_size]
                del self._pending[:batch_size]
                self._retry_count = 0
                self._settle(batch, error)
        except BaseException:
            for entry in self._pending:
                if not entry.future.done():
                    entry.future.cancel()
            self._pending.clear()
            raise
        finally:
            self._processing = False
            self._drain_task = None

    async def _commit_with_retry(self, snapshot: Any) -> WriteFailedError | None:
        """写入同一快照直至成功、尝试次数耗尽或遇到不可重试的错误，返回失败原因或 None"""
        max_attempts = self._policy.max_attempts
        attempt = 0

        while True:
            attempt += 1
            try:
                await self._commit(snapshot)
            except Exception as e:
                self._retry_count = attempt
                retryable = self._should_retry is None or self._should_retry(e)
                log.warning(
                    "write_attempt_failed",
                    collection=self._collection,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    retryable=retryable,
                    pending=len(self._pending),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                if retryable and attempt < max_attempts:
                    await self._sleep(self._policy.delay_for(attempt))
                    continue
                return self._failure(attempt, e, exhausted=retryable)

            await self._notify(snapshot)
            log.info(
                "write_committed",
                collection=self._collection,
                attempts=attempt,
            )
            return None

    def _failure(
        self, attempts: int, error: Exception, *, exhausted: bool
    ) -> WriteFailedError:
        log.error(
            "write_retries_exhausted" if exhausted else "write_rejected",
            collection=self._collection,
            attempts=attempts,
            error=str(error),
        )
        failure = WriteFailedError(self._collection, attempts, error)
        failure.__cause__ = error
        return failure

    async def _notify(self, snapshot: Any) -> None:
        if self._on_committed is None:
            return
        try:
            result = self._on_committed(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # 已落盘的写入不因广播失败而重试
            log.error(
                "write_notify_failed",
                collection=self._collection,
                error=str(e),
                error_type=type(e).__name__,
            )

    @staticmethod
    def _settle(batch: list[_PendingWrite], error: WriteFailedError | None) -> None:
        for entry in batch:
            if entry.future.done():
                continue
            if error is None:
                entry.future.set_result(None)
            else:
                entry.future.set_exception(error)

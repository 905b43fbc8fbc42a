"""UpdateHub -- 内存中的快照广播器

每个订阅者持有一个 asyncio.Queue，支持 connect/disconnect/publish。
与传输层无关：SSE 路由只是把队列里的 BoardUpdate 转成事件流。

- connect: 推送 tasks、users 两个集合的最新快照（全量回放，非增量）后注册
- publish: 写入成功后记录最新快照并推送给所有订阅者；
  单个订阅者失败只记录并移除，不影响其他订阅者，也不向上抛出
- 被移除的订阅者队列会被清空并放入 SUBSCRIPTION_CLOSED，
  消费方读到它即应结束，重连后从全量回放重新开始
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from taskboard.core.models import BoardUpdate, Collection

log = structlog.get_logger()

SnapshotLoader = Callable[[Collection], Awaitable[list[dict[str, Any]]]]

# 订阅已被 hub 移除
SUBSCRIPTION_CLOSED = None


class UpdateHub:
    """快照广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(
        self,
        loader: SnapshotLoader | None = None,
        queue_maxsize: int = 100,
    ) -> None:
        """
        Args:
            loader: 缓存缺失时按集合读取当前快照（通常是 store.read_records）
            queue_maxsize: 每个订阅者的缓冲上限，写满视为失效订阅者；
                0 表示不限，否则至少要容纳一次全量回放

        Raises:
            ValueError: queue_maxsize 小于集合数
        """
        if 0 < queue_maxsize < len(Collection):
            raise ValueError(
                f"queue_maxsize must be 0 or at least {len(Collection)}, "
                f"got {queue_maxsize}"
            )
        self._subscribers: set[asyncio.Queue] = set()
        self._latest: dict[Collection, list[dict[str, Any]]] = {}
        self._loader = loader
        self._queue_maxsize = queue_maxsize

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def latest(self, collection: Collection) -> list[dict[str, Any]] | None:
        """最近一次已提交（或已加载）的快照"""
        return self._latest.get(collection)

    async def connect(self) -> asyncio.Queue:
        """回放全部集合的最新快照并注册订阅者

        Returns:
            asyncio.Queue 实例，回放与后续更新都会被推送到此队列
        """
        for collection in Collection:
            if collection not in self._latest and self._loader is not None:
                records = await self._loader(collection)
                # 加载期间若已有提交，以提交的快照为准
                self._latest.setdefault(collection, records)

        # 回放与注册之间没有 await，保证不会错过或重复任何一次提交
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        for collection in Collection:
            queue.put_nowait(
                BoardUpdate(type=collection, data=self._latest.get(collection, []))
            )
        self._subscribers.add(queue)

        log.info("subscriber_connected", subscribers=len(self._subscribers))
        return queue

    async def disconnect(self, queue: asyncio.Queue) -> None:
        """取消订阅

        Args:
            queue: 之前 connect 返回的队列
        """
        self._subscribers.discard(queue)
        log.info("subscriber_disconnected", subscribers=len(self._subscribers))

    def publish(self, collection: Collection, records: list[dict[str, Any]]) -> int:
        """向所有订阅者广播一次已提交的快照

        Args:
            collection: 集合名
            records: 完整快照记录列表

        Returns:
            成功投递的订阅者数量
        """
        collection = Collection(collection)
        self._latest[collection] = records
        update = BoardUpdate(type=collection, data=records)

        delivered = 0
        dead_queues = []
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(update)
                delivered += 1
            except asyncio.QueueFull:
                dead_queues.append(queue)
            except Exception as e:
                log.error(
                    "subscriber_delivery_failed",
                    collection=collection.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                dead_queues.append(queue)

        # 清理已满或异常的队列
        for q in dead_queues:
            self._close(q)
        if dead_queues:
            log.warning(
                "subscribers_dropped",
                collection=collection.value,
                dropped=len(dead_queues),
            )

        log.debug(
            "update_published",
            collection=collection.value,
            records=len(records),
            delivered=delivered,
        )
        return delivered

    def _close(self, queue: asyncio.Queue) -> None:
        """移除订阅者，丢弃未读内容并放入 SUBSCRIPTION_CLOSED"""
        self._subscribers.discard(queue)
        while True:
            try:
                queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        queue.put_nowait(SUBSCRIPTION_CLOSED)

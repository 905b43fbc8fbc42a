"""BoardService -- 快照读写业务逻辑

每个集合装配一条独立管线：
PUT 请求体 → 校验/规范化 → WriteQueue（串行、合并、重试）
→ JsonSnapshotStore（原子落盘）→ UpdateHub（广播）
"""

import asyncio
from typing import Any

import structlog
from taskboard.core.exceptions import SnapshotWriteError
from taskboard.core.models import Collection
from taskboard.core.retry import RetryPolicy, Sleep, load_write_policy
from taskboard.core.store import SnapshotStore, StoreGroup
from taskboard.core.validation import extract_snapshot
from taskboard.core.write_queue import WriteQueue

from .update_hub import UpdateHub

log = structlog.get_logger()


class BoardService:
    """看板快照服务 -- 持有每个集合的写队列"""

    def __init__(
        self,
        store_group: StoreGroup,
        hub: UpdateHub,
        write_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._stores = store_group
        self._hub = hub
        policy = write_policy or load_write_policy()
        self._queues: dict[Collection, WriteQueue] = {
            collection: self._build_queue(collection, policy, sleep)
            for collection in Collection
        }

    def _build_queue(
        self, collection: Collection, policy: RetryPolicy, sleep: Sleep
    ) -> WriteQueue:
        store: SnapshotStore = self._stores.for_collection(collection)

        async def commit(records: list[dict[str, Any]]) -> None:
            if not await store.write_records(records):
                raise SnapshotWriteError(collection.value)

        def on_committed(records: list[dict[str, Any]]) -> None:
            self._hub.publish(collection, records)

        return WriteQueue(
            collection.value,
            commit,
            on_committed=on_committed,
            policy=policy,
            sleep=sleep,
        )

    def queue_for(self, collection: Collection) -> WriteQueue:
        return self._queues[collection]

    async def get_snapshot(self, collection: Collection) -> list[dict[str, Any]]:
        """读取集合当前快照"""
        return await self._stores.for_collection(collection).read_records()

    async def replace_snapshot(self, collection: Collection, body: Any) -> None:
        """校验并整体替换集合快照，等待写入结果

        Raises:
            SnapshotValidationError: 请求体结构非法（不入队）
            WriteFailedError: 写入重试耗尽
        """
        records = extract_snapshot(collection, body)
        log.info(
            "snapshot_replace_requested",
            collection=collection.value,
            records=len(records),
        )
        await self._queues[collection].enqueue(records)

    async def drain(self) -> None:
        """等待所有集合的待写项处理完毕（关闭前调用）"""
        for queue in self._queues.values():
            await queue.wait_idle()

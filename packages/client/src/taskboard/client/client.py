"""BoardClient -- 看板服务 HTTP 客户端

读：GET 带指数退避重试，结果按服务端相同规则规范化。
连接失败与 5xx 会重试；4xx 是请求本身有误，立即失败。
写：每个集合一个 WriteQueue，commit 即 PUT 整集合快照；
    连续保存时只有最新快照会被发送。
"""

import asyncio
from typing import Any

import httpx
import structlog
from taskboard.core import board
from taskboard.core.models import Collection
from taskboard.core.retry import (
    RetryPolicy,
    Sleep,
    load_read_policy,
    load_write_policy,
    retry_with_policy,
)
from taskboard.core.validation import normalize_records
from taskboard.core.write_queue import WriteQueue

from .config import ClientConfig, load_client_config
from .exceptions import ApiResponseError, ApiUnreachableError, ClientError

log = structlog.get_logger()

Record = dict[str, Any]

# 连接类异常类型集合（转换为 ApiUnreachableError）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
    httpx.NetworkError,
)


def _is_retryable(error: Exception) -> bool:
    """4xx 等不可恢复的 ClientError 不重试，其余异常照常退避"""
    if isinstance(error, ClientError):
        return error.recoverable
    return True


def _error_message(response: httpx.Response) -> str:
    """取服务端 {"error": "..."} 中的文本，取不到时用响应原文"""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return response.text


class BoardClient:
    """看板服务客户端

    用法::

        async with BoardClient() as client:
            tasks = await client.get_tasks()
            await client.move_task(tasks[0]["id"], "done")
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        read_policy: RetryPolicy | None = None,
        write_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Args:
            config: 客户端配置，None 时从环境变量加载
            http_client: 外部传入的 httpx 客户端（测试注入 MockTransport / ASGITransport）
            read_policy: GET 重试策略，默认 TASKBOARD_READ_*
            write_policy: 写队列重试策略，默认 TASKBOARD_WRITE_*
            sleep: 等待函数，测试中可替换
        """
        self._config = config or load_client_config()
        self._http = http_client
        self._owns_http = http_client is None
        self._read_policy = read_policy or load_read_policy()
        self._sleep = sleep

        policy = write_policy or load_write_policy()
        self._queues: dict[Collection, WriteQueue] = {
            collection: WriteQueue(
                collection.value,
                self._make_commit(collection),
                policy=policy,
                sleep=sleep,
                should_retry=_is_retryable,
            )
            for collection in Collection
        }

    async def __aenter__(self) -> "BoardClient":
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._config.api_url,
                timeout=self._config.timeout_s,
            )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """等待待写快照发送完毕，关闭自建的 HTTP 客户端"""
        for queue in self._queues.values():
            await queue.wait_idle()
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    def queue_for(self, collection: Collection) -> WriteQueue:
        return self._queues[collection]

    # ---- HTTP ----

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._http is None:
            raise RuntimeError("BoardClient 未打开，请使用 async with")
        try:
            response = await self._http.request(method, path, **kwargs)
        except _CONNECTION_ERROR_TYPES as e:
            raise ApiUnreachableError(self._config.api_url, e) from e

        if response.status_code >= 400:
            raise ApiResponseError(response.status_code, _error_message(response))
        return response

    async def _fetch(self, collection: Collection) -> list[Record]:
        async def get_once() -> list[Record]:
            response = await self._request("GET", f"/api/{collection.value}")
            data = response.json()
            if not isinstance(data, list):
                raise ApiResponseError(
                    response.status_code, f"{collection.value} must be an array"
                )
            return data

        records = await retry_with_policy(
            get_once,
            self._read_policy,
            sleep=self._sleep,
            operation_name=f"get_{collection.value}",
            should_retry=_is_retryable,
        )
        return normalize_records(collection, records)

    def _make_commit(self, collection: Collection):
        async def commit(records: list[Record]) -> None:
            await self._request(
                "PUT",
                f"/api/{collection.value}",
                json={collection.root_key: records},
            )
            log.debug(
                "snapshot_saved",
                collection=collection.value,
                records=len(records),
            )

        return commit

    # ---- 集合读写 ----

    async def get_tasks(self) -> list[Record]:
        """读取任务快照（缺失的 order/status/createdAt 已补齐）"""
        return await self._fetch(Collection.TASKS)

    async def get_users(self) -> list[Record]:
        return await self._fetch(Collection.USERS)

    async def save_tasks(self, tasks: list[Record]) -> None:
        """整体保存任务快照

        Raises:
            WriteFailedError: 重试耗尽或被服务端以 4xx 拒绝，__cause__ 为最后一次的 ClientError
        """
        await self._queues[Collection.TASKS].enqueue(tasks)

    async def save_users(self, users: list[Record]) -> None:
        await self._queues[Collection.USERS].enqueue(users)

    # ---- 看板操作 ----

    async def create_task(self, draft: Record, creator: Record) -> Record:
        """新建任务并保存，返回新任务"""
        tasks, task = board.add_task(await self.get_tasks(), draft, creator)
        await self.save_tasks(tasks)
        return task

    async def update_task(self, task_id: str, changes: Record) -> list[Record]:
        tasks = board.update_task(await self.get_tasks(), task_id, changes)
        await self.save_tasks(tasks)
        return tasks

    async def move_task(self, task_id: str, status: str) -> list[Record]:
        """拖到另一列"""
        tasks = board.move_task(await self.get_tasks(), task_id, status)
        await self.save_tasks(tasks)
        return tasks

    async def reorder_tasks(
        self, active_id: str, over_id: str, category: str
    ) -> list[Record]:
        """同列同类别内调整顺序"""
        tasks = board.reorder_tasks(await self.get_tasks(), active_id, over_id, category)
        await self.save_tasks(tasks)
        return tasks

    async def delete_task(self, task_id: str) -> list[Record]:
        tasks = board.delete_task(await self.get_tasks(), task_id)
        await self.save_tasks(tasks)
        return tasks

    async def save_user(self, user: Record) -> list[Record]:
        """新增或更新用户"""
        users = board.upsert_user(await self.get_users(), user)
        await self.save_users(users)
        return users

    async def remove_user(self, user_id: str) -> list[Record]:
        users = board.delete_user(await self.get_users(), user_id)
        await self.save_users(users)
        return users

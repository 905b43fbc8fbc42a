"""BoardSync -- 实时通道消费者

订阅 GET /api/stream，把 update 事件应用到本地 BoardState 镜像并通知监听器。
每次连接服务端都会先回放两个集合的完整快照，因此重连后无需额外补拉。
断线后按 1s 起步、翻倍、封顶 5s 的间隔重连，直到 stop()。
"""

import asyncio
import contextlib
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from pydantic import ValidationError
from taskboard.core.models import BoardUpdate, Collection
from taskboard.core.retry import Sleep

from .config import ClientConfig, load_client_config

log = structlog.get_logger()

Listener = Callable[[BoardUpdate], Awaitable[None] | None]

STREAM_PATH = "/api/stream"


class BoardState:
    """本地看板镜像 -- 每个集合保存最近一次收到的完整快照"""

    def __init__(self) -> None:
        self.tasks: list[dict[str, Any]] = []
        self.users: list[dict[str, Any]] = []

    def apply(self, update: BoardUpdate) -> None:
        """整集合替换，不做合并"""
        if update.type is Collection.TASKS:
            self.tasks = list(update.data)
        else:
            self.users = list(update.data)

    def tasks_in(self, status: str, category: str) -> list[dict[str, Any]]:
        """某一列某一类别下的任务，按 order 升序"""
        return sorted(
            (
                task
                for task in self.tasks
                if task.get("status") == status and task.get("category") == category
            ),
            key=lambda task: task.get("order", 0),
        )


class BoardSync:
    """实时同步客户端"""

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        state: BoardState | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config or load_client_config()
        self._http = http_client
        self._owns_http = http_client is None
        self.state = state or BoardState()
        self._sleep = sleep

        self._listeners: list[Listener] = []
        self._stopped = False
        self._task: asyncio.Task | None = None
        self._retry_delay = self._config.reconnect_initial_delay

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def start(self) -> asyncio.Task:
        """在后台任务中运行 run()"""
        if self._task is None or self._task.done():
            self._stopped = False
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        """停止重连；在后台任务之外调用时同时取消当前连接"""
        self._stopped = True
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        self.stop()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def run(self) -> None:
        """连接 → 消费 → 断线等待 → 重连，直到 stop()"""
        if self._http is None:
            # 流式连接不设读超时，服务端心跳保活
            self._http = httpx.AsyncClient(
                base_url=self._config.api_url,
                timeout=httpx.Timeout(self._config.timeout_s, read=None),
            )

        self._retry_delay = self._config.reconnect_initial_delay
        while not self._stopped:
            try:
                await self._consume()
                log.info("stream_closed")
            except (httpx.HTTPError, OSError) as e:
                log.warning(
                    "stream_connection_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

            if self._stopped:
                break
            log.info("stream_reconnecting", delay_s=self._retry_delay)
            await self._sleep(self._retry_delay)
            self._retry_delay = min(
                self._retry_delay * 2, self._config.reconnect_max_delay
            )

    async def _consume(self) -> None:
        async with self._http.stream("GET", STREAM_PATH) as response:
            response.raise_for_status()
            # 连接成功，重置退避
            self._retry_delay = self._config.reconnect_initial_delay
            log.info("stream_connected")

            data_lines: list[str] = []
            async for line in response.aiter_lines():
                if line.startswith("data:"):
                    data_lines.append(line[5:].lstrip())
                elif line == "" and data_lines:
                    await self._handle("\n".join(data_lines))
                    data_lines = []
                if self._stopped:
                    return

            if data_lines:
                await self._handle("\n".join(data_lines))

    async def _handle(self, payload: str) -> None:
        try:
            update = BoardUpdate.model_validate_json(payload)
        except ValidationError as e:
            log.warning("stream_payload_invalid", error=str(e))
            return

        self.state.apply(update)
        for listener in list(self._listeners):
            try:
                result = listener(update)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log.error(
                    "stream_listener_failed",
                    collection=update.type.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

"""SSE 实时同步路由

GET /api/stream: SSE 推送看板快照更新。
连接建立后先推送 tasks、users 两个 update 事件（全量回放），
之后每次写入成功推送一个 update 事件；心跳保活。
订阅者被 hub 移除（缓冲写满）时流结束，客户端重连后重新回放。
"""

import asyncio
import json
from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse
from taskboard.core.config import SSE_HEARTBEAT_INTERVAL
from taskboard.core.models import BoardUpdate

from ..deps import get_update_hub
from ..services.update_hub import SUBSCRIPTION_CLOSED, UpdateHub

log = structlog.get_logger()

router = APIRouter()

UPDATE_EVENT = "update"


def _update_to_sse(update: BoardUpdate) -> dict:
    """将 BoardUpdate 转换为 SSE 事件"""
    return {
        "event": UPDATE_EVENT,
        "data": json.dumps(update.model_dump(mode="json"), ensure_ascii=False),
    }


async def update_events(request: Request, hub: UpdateHub) -> AsyncIterator[dict]:
    """订阅 hub 并把队列转成 SSE 事件

    订阅在首次迭代时建立，响应未开始发送就断开的连接不会留下订阅者。
    客户端断开或被 hub 移除时结束并注销订阅。
    """
    queue = await hub.connect()
    try:
        while True:
            if await request.is_disconnected():
                return
            try:
                update = await asyncio.wait_for(
                    queue.get(), timeout=SSE_HEARTBEAT_INTERVAL
                )
            except TimeoutError:
                yield {"comment": "heartbeat"}
                continue
            if update is SUBSCRIPTION_CLOSED:
                log.warning("sse_subscription_closed")
                return
            yield _update_to_sse(update)
    finally:
        await hub.disconnect(queue)


@router.get("/api/stream")
async def stream_updates(
    request: Request,
    hub: UpdateHub = Depends(get_update_hub),
):
    """SSE 事件流端点

    1. 注册到 UpdateHub，立即收到两个集合的最新快照
    2. 实时推送后续写入
    3. 心跳保活；客户端断开或消费过慢被移除时结束，客户端重连即可
    """
    return EventSourceResponse(update_events(request, hub))

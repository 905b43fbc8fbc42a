"""LoggingMiddleware -- 看板请求日志

每个请求绑定 request_id（沿用客户端的 X-Request-ID，否则生成 ULID），
快照读写请求额外绑定 collection，写队列与存储层在同一请求内的日志都会带上它。
结束时记录状态码与耗时：4xx/5xx 为 warning，/health、/ready 探活降为 debug。
/api/stream 的耗时只到响应头发出为止，流本身的生命周期由 SSE 路由记录。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from taskboard.core.models import Collection
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"

_COLLECTION_PATHS = {f"/api/{c.value}": c.value for c in Collection}
_PROBE_PATHS = frozenset({"/health", "/ready"})


def collection_for_path(path: str) -> str | None:
    """/api/tasks -> "tasks"，非快照路径返回 None"""
    return _COLLECTION_PATHS.get(path.rstrip("/"))


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(ULID())
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )
        collection = collection_for_path(path)
        if collection is not None:
            structlog.contextvars.bind_contextvars(collection=collection)

        log = structlog.get_logger()
        started = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - started) * 1000, 1)

        if response.status_code >= 400:
            await log.awarning(
                "request_failed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
        elif path in _PROBE_PATHS:
            await log.adebug("request_completed", status_code=response.status_code)
        else:
            await log.ainfo(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

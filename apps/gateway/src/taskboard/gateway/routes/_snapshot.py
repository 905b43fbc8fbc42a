"""集合快照路由的公共处理 -- tasks / users 两个路由共用

GET 返回集合当前记录数组；
PUT 接收 {"<collection>": [...]}，校验后入写队列并等待落盘结果：
  成功 {"success": true}；结构非法 400；写入失败 500，均为 {"error": "<message>"}。
"""

import structlog
from fastapi import Request
from starlette.responses import JSONResponse
from taskboard.core.exceptions import SnapshotValidationError, WriteFailedError
from taskboard.core.models import Collection

from ..services.board_service import BoardService

log = structlog.get_logger()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def read_snapshot(service: BoardService, collection: Collection):
    """GET 处理：返回记录数组"""
    try:
        return await service.get_snapshot(collection)
    except Exception as e:
        log.error(
            "snapshot_read_failed",
            collection=collection.value,
            error=str(e),
            error_type=type(e).__name__,
        )
        return error_response(500, f"Failed to read {collection.value}")


async def replace_snapshot(
    request: Request, service: BoardService, collection: Collection
):
    """PUT 处理：校验 → 入队 → 等待写入结果"""
    try:
        body = await request.json()
    except ValueError:
        return error_response(400, "Request body must be valid JSON")

    try:
        await service.replace_snapshot(collection, body)
    except SnapshotValidationError as e:
        log.info("snapshot_rejected", collection=collection.value, reason=str(e))
        return error_response(400, str(e))
    except WriteFailedError as e:
        return error_response(500, f"Failed to write {collection.value}: {e.original_error}")

    return {"success": True}

"""任务快照路由

GET /api/tasks: 当前任务快照数组。
PUT /api/tasks: 以 {"tasks": [...]} 整体替换任务快照。
"""

from fastapi import APIRouter, Depends, Request
from taskboard.core.models import Collection

from ..deps import get_board_service
from ..services.board_service import BoardService
from ._snapshot import read_snapshot, replace_snapshot

router = APIRouter()


@router.get("/api/tasks")
async def list_tasks(service: BoardService = Depends(get_board_service)):
    """查询全部任务（由前端按 status/category/order 分列排序）"""
    return await read_snapshot(service, Collection.TASKS)


@router.put("/api/tasks")
async def put_tasks(
    request: Request,
    service: BoardService = Depends(get_board_service),
):
    """整体替换任务快照，缺失的 order/status/createdAt 由服务端补齐"""
    return await replace_snapshot(request, service, Collection.TASKS)

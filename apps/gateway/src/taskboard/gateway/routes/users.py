"""用户快照路由 -- 管理面板使用

GET /api/users: 当前用户快照数组。
PUT /api/users: 以 {"users": [...]} 整体替换用户快照（isAdmin 由 roles 派生）。
"""

from fastapi import APIRouter, Depends, Request
from taskboard.core.models import Collection

from ..deps import get_board_service
from ..services.board_service import BoardService
from ._snapshot import read_snapshot, replace_snapshot

router = APIRouter()


@router.get("/api/users")
async def list_users(service: BoardService = Depends(get_board_service)):
    """查询全部用户"""
    return await read_snapshot(service, Collection.USERS)


@router.put("/api/users")
async def put_users(
    request: Request,
    service: BoardService = Depends(get_board_service),
):
    """整体替换用户快照"""
    return await replace_snapshot(request, service, Collection.USERS)

"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from taskboard.core.store import StoreGroup

from .services.board_service import BoardService
from .services.update_hub import UpdateHub


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_update_hub(request: Request) -> UpdateHub:
    """从 app.state 获取 UpdateHub 实例"""
    return request.app.state.update_hub


def get_board_service(request: Request) -> BoardService:
    """从 app.state 获取 BoardService 实例"""
    return request.app.state.board_service

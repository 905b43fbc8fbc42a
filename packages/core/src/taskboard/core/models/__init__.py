"""Taskboard Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    INITIAL_STATUS,
    Collection,
    TaskCategory,
    TaskStatus,
    UserRole,
)
from .task import Task
from .update import BoardUpdate
from .user import User, derive_is_admin

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskCategory",
    "UserRole",
    "Collection",
    "INITIAL_STATUS",
    # 记录
    "Task",
    "User",
    "derive_is_admin",
    # 实时通道
    "BoardUpdate",
]

"""枚举定义

包含 TaskStatus 看板列、TaskCategory 任务类别、UserRole 用户角色，
以及 Collection 快照集合名和各集合的根键。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """看板列（任务状态）"""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


# 缺省状态：新建或缺失 status 的任务落在第一列
INITIAL_STATUS: TaskStatus = TaskStatus.TODO


class TaskCategory(StrEnum):
    """任务类别 -- 与非 admin 角色一一对应"""

    BUILDER = "builder"
    DEVELOPER = "developer"
    DESIGNER = "designer"


class UserRole(StrEnum):
    """用户角色"""

    ADMIN = "admin"
    BUILDER = "builder"
    DEVELOPER = "developer"
    DESIGNER = "designer"


class Collection(StrEnum):
    """快照集合 -- 集合名同时是持久化文档的根键"""

    TASKS = "tasks"
    USERS = "users"

    @property
    def root_key(self) -> str:
        return self.value

    def empty_document(self) -> dict[str, list]:
        """空集合的默认文档，如 {"tasks": []}"""
        return {self.root_key: []}

"""Task Domain Model

线上与落盘格式均为 camelCase（createdAt、assignedTo ...），
Python 侧通过 pydantic alias 使用 snake_case 属性。
未知字段原样保留，快照整体覆盖写时不会丢字段。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import INITIAL_STATUS, TaskCategory, TaskStatus


class Task(BaseModel):
    """看板任务

    order 决定任务在 (status, category) 分区内的位置；
    输入允许出现空洞或重复，缺失时由规范化按数组下标补齐。
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(description="唯一标识")
    title: str = Field(default="", description="标题")
    description: str = Field(default="", description="描述")
    deadline: str | None = Field(default=None, description="截止时间（ISO 8601）")
    category: TaskCategory = Field(description="任务类别")
    status: TaskStatus = Field(default=INITIAL_STATUS, description="所在看板列")
    created_at: datetime | None = Field(
        default=None, alias="createdAt", description="创建时间"
    )
    assigned_to: str = Field(default="", alias="assignedTo", description="负责人 user id")
    created_by: str = Field(default="", alias="createdBy", description="创建者 user id")
    order: int = Field(default=0, description="分区内排序位置")

    @property
    def partition(self) -> tuple[TaskStatus, TaskCategory]:
        """排序分区键"""
        return self.status, self.category

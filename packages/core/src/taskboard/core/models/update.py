"""BoardUpdate -- 实时通道消息

每次写入成功后广播 {type: <集合名>, data: <完整快照记录列表>}。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import Collection


class BoardUpdate(BaseModel):
    """实时 update 事件载荷"""

    type: Collection = Field(description="集合名")
    data: list[dict[str, Any]] = Field(default_factory=list, description="集合完整快照")

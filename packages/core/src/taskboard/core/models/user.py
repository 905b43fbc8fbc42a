"""User Domain Model

isAdmin 是派生字段：当且仅当 roles 包含 admin。
password 仅为哈希值，本包不做任何解释。
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import UserRole


def derive_is_admin(roles: Iterable[str]) -> bool:
    """isAdmin 的唯一来源：roles 含 admin"""
    return UserRole.ADMIN.value in roles


class User(BaseModel):
    """看板用户"""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(description="唯一标识")
    email: str = Field(description="邮箱（唯一性由上层保证）")
    full_name: str = Field(default="", alias="fullName", description="姓名")
    avatar_url: str | None = Field(default=None, alias="avatarUrl", description="头像 URL")
    is_admin: bool = Field(default=False, alias="isAdmin", description="是否管理员（派生）")
    roles: list[UserRole] = Field(default_factory=list, description="角色集合")
    password: str = Field(default="", description="密码哈希")

    @model_validator(mode="after")
    def _derive_is_admin(self) -> "User":
        self.is_admin = derive_is_admin(self.roles)
        return self

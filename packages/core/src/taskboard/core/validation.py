"""快照校验与规范化

写入队列之前修复部分/旧格式记录：
- order 缺失或非数值时取其在输入数组中的下标
- status 缺失时取初始列 todo
- createdAt 缺失时取当前时间
顶层结构错误（不是记录数组）直接拒绝，不做强制转换。
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from .exceptions import SnapshotValidationError
from .models import INITIAL_STATUS, Collection, derive_is_admin


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _is_number(value: Any) -> bool:
    # bool 是 int 子类，但不是合法的 order
    return isinstance(value, int | float) and not isinstance(value, bool)


def _require_records(raw: Any, collection: Collection) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        raise SnapshotValidationError(
            f"{collection.value} must be an array", collection=collection.value
        )
    for index, record in enumerate(raw):
        if not isinstance(record, Mapping):
            raise SnapshotValidationError(
                f"{collection.value}[{index}] must be an object",
                collection=collection.value,
            )
    return [dict(record) for record in raw]


def normalize_tasks(raw: Any, now: str | None = None) -> list[dict[str, Any]]:
    """规范化任务列表

    Args:
        raw: 待校验的任务记录列表
        now: 补齐 createdAt 使用的时间戳，None 取当前 UTC 时间

    Returns:
        新列表，原输入不被修改

    Raises:
        SnapshotValidationError: raw 不是对象数组
    """
    tasks = _require_records(raw, Collection.TASKS)
    created_at = now or _now_iso()
    for index, task in enumerate(tasks):
        if not _is_number(task.get("order")):
            task["order"] = index
        if not task.get("status"):
            task["status"] = INITIAL_STATUS.value
        if not task.get("createdAt"):
            task["createdAt"] = created_at
    return tasks


def normalize_users(raw: Any) -> list[dict[str, Any]]:
    """规范化用户列表：补齐 roles，并由 roles 派生 isAdmin"""
    users = _require_records(raw, Collection.USERS)
    for user in users:
        roles = user.get("roles")
        if not isinstance(roles, list):
            roles = []
        user["roles"] = roles
        user["isAdmin"] = derive_is_admin(roles)
    return users


def normalize_records(collection: Collection, raw: Any) -> list[dict[str, Any]]:
    """按集合分派规范化"""
    if collection is Collection.TASKS:
        return normalize_tasks(raw)
    return normalize_users(raw)


def extract_snapshot(collection: Collection, body: Any) -> list[dict[str, Any]]:
    """从 PUT 请求体 {"<collection>": [...]} 中取出并规范化快照

    Raises:
        SnapshotValidationError: 请求体不是对象或缺少根键数组
    """
    if not isinstance(body, Mapping) or collection.root_key not in body:
        raise SnapshotValidationError(
            f"body must be an object with a '{collection.root_key}' array",
            collection=collection.value,
        )
    return normalize_records(collection, body[collection.root_key])

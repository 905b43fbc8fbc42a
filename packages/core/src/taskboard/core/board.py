"""看板操作 -- 基于整集合快照的纯函数

客户端在本地快照上计算出下一版完整快照，再整体提交给写队列。
所有函数返回新列表，不修改入参。
新建任务与新增/修改用户经 Task / User 模型校验后再落回 camelCase 字典，
非法类别、状态、角色在这里抛出 pydantic ValidationError。
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from ulid import ULID

from .exceptions import PermissionDeniedError, RecordNotFoundError
from .models import (
    INITIAL_STATUS,
    Task,
    TaskCategory,
    TaskStatus,
    User,
    derive_is_admin,
)

Record = dict[str, Any]

# 由服务端维护、不允许通过 update_task 直接改写的字段
_PROTECTED_TASK_FIELDS = frozenset({"id", "createdAt", "createdBy"})


def _roles_of(user: Mapping[str, Any]) -> list[str]:
    return list(user.get("roles") or [])


def is_admin(user: Mapping[str, Any]) -> bool:
    """当且仅当 roles 含 admin"""
    return derive_is_admin(_roles_of(user))


def available_categories(user: Mapping[str, Any]) -> list[TaskCategory]:
    """用户可创建任务的类别：admin 全部，否则为其角色中属于类别的部分"""
    if is_admin(user):
        return list(TaskCategory)
    roles = _roles_of(user)
    return [category for category in TaskCategory if category.value in roles]


def _find_index(records: list[Record], record_id: str, kind: str) -> int:
    for index, record in enumerate(records):
        if record.get("id") == record_id:
            return index
    raise RecordNotFoundError(kind, record_id)


def _order_key(task: Mapping[str, Any]) -> float:
    order = task.get("order")
    if isinstance(order, int | float) and not isinstance(order, bool):
        return order
    return 0


def add_task(
    tasks: list[Record],
    draft: Mapping[str, Any],
    creator: Mapping[str, Any],
    now: datetime | None = None,
) -> tuple[list[Record], Record]:
    """新建任务并追加到快照末尾

    Args:
        tasks: 当前任务快照
        draft: 表单字段（title/description/deadline/category/assignedTo）
        creator: 创建者用户记录
        now: 创建时间，None 取当前 UTC 时间

    Returns:
        (新快照, 新任务)

    Raises:
        PermissionDeniedError: 创建者没有该类别的角色且不是 admin
    """
    category = TaskCategory(draft["category"])
    if category not in available_categories(creator):
        raise PermissionDeniedError(
            f"user {creator.get('id')} cannot create {category.value} tasks"
        )

    model = Task.model_validate(
        {
            **dict(draft),
            "id": str(ULID()),
            "category": category,
            "status": INITIAL_STATUS,
            "createdAt": now or datetime.now(UTC),
            "createdBy": creator.get("id", ""),
            "order": len(tasks),
        }
    )
    task: Record = model.model_dump(by_alias=True, mode="json")
    return [*tasks, task], task


def update_task(
    tasks: list[Record], task_id: str, changes: Mapping[str, Any]
) -> list[Record]:
    """修改任务字段（id/createdAt/createdBy 不可改）"""
    index = _find_index(tasks, task_id, "task")
    patch = {k: v for k, v in changes.items() if k not in _PROTECTED_TASK_FIELDS}
    updated = [dict(task) for task in tasks]
    updated[index].update(patch)
    return updated


def delete_task(tasks: list[Record], task_id: str) -> list[Record]:
    """删除任务"""
    _find_index(tasks, task_id, "task")
    return [dict(task) for task in tasks if task.get("id") != task_id]


def move_task(tasks: list[Record], task_id: str, status: str) -> list[Record]:
    """把任务拖到另一列（仅改 status）"""
    return update_task(tasks, task_id, {"status": TaskStatus(status).value})


def reorder_tasks(
    tasks: list[Record],
    active_id: str,
    over_id: str,
    category: str,
) -> list[Record]:
    """在同一 (status, category) 分区内把 active 拖到 over 的位置

    分区按 order 排序后做数组移动，并把整个分区的 order 重写为 0..n-1；
    分区外的任务保持不变。active 与 over 不在同一分区时原样返回。
    """
    active = tasks[_find_index(tasks, active_id, "task")]
    _find_index(tasks, over_id, "task")
    if active_id == over_id:
        return [dict(task) for task in tasks]

    status = active.get("status")
    partition = sorted(
        (
            task
            for task in tasks
            if task.get("status") == status and task.get("category") == category
        ),
        key=_order_key,
    )
    ids = [task.get("id") for task in partition]
    if active_id not in ids or over_id not in ids:
        return [dict(task) for task in tasks]

    old_index = ids.index(active_id)
    new_index = ids.index(over_id)
    ids.insert(new_index, ids.pop(old_index))
    new_orders = {task_id: position for position, task_id in enumerate(ids)}

    reordered = []
    for task in tasks:
        task = dict(task)
        if task.get("id") in new_orders:
            task["order"] = new_orders[task["id"]]
        reordered.append(task)
    return reordered


def upsert_user(users: list[Record], user: Mapping[str, Any]) -> list[Record]:
    """新增或替换用户（按 id），isAdmin 由 roles 派生

    修改时与已有记录合并后整体经 User 模型校验。
    """
    record = dict(user)
    record.setdefault("id", str(ULID()))

    updated = [dict(existing) for existing in users]
    for index, existing in enumerate(updated):
        if existing.get("id") == record["id"]:
            updated[index] = _validated_user({**existing, **record})
            return updated
    return [*updated, _validated_user(record)]


def _validated_user(record: Mapping[str, Any]) -> Record:
    return User.model_validate(record).model_dump(by_alias=True, mode="json")


def delete_user(users: list[Record], user_id: str) -> list[Record]:
    """删除用户"""
    _find_index(users, user_id, "user")
    return [dict(user) for user in users if user.get("id") != user_id]

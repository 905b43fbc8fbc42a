"""Taskboard Core Store -- JSON 快照文件持久化实现

提供工厂函数创建 tasks / users 两个集合的 Store 实例组。
"""

from pathlib import Path

from ..config import get_tasks_path, get_users_path
from ..models import Collection
from .protocols import SnapshotStore
from .snapshot_store import (
    BACKUP_SUFFIX,
    TMP_SUFFIX,
    CorruptSnapshotError,
    JsonSnapshotStore,
)


class StoreGroup:
    """Store 实例组 -- 每个集合一个独立快照文件，互不加锁"""

    def __init__(self, tasks_path: Path, users_path: Path) -> None:
        self.task_store = JsonSnapshotStore(Collection.TASKS, tasks_path)
        self.user_store = JsonSnapshotStore(Collection.USERS, users_path)

    def for_collection(self, collection: Collection) -> JsonSnapshotStore:
        """按集合名取 Store"""
        if collection is Collection.TASKS:
            return self.task_store
        return self.user_store

    def all(self) -> list[JsonSnapshotStore]:
        return [self.task_store, self.user_store]


def create_store_group(
    data_dir: str | Path | None = None,
) -> StoreGroup:
    """创建 Store 实例组

    Args:
        data_dir: 快照目录；None 时使用 TASKBOARD_TASKS_FILE /
            TASKBOARD_USERS_FILE / TASKBOARD_DATA_DIR 配置

    Returns:
        StoreGroup 实例
    """
    if data_dir is None:
        tasks_path = get_tasks_path()
        users_path = get_users_path()
    else:
        base = Path(data_dir)
        tasks_path = base / "tasks.json"
        users_path = base / "users.json"

    # 确保目录存在
    tasks_path.parent.mkdir(parents=True, exist_ok=True)
    users_path.parent.mkdir(parents=True, exist_ok=True)

    return StoreGroup(tasks_path=tasks_path, users_path=users_path)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SnapshotStore",
    "JsonSnapshotStore",
    "CorruptSnapshotError",
    "TMP_SUFFIX",
    "BACKUP_SUFFIX",
]

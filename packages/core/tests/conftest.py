"""packages/core 测试配置 -- 核心层 fixture"""

from pathlib import Path

import pytest_asyncio
from taskboard.core.models import Collection
from taskboard.core.store import JsonSnapshotStore, StoreGroup, create_store_group


@pytest_asyncio.fixture
async def core_data_dir(tmp_path: Path) -> Path:
    """核心层临时快照目录"""
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest_asyncio.fixture
async def store_group(core_data_dir: Path) -> StoreGroup:
    """指向临时目录的 Store 实例组"""
    return create_store_group(core_data_dir)


@pytest_asyncio.fixture
async def task_store(core_data_dir: Path) -> JsonSnapshotStore:
    """tasks 集合快照存储"""
    return JsonSnapshotStore(Collection.TASKS, core_data_dir / "tasks.json")


"""全局 pytest 配置 -- 共享测试数据与不等待的 sleep"""

import pytest


@pytest.fixture
def sleep_calls() -> list[float]:
    """记录退避等待时长"""
    return []


@pytest.fixture
def fake_sleep(sleep_calls: list[float]):
    """不真正等待的 sleep，只记录时长"""

    async def _sleep(delay: float) -> None:
        sleep_calls.append(delay)

    return _sleep


@pytest.fixture
def sample_tasks() -> list[dict]:
    """标准任务快照测试数据"""
    return [
        {
            "id": "t1",
            "title": "Wireframes",
            "description": "",
            "deadline": "2026-11-01",
            "category": "designer",
            "status": "todo",
            "createdAt": "2026-10-01T09:00:00+00:00",
            "assignedTo": "u2",
            "createdBy": "u1",
            "order": 0,
        },
        {
            "id": "t2",
            "title": "API skeleton",
            "description": "FastAPI routes",
            "deadline": "2026-11-03",
            "category": "developer",
            "status": "in-progress",
            "createdAt": "2026-10-02T09:00:00+00:00",
            "assignedTo": "u3",
            "createdBy": "u1",
            "order": 0,
        },
    ]


@pytest.fixture
def sample_users() -> list[dict]:
    """标准用户快照测试数据"""
    return [
        {
            "id": "u1",
            "email": "lead@example.com",
            "fullName": "Team Lead",
            "avatarUrl": "",
            "isAdmin": True,
            "roles": ["admin"],
        },
        {
            "id": "u2",
            "email": "designer@example.com",
            "fullName": "Designer",
            "avatarUrl": "",
            "isAdmin": False,
            "roles": ["designer"],
        },
    ]

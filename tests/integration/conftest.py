"""集成测试共享 fixture -- 走真实 lifespan 装配"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def integration_data_dir(tmp_path: Path, monkeypatch) -> Path:
    data_dir = tmp_path / "data"
    monkeypatch.setenv("TASKBOARD_DATA_DIR", str(data_dir))
    monkeypatch.delenv("TASKBOARD_TASKS_FILE", raising=False)
    monkeypatch.delenv("TASKBOARD_USERS_FILE", raising=False)
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    return data_dir


@pytest_asyncio.fixture
async def integration_app(integration_data_dir: Path) -> AsyncGenerator[FastAPI, None]:
    """集成测试用 FastAPI app（lifespan 已运行）"""
    from taskboard.gateway.main import create_app

    app = create_app()
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(integration_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac

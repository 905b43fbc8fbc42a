"""apps/gateway 测试配置 -- 手动装配 app.state（绕过 lifespan）+ httpx AsyncClient"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from taskboard.core.retry import RetryPolicy
from taskboard.core.store import StoreGroup, create_store_group
from taskboard.gateway.services.board_service import BoardService
from taskboard.gateway.services.update_hub import UpdateHub


@pytest_asyncio.fixture
async def gateway_data_dir(tmp_path: Path) -> Path:
    """Gateway 临时快照目录"""
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


@pytest_asyncio.fixture
async def store_group(gateway_data_dir: Path) -> StoreGroup:
    return create_store_group(gateway_data_dir)


@pytest_asyncio.fixture
async def update_hub(store_group: StoreGroup) -> UpdateHub:
    async def load_snapshot(collection):
        return await store_group.for_collection(collection).read_records()

    return UpdateHub(loader=load_snapshot)


@pytest_asyncio.fixture
async def board_service(
    store_group: StoreGroup, update_hub: UpdateHub, fake_sleep
) -> BoardService:
    return BoardService(
        store_group,
        update_hub,
        write_policy=RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=5.0),
        sleep=fake_sleep,
    )


@pytest_asyncio.fixture
async def app(
    store_group: StoreGroup,
    update_hub: UpdateHub,
    board_service: BoardService,
) -> AsyncGenerator[FastAPI, None]:
    """创建测试用 FastAPI app 实例（完整中间件与路由）"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from taskboard.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.update_hub = update_hub
    application.state.board_service = board_service

    yield application

    await board_service.drain()
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

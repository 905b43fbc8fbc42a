"""FastAPI 应用主文件

app 创建 + lifespan 管理：快照存储、广播器、写队列初始化，关闭前排空写队列。
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from taskboard.core.config import SSE_QUEUE_MAXSIZE
from taskboard.core.store import create_store_group

from .middleware.logging_config import (
    install_crash_handlers,
    loop_exception_handler,
    setup_logfire,
    setup_logging,
)
from .middleware.logging_mw import LoggingMiddleware
from .routes import health, stream, tasks, users
from .services.board_service import BoardService
from .services.update_hub import UpdateHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时装配读写管线，关闭时等待待写项落盘"""
    loop = asyncio.get_running_loop()
    previous_handler = loop.get_exception_handler()
    loop.set_exception_handler(loop_exception_handler)

    store_group = create_store_group()
    app.state.store_group = store_group

    async def load_snapshot(collection):
        return await store_group.for_collection(collection).read_records()

    update_hub = UpdateHub(loader=load_snapshot, queue_maxsize=SSE_QUEUE_MAXSIZE)
    app.state.update_hub = update_hub
    app.state.board_service = BoardService(store_group, update_hub)

    log.info(
        "gateway_started",
        tasks_file=str(store_group.task_store.path),
        users_file=str(store_group.user_store.path),
    )

    yield

    # 关闭：等待已入队的写入处理完
    await app.state.board_service.drain()
    loop.set_exception_handler(previous_handler)
    log.info("gateway_stopped")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Taskboard Gateway",
        version="0.1.0",
        description="看板快照同步 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Collection 后 Logging）
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire()
    install_crash_handlers()

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(users.router, tags=["users"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()

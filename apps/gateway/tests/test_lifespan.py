"""FastAPI lifespan 测试

测试内容：
1. 启动时按环境变量装配 StoreGroup / UpdateHub / BoardService
2. 关闭前排空写队列
"""

from pathlib import Path

from httpx import ASGITransport, AsyncClient
from taskboard.core.models import Collection
from taskboard.gateway.main import create_app
from taskboard.gateway.services.board_service import BoardService
from taskboard.gateway.services.update_hub import UpdateHub


class TestLifespan:
    async def test_state_initialized_from_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TASKBOARD_DATA_DIR", str(tmp_path / "board"))
        monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
        app = create_app()

        async with app.router.lifespan_context(app):
            assert app.state.store_group.task_store.path == tmp_path / "board" / "tasks.json"
            assert isinstance(app.state.update_hub, UpdateHub)
            assert isinstance(app.state.board_service, BoardService)

    async def test_serves_requests_and_drains_on_shutdown(
        self, tmp_path: Path, monkeypatch, sample_tasks
    ):
        monkeypatch.setenv("TASKBOARD_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
        app = create_app()

        async with app.router.lifespan_context(app):
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                resp = await client.put("/api/tasks", json={"tasks": sample_tasks})
                assert resp.status_code == 200
            service = app.state.board_service

        for queue in (service.queue_for(c) for c in Collection):
            assert queue.pending_count == 0
            assert not queue.is_processing
        assert (tmp_path / "tasks.json").exists()

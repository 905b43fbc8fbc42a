"""Client 包测试 fixtures -- 基于 httpx.MockTransport 的内存看板服务"""

import json
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from taskboard.client import BoardClient, ClientConfig
from taskboard.core.retry import RetryPolicy


class FakeBoardServer:
    """模拟 GET/PUT /api/{tasks,users} 的内存服务

    fail_gets / fail_puts 为接下来需要返回 500 的请求数，
    reject_gets / reject_puts 为接下来需要返回 400 的请求数。
    """

    def __init__(self) -> None:
        self.docs: dict[str, list[dict]] = {"tasks": [], "users": []}
        self.requests: list[tuple[str, str]] = []
        self.put_bodies: list[dict] = []
        self.fail_gets = 0
        self.fail_puts = 0
        self.reject_gets = 0
        self.reject_puts = 0
        self.unreachable = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        self.requests.append((request.method, request.url.path))
        name = request.url.path.rsplit("/", 1)[-1]

        if request.method == "GET":
            if self.reject_gets:
                self.reject_gets -= 1
                return httpx.Response(400, json={"error": f"Unknown collection {name}"})
            if self.fail_gets:
                self.fail_gets -= 1
                return httpx.Response(500, json={"error": f"Failed to read {name}"})
            return httpx.Response(200, json=self.docs[name])

        if self.reject_puts:
            self.reject_puts -= 1
            return httpx.Response(400, json={"error": f"Invalid {name} payload"})
        if self.fail_puts:
            self.fail_puts -= 1
            return httpx.Response(500, json={"error": f"Failed to write {name}"})
        body = json.loads(request.content)
        self.put_bodies.append(body)
        self.docs[name] = body[name]
        return httpx.Response(200, json={"success": True})

    @property
    def put_count(self) -> int:
        return sum(1 for method, _ in self.requests if method == "PUT")


@pytest.fixture
def server() -> FakeBoardServer:
    return FakeBoardServer()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(api_url="http://test")


@pytest_asyncio.fixture
async def board_client(
    server: FakeBoardServer, client_config: ClientConfig, fake_sleep
) -> AsyncGenerator[BoardClient, None]:
    """接在内存服务上的 BoardClient，退避不真正等待"""
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(server.handler),
        base_url=client_config.api_url,
    )
    async with BoardClient(
        client_config,
        http_client=http_client,
        read_policy=RetryPolicy(max_attempts=3, initial_delay=0.5, max_delay=5.0),
        write_policy=RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=5.0),
        sleep=fake_sleep,
    ) as client:
        yield client
    await http_client.aclose()


@pytest.fixture
def admin_user() -> dict:
    return {"id": "u1", "email": "lead@example.com", "roles": ["admin"], "isAdmin": True}


@pytest.fixture
def designer_user() -> dict:
    return {"id": "u2", "email": "designer@example.com", "roles": ["designer"]}

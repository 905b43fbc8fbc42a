"""SSE 事件流测试

直接驱动事件生成器，避免无限流阻塞测试客户端。
"""

import asyncio
import json

import pytest
from taskboard.core.models import Collection
from taskboard.gateway.routes import stream as stream_module
from taskboard.gateway.routes.stream import stream_updates, update_events
from taskboard.gateway.services.update_hub import UpdateHub


class FakeRequest:
    """只实现 is_disconnected 的请求替身"""

    def __init__(self) -> None:
        self.disconnected = False

    async def is_disconnected(self) -> bool:
        return self.disconnected


class TestUpdateEvents:
    async def test_replay_then_live_updates(self, sample_tasks, sample_users):
        hub = UpdateHub()
        hub.publish(Collection.USERS, sample_users)
        request = FakeRequest()
        events = update_events(request, hub)

        first = await anext(events)
        second = await anext(events)
        assert first["event"] == "update"
        assert json.loads(first["data"]) == {"type": "tasks", "data": []}
        assert json.loads(second["data"]) == {"type": "users", "data": sample_users}

        hub.publish(Collection.TASKS, sample_tasks)
        third = await anext(events)
        assert json.loads(third["data"]) == {"type": "tasks", "data": sample_tasks}

        request.disconnected = True
        with pytest.raises(StopAsyncIteration):
            await anext(events)
        assert hub.subscriber_count == 0

    async def test_heartbeat_when_idle(self, monkeypatch):
        monkeypatch.setattr(stream_module, "SSE_HEARTBEAT_INTERVAL", 0.01)
        hub = UpdateHub()
        events = update_events(FakeRequest(), hub)

        await anext(events)
        await anext(events)
        assert await anext(events) == {"comment": "heartbeat"}
        await events.aclose()
        assert hub.subscriber_count == 0

    async def test_each_subscriber_gets_its_own_stream(self, sample_tasks):
        hub = UpdateHub()
        streams = [update_events(FakeRequest(), hub) for _ in range(2)]
        for events in streams:
            await anext(events)
            await anext(events)
        assert hub.subscriber_count == 2

        hub.publish(Collection.TASKS, sample_tasks)
        received = await asyncio.gather(*(anext(events) for events in streams))
        assert all(json.loads(e["data"])["data"] == sample_tasks for e in received)

        for events in streams:
            await events.aclose()
        assert hub.subscriber_count == 0


class TestDroppedSubscriber:
    async def test_overflowed_stream_ends(self, monkeypatch, sample_tasks):
        monkeypatch.setattr(stream_module, "SSE_HEARTBEAT_INTERVAL", 0.01)
        hub = UpdateHub(queue_maxsize=2)
        events = update_events(FakeRequest(), hub)

        # 读完回放后再积压两次提交，第三次提交时缓冲已满
        await anext(events)
        await anext(events)
        hub.publish(Collection.TASKS, sample_tasks)
        hub.publish(Collection.TASKS, sample_tasks)
        hub.publish(Collection.TASKS, sample_tasks)

        assert hub.subscriber_count == 0
        with pytest.raises(StopAsyncIteration):
            await anext(events)

    async def test_reconnect_after_drop_replays_latest(self, sample_tasks):
        hub = UpdateHub(queue_maxsize=2)
        dropped = update_events(FakeRequest(), hub)
        await anext(dropped)
        for _ in range(3):
            hub.publish(Collection.TASKS, sample_tasks)
        with pytest.raises(StopAsyncIteration):
            await anext(dropped)

        events = update_events(FakeRequest(), hub)
        replay = json.loads((await anext(events))["data"])
        assert replay == {"type": "tasks", "data": sample_tasks}
        await events.aclose()


class TestSubscriptionLifetime:
    async def test_endpoint_does_not_subscribe_before_streaming(self):
        hub = UpdateHub()

        response = await stream_updates(FakeRequest(), hub)

        assert response is not None
        assert hub.subscriber_count == 0

    async def test_unstarted_stream_closed_without_subscriber(self):
        hub = UpdateHub()
        events = update_events(FakeRequest(), hub)

        await events.aclose()

        assert hub.subscriber_count == 0
        hub.publish(Collection.TASKS, [])
        assert hub.subscriber_count == 0

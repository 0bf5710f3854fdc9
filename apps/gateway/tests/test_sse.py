"""SSEHub + 实时通道测试

测试内容：
1. 订阅/取消订阅，房间名大小写无关
2. notify 向房间内所有订阅者推送 tasks_updated
3. 队列已满时合并信号，订阅者保留
4. 无订阅者房间的 notify 不报错
5. 非法地址返回 400
"""

import asyncio

from chaintodo.core.config import TASKS_UPDATED
from chaintodo.gateway.services.sse_hub import SSEHub
from httpx import AsyncClient

OWNER = "0x" + "a1" * 20


class TestSSEHub:
    async def test_subscribe_and_notify(self):
        hub = SSEHub()
        q1 = await hub.subscribe(OWNER)
        q2 = await hub.subscribe(OWNER.upper().replace("0X", "0x"))

        assert hub.subscriber_count(OWNER) == 2
        hub.notify(OWNER)

        assert q1.get_nowait() == TASKS_UPDATED
        assert q2.get_nowait() == TASKS_UPDATED

    async def test_rooms_isolated(self):
        hub = SSEHub()
        mine = await hub.subscribe(OWNER)
        other = await hub.subscribe("0x" + "b2" * 20)

        hub.notify(OWNER)

        assert mine.qsize() == 1
        assert other.empty()

    async def test_unsubscribe_removes_room(self):
        hub = SSEHub()
        queue = await hub.subscribe(OWNER)
        await hub.unsubscribe(OWNER, queue)

        assert hub.subscriber_count(OWNER) == 0
        hub.notify(OWNER)
        assert queue.empty()

        # 重复取消订阅不报错
        await hub.unsubscribe(OWNER, queue)

    async def test_full_queue_coalesces(self):
        hub = SSEHub(queue_maxsize=2)
        queue = await hub.subscribe(OWNER)

        for _ in range(5):
            hub.notify(OWNER)

        assert queue.qsize() == 2
        assert hub.subscriber_count(OWNER) == 1

        await queue.get()
        hub.notify(OWNER)
        assert queue.qsize() == 2

    async def test_notify_without_subscribers(self):
        hub = SSEHub()
        hub.notify(OWNER)
        assert hub.subscriber_count(OWNER) == 0

    async def test_waiting_subscriber_wakes(self):
        hub = SSEHub()
        queue = await hub.subscribe(OWNER)

        waiter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)
        hub.notify(OWNER)

        assert await asyncio.wait_for(waiter, timeout=1.0) == TASKS_UPDATED


class TestStreamEndpoint:
    async def test_invalid_address(self, client: AsyncClient):
        resp = await client.get("/api/stream/owner/not-an-address")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_ADDRESS"

    async def test_short_hex_rejected(self, client: AsyncClient, test_app):
        resp = await client.get("/api/stream/owner/0x1234")
        assert resp.status_code == 400
        assert test_app.state.sse_hub.subscriber_count("0x1234") == 0

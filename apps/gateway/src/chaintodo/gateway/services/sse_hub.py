"""SSEHub -- 按 owner 分房间的变更信号广播器

每个订阅者持有一个 asyncio.Queue。消息只是"任务已变更"的提示，
客户端收到后重新拉取列表，因此队列已满时直接跳过本次信号（合并），
不会移除订阅者。
"""

import asyncio
from collections import defaultdict

import structlog
from chaintodo.core.config import TASKS_UPDATED

log = structlog.get_logger()


class SSEHub:
    """实时通道 -- 实现 chaintodo.core.reconciler.Notifier"""

    def __init__(self, queue_maxsize: int = 16) -> None:
        # room（小写 owner 地址）-> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, room: str) -> asyncio.Queue:
        """订阅 owner 房间

        Returns:
            asyncio.Queue 实例，变更信号会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[room.lower()].add(queue)
        return queue

    async def unsubscribe(self, room: str, queue: asyncio.Queue) -> None:
        room = room.lower()
        subscribers = self._subscribers.get(room)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[room]

    def subscriber_count(self, room: str) -> int:
        return len(self._subscribers.get(room.lower(), ()))

    def notify(self, owner: str) -> None:
        """向 owner 房间广播 tasks_updated（非阻塞，房间不存在不是错误）"""
        room = owner.lower()
        subscribers = self._subscribers.get(room)
        if not subscribers:
            return
        skipped = 0
        for queue in list(subscribers):
            try:
                queue.put_nowait(TASKS_UPDATED)
            except asyncio.QueueFull:
                skipped += 1
        if skipped:
            log.debug("sse_signal_coalesced", room=room, skipped=skipped)

"""按键加锁 -- 序列化同一 (owner, task_id) 的写入

每个键一把 asyncio.Lock，带引用计数；最后一个持有者/等待者离开后立即清理，
避免锁字典随任务数量无限增长。不同键之间互不阻塞。
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLocks:
    """键级锁注册表"""

    def __init__(self) -> None:
        # key -> [lock, refcount]
        self._entries: dict[Hashable, list] = {}

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """按排序顺序获取多个键的锁（避免交叉死锁）"""
        ordered = sorted(set(keys), key=repr)
        acquired: list[Hashable] = []
        try:
            for key in ordered:
                lock = self._retain(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._release_ref(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._entries[key][0].release()
                self._release_ref(key)

    def is_locked(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._entries)

    def _retain(self, key: Hashable) -> asyncio.Lock:
        entry = self._entries.get(key)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._entries[key] = entry
        entry[1] += 1
        return entry[0]

    def _release_ref(self, key: Hashable) -> None:
        entry = self._entries[key]
        entry[1] -= 1
        if entry[1] == 0:
            del self._entries[key]

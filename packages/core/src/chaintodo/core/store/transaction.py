"""原子事务封装

所有 Store 共享同一个 aiosqlite 连接。commit / rollback 作用于整个连接，
因此写入需在同一把事务锁内完成，避免一个协程的 rollback 撤销另一个协程的写入。
该锁只覆盖单次写事务的持续时间（SQLite 本身也只允许单写者），
按键的串行化由 Reconciler 的 KeyedLocks 负责。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite


@asynccontextmanager
async def atomic(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """在事务锁内执行写操作，正常退出时提交，异常时回滚

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        lock: 保护该连接的事务锁

    Raises:
        Exception: 原样抛出块内异常，事务已回滚
    """
    async with lock:
        try:
            yield conn
            await conn.commit()
        except BaseException:
            # 包括取消：未提交的写入不能残留到下一次 commit
            await conn.rollback()
            raise

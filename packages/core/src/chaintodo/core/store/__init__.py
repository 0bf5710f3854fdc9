"""chaintodo Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from contextlib import AbstractAsyncContextManager
from pathlib import Path

import aiosqlite

from .cursor_store import SqliteCursorStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import atomic
from .user_store import SqliteUserStore


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与事务锁"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.tx_lock = asyncio.Lock()
        self.task_store = SqliteTaskStore(conn)
        self.user_store = SqliteUserStore(conn)
        self.cursor_store = SqliteCursorStore(conn, self.tx_lock)

    def atomic(self) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        """开启一个写事务（正常退出提交，异常回滚）"""
        return atomic(self.conn, self.tx_lock)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteUserStore",
    "SqliteCursorStore",
    "init_db",
    "atomic",
]

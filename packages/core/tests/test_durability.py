"""进程重启持久性测试

测试内容：
1. 对账写入 -> 关闭 DB 连接 -> 重新打开 -> 数据完整
2. 同步游标跨重启保留
3. WAL 模式验证
4. CLI 游标命令
"""

from pathlib import Path

import aiosqlite
from chaintodo.core.__main__ import reset_cursor, show_cursor
from chaintodo.core.models import TaskCreated, TaskStatus
from chaintodo.core.reconciler import Reconciler
from chaintodo.core.store import create_store_group
from chaintodo.core.store.sqlite_init import init_db, verify_wal_mode

OWNER = "0x" + "e5" * 20
CONTRACT = "0x" + "f6" * 20


class TestDurability:
    """进程重启后镜像不丢失"""

    async def test_tasks_survive_restart(self, tmp_path: Path):
        db_path = str(tmp_path / "durability.db")

        group1 = await create_store_group(db_path)
        reconciler = Reconciler(group1)
        for task_id in range(3):
            await reconciler.apply(
                TaskCreated(task_id=task_id, owner=OWNER, content=f"t{task_id}")
            )
        await group1.cursor_store.save_cursor(CONTRACT, 1234)
        await group1.conn.close()

        group2 = await create_store_group(db_path)
        tasks = await group2.task_store.list_tasks(OWNER)
        assert [t.content for t in tasks] == ["t0", "t1", "t2"]
        assert all(t.status == TaskStatus.PENDING for t in tasks)
        assert await group2.cursor_store.load_cursor(CONTRACT) == 1234
        await group2.conn.close()

    async def test_init_db_is_idempotent(self, tmp_path: Path):
        db_path = str(tmp_path / "init.db")
        conn = await aiosqlite.connect(db_path)
        await init_db(conn)
        await init_db(conn)
        cursor = await conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        names = [row[0] for row in await cursor.fetchall()]
        assert {"tasks", "users", "sync_cursors"} <= set(names)
        await conn.close()

    async def test_wal_mode_enabled(self, tmp_path: Path):
        """WAL 模式正确启用"""
        conn = await aiosqlite.connect(str(tmp_path / "wal_test.db"))
        await init_db(conn)

        assert await verify_wal_mode(conn) is True

        await conn.close()


class TestCursorCli:
    async def test_reset_then_show(self, tmp_path: Path, monkeypatch, capsys):
        monkeypatch.setenv("CHAINTODO_DB_PATH", str(tmp_path / "cli" / "cli.db"))

        assert await show_cursor(CONTRACT) is None
        await reset_cursor(CONTRACT, 500)
        assert await show_cursor(CONTRACT.upper().replace("0X", "0x")) == 500

        await reset_cursor(CONTRACT, -1)
        assert await show_cursor(CONTRACT) is None

        output = capsys.readouterr().out
        assert "last_block=500" in output

"""TaskStore SQLite 实现

tasks 表以 (owner, task_id) 为唯一键。
此处仅提供数据库操作，不自动提交事务，由调用方通过 StoreGroup.atomic() 管理。
"""

import json
from datetime import datetime
from typing import Any

import aiosqlite

from ..models.enums import TaskStatus
from ..models.task import Task

_COLUMNS = (
    "owner, task_id, content, completed, status, priority, "
    "tags, category, due_date, created_at, updated_at"
)

# 元数据更新允许写入的列
_METADATA_COLUMNS = {"due_date", "status", "priority", "tags", "category"}


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_task(self, task: Task) -> None:
        """插入任务记录（键已存在时抛出 IntegrityError）"""
        await self._conn.execute(
            f"""
            INSERT INTO tasks ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.owner,
                task.task_id,
                task.content,
                int(task.completed),
                task.status.value,
                task.priority.value,
                json.dumps(task.tags, ensure_ascii=False),
                task.category,
                task.due_date.isoformat() if task.due_date else None,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )

    async def get_task(self, owner: str, task_id: int) -> Task | None:
        """根据 (owner, task_id) 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE owner = ? AND task_id = ?",
            (owner.lower(), task_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def find_by_task_id(self, task_id: int) -> list[Task]:
        """仅按 task_id 查询（可能跨多个 owner）"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ? ORDER BY owner",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_tasks(self, owner: str) -> list[Task]:
        """查询某个 owner 的任务列表，按 task_id 正序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE owner = ? ORDER BY task_id ASC",
            (owner.lower(),),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_tasks(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM tasks")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def update_chain_fields(
        self,
        owner: str,
        task_id: int,
        updated_at: str,
        content: str | None = None,
        completed: bool | None = None,
        status: TaskStatus | None = None,
    ) -> int:
        """覆盖链上来源字段，链下元数据保持不变

        Returns:
            受影响的行数
        """
        assignments = ["updated_at = ?"]
        params: list[Any] = [updated_at]
        if content is not None:
            assignments.append("content = ?")
            params.append(content)
        if completed is not None:
            assignments.append("completed = ?")
            params.append(int(completed))
        if status is not None:
            assignments.append("status = ?")
            params.append(status.value)
        params.extend([owner.lower(), task_id])

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE owner = ? AND task_id = ?",
            params,
        )
        return cursor.rowcount

    async def update_metadata(
        self,
        owner: str,
        task_id: int,
        changes: dict[str, Any],
        updated_at: str,
    ) -> int:
        """更新链下元数据（due_date / status / priority / tags / category）

        Raises:
            ValueError: 包含不允许的列
        """
        unknown = set(changes) - _METADATA_COLUMNS
        if unknown:
            raise ValueError(f"not a metadata column: {sorted(unknown)}")

        assignments = ["updated_at = ?"]
        params: list[Any] = [updated_at]
        for column, value in sorted(changes.items()):
            assignments.append(f"{column} = ?")
            params.append(self._encode_metadata(column, value))
        params.extend([owner.lower(), task_id])

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE owner = ? AND task_id = ?",
            params,
        )
        return cursor.rowcount

    async def delete_task(self, owner: str, task_id: int) -> int:
        """删除任务，返回受影响的行数"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE owner = ? AND task_id = ?",
            (owner.lower(), task_id),
        )
        return cursor.rowcount

    async def rekey_task(
        self,
        task_id: int,
        from_owner: str,
        to_owner: str,
        updated_at: str,
    ) -> int:
        """将 (from_owner, task_id) 改键为 (to_owner, task_id)，保留全部元数据

        单条 UPDATE 语句完成；目标键已存在时唯一索引抛出 IntegrityError。
        """
        cursor = await self._conn.execute(
            "UPDATE tasks SET owner = ?, updated_at = ? WHERE owner = ? AND task_id = ?",
            (to_owner.lower(), updated_at, from_owner.lower(), task_id),
        )
        return cursor.rowcount

    @staticmethod
    def _encode_metadata(column: str, value: Any) -> Any:
        if column == "tags":
            return json.dumps([str(t) for t in value], ensure_ascii=False)
        if column == "due_date":
            return value.isoformat() if value is not None else None
        if hasattr(value, "value"):
            return value.value
        return value

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            owner=row[0],
            task_id=row[1],
            content=row[2],
            completed=bool(row[3]),
            status=row[4],
            priority=row[5],
            tags=json.loads(row[6]) if row[6] else [],
            category=row[7],
            due_date=datetime.fromisoformat(row[8]) if row[8] else None,
            created_at=datetime.fromisoformat(row[9]),
            updated_at=datetime.fromisoformat(row[10]),
        )

"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from chaintodo.core.models import Task
from chaintodo.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def stores(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 Store 实例组"""
    group = await create_store_group(str(core_db_path))
    yield group
    await group.conn.close()


@pytest.fixture
def task_factory() -> Callable[..., Task]:
    """构造测试用 Task（默认元数据，可覆盖任意字段）"""

    def _make(owner: str, task_id: int = 1, **overrides) -> Task:
        now = datetime.now(UTC)
        fields = {
            "owner": owner,
            "task_id": task_id,
            "content": f"task {task_id}",
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make

"""Store Protocol 接口定义

定义 TaskStore、UserStore、CursorStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Any, Protocol

from ..models.enums import TaskStatus
from ..models.task import Task
from ..models.user import User


class TaskStore(Protocol):
    """Task 存储接口"""

    async def insert_task(self, task: Task) -> None:
        """插入任务记录"""
        ...

    async def get_task(self, owner: str, task_id: int) -> Task | None:
        """根据 (owner, task_id) 查询任务"""
        ...

    async def find_by_task_id(self, task_id: int) -> list[Task]:
        """仅按 task_id 查询"""
        ...

    async def list_tasks(self, owner: str) -> list[Task]:
        """查询某个 owner 的全部任务"""
        ...

    async def update_chain_fields(
        self,
        owner: str,
        task_id: int,
        updated_at: str,
        content: str | None = None,
        completed: bool | None = None,
        status: TaskStatus | None = None,
    ) -> int:
        """覆盖链上来源字段"""
        ...

    async def update_metadata(
        self,
        owner: str,
        task_id: int,
        changes: dict[str, Any],
        updated_at: str,
    ) -> int:
        """更新链下元数据"""
        ...

    async def delete_task(self, owner: str, task_id: int) -> int:
        """删除任务"""
        ...

    async def rekey_task(
        self,
        task_id: int,
        from_owner: str,
        to_owner: str,
        updated_at: str,
    ) -> int:
        """将任务改键到新的 owner"""
        ...


class UserStore(Protocol):
    """User 存储接口"""

    async def create_user(self, user: User) -> None:
        """创建用户记录"""
        ...

    async def get_user(self, user_id: str) -> User | None:
        """根据 user_id 查询用户"""
        ...

    async def get_by_email(self, email: str) -> User | None:
        """根据邮箱查询用户"""
        ...

    async def get_by_wallet(self, wallet_address: str) -> User | None:
        """根据钱包地址查询用户"""
        ...

    async def set_wallet(
        self,
        user_id: str,
        wallet_address: str | None,
        updated_at: str,
    ) -> int:
        """设置或清除钱包地址"""
        ...


class CursorStore(Protocol):
    """同步游标存储接口"""

    async def load_cursor(self, contract_address: str) -> int | None:
        """读取最后已处理区块"""
        ...

    async def save_cursor(self, contract_address: str, last_block: int) -> None:
        """写入最后已处理区块"""
        ...

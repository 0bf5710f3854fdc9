"""TaskService -- 任务查询与链下元数据编辑

API 写入与链上事件对账共享同一个 KeyedLocks，
保证同一 (owner, task_id) 的写入严格串行；提交后通知 owner 房间。
"""

from datetime import UTC, datetime

import structlog
from chaintodo.core.locks import KeyedLocks
from chaintodo.core.models import Task, TaskMetadataUpdate
from chaintodo.core.reconciler import Notifier
from chaintodo.core.store import StoreGroup

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        locks: KeyedLocks,
        notifier: Notifier | None = None,
    ) -> None:
        self._stores = store_group
        self._locks = locks
        self._notifier = notifier

    async def list_tasks(self, owner: str) -> list[Task]:
        """查询 owner 的全部任务，按 task_id 升序"""
        return await self._stores.task_store.list_tasks(owner)

    async def get_task(self, owner: str, task_id: int) -> Task | None:
        return await self._stores.task_store.get_task(owner, task_id)

    async def update_metadata(
        self,
        owner: str,
        task_id: int,
        update: TaskMetadataUpdate,
    ) -> Task | None:
        """更新链下元数据

        Returns:
            更新后的任务；任务不存在返回 None
        """
        owner = owner.lower()
        changes = update.to_changes()
        async with self._locks.hold((owner, task_id)):
            if not changes:
                return await self._stores.task_store.get_task(owner, task_id)

            async with self._stores.atomic():
                updated = await self._stores.task_store.update_metadata(
                    owner,
                    task_id,
                    changes,
                    updated_at=datetime.now(UTC).isoformat(),
                )
            if not updated:
                return None
            task = await self._stores.task_store.get_task(owner, task_id)

        await log.ainfo(
            "task_metadata_updated",
            owner=owner,
            task_id=task_id,
            fields=sorted(changes),
        )
        self._notify(owner)
        return task

    async def delete_task(self, owner: str, task_id: int) -> bool:
        """通过 API 显式删除任务

        Returns:
            True 如果记录存在并已删除
        """
        owner = owner.lower()
        async with self._locks.hold((owner, task_id)):
            async with self._stores.atomic():
                deleted = await self._stores.task_store.delete_task(owner, task_id)
        if not deleted:
            return False

        await log.ainfo("task_deleted_via_api", owner=owner, task_id=task_id)
        self._notify(owner)
        return True

    def _notify(self, owner: str) -> None:
        if self._notifier is not None:
            self._notifier.notify(owner)

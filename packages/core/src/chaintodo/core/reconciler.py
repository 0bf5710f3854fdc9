"""Reconciler -- 将解码后的链上事件对账到 Task Store

流程：
1. plan_operation(): 事件 -> 存储操作（纯函数，封闭的事件种类分派）
2. Reconciler.apply(): 在键级锁 + 事务内执行操作，集中分类错误
3. 提交成功后通知受影响 owner 的实时通道

投递语义为至少一次、跨重连不保证有序，因此每个分支都必须幂等：
重复应用同一事件的结果与应用一次相同；依赖 Created 先到达的更新
在记录不存在时视为良性竞态（NOT_FOUND），不向运维暴露错误。
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import aiosqlite
import structlog

from .exceptions import StoreWriteFailure, TransferConflict
from .locks import KeyedLocks
from .models.enums import (
    LedgerEventKind,
    ReconcileOutcome,
    TaskStatus,
    derive_status,
)
from .models.ledger_event import LedgerEvent
from .models.task import Task
from .store import StoreGroup

log = structlog.get_logger()


class Notifier(Protocol):
    """实时通道通知接口 -- 必须非阻塞，投递失败不影响对账"""

    def notify(self, owner: str) -> None:
        """通知 owner 房间的所有会话：任务已变更"""
        ...


# ---------------------------------------------------------------------------
# 存储操作（plan_operation 的输出）
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpsertTask:
    """插入或覆盖链上字段；插入路径赋默认元数据，更新路径保留元数据"""

    owner: str
    task_id: int
    content: str
    completed: bool


@dataclass(frozen=True)
class UpdateTask:
    """更新链上字段；owner 为 None 时走仅按 task_id 查找的降级路径"""

    task_id: int
    owner: str | None = None
    content: str | None = None
    completed: bool | None = None
    status: TaskStatus | None = None


@dataclass(frozen=True)
class DeleteTask:
    owner: str
    task_id: int


@dataclass(frozen=True)
class RekeyTask:
    """将 (from_owner, task_id) 改键为 (to_owner, task_id)"""

    task_id: int
    from_owner: str
    to_owner: str


StoreOp = UpsertTask | UpdateTask | DeleteTask | RekeyTask


def plan_operation(event: LedgerEvent) -> StoreOp:
    """将单个链上事件映射为存储操作

    Raises:
        TypeError: 未知事件种类
    """
    if event.kind == LedgerEventKind.CREATED:
        return UpsertTask(
            owner=event.owner,
            task_id=event.task_id,
            content=event.content,
            completed=event.completed,
        )
    if event.kind == LedgerEventKind.COMPLETED:
        return UpdateTask(
            task_id=event.task_id,
            owner=event.owner,
            completed=event.completed,
        )
    if event.kind == LedgerEventKind.STATUS_CHANGED:
        return UpdateTask(
            task_id=event.task_id,
            owner=event.owner,
            status=event.status,
        )
    if event.kind == LedgerEventKind.EDITED:
        return UpdateTask(
            task_id=event.task_id,
            owner=event.owner,
            content=event.content,
        )
    if event.kind == LedgerEventKind.DELETED:
        return DeleteTask(owner=event.owner, task_id=event.task_id)
    if event.kind == LedgerEventKind.TRANSFERRED:
        return RekeyTask(
            task_id=event.task_id,
            from_owner=event.from_owner,
            to_owner=event.to_owner,
        )
    raise TypeError(f"unsupported ledger event: {event!r}")


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class Reconciler:
    """链上事件对账器

    - 同一 (owner, task_id) 的写入通过 KeyedLocks 串行化
    - 不同键完全并行，不存在跨键的全局锁
    - submit() 把每次投递调度为独立的 asyncio.Task，drain() 在关闭时等待其完成
    """

    def __init__(
        self,
        store_group: StoreGroup,
        notifier: Notifier | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._stores = store_group
        self._notifier = notifier
        self.locks = locks or KeyedLocks()
        self._inflight: set[asyncio.Task] = set()
        self._accepting = True

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    @property
    def accepting(self) -> bool:
        return self._accepting

    def submit(self, event: LedgerEvent) -> asyncio.Task | None:
        """将事件调度为独立的对账任务

        Returns:
            对账任务；关闭后不再接收事件，返回 None
        """
        if not self._accepting:
            log.warning(
                "reconcile_rejected_after_close",
                kind=event.kind.value,
                task_id=event.task_id,
            )
            return None
        task = asyncio.create_task(self._apply_safely(event))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def close(self) -> None:
        """停止接收新事件（在途任务不受影响）"""
        self._accepting = False

    async def drain(self, timeout: float | None = None) -> int:
        """等待在途对账完成，不在写入中途中止

        Returns:
            已完成的任务数
        """
        pending = list(self._inflight)
        if not pending:
            return 0
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            log.warning("reconcile_drain_timeout", pending=len(not_done))
        else:
            log.info("reconcile_drained", completed=len(done))
        return len(done)

    async def apply(self, event: LedgerEvent) -> ReconcileOutcome:
        """对账单个事件，错误在此集中分类，不向调用方抛出对账类异常"""
        op = plan_operation(event)
        bound = log.bind(kind=event.kind.value, task_id=event.task_id)
        if event.position is not None:
            bound = bound.bind(
                block_number=event.position.block_number,
                log_index=event.position.log_index,
            )

        try:
            owners = await self._execute(op)
        except TransferConflict as e:
            await bound.awarning(
                "reconcile_transfer_conflict",
                from_owner=e.from_owner,
                to_owner=e.to_owner,
            )
            return ReconcileOutcome.CONFLICT
        except StoreWriteFailure as e:
            await bound.aerror(
                "reconcile_store_write_failed",
                operation=e.operation,
                error_type=type(e.original_error).__name__,
            )
            return ReconcileOutcome.FAILED

        if not owners:
            await bound.adebug("reconcile_target_not_found")
            return ReconcileOutcome.NOT_FOUND

        for owner in owners:
            self._notify(owner)
        await bound.ainfo("reconcile_applied", owners=owners)
        return ReconcileOutcome.APPLIED

    async def _apply_safely(self, event: LedgerEvent) -> ReconcileOutcome:
        try:
            return await self.apply(event)
        except Exception:
            log.exception(
                "reconcile_unexpected_error",
                kind=event.kind.value,
                task_id=event.task_id,
            )
            return ReconcileOutcome.FAILED

    def _notify(self, owner: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(owner)
        except Exception as e:
            log.warning(
                "notify_failed",
                owner=owner,
                error_type=type(e).__name__,
            )

    # -- 执行 ---------------------------------------------------------------

    async def _execute(self, op: StoreOp) -> list[str]:
        """执行存储操作

        Returns:
            受影响的 owner 列表；空列表表示目标记录不存在
        """
        if isinstance(op, UpsertTask):
            async with self.locks.hold((op.owner, op.task_id)):
                return await self._in_transaction("upsert", self._upsert, op)

        if isinstance(op, UpdateTask):
            owner = op.owner or await self._resolve_owner(op.task_id)
            if owner is None:
                return []
            async with self.locks.hold((owner, op.task_id)):
                return await self._in_transaction("update", self._update, owner, op)

        if isinstance(op, DeleteTask):
            async with self.locks.hold((op.owner, op.task_id)):
                return await self._in_transaction("delete", self._delete, op)

        if isinstance(op, RekeyTask):
            async with self.locks.hold(
                (op.from_owner, op.task_id), (op.to_owner, op.task_id)
            ):
                return await self._in_transaction("transfer", self._rekey, op)

        raise TypeError(f"unsupported store operation: {op!r}")

    async def _in_transaction(
        self,
        operation: str,
        fn: Callable[..., Awaitable[list[str]]],
        *args: Any,
    ) -> list[str]:
        try:
            async with self._stores.atomic():
                return await fn(*args)
        except aiosqlite.Error as e:
            raise StoreWriteFailure(operation, e) from e

    async def _resolve_owner(self, task_id: int) -> str | None:
        """降级路径：事件不携带 owner 时按 task_id 查找唯一匹配"""
        matches = await self._stores.task_store.find_by_task_id(task_id)
        if len(matches) == 1:
            return matches[0].owner
        if len(matches) > 1:
            log.warning(
                "reconcile_ambiguous_task_id",
                task_id=task_id,
                owners=[t.owner for t in matches],
            )
        return None

    async def _upsert(self, op: UpsertTask) -> list[str]:
        task_store = self._stores.task_store
        now = datetime.now(UTC)
        existing = await task_store.get_task(op.owner, op.task_id)

        if existing is None:
            # 插入路径：链上字段 + 默认链下元数据；
            # status 由 completed 推导（创建即完成的任务不以 Pending 入库，见 DESIGN.md 决策 2）
            await task_store.insert_task(
                Task(
                    owner=op.owner,
                    task_id=op.task_id,
                    content=op.content,
                    completed=op.completed,
                    status=derive_status(TaskStatus.PENDING, op.completed),
                    created_at=now,
                    updated_at=now,
                )
            )
            return [op.owner]

        # 更新路径：仅覆盖 content / completed，status 等链下元数据保持不变
        await self._write_chain_fields(
            existing,
            content=op.content,
            completed=op.completed,
            status=None,
        )
        return [op.owner]

    async def _update(self, owner: str, op: UpdateTask) -> list[str]:
        existing = await self._stores.task_store.get_task(owner, op.task_id)
        if existing is None:
            return []

        completed = op.completed
        status: TaskStatus | None = None
        if op.status is not None:
            status = op.status
            completed = op.status == TaskStatus.COMPLETED
        elif op.completed is not None:
            status = derive_status(existing.status, op.completed)

        await self._write_chain_fields(
            existing,
            content=op.content,
            completed=completed,
            status=status,
        )
        return [owner]

    async def _write_chain_fields(
        self,
        existing: Task,
        content: str | None,
        completed: bool | None,
        status: TaskStatus | None,
    ) -> None:
        """只写入与现有值不同的链上字段；无变化时不触碰记录"""
        changes: dict[str, Any] = {}
        if content is not None and content != existing.content:
            changes["content"] = content
        if completed is not None and completed != existing.completed:
            changes["completed"] = completed
        if status is not None and status != existing.status:
            changes["status"] = status
        if not changes:
            return
        await self._stores.task_store.update_chain_fields(
            existing.owner,
            existing.task_id,
            updated_at=datetime.now(UTC).isoformat(),
            **changes,
        )

    async def _delete(self, op: DeleteTask) -> list[str]:
        deleted = await self._stores.task_store.delete_task(op.owner, op.task_id)
        return [op.owner] if deleted else []

    async def _rekey(self, op: RekeyTask) -> list[str]:
        task_store = self._stores.task_store
        source = await task_store.get_task(op.from_owner, op.task_id)
        if source is None:
            return []
        if op.from_owner == op.to_owner:
            return [op.to_owner]

        if await task_store.get_task(op.to_owner, op.task_id) is not None:
            raise TransferConflict(op.task_id, op.from_owner, op.to_owner)
        try:
            await task_store.rekey_task(
                op.task_id,
                op.from_owner,
                op.to_owner,
                updated_at=datetime.now(UTC).isoformat(),
            )
        except aiosqlite.IntegrityError as e:
            raise TransferConflict(op.task_id, op.from_owner, op.to_owner) from e
        return [op.from_owner, op.to_owner]

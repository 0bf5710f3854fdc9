"""并发对账测试

测试内容：
1. 不同键的并发事件全部成功落盘
2. 同一键的并发更新串行执行，最终状态包含全部变更
3. 交叉方向的并发转移不死锁
"""

import asyncio

from chaintodo.core.models import (
    ReconcileOutcome,
    TaskCompleted,
    TaskCreated,
    TaskEdited,
    TaskTransferred,
)
from chaintodo.core.reconciler import Reconciler

OWNERS = ["0x" + f"{i:02x}" * 20 for i in range(1, 5)]


class TestConcurrentReconcile:
    async def test_distinct_keys_all_applied(self, stores):
        reconciler = Reconciler(stores)
        events = [
            TaskCreated(task_id=task_id, owner=owner, content=f"{owner}-{task_id}")
            for owner in OWNERS
            for task_id in range(10)
        ]

        outcomes = await asyncio.gather(*(reconciler.apply(e) for e in events))

        assert all(o == ReconcileOutcome.APPLIED for o in outcomes)
        assert await stores.task_store.count_tasks() == len(events)
        assert len(reconciler.locks) == 0

    async def test_same_key_updates_are_serialized(self, stores):
        reconciler = Reconciler(stores)
        owner = OWNERS[0]
        await reconciler.apply(TaskCreated(task_id=1, owner=owner, content="x"))

        outcomes = await asyncio.gather(
            reconciler.apply(TaskCompleted(task_id=1, completed=True, owner=owner)),
            reconciler.apply(TaskEdited(task_id=1, content="edited", owner=owner)),
        )

        assert outcomes == [ReconcileOutcome.APPLIED, ReconcileOutcome.APPLIED]
        task = await stores.task_store.get_task(owner, 1)
        assert task.completed is True
        assert task.content == "edited"

    async def test_concurrent_duplicate_creates(self, stores):
        """同一 Created 被并发重复投递：只插入一条"""
        reconciler = Reconciler(stores)
        event = TaskCreated(task_id=1, owner=OWNERS[0], content="x")

        outcomes = await asyncio.gather(*(reconciler.apply(event) for _ in range(5)))

        assert all(o == ReconcileOutcome.APPLIED for o in outcomes)
        assert await stores.task_store.count_tasks() == 1

    async def test_crossing_transfers_do_not_deadlock(self, stores):
        reconciler = Reconciler(stores)
        a, b = OWNERS[0], OWNERS[1]
        await reconciler.apply(TaskCreated(task_id=1, owner=a, content="a1"))
        await reconciler.apply(TaskCreated(task_id=2, owner=b, content="b2"))

        outcomes = await asyncio.wait_for(
            asyncio.gather(
                reconciler.apply(TaskTransferred(task_id=1, from_owner=a, to_owner=b)),
                reconciler.apply(TaskTransferred(task_id=2, from_owner=b, to_owner=a)),
            ),
            timeout=5,
        )

        assert outcomes == [ReconcileOutcome.APPLIED, ReconcileOutcome.APPLIED]
        assert (await stores.task_store.get_task(b, 1)).content == "a1"
        assert (await stores.task_store.get_task(a, 2)).content == "b2"

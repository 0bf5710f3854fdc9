"""chaintodo Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    ON_CHAIN_STATUS_ORDER,
    LedgerEventKind,
    Priority,
    ReconcileOutcome,
    TaskStatus,
    derive_status,
    status_from_chain,
)
from .ledger_event import (
    LedgerEvent,
    LogPosition,
    TaskCompleted,
    TaskCreated,
    TaskDeleted,
    TaskEdited,
    TaskStatusChanged,
    TaskTransferred,
)
from .task import Task, TaskMetadataUpdate
from .user import User

__all__ = [
    # 枚举
    "TaskStatus",
    "Priority",
    "LedgerEventKind",
    "ReconcileOutcome",
    "ON_CHAIN_STATUS_ORDER",
    "status_from_chain",
    "derive_status",
    # Task
    "Task",
    "TaskMetadataUpdate",
    # User
    "User",
    # 链上事件
    "LedgerEvent",
    "LogPosition",
    "TaskCreated",
    "TaskCompleted",
    "TaskEdited",
    "TaskDeleted",
    "TaskTransferred",
    "TaskStatusChanged",
]

"""解码后的链上事件 -- 封闭的事件种类集合

事件由 chaintodo.ledger 的解码器产生，交给 Reconciler 消费。
地址字段统一为小写十六进制，整数字段已转换为 Python int。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import LedgerEventKind, TaskStatus


def _lower(value: str | None) -> str | None:
    return value.lower() if value is not None else None


class LogPosition(BaseModel):
    """事件在链上的位置，仅用于日志追踪"""

    model_config = ConfigDict(frozen=True)

    block_number: int
    tx_hash: str
    log_index: int


class _LedgerEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: int = Field(ge=0, description="链上任务编号")
    position: LogPosition | None = Field(default=None, description="链上位置")


class TaskCreated(_LedgerEventBase):
    """任务创建"""

    kind: Literal[LedgerEventKind.CREATED] = LedgerEventKind.CREATED
    owner: str
    content: str
    completed: bool = False

    normalize_owner = field_validator("owner")(_lower)


class TaskCompleted(_LedgerEventBase):
    """完成标记变更（部分合约版本不携带 owner）"""

    kind: Literal[LedgerEventKind.COMPLETED] = LedgerEventKind.COMPLETED
    completed: bool
    owner: str | None = None

    normalize_owner = field_validator("owner")(_lower)


class TaskEdited(_LedgerEventBase):
    """内容编辑"""

    kind: Literal[LedgerEventKind.EDITED] = LedgerEventKind.EDITED
    content: str
    owner: str

    normalize_owner = field_validator("owner")(_lower)


class TaskDeleted(_LedgerEventBase):
    """任务删除"""

    kind: Literal[LedgerEventKind.DELETED] = LedgerEventKind.DELETED
    owner: str

    normalize_owner = field_validator("owner")(_lower)


class TaskTransferred(_LedgerEventBase):
    """任务转移到新的所有者"""

    kind: Literal[LedgerEventKind.TRANSFERRED] = LedgerEventKind.TRANSFERRED
    from_owner: str
    to_owner: str

    normalize_owners = field_validator("from_owner", "to_owner")(_lower)


class TaskStatusChanged(_LedgerEventBase):
    """状态变更"""

    kind: Literal[LedgerEventKind.STATUS_CHANGED] = LedgerEventKind.STATUS_CHANGED
    status: TaskStatus
    owner: str | None = None

    normalize_owner = field_validator("owner")(_lower)


LedgerEvent = Annotated[
    TaskCreated
    | TaskCompleted
    | TaskEdited
    | TaskDeleted
    | TaskTransferred
    | TaskStatusChanged,
    Field(discriminator="kind"),
]

"""枚举定义

包含任务状态、优先级、链上事件种类、对账结果枚举，
以及链上 uint8 状态码到 TaskStatus 的映射。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """任务状态 -- 链上事件与链下元数据 API 共同驱动"""

    PENDING = "Pending"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    POSTPONED = "Postponed"


# 合约中 uint8 状态码的顺序
ON_CHAIN_STATUS_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.COMPLETED,
    TaskStatus.ON_HOLD,
    TaskStatus.POSTPONED,
)


class Priority(StrEnum):
    """任务优先级（仅链下）"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class LedgerEventKind(StrEnum):
    """解码后的链上事件种类（封闭集合）"""

    CREATED = "CREATED"
    COMPLETED = "COMPLETED"
    EDITED = "EDITED"
    DELETED = "DELETED"
    TRANSFERRED = "TRANSFERRED"
    STATUS_CHANGED = "STATUS_CHANGED"


class ReconcileOutcome(StrEnum):
    """单个事件的对账结果"""

    APPLIED = "applied"
    # 记录不存在：乱序到达或钱包尚未关联，属于良性竞态
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"


def status_from_chain(code: int) -> TaskStatus:
    """将链上 uint8 状态码转换为 TaskStatus

    Raises:
        ValueError: 状态码超出已知范围
    """
    if not 0 <= code < len(ON_CHAIN_STATUS_ORDER):
        raise ValueError(f"unknown on-chain status code: {code}")
    return ON_CHAIN_STATUS_ORDER[code]


def derive_status(current: TaskStatus, completed: bool) -> TaskStatus:
    """根据完成标记推导任务状态

    完成 -> Completed；取消完成且当前为 Completed -> Pending；其余保持不变。
    """
    if completed:
        return TaskStatus.COMPLETED
    if current == TaskStatus.COMPLETED:
        return TaskStatus.PENDING
    return current

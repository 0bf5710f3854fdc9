"""对账异常体系

Reconciler 内部抛出、集中分类处理，不会传播到宿主进程。
"""


class ReconcileError(Exception):
    """对账基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 源端重新投递后是否可能恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class StoreWriteFailure(ReconcileError):
    """写入 Task Store 失败（瞬时错误）

    本组件不主动重试，恢复依赖事件源的重新投递。
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        super().__init__(
            f"store write failed during {operation}: {original_error}",
            recoverable=True,
        )
        self.operation = operation
        self.original_error = original_error


class TransferConflict(ReconcileError):
    """转移目标键 (to_owner, task_id) 已被占用

    表示链上出现了不可能的状态，或本地镜像已过期。
    """

    def __init__(self, task_id: int, from_owner: str, to_owner: str) -> None:
        super().__init__(
            f"task {task_id} already exists for {to_owner}; "
            f"cannot transfer from {from_owner}",
            recoverable=False,
        )
        self.task_id = task_id
        self.from_owner = from_owner
        self.to_owner = to_owner

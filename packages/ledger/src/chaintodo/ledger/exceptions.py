"""Ledger 异常体系

传输类错误（LedgerError）由事件源记录并退避重试；
解码类错误（LedgerDecodeError）记录后丢弃该事件，不重试。
"""


class LedgerError(Exception):
    """Ledger 包基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class LedgerUnreachableError(LedgerError):
    """RPC 节点不可达（连接失败、超时、DNS 解析失败等）"""

    def __init__(self, rpc_url: str, original_error: Exception) -> None:
        super().__init__(
            f"RPC 节点不可达: {rpc_url} -- {original_error}",
            recoverable=True,
        )
        self.rpc_url = rpc_url
        self.original_error = original_error


class LedgerDecodeError(Exception):
    """日志解码失败基类 -- 表示 ABI 不匹配或配置错误，重投递无法修复"""

    def __init__(self, message: str, event_name: str = "") -> None:
        super().__init__(message)
        self.event_name = event_name


class DecodeError(LedgerDecodeError):
    """payload 格式错误（字段数量或类型不符）"""


class DecodeOverflow(LedgerDecodeError):
    """整数字段超出可安全存储的范围"""

    def __init__(self, field: str, value: int, event_name: str = "") -> None:
        super().__init__(
            f"field {field!r} value {value} exceeds safe integer range",
            event_name=event_name,
        )
        self.field = field
        self.value = value

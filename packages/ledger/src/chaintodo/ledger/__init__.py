"""chaintodo Ledger -- 链上事件获取与解码

packages/ledger 的公开接口导出。
"""

# 合约 ABI
from .abi import CONTRACT_EVENTS_ABI, EVENT_SPECS, EventSpec, topic_for

# 核心组件
from .client import LedgerClient

# 配置
from .config import LedgerConfig, load_ledger_config
from .decoder import EventDecoder

# 异常
from .exceptions import (
    DecodeError,
    DecodeOverflow,
    LedgerDecodeError,
    LedgerError,
    LedgerUnreachableError,
)
from .source import EventHandler, LedgerEventSource

__all__ = [
    "CONTRACT_EVENTS_ABI",
    "EVENT_SPECS",
    "EventSpec",
    "topic_for",
    "LedgerClient",
    "EventDecoder",
    "LedgerEventSource",
    "EventHandler",
    "LedgerConfig",
    "load_ledger_config",
    "LedgerError",
    "LedgerUnreachableError",
    "LedgerDecodeError",
    "DecodeError",
    "DecodeOverflow",
]

"""EventDecoder -- 原始日志 -> 类型化链上事件

规则：
- 非目标合约地址、匿名日志、未知事件签名：忽略（返回 None），不是错误
- 字段数量/类型不符：DecodeError
- 整数超出 SQLite INTEGER 范围：DecodeOverflow
- 地址统一转为小写十六进制
解码失败表示 ABI 不匹配或配置错误，调用方记录日志后丢弃，不重试。
"""

from collections.abc import Callable, Mapping
from typing import Any

import structlog
from chaintodo.core.config import MAX_SAFE_INT
from chaintodo.core.models import (
    LedgerEvent,
    LogPosition,
    TaskCompleted,
    TaskCreated,
    TaskDeleted,
    TaskEdited,
    TaskStatusChanged,
    TaskTransferred,
    status_from_chain,
)
from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_bytes

from .abi import EVENT_SPECS, EventSpec
from .exceptions import DecodeError, DecodeOverflow

log = structlog.get_logger()

_Builder = Callable[[dict[str, Any], LogPosition | None], LedgerEvent]

_BUILDERS: dict[str, _Builder] = {
    "TaskCreated": lambda v, pos: TaskCreated(
        task_id=v["id"],
        content=v["content"],
        completed=v["completed"],
        owner=v["owner"],
        position=pos,
    ),
    "TaskCompleted": lambda v, pos: TaskCompleted(
        task_id=v["id"],
        completed=v["completed"],
        position=pos,
    ),
    "TaskToggled": lambda v, pos: TaskCompleted(
        task_id=v["id"],
        completed=v["completed"],
        owner=v["owner"],
        position=pos,
    ),
    "TaskEdited": lambda v, pos: TaskEdited(
        task_id=v["id"],
        content=v["content"],
        owner=v["owner"],
        position=pos,
    ),
    "TaskDeleted": lambda v, pos: TaskDeleted(
        task_id=v["id"],
        owner=v["owner"],
        position=pos,
    ),
    "TaskTransferred": lambda v, pos: TaskTransferred(
        task_id=v["id"],
        from_owner=v["from"],
        to_owner=v["to"],
        position=pos,
    ),
    "TaskStatusChanged": lambda v, pos: TaskStatusChanged(
        task_id=v["id"],
        status=status_from_chain(v["status"]),
        owner=v["owner"],
        position=pos,
    ),
}


def _as_bytes(value: Any) -> bytes:
    """HexBytes / bytes / 0x 字符串统一转为 bytes"""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    raise TypeError(f"expected bytes or hex string, got {type(value).__name__}")


def _as_hex(value: Any) -> str:
    return "0x" + _as_bytes(value).hex()


class EventDecoder:
    """目标合约的事件解码器"""

    def __init__(
        self,
        contract_address: str,
        specs: Mapping[str, EventSpec] = EVENT_SPECS,
    ) -> None:
        self._address = contract_address.lower()
        self._specs = dict(specs)

    @property
    def contract_address(self) -> str:
        return self._address

    @property
    def topics(self) -> list[str]:
        """订阅的 topic0 集合"""
        return list(self._specs)

    def decode(self, raw_log: Mapping[str, Any]) -> LedgerEvent | None:
        """解码单条原始日志

        Returns:
            类型化事件；非目标地址或未知事件返回 None

        Raises:
            DecodeError: payload 格式错误
            DecodeOverflow: 整数字段超出安全范围
        """
        address = str(raw_log.get("address") or "").lower()
        if address != self._address:
            log.debug("ledger_log_ignored", reason="foreign_address", address=address)
            return None

        try:
            topics = [_as_hex(t) for t in raw_log.get("topics") or []]
        except (TypeError, ValueError) as e:
            raise DecodeError(f"malformed topics: {e}") from e
        if not topics:
            log.debug("ledger_log_ignored", reason="anonymous")
            return None

        spec = self._specs.get(topics[0])
        if spec is None:
            log.debug("ledger_log_ignored", reason="unknown_signature", topic=topics[0])
            return None

        values = self._decode_values(spec, topics[1:], raw_log.get("data") or b"")
        position = self._position(raw_log)
        try:
            return _BUILDERS[spec.name](values, position)
        except (KeyError, ValueError) as e:
            raise DecodeError(f"{spec.name}: {e}", event_name=spec.name) from e

    def _decode_values(
        self,
        spec: EventSpec,
        indexed_topics: list[str],
        data: Any,
    ) -> dict[str, Any]:
        if len(indexed_topics) != len(spec.indexed):
            raise DecodeError(
                f"{spec.name}: expected {len(spec.indexed)} indexed topics, "
                f"got {len(indexed_topics)}",
                event_name=spec.name,
            )

        values: dict[str, Any] = {}
        try:
            for (name, typ), topic in zip(spec.indexed, indexed_topics, strict=True):
                (values[name],) = abi_decode([typ], _as_bytes(topic))
            decoded = abi_decode([typ for _, typ in spec.data], _as_bytes(data))
        except (DecodingError, TypeError, ValueError) as e:
            raise DecodeError(f"{spec.name}: {e}", event_name=spec.name) from e
        values.update(zip((name for name, _ in spec.data), decoded, strict=True))

        # 类型规整：整数范围检查 + 地址小写
        for name, typ in spec.indexed + spec.data:
            value = values[name]
            if typ.startswith(("uint", "int")):
                if abs(value) > MAX_SAFE_INT:
                    raise DecodeOverflow(name, value, event_name=spec.name)
                values[name] = int(value)
            elif typ == "address":
                values[name] = str(value).lower()
        return values

    @staticmethod
    def _position(raw_log: Mapping[str, Any]) -> LogPosition | None:
        block_number = raw_log.get("blockNumber")
        tx_hash = raw_log.get("transactionHash")
        log_index = raw_log.get("logIndex")
        if block_number is None or tx_hash is None or log_index is None:
            return None
        return LogPosition(
            block_number=int(block_number),
            tx_hash=_as_hex(tx_hash),
            log_index=int(log_index),
        )

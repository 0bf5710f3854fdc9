"""TodoList 合约事件 ABI

只包含本服务订阅的事件。不同合约版本的事件命名略有差异，
但语义属于同一个封闭集合，解码器将其统一映射到 chaintodo.core 的事件模型。
"""

from dataclasses import dataclass

from eth_utils import keccak


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict:
    return {
        "anonymous": False,
        "type": "event",
        "name": name,
        "inputs": [
            {"indexed": indexed, "internalType": typ, "name": arg, "type": typ}
            for arg, typ, indexed in inputs
        ],
    }


CONTRACT_EVENTS_ABI: list[dict] = [
    _event(
        "TaskCreated",
        ("id", "uint256", False),
        ("content", "string", False),
        ("completed", "bool", False),
        ("owner", "address", False),
    ),
    # 旧版合约：不携带 owner
    _event(
        "TaskCompleted",
        ("id", "uint256", False),
        ("completed", "bool", False),
    ),
    _event(
        "TaskToggled",
        ("id", "uint256", False),
        ("completed", "bool", False),
        ("owner", "address", False),
    ),
    _event(
        "TaskEdited",
        ("id", "uint256", False),
        ("content", "string", False),
        ("owner", "address", False),
    ),
    _event(
        "TaskDeleted",
        ("id", "uint256", False),
        ("owner", "address", False),
    ),
    _event(
        "TaskTransferred",
        ("id", "uint256", False),
        ("from", "address", True),
        ("to", "address", True),
    ),
    _event(
        "TaskStatusChanged",
        ("id", "uint256", False),
        ("status", "uint8", False),
        ("owner", "address", False),
    ),
]


@dataclass(frozen=True)
class EventSpec:
    """单个事件的解码描述"""

    name: str
    signature: str
    topic: str
    indexed: tuple[tuple[str, str], ...]
    data: tuple[tuple[str, str], ...]


def event_spec(event_abi: dict) -> EventSpec:
    """从 ABI 条目构造 EventSpec（计算 topic0）"""
    inputs = event_abi["inputs"]
    signature = f"{event_abi['name']}({','.join(i['type'] for i in inputs)})"
    return EventSpec(
        name=event_abi["name"],
        signature=signature,
        topic="0x" + keccak(text=signature).hex(),
        indexed=tuple((i["name"], i["type"]) for i in inputs if i["indexed"]),
        data=tuple((i["name"], i["type"]) for i in inputs if not i["indexed"]),
    )


EVENT_SPECS: dict[str, EventSpec] = {
    spec.topic: spec for spec in (event_spec(abi) for abi in CONTRACT_EVENTS_ABI)
}


def topic_for(name: str) -> str:
    """按事件名查找 topic0

    Raises:
        KeyError: 未知事件名
    """
    for spec in EVENT_SPECS.values():
        if spec.name == name:
            return spec.topic
    raise KeyError(name)

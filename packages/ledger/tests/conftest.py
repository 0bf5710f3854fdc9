"""packages/ledger 测试 fixtures -- 用 eth_abi.encode 构造真实格式的原始日志"""

from collections.abc import Callable
from typing import Any

import pytest
from chaintodo.ledger.abi import EVENT_SPECS
from eth_abi import encode

CONTRACT = "0x" + "5f" * 20
OWNER = "0x" + "a1" * 20


def build_log(
    name: str,
    values: dict[str, Any],
    *,
    address: str = CONTRACT,
    block_number: int = 100,
    log_index: int = 0,
    tx_hash: bytes = b"\xab" * 32,
) -> dict[str, Any]:
    """按事件名与字段值构造 eth_getLogs 返回的日志结构"""
    spec = next(s for s in EVENT_SPECS.values() if s.name == name)
    topics = [bytes.fromhex(spec.topic[2:])]
    topics += [encode([typ], [values[arg]]) for arg, typ in spec.indexed]
    data = encode([typ for _, typ in spec.data], [values[arg] for arg, _ in spec.data])
    return {
        "address": address,
        "topics": topics,
        "data": data,
        "blockNumber": block_number,
        "transactionHash": tx_hash,
        "logIndex": log_index,
    }


@pytest.fixture
def contract() -> str:
    return CONTRACT


@pytest.fixture
def owner() -> str:
    return OWNER


@pytest.fixture
def log_factory() -> Callable[..., dict[str, Any]]:
    return build_log

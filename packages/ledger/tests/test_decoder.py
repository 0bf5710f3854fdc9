"""EventDecoder 单元测试

测试内容：
1. 每种合约事件解码为对应的事件模型
2. 非目标地址 / 匿名日志 / 未知签名被忽略
3. 格式错误与整数溢出分类
4. HexBytes、bytes、0x 字符串三种输入形式
"""

import pytest
from chaintodo.core.models import (
    TaskCompleted,
    TaskCreated,
    TaskDeleted,
    TaskEdited,
    TaskStatus,
    TaskStatusChanged,
    TaskTransferred,
)
from chaintodo.ledger import DecodeError, DecodeOverflow, EventDecoder, topic_for
from eth_abi import encode
from eth_utils import keccak, to_checksum_address

OTHER = "0x" + "b2" * 20


@pytest.fixture
def decoder(contract) -> EventDecoder:
    # 配置中的地址大小写不影响匹配
    return EventDecoder(to_checksum_address(contract))


class TestDecodeEvents:
    def test_task_created(self, decoder, log_factory, owner):
        raw = log_factory(
            "TaskCreated",
            {"id": 7, "content": "买牛奶", "completed": False, "owner": owner},
            block_number=321,
            log_index=4,
        )
        event = decoder.decode(raw)

        assert isinstance(event, TaskCreated)
        assert (event.task_id, event.content, event.completed) == (7, "买牛奶", False)
        assert event.owner == owner
        assert event.position.block_number == 321
        assert event.position.log_index == 4
        assert event.position.tx_hash == "0x" + "ab" * 32

    def test_owner_is_lowercased(self, decoder, log_factory, owner):
        raw = log_factory(
            "TaskDeleted", {"id": 1, "owner": to_checksum_address(owner)}
        )
        event = decoder.decode(raw)
        assert isinstance(event, TaskDeleted)
        assert event.owner == owner.lower()

    def test_legacy_completed_has_no_owner(self, decoder, log_factory):
        event = decoder.decode(log_factory("TaskCompleted", {"id": 2, "completed": True}))
        assert isinstance(event, TaskCompleted)
        assert event.completed is True
        assert event.owner is None

    def test_toggled_maps_to_completed_with_owner(self, decoder, log_factory, owner):
        event = decoder.decode(
            log_factory("TaskToggled", {"id": 2, "completed": False, "owner": owner})
        )
        assert isinstance(event, TaskCompleted)
        assert event.owner == owner

    def test_edited(self, decoder, log_factory, owner):
        event = decoder.decode(
            log_factory("TaskEdited", {"id": 3, "content": "new", "owner": owner})
        )
        assert isinstance(event, TaskEdited)
        assert event.content == "new"

    def test_transferred_reads_indexed_topics(self, decoder, log_factory, owner):
        event = decoder.decode(
            log_factory("TaskTransferred", {"id": 5, "from": owner, "to": OTHER})
        )
        assert isinstance(event, TaskTransferred)
        assert (event.from_owner, event.to_owner) == (owner, OTHER)

    def test_status_changed(self, decoder, log_factory, owner):
        event = decoder.decode(
            log_factory("TaskStatusChanged", {"id": 6, "status": 2, "owner": owner})
        )
        assert isinstance(event, TaskStatusChanged)
        assert event.status == TaskStatus.ON_HOLD

    def test_hex_string_inputs(self, decoder, log_factory, owner):
        raw = log_factory(
            "TaskCreated", {"id": 8, "content": "x", "completed": True, "owner": owner}
        )
        raw["topics"] = ["0x" + t.hex() for t in raw["topics"]]
        raw["data"] = "0x" + raw["data"].hex()
        raw["transactionHash"] = "0x" + raw["transactionHash"].hex()

        event = decoder.decode(raw)
        assert isinstance(event, TaskCreated)
        assert event.completed is True

    def test_position_optional(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 2, "completed": True})
        del raw["blockNumber"]
        assert decoder.decode(raw).position is None


class TestIgnoredLogs:
    def test_foreign_address(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 1, "completed": True}, address=OTHER)
        assert decoder.decode(raw) is None

    def test_anonymous_log(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 1, "completed": True})
        raw["topics"] = []
        assert decoder.decode(raw) is None

    def test_unknown_signature(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 1, "completed": True})
        raw["topics"] = [keccak(text="Approval(address,address,uint256)")]
        assert decoder.decode(raw) is None


class TestDecodeFailures:
    def test_truncated_data(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 1, "completed": True})
        raw["data"] = raw["data"][:40]
        with pytest.raises(DecodeError) as exc_info:
            decoder.decode(raw)
        assert exc_info.value.event_name == "TaskCompleted"

    def test_missing_indexed_topic(self, decoder, log_factory, owner):
        raw = log_factory("TaskTransferred", {"id": 5, "from": owner, "to": OTHER})
        raw["topics"] = raw["topics"][:2]
        with pytest.raises(DecodeError):
            decoder.decode(raw)

    def test_task_id_overflow(self, decoder, log_factory):
        raw = log_factory("TaskCompleted", {"id": 2**63, "completed": True})
        with pytest.raises(DecodeOverflow) as exc_info:
            decoder.decode(raw)
        assert exc_info.value.field == "id"

    def test_max_safe_task_id_accepted(self, decoder, log_factory):
        event = decoder.decode(log_factory("TaskCompleted", {"id": 2**63 - 1, "completed": True}))
        assert event.task_id == 2**63 - 1

    def test_unknown_status_code(self, decoder, log_factory, owner):
        raw = log_factory("TaskStatusChanged", {"id": 6, "status": 9, "owner": owner})
        with pytest.raises(DecodeError):
            decoder.decode(raw)

    def test_wrong_payload_shape(self, decoder, contract):
        raw = {
            "address": contract,
            "topics": [bytes.fromhex(topic_for("TaskEdited")[2:])],
            "data": encode(["uint256"], [1]),
        }
        with pytest.raises(DecodeError):
            decoder.decode(raw)


class TestDecoderTopics:
    def test_subscribes_all_known_events(self, decoder):
        assert topic_for("TaskCreated") in decoder.topics
        assert len(decoder.topics) == 7
        assert decoder.contract_address == decoder.contract_address.lower()

"""
Unit tests for log decoding.

Tests:
- Decoded records carry event name, signature and named args
- Non-target events are dropped once decoded
- Unknown, malformed and topic-less logs are kept raw
- Output order follows input order
"""

import pytest
from eth_utils import to_checksum_address

from conftest import ALICE, BOB, CAROL, ERC20_ABI, TOKEN, TRANSFER_TOPIC, make_approval, make_transfer
from logsync.decoder import LogDecoder, to_jsonable


class TestLogDecoder:
    """Test ABI-driven decoding of raw logs."""

    def test_transfer_decoded(self):
        record = LogDecoder(ERC20_ABI).decode(make_transfer(42, ALICE, BOB, 1000, log_index=3))

        assert record.decoded
        assert record.name == "Transfer"
        assert record.signature == "Transfer(address,address,uint256)"
        assert record.args == {
            "from": to_checksum_address(ALICE),
            "to": to_checksum_address(BOB),
            "value": 1000,
        }
        assert record.block_number == 42
        assert record.log_index == 3
        assert record.address == TOKEN
        assert record.topics[0] == TRANSFER_TOPIC

    def test_args_keep_abi_order(self):
        record = LogDecoder(ERC20_ABI).decode(make_approval(1, ALICE, CAROL, 5))
        assert list(record.args) == ["owner", "spender", "value"]

    def test_non_target_event_dropped(self):
        assert LogDecoder(ERC20_ABI, "Transfer").decode(make_approval(1)) is None

    def test_non_target_event_that_fails_to_decode_kept_raw(self):
        raw = make_approval(4)
        raw["data"] = "0x12"
        record = LogDecoder(ERC20_ABI, "Transfer").decode(raw)
        assert record is not None
        assert not record.decoded
        assert record.block_number == 4

    def test_unknown_topic_kept_raw(self):
        raw = make_transfer(7)
        raw["topics"][0] = "0x" + "12" * 32
        record = LogDecoder(ERC20_ABI, "Transfer").decode(raw)
        assert record is not None
        assert not record.decoded
        assert record.args is None
        assert record.name is None
        assert record.block_number == 7

    def test_malformed_data_kept_raw(self):
        raw = make_transfer(8)
        raw["data"] = "0x1234"
        record = LogDecoder(ERC20_ABI).decode(raw)
        assert not record.decoded
        assert record.args is None
        assert record.data == "0x1234"

    def test_log_without_topics_kept_raw(self):
        raw = make_transfer(9)
        raw["topics"] = []
        record = LogDecoder(ERC20_ABI).decode(raw)
        assert not record.decoded
        assert record.topics == []

    def test_decode_many_preserves_order(self):
        raws = [make_transfer(5, log_index=1), make_approval(3), make_transfer(1, log_index=0)]
        records = LogDecoder(ERC20_ABI).decode_many(raws)
        assert [(record.block_number, record.name) for record in records] == [
            (5, "Transfer"), (3, "Approval"), (1, "Transfer"),
        ]

    def test_decode_many_filters_targets(self):
        raws = [make_transfer(1), make_approval(2), make_transfer(3)]
        records = LogDecoder(ERC20_ABI, ["Transfer"]).decode_many(raws)
        assert [record.block_number for record in records] == [1, 3]

    def test_integer_quantities_accepted(self):
        raw = make_transfer(11)
        raw["blockNumber"] = 11
        raw["logIndex"] = 0
        assert LogDecoder(ERC20_ABI).decode(raw).block_number == 11


def test_to_jsonable_converts_bytes_and_tuples():
    assert to_jsonable((b"\x01", [b"\xff"], {"a": (1, 2)})) == ["0x01", ["0xff"], {"a": [1, 2]}]


@pytest.mark.parametrize("data", ["0x", "0x" + "00" * 31])
def test_short_data_never_raises(data):
    raw = make_transfer(1)
    raw["data"] = data
    assert LogDecoder(ERC20_ABI).decode(raw).decoded is False

"""Shared fixtures: an in-memory RPC transport and ERC20-style log builders."""
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
from eth_abi import encode

from logsync.kvstore import MemoryKVStore
from logsync.sync_helper import LogSyncHelper

TOKEN = "0x" + "11" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
APPROVAL_TOPIC = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"

ERC20_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "to", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "owner", "type": "address"},
            {"indexed": True, "internalType": "address", "name": "spender", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "value", "type": "uint256"},
        ],
        "name": "Approval",
        "type": "event",
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def pad_address(address: str) -> str:
    return "0x" + address[2:].lower().rjust(64, "0")


def make_log(block: int, topic0: str, first: str, second: str, value: int,
             log_index: int = 0, address: str = TOKEN) -> Dict[str, Any]:
    return {
        "address": address,
        "topics": [topic0, pad_address(first), pad_address(second)],
        "data": "0x" + encode(["uint256"], [value]).hex(),
        "blockNumber": hex(block),
        "blockHash": "0x" + f"{block:064x}",
        "transactionHash": "0x" + f"{block:032x}{log_index:032x}",
        "transactionIndex": "0x0",
        "logIndex": hex(log_index),
        "removed": False,
    }


def make_transfer(block: int, sender: str = ALICE, to: str = BOB, value: int = 1, log_index: int = 0):
    return make_log(block, TRANSFER_TOPIC, sender, to, value, log_index)


def make_approval(block: int, owner: str = ALICE, spender: str = BOB, value: int = 1, log_index: int = 0):
    return make_log(block, APPROVAL_TOPIC, owner, spender, value, log_index)


def _slot_matches(slot: Any, value: Optional[str]) -> bool:
    if slot is None:
        return True
    if value is None:
        return False
    if isinstance(slot, (list, tuple)):
        return value.lower() in [item.lower() for item in slot]
    return slot.lower() == value.lower()


class FakeTransport:
    """In-memory node. ``fail_when(from_block, to_block)`` makes ranges raise."""

    def __init__(self, logs: Sequence[Dict[str, Any]] = (), head: int = 0,
                 fail_when: Optional[Callable[[int, int], bool]] = None, chain_id: int = 1):
        self.logs = list(logs)
        self.head = head
        self.fail_when = fail_when
        self.chain_id = chain_id
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.head_calls = 0

    async def get_logs(self, addresses, topics, from_block, to_block):
        if to_block == "latest":
            to_block = self.head
        self.calls.append({"addresses": list(addresses), "topics": topics,
                           "from_block": from_block, "to_block": to_block})
        if self.fail_when is not None and self.fail_when(from_block, to_block):
            raise RuntimeError(f"query returned more than 10000 results ({from_block}-{to_block})")
        wanted = {address.lower() for address in addresses}
        matched = []
        for log in self.logs:
            block = int(log["blockNumber"], 16)
            if not from_block <= block <= to_block:
                continue
            if wanted and log["address"].lower() not in wanted:
                continue
            log_topics = log["topics"]
            if all(_slot_matches(slot, log_topics[i] if i < len(log_topics) else None)
                   for i, slot in enumerate(topics or [])):
                matched.append(log)
        return matched

    async def get_block_number(self) -> int:
        self.head_calls += 1
        return self.head

    async def get_transaction_receipt(self, tx_hash):
        return self.receipts.get(tx_hash)

    async def get_chain_id(self) -> int:
        return self.chain_id

    @property
    def successful_ranges(self):
        return [(call["from_block"], call["to_block"]) for call in self.calls
                if self.fail_when is None or not self.fail_when(call["from_block"], call["to_block"])]


@pytest.fixture
def transport():
    return FakeTransport(head=1000)


@pytest.fixture
def stores():
    return {}


@pytest.fixture
def store_factory(stores):
    def factory(table):
        stores[table] = MemoryKVStore(table)
        return stores[table]
    return factory


@pytest.fixture
def sync_helper(transport, store_factory):
    return LogSyncHelper(transport, store_factory)

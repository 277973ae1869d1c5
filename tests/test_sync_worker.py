"""
Unit tests for the sync worker loop.

Tests:
- Enabled targets are synced in order with their filters
- One failing target does not stop the others
- Disabled targets are ignored
"""

import pytest

from conftest import ERC20_ABI, FakeTransport, make_transfer
from logsync.models.data_models import SyncTarget
from logsync.models.settings_model import Settings
from logsync.sync_helper import LogSyncHelper
from logsync.sync_worker import SyncWorker

GOOD = "0x" + "11" * 20
OTHER = "0x" + "22" * 20

SETTINGS = Settings(
    namespace="test",
    rpc={"url": "http://localhost:8545"},
    storage={"backend": "memory"},
    logs={"write_to_files": False},
)


def target(name, address, **kwargs):
    return SyncTarget(name=name, contract_address=address, abi_path="abis/ERC20.json",
                      event_names=["Transfer"], **kwargs)


class RecordingHelper(LogSyncHelper):
    def __init__(self, transport, store_factory, broken=()):
        super().__init__(transport, store_factory)
        self.broken = set(broken)
        self.seen = []

    async def sync_logs(self, contract_address, abi, event_name=None, start_block=0, filter=None,
                        key_generator=None):
        self.seen.append((contract_address, filter))
        if contract_address in self.broken:
            raise RuntimeError("node unavailable")
        return await super().sync_logs(contract_address, abi, event_name, start_block, filter, key_generator)


class TestSyncWorker:
    """Test one sync round across targets."""

    @pytest.mark.asyncio
    async def test_run_once_syncs_enabled_targets(self, store_factory):
        transport = FakeTransport([make_transfer(3)], head=10)
        helper = RecordingHelper(transport, store_factory)
        targets = [target("a", GOOD, topics=[None]), target("off", OTHER, enabled=False)]
        worker = SyncWorker(SETTINGS, targets, {"a": ERC20_ABI, "off": ERC20_ABI}, helper=helper)

        results = await worker.run_once()

        assert list(results) == ["a"]
        assert results["a"].synced_logs == 1
        assert helper.seen == [(GOOD, {"topics": [None]})]

    @pytest.mark.asyncio
    async def test_failing_target_does_not_stop_others(self, store_factory):
        transport = FakeTransport(head=10)
        helper = RecordingHelper(transport, store_factory, broken=[GOOD])
        targets = [target("broken", GOOD), target("fine", OTHER)]
        worker = SyncWorker(SETTINGS, targets, {"broken": ERC20_ABI, "fine": ERC20_ABI}, helper=helper)

        results = await worker.run_once()

        assert list(results) == ["fine"]
        assert [address for address, _ in helper.seen] == [GOOD, OTHER]

    @pytest.mark.asyncio
    async def test_missing_abi_is_a_target_failure(self, store_factory):
        helper = RecordingHelper(FakeTransport(head=10), store_factory)
        worker = SyncWorker(SETTINGS, [target("a", GOOD)], {}, helper=helper)
        assert await worker.run_once() == {}

    @pytest.mark.asyncio
    async def test_close_closes_helper(self, store_factory):
        helper = RecordingHelper(FakeTransport(head=10), store_factory)
        worker = SyncWorker(SETTINGS, [target("a", GOOD)], {"a": ERC20_ABI}, helper=helper)
        await worker.run_once()
        await worker.close()
        assert helper._stores == {}

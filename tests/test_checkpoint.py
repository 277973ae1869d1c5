"""
Unit tests for sync checkpoints.

Tests:
- Checkpoint key derivation from address and event set
- Resume falls back to the caller start block
- Commit stores the next start block and nonce
"""

import pytest

from conftest import TOKEN
from logsync.checkpoint import CheckpointManager, checkpoint_key
from logsync.kvstore import MemoryKVStore


class TestCheckpointKey:
    """Test checkpoint key derivation."""

    def test_address_only(self):
        assert checkpoint_key("0xABCdef") == "0xabcdef"

    def test_event_names_sorted_and_deduplicated(self):
        assert checkpoint_key(TOKEN, ["Transfer", "Approval", "Transfer"]) == f"{TOKEN}:Approval,Transfer"

    def test_single_name_string(self):
        assert checkpoint_key(TOKEN, "Transfer") == f"{TOKEN}:Transfer"

    def test_event_sets_are_independent(self):
        assert checkpoint_key(TOKEN, "Transfer") != checkpoint_key(TOKEN, ["Transfer", "Approval"])


class TestCheckpointManager:
    """Test loading and committing checkpoints."""

    @pytest.mark.asyncio
    async def test_resume_without_checkpoint(self):
        manager = CheckpointManager(MemoryKVStore("metadata"))
        assert await manager.resume("k", 123) == (123, 0)
        assert await manager.load("k") is None

    @pytest.mark.asyncio
    async def test_commit_then_resume(self):
        manager = CheckpointManager(MemoryKVStore("metadata"))
        checkpoint = await manager.commit("k", to_block=500, nonce=7)

        assert checkpoint.start_block == 501
        assert checkpoint.nonce == 7
        assert checkpoint.last_sync > 0
        assert await manager.resume("k", 0) == (501, 7)

    @pytest.mark.asyncio
    async def test_checkpoint_wins_over_start_block(self):
        manager = CheckpointManager(MemoryKVStore("metadata"))
        await manager.commit("k", to_block=10, nonce=1)
        assert await manager.resume("k", 9999) == (11, 1)

    @pytest.mark.asyncio
    async def test_stored_as_plain_mapping(self):
        store = MemoryKVStore("metadata")
        await CheckpointManager(store).commit("k", to_block=0, nonce=0)
        assert set(await store.get("k")) == {"start_block", "nonce", "last_sync"}

import time
from typing import Optional, Tuple

from logsync.kvstore.base import KeyValueStore
from logsync.logging import logger
from logsync.models.data_models import SyncCheckpoint
from logsync.topics import EventNames, normalize_event_names


def checkpoint_key(contract_address: str, event_names: EventNames = None) -> str:
    """``<address>`` or ``<address>:<EventA>,<EventB>`` (names sorted)."""
    key = contract_address.lower()
    names = normalize_event_names(event_names)
    if names:
        key = f"{key}:{','.join(sorted(set(names)))}"
    return key


class CheckpointManager:
    """Reads and commits sync checkpoints in a metadata store.

    Concurrent syncs against the same key are not safe; callers serialize them.
    """

    def __init__(self, metadata_store: KeyValueStore):
        self.store = metadata_store
        self._logger = logger.bind(module='CheckpointManager')

    async def load(self, key: str) -> Optional[SyncCheckpoint]:
        raw = await self.store.get(key)
        if raw is None:
            return None
        return SyncCheckpoint(**raw)

    async def resume(self, key: str, default_start_block: int = 0) -> Tuple[int, int]:
        """``(effective_start_block, nonce)`` for the next sync."""
        checkpoint = await self.load(key)
        if checkpoint is None:
            self._logger.info(f"🆕 No checkpoint for {key}, starting at block {default_start_block}")
            return default_start_block, 0
        self._logger.debug(f"Resuming {key} at block {checkpoint.start_block} (nonce {checkpoint.nonce})")
        return checkpoint.start_block, checkpoint.nonce

    async def commit(self, key: str, to_block: int, nonce: int) -> SyncCheckpoint:
        checkpoint = SyncCheckpoint(
            start_block=to_block + 1,
            nonce=nonce,
            last_sync=int(time.time() * 1000),
        )
        await self.store.put(key, checkpoint.model_dump())
        self._logger.debug(f"Checkpoint {key} -> start_block={checkpoint.start_block}, nonce={nonce}")
        return checkpoint

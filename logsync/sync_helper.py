from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from logsync.checkpoint import CheckpointManager, checkpoint_key
from logsync.exceptions import InvalidInputError
from logsync.fetcher import FetchPolicy
from logsync.kvstore import create_store
from logsync.kvstore.base import KeyValueStore
from logsync.log_helper import LogHelper
from logsync.models.data_models import LogRecord, SyncResult
from logsync.models.settings_model import StorageConfig
from logsync.rpc import LogTransport
from logsync.topics import EventNames, normalize_event_names

DEFAULT_MAX_BLOCK_SPAN = 100000
METADATA_TABLE = "metadata"

StoreFactory = Callable[[str], KeyValueStore]
KeyGenerator = Callable[[LogRecord, int], str]


def default_key(log: LogRecord, nonce: int) -> str:
    return f"{log.block_number}_{nonce}"


class LogSyncHelper(LogHelper):
    """Incremental, resumable log sync into a key-value store.

    Each contract gets its own table; checkpoints live in the ``metadata``
    table keyed by contract address and event set.
    """

    def __init__(self, transport: LogTransport, store_factory: StoreFactory,
                 max_block_span: int = DEFAULT_MAX_BLOCK_SPAN, fetch_policy: Optional[FetchPolicy] = None):
        super().__init__(transport, fetch_policy)
        self.store_factory = store_factory
        self.max_block_span = max_block_span
        self._stores: Dict[str, KeyValueStore] = {}
        self._logger = self._logger.bind(module='LogSyncHelper')

    @classmethod
    def from_storage_config(cls, transport: LogTransport, storage: StorageConfig, namespace: str = "logsync",
                            chain_id: Optional[int] = None, **kwargs) -> "LogSyncHelper":
        """Helper whose stores come from settings. SQLite paths get ``_<chain_id>`` when known."""
        return cls(transport, lambda table: create_store(storage, table, chain_id, namespace), **kwargs)

    async def get_db(self, table: str) -> KeyValueStore:
        if table not in self._stores:
            self._stores[table] = self.store_factory(table)
        return self._stores[table]

    async def get_contract_db(self, contract_address: str) -> Tuple[KeyValueStore, KeyValueStore]:
        metadata_db = await self.get_db(METADATA_TABLE)
        db = await self.get_db(contract_address.lower())
        return db, metadata_db

    async def sync_logs(self, contract_address: str, abi: Sequence[Any], event_name: EventNames = None,
                        start_block: int = 0, filter: Optional[Mapping[str, Any]] = None,
                        key_generator: Optional[KeyGenerator] = None) -> SyncResult:
        """Fetch, decode and store logs since the last checkpoint.

        Works through at most ``max_block_span`` blocks per call. The checkpoint
        only advances after every log is written, so a failed call can simply
        be retried; without an idempotent ``key_generator`` a retry may store
        the same log twice.
        """
        if not contract_address:
            raise InvalidInputError("contract_address is required")
        if not abi:
            raise InvalidInputError("abi is required")
        if start_block is None or start_block < 0:
            raise InvalidInputError(f"start_block must be a non-negative integer, got {start_block}")

        event_names = normalize_event_names(event_name)
        self._target_events(abi, event_names)
        key_generator = key_generator or default_key
        db, metadata_db = await self.get_contract_db(contract_address)
        checkpoints = CheckpointManager(metadata_db)
        cp_key = checkpoint_key(contract_address, event_names)

        effective_start_block, nonce = await checkpoints.resume(cp_key, start_block)
        current_block = await self.transport.get_block_number()
        to_block = min(current_block, effective_start_block + self.max_block_span)

        if effective_start_block > current_block:
            self._logger.info(f"⏸️ {cp_key} is up to date (next block {effective_start_block}, head {current_block})")
            return SyncResult(
                synced_logs=0,
                from_block=effective_start_block,
                to_block=effective_start_block - 1,
                next_nonce=nonce,
            )

        topics = (filter or {}).get("topics")
        logs, fetch_result = await self.fetch_contract_logs(
            contract_address, abi, event_names,
            from_block=effective_start_block, to_block=to_block, topics=topics,
        )

        for log in logs:
            await db.put(key_generator(log, nonce), log.model_dump(mode="json"))
            nonce += 1

        await checkpoints.commit(cp_key, to_block, nonce)

        self._logger.success(
            f"💾 Synced {len(logs)} logs for {cp_key} from block {effective_start_block} to {to_block}"
        )
        return SyncResult(
            synced_logs=len(logs),
            from_block=effective_start_block,
            to_block=to_block,
            next_nonce=nonce,
            skipped_blocks=fetch_result.skipped_blocks,
        )

    async def close(self) -> None:
        for store in self._stores.values():
            await store.close()
        self._stores.clear()

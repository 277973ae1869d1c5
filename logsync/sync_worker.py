import asyncio
from typing import Any, Dict, List, Optional

from logsync.logging import logger
from logsync.models.data_models import SyncResult, SyncTarget
from logsync.models.settings_model import Settings
from logsync.fetcher import FetchPolicy
from logsync.rpc import RpcHelper
from logsync.sync_helper import LogSyncHelper


class SyncWorker:
    """Keeps configured contracts in sync, one target at a time."""

    def __init__(self, settings: Settings, targets: List[SyncTarget], abis: Dict[str, List[Dict[str, Any]]],
                 helper: Optional[LogSyncHelper] = None):
        self.settings = settings
        self.targets = [target for target in targets if target.enabled]
        self.abis = abis
        self.helper = helper
        self.rpc_helper: Optional[RpcHelper] = None
        self.poll_interval = settings.sync.poll_interval
        self._logger = logger.bind(module='SyncWorker')

        self._logger.info(f"🔧 Initializing SyncWorker with namespace: {settings.namespace}")
        self._logger.info(f"🔌 Loaded {len(self.targets)} enabled sync targets:")
        for target in self.targets:
            self._logger.info(f"  ├─ {target.name} ({target.contract_address})")

    async def _init(self):
        """Build the RPC transport and the sync helper if none was injected."""
        if self.helper is not None:
            return
        try:
            self.rpc_helper = RpcHelper(self.settings.rpc)
            chain_id = None
            if self.settings.storage.backend == "sqlite":
                chain_id = await self.rpc_helper.get_chain_id()
            self.helper = LogSyncHelper.from_storage_config(
                self.rpc_helper,
                self.settings.storage,
                namespace=self.settings.namespace,
                chain_id=chain_id,
                max_block_span=self.settings.sync.max_block_span,
                fetch_policy=FetchPolicy(
                    initial_batch_size=self.settings.sync.initial_batch_size,
                    min_batch_size=self.settings.sync.min_batch_size,
                ),
            )
            self._logger.info("🚀 SyncWorker initialized successfully.")
        except Exception as e:
            self._logger.critical(f"❌ Failed to initialize SyncWorker: {e}")
            raise

    async def sync_target(self, target: SyncTarget) -> SyncResult:
        self._logger.info(f"🔍 Syncing target '{target.name}'")
        return await self.helper.sync_logs(
            contract_address=target.contract_address,
            abi=self.abis[target.name],
            event_name=target.event_names,
            start_block=target.start_block,
            filter={"topics": target.topics} if target.topics is not None else None,
        )

    async def run_once(self) -> Dict[str, SyncResult]:
        """Sync every target once, sequentially. Failed targets are logged and left for the next round."""
        await self._init()
        results: Dict[str, SyncResult] = {}
        for target in self.targets:
            try:
                result = await self.sync_target(target)
            except Exception as e:
                self._logger.error(f"💥 Failed to sync target '{target.name}': {type(e).__name__} - {e}")
                continue
            results[target.name] = result
            if result.skipped_blocks:
                self._logger.warning(f"⚠️ Target '{target.name}' skipped blocks {result.skipped_blocks}")
        return results

    async def start(self):
        """Sync forever, sleeping ``poll_interval`` seconds between rounds."""
        self._logger.info(f"🔄 Starting sync loop (interval: {self.poll_interval}s)")
        while True:
            await self.run_once()
            await asyncio.sleep(self.poll_interval)

    async def close(self):
        if self.helper is not None:
            await self.helper.close()
        if self.rpc_helper is not None:
            await self.rpc_helper.close()

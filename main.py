import asyncio
from config.loader import get_core_config, get_sync_targets_config, load_abi
from logsync.sync_worker import SyncWorker
from logsync.logging import logger, configure_console_logging, configure_file_logging
from logsync.kvstore.redis_conn import RedisPool

async def main():
    worker = None
    try:
        settings = get_core_config()
        # Reconfigure logging with settings
        configure_console_logging(level=settings.logs.level, debug_mode=settings.logs.debug_mode)
        configure_file_logging(
            write_to_files=settings.logs.write_to_files,
        )
        logger.info("🚀 Starting Log Sync Service...")
        targets = get_sync_targets_config().targets
        abis = {target.name: load_abi(target.abi_path) for target in targets if target.enabled}
        worker = SyncWorker(settings, targets, abis)
        await worker.start()
    except Exception as e:
        logger.critical(f"🆘 Service failed to start or crashed: {e}")
        raise
    finally:
        logger.info("Shutting down resources...")
        if worker:
            await worker.close()
        await RedisPool.close()
        logger.info("Shutdown complete.")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Service interrupted by user.")
    except Exception as e:
        logger.critical(f"🆘 Service crashed: {e}")
        raise

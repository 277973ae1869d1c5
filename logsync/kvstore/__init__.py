from typing import Optional

from logsync.kvstore.base import KeyValueStore, sanitize_table_name
from logsync.kvstore.memory import MemoryKVStore
from logsync.models.settings_model import StorageConfig


def sqlite_path_for_chain(path: str, chain_id: Optional[int] = None) -> str:
    """``./db/logs`` -> ``./db/logs_<chain_id>.db``."""
    if not path.endswith(".db"):
        path = f"{path}.db"
    if chain_id is not None:
        path = f"{path[:-len('.db')]}_{chain_id}.db"
    return path


def create_store(config: StorageConfig, table: str, chain_id: Optional[int] = None,
                 namespace: str = "logsync") -> KeyValueStore:
    """Build the configured backend for ``table``. Drivers are imported on demand."""
    if config.backend == "memory":
        return MemoryKVStore(table)
    if config.backend == "sqlite":
        from logsync.kvstore.sqlite_store import SqliteKVStore
        return SqliteKVStore(sqlite_path_for_chain(config.sqlite_path, chain_id), table)
    if config.backend == "postgres":
        from logsync.kvstore.postgres_store import PostgresKVStore
        return PostgresKVStore(config.postgres_dsn, table)
    if config.backend == "redis":
        from logsync.kvstore.redis_store import RedisKVStore
        return RedisKVStore(config.redis, namespace, table)
    raise ValueError(f"Unsupported storage backend: {config.backend}")


__all__ = ["KeyValueStore", "MemoryKVStore", "create_store", "sanitize_table_name", "sqlite_path_for_chain"]

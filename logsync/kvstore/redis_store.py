from typing import Any, List, Optional, Tuple

import redis.asyncio as aioredis
import redis.exceptions

from logsync.exceptions import StoreError
from logsync.kvstore.base import KeyValueStore, dumps, key_in_range, loads
from logsync.kvstore.redis_conn import RedisPool
from logsync.models.settings_model import Redis


def kv_table_key(namespace: str, table: str) -> str:
    return f"{namespace}:kv:{table}"


class RedisKVStore(KeyValueStore):
    """One Redis hash per table; the connection pool is shared process-wide."""

    def __init__(self, redis_settings: Redis, namespace: str, table: str = "kv_store"):
        super().__init__(table)
        self.redis_settings = redis_settings
        self.hash_key = kv_table_key(namespace, self.table)
        self._redis: Optional[aioredis.Redis] = None

    async def _client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = await RedisPool.get_pool(self.redis_settings)
        return self._redis

    async def get(self, key: str) -> Optional[Any]:
        client = await self._client()
        try:
            raw = await client.hget(self.hash_key, key)
        except redis.exceptions.RedisError as e:
            raise StoreError(f"redis hget {self.hash_key} {key}: {e}") from e
        return None if raw is None else loads(raw)

    async def put(self, key: str, value: Any) -> None:
        client = await self._client()
        try:
            await client.hset(self.hash_key, key, dumps(value))
        except redis.exceptions.RedisError as e:
            raise StoreError(f"redis hset {self.hash_key} {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        client = await self._client()
        try:
            return await client.hdel(self.hash_key, key) > 0
        except redis.exceptions.RedisError as e:
            raise StoreError(f"redis hdel {self.hash_key} {key}: {e}") from e

    async def has(self, key: str) -> bool:
        client = await self._client()
        return bool(await client.hexists(self.hash_key, key))

    async def scan(self, prefix: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        client = await self._client()
        try:
            entries = await client.hgetall(self.hash_key)
        except redis.exceptions.RedisError as e:
            raise StoreError(f"redis hgetall {self.hash_key}: {e}") from e
        keys = sorted(key for key in entries if key_in_range(key, prefix, start, end))
        if limit is not None:
            keys = keys[:limit]
        return [(key, loads(entries[key])) for key in keys]

    async def count(self) -> int:
        client = await self._client()
        return await client.hlen(self.hash_key)

    async def close(self) -> None:
        # pool is shared; RedisPool.close() releases it at shutdown
        self._redis = None

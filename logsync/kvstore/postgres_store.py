import asyncio
from typing import Any, List, Optional, Tuple

import asyncpg

from logsync.exceptions import StoreError
from logsync.kvstore.base import KeyValueStore, dumps, loads
from logsync.logging import logger


class PostgresKVStore(KeyValueStore):
    """Relational store: ``key TEXT PRIMARY KEY, value JSONB`` per table."""

    def __init__(self, dsn: str, table: str = "kv_store"):
        super().__init__(table)
        self.dsn = dsn
        self.pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._logger = logger.bind(module='PostgresKVStore')

    async def _get_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            async with self._lock:
                if self.pool is None:
                    try:
                        pool = await asyncpg.create_pool(dsn=self.dsn, min_size=1, max_size=5)
                        async with pool.acquire() as conn:
                            await conn.execute(f"""
                                CREATE TABLE IF NOT EXISTS {self.table} (
                                    key TEXT PRIMARY KEY,
                                    value JSONB NOT NULL,
                                    created_at TIMESTAMPTZ DEFAULT NOW(),
                                    updated_at TIMESTAMPTZ DEFAULT NOW()
                                );
                            """)
                    except (OSError, asyncpg.PostgresError) as e:
                        raise StoreError(f"Failed to initialize postgres table '{self.table}': {e}") from e
                    self.pool = pool
                    self._logger.info(f"Postgres table '{self.table}' ready")
        return self.pool

    async def get(self, key: str) -> Optional[Any]:
        pool = await self._get_pool()
        try:
            raw = await pool.fetchval(f"SELECT value::text FROM {self.table} WHERE key = $1", key)
        except asyncpg.PostgresError as e:
            raise StoreError(f"postgres get '{key}' from {self.table}: {e}") from e
        return None if raw is None else loads(raw)

    async def put(self, key: str, value: Any) -> None:
        pool = await self._get_pool()
        try:
            await pool.execute(
                f"""
                INSERT INTO {self.table} (key, value) VALUES ($1, $2::jsonb)
                ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                key, dumps(value),
            )
        except asyncpg.PostgresError as e:
            raise StoreError(f"postgres put '{key}' into {self.table}: {e}") from e

    async def delete(self, key: str) -> bool:
        pool = await self._get_pool()
        try:
            status = await pool.execute(f"DELETE FROM {self.table} WHERE key = $1", key)
        except asyncpg.PostgresError as e:
            raise StoreError(f"postgres delete '{key}' from {self.table}: {e}") from e
        # status is "DELETE <n>"
        return status.split()[-1] != "0"

    async def scan(self, prefix: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        pool = await self._get_pool()
        clauses, params = [], []
        if prefix is not None:
            params.append(prefix)
            clauses.append(f"left(key, char_length(${len(params)})) = ${len(params)}")
        if start is not None:
            params.append(start)
            clauses.append(f'key COLLATE "C" >= ${len(params)}')
        if end is not None:
            params.append(end)
            clauses.append(f'key COLLATE "C" < ${len(params)}')
        query = f"SELECT key, value::text FROM {self.table}"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += ' ORDER BY key COLLATE "C"'
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"
        try:
            rows = await pool.fetch(query, *params)
        except asyncpg.PostgresError as e:
            raise StoreError(f"postgres scan of {self.table}: {e}") from e
        return [(row["key"], loads(row["value"])) for row in rows]

    async def count(self) -> int:
        pool = await self._get_pool()
        return await pool.fetchval(f"SELECT COUNT(*) FROM {self.table}")

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

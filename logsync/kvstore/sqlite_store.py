import asyncio
import os
import sqlite3
from typing import Any, List, Optional, Tuple

from logsync.exceptions import StoreError
from logsync.kvstore.base import KeyValueStore, dumps, loads
from logsync.logging import logger


class SqliteKVStore(KeyValueStore):
    """Embedded file-based store: one table per logical table name."""

    def __init__(self, path: str, table: str = "kv_store"):
        super().__init__(table)
        self.path = path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()
        self._logger = logger.bind(module='SqliteKVStore')

    def _open(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        conn.commit()
        self._logger.debug(f"Opened sqlite table '{self.table}' at {self.path}")
        return conn

    async def _run(self, fn, *args):
        async with self._lock:
            try:
                if self.conn is None:
                    self.conn = await asyncio.to_thread(self._open)
                return await asyncio.to_thread(fn, self.conn, *args)
            except sqlite3.Error as e:
                raise StoreError(f"sqlite {self.path}:{self.table}: {e}") from e

    def _get(self, conn: sqlite3.Connection, key: str):
        row = conn.execute(f"SELECT value FROM {self.table} WHERE key = ?", (key,)).fetchone()
        return None if row is None else row[0]

    def _put(self, conn: sqlite3.Connection, key: str, raw: str) -> None:
        conn.execute(
            f"""
            INSERT INTO {self.table} (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, raw),
        )
        conn.commit()

    def _delete(self, conn: sqlite3.Connection, key: str) -> int:
        cur = conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
        conn.commit()
        return cur.rowcount

    def _scan(self, conn: sqlite3.Connection, prefix, start, end, limit):
        clauses, params = [], []
        if prefix is not None:
            clauses.append("substr(key, 1, ?) = ?")
            params.extend([len(prefix), prefix])
        if start is not None:
            clauses.append("key >= ?")
            params.append(start)
        if end is not None:
            clauses.append("key < ?")
            params.append(end)
        query = f"SELECT key, value FROM {self.table}"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY key"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return conn.execute(query, params).fetchall()

    def _count(self, conn: sqlite3.Connection) -> int:
        return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._run(self._get, key)
        return None if raw is None else loads(raw)

    async def put(self, key: str, value: Any) -> None:
        await self._run(self._put, key, dumps(value))

    async def delete(self, key: str) -> bool:
        return await self._run(self._delete, key) > 0

    async def scan(self, prefix: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        rows = await self._run(self._scan, prefix, start, end, limit)
        return [(key, loads(raw)) for key, raw in rows]

    async def count(self) -> int:
        return await self._run(self._count)

    async def close(self) -> None:
        if self.conn is not None:
            async with self._lock:
                await asyncio.to_thread(self.conn.close)
                self.conn = None

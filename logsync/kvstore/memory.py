from typing import Any, Dict, List, Optional, Tuple

from logsync.kvstore.base import KeyValueStore, dumps, key_in_range, loads


class MemoryKVStore(KeyValueStore):
    """In-process store. Values round-trip through JSON like the persistent backends."""

    def __init__(self, table: str = "kv_store"):
        super().__init__(table)
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return None if raw is None else loads(raw)

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = dumps(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def has(self, key: str) -> bool:
        return key in self._data

    async def scan(self, prefix: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        keys = sorted(key for key in self._data if key_in_range(key, prefix, start, end))
        if limit is not None:
            keys = keys[:limit]
        return [(key, loads(self._data[key])) for key in keys]

    async def count(self) -> int:
        return len(self._data)

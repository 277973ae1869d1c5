import json
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from hexbytes import HexBytes

from logsync.exceptions import StoreError


def _json_default(obj: Any) -> Any:
    if isinstance(obj, HexBytes):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, set):
        return sorted(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    """JSON text for ``value``; unserializable values raise ``StoreError``."""
    try:
        return json.dumps(value, default=_json_default, ensure_ascii=True)
    except (TypeError, ValueError) as e:
        raise StoreError(f"Value cannot be stored as JSON: {e}") from e


def loads(raw: str) -> Any:
    return json.loads(raw)


def sanitize_table_name(name: str) -> str:
    """Lowercased ``[a-z0-9_]`` identifier, safe to interpolate into DDL."""
    cleaned = re.sub(r"[^a-z0-9_]", "_", name.lower())
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"t_{cleaned}"
    return cleaned[:63]


def key_in_range(key: str, prefix: Optional[str], start: Optional[str], end: Optional[str]) -> bool:
    if prefix is not None and not key.startswith(prefix):
        return False
    if start is not None and key < start:
        return False
    if end is not None and key >= end:
        return False
    return True


class KeyValueStore(ABC):
    """Async persistent map from string keys to JSON-serializable values.

    Backends open their connection lazily on first use and keep it until
    :meth:`close`.
    """

    def __init__(self, table: str):
        self.table = sanitize_table_name(table)

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Value stored under ``key`` or None."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Insert or overwrite ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``; True when something was removed."""

    @abstractmethod
    async def scan(self, prefix: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None, limit: Optional[int] = None) -> List[Tuple[str, Any]]:
        """``(key, value)`` pairs in ascending key order.

        Args:
            prefix: only keys starting with it
            start: inclusive lower bound
            end: exclusive upper bound
            limit: maximum number of rows
        """

    @abstractmethod
    async def count(self) -> int:
        pass

    async def has(self, key: str) -> bool:
        return await self.get(key) is not None

    async def close(self) -> None:
        pass

import httpx
import asyncio
from typing import Optional, Dict, Any, List, Protocol, Sequence, Union
from logsync.exceptions import RPCError
from logsync.logging import logger
from logsync.models.settings_model import RPCConfig

BlockParam = Union[int, str]


class LogTransport(Protocol):
    """What the log helpers need from an RPC node."""

    async def get_logs(self, addresses: Sequence[str], topics: Sequence[Any],
                       from_block: BlockParam, to_block: BlockParam) -> List[Dict[str, Any]]:
        """Raw logs for the inclusive block range. Raises on any provider failure."""

    async def get_block_number(self) -> int:
        """Current chain head."""

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Receipt or None while pending/unknown."""

    async def get_chain_id(self) -> int:
        """Chain id of the connected network."""


def _block_param(block: BlockParam) -> str:
    if isinstance(block, int):
        return hex(block)
    return block


class RpcHelper:
    def __init__(self, config: RPCConfig):
        self.config = config
        self.client = httpx.AsyncClient(timeout=config.request_time_out)
        self._logger = logger.bind(module='RpcHelper')
        self._request_id = 0

    async def _make_request(self, method: str, params: list) -> Any:
        """Makes a JSON-RPC request, retrying transport failures only."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }
        for attempt in range(self.config.retry + 1):
            try:
                response = await self.client.post(self.config.url, json=payload)
                response.raise_for_status()
                data = response.json()
            except (httpx.RequestError, httpx.HTTPStatusError) as e:
                self._logger.warning(f"Request failed ({method}, attempt {attempt+1}/{self.config.retry+1}): {e}")
                if attempt == self.config.retry:
                    self._logger.error(f"Max retries exceeded for {method}.")
                    raise RPCError(method, str(e)) from e
                await asyncio.sleep(1)  # Simple backoff
                continue
            except ValueError as e:
                raise RPCError(method, f"invalid JSON response: {e}") from e

            if "error" in data:
                error = data["error"] or {}
                self._logger.debug(f"RPC Error ({method}): {error}")
                raise RPCError(method, error.get("message", str(error)), code=error.get("code"))
            return data.get("result")

    async def get_logs(self, addresses: Sequence[str], topics: Sequence[Any],
                       from_block: BlockParam, to_block: BlockParam) -> List[Dict[str, Any]]:
        """eth_getLogs over an inclusive block range."""
        log_filter: Dict[str, Any] = {
            "address": list(addresses),
            "fromBlock": _block_param(from_block),
            "toBlock": _block_param(to_block),
        }
        if topics:
            log_filter["topics"] = list(topics)
        result = await self._make_request("eth_getLogs", [log_filter])
        return result or []

    async def get_block_number(self) -> int:
        result = await self._make_request("eth_blockNumber", [])
        return int(result, 16)

    async def get_chain_id(self) -> int:
        result = await self._make_request("eth_chainId", [])
        return int(result, 16)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Fetches the transaction receipt for a given hash."""
        self._logger.trace(f"Fetching receipt for tx: {tx_hash}")
        return await self._make_request("eth_getTransactionReceipt", [tx_hash])

    async def close(self):
        await self.client.aclose()

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from logsync.decoder import LogDecoder
from logsync.exceptions import AbiError, InvalidBlockRangeError, InvalidInputError, LogSyncError
from logsync.fetcher import AdaptiveRangeFetcher, FetchPolicy, FetchResult
from logsync.logging import logger
from logsync.models.abi import event_entries
from logsync.models.data_models import LogRecord
from logsync.rpc import BlockParam, LogTransport
from logsync.topics import (
    EventNames,
    build_full_topics_for_events,
    derive_event_signature_hashes,
    normalize_event_names,
    signature_hash,
)

Addresses = Union[str, Sequence[str]]
FilterTopics = Union[None, Sequence[Any], Mapping[str, Sequence[Any]]]


def _as_list(addresses: Addresses) -> List[str]:
    if isinstance(addresses, str):
        return [addresses]
    return list(addresses)


class LogHelper:
    """Contract log queries over an injected RPC transport."""

    def __init__(self, transport: LogTransport, fetch_policy: Optional[FetchPolicy] = None):
        self.transport = transport
        self.fetch_policy = fetch_policy or FetchPolicy()
        self._logger = logger.bind(module='LogHelper')

    async def get_raw_contract_logs(self, contract_addresses: Addresses, event_signatures: Union[str, Sequence[str]],
                                    from_block: BlockParam = 0, to_block: BlockParam = "latest",
                                    topics: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Undecoded logs from one range query. ``event_signatures`` are texts like ``Transfer(address,address,uint256)``."""
        signatures = [event_signatures] if isinstance(event_signatures, str) else list(event_signatures)
        topic0 = [signature_hash(signature) for signature in signatures]
        return await self.transport.get_logs(
            _as_list(contract_addresses), [topic0, *(topics or [])], from_block, to_block
        )

    def _target_events(self, abi: Sequence[Any], event_names: EventNames):
        if not abi or isinstance(abi, (str, bytes)):
            raise InvalidInputError("An ABI list is required")
        try:
            all_events = event_entries(abi)
        except ValidationError as e:
            raise AbiError(f"Malformed contract ABI: {e}") from e
        names = normalize_event_names(event_names)
        events = all_events if names is None else [event for event in all_events if event.name in names]
        if not events:
            if event_names is not None:
                available = ", ".join(event.name for event in all_events)
                raise InvalidInputError(
                    f"Events {normalize_event_names(event_names)} not found in ABI. Available events: {available}"
                )
            raise InvalidInputError("No event definitions found in ABI")
        return events

    async def resolve_block_range(self, from_block: Optional[int], to_block: Optional[BlockParam]) -> Tuple[int, int]:
        start = int(from_block or 0)
        if to_block is None or to_block == "latest":
            end = await self.transport.get_block_number()
        else:
            end = int(to_block)
        if start > end:
            raise InvalidBlockRangeError(start, end)
        return start, end

    async def fetch_contract_logs(self, contract_addresses: Addresses, abi: Sequence[Any],
                                  event_names: EventNames = None, from_block: Optional[int] = 0,
                                  to_block: Optional[BlockParam] = None, topics: FilterTopics = None,
                                  initial_batch_size: Optional[int] = None) -> Tuple[List[LogRecord], FetchResult]:
        """Decoded logs plus the fetch metadata (requests made, skipped blocks)."""
        if not contract_addresses:
            raise InvalidInputError("A contract address is required")
        addresses = _as_list(contract_addresses)
        events = self._target_events(abi, event_names)
        target_names = [event.name for event in events]

        full_topics = build_full_topics_for_events(abi, target_names, topics)
        if full_topics is None:
            full_topics = [derive_event_signature_hashes(events)]

        start, end = await self.resolve_block_range(from_block, to_block)

        policy = self.fetch_policy
        if initial_batch_size is not None:
            policy = FetchPolicy(initial_batch_size=initial_batch_size, min_batch_size=policy.min_batch_size)
        fetcher = AdaptiveRangeFetcher(self.transport, policy)
        result = await fetcher.fetch(addresses, full_topics, start, end)

        records = LogDecoder(abi, target_names).decode_many(result.logs)
        self._logger.info(f"Decoded {len(records)} of {len(result.logs)} logs for {addresses} ({', '.join(target_names)})")
        return records, result

    async def get_contract_logs(self, contract_addresses: Addresses, abi: Sequence[Any],
                                event_names: EventNames = None, from_block: Optional[int] = 0,
                                to_block: Optional[BlockParam] = None, topics: FilterTopics = None,
                                initial_batch_size: Optional[int] = None) -> List[LogRecord]:
        """Decoded logs for the target events across ``[from_block, to_block]``.

        Args:
            contract_addresses: one address or a list
            abi: contract ABI (raw dicts or parsed entries)
            event_names: events to keep; all ABI events when None
            from_block: first block, default 0
            to_block: last block; None or "latest" means the chain head
            topics: indexed-parameter values, positional list or per-event mapping
            initial_batch_size: starting window for the adaptive fetcher
        """
        records, _ = await self.fetch_contract_logs(
            contract_addresses, abi, event_names, from_block, to_block, topics, initial_batch_size
        )
        return records

    async def get_logs_by_tx_hash(self, tx_hash: str, abi: Optional[Sequence[Any]] = None):
        """Receipt logs; decoded records (undecodable ones dropped) when ``abi`` is given."""
        receipt = await self.transport.get_transaction_receipt(tx_hash)
        if not receipt:
            raise LogSyncError(f"Transaction receipt not found: {tx_hash}")
        logs = receipt.get("logs") or []
        if abi is None:
            return logs
        records = LogDecoder(abi).decode_many(logs)
        return [record for record in records if record.decoded]

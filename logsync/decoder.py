from typing import Any, Dict, List, Mapping, Optional, Sequence

from eth_abi.codec import ABICodec
from eth_abi.registry import registry as default_abi_registry
from hexbytes import HexBytes
from web3._utils.events import get_event_data

from logsync.logging import logger
from logsync.models.abi import EventAbiEntry, event_entries
from logsync.models.data_models import LogRecord
from logsync.topics import EventNames, event_signature, normalize_event_names, signature_hash


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def to_jsonable(value: Any) -> Any:
    """Decoded ABI values to JSON-friendly types (bytes -> 0x hex, tuples -> lists)."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


class LogDecoder:
    """Decodes raw ``eth_getLogs`` entries against a contract ABI.

    Logs of events outside ``event_names`` are dropped once they decode. Logs
    that cannot be decoded, targeted or not, are kept as raw records with
    ``decoded=False`` and ``args=None``.
    """

    def __init__(self, abi: Sequence[Any], event_names: EventNames = None):
        self._logger = logger.bind(module='LogDecoder')
        self.codec = ABICodec(default_abi_registry)
        self.target_names = normalize_event_names(event_names)
        self.events_by_topic: Dict[str, EventAbiEntry] = {}
        self.signatures_by_topic: Dict[str, str] = {}
        for event in event_entries(abi):
            if event.anonymous:
                continue
            signature = event_signature(event)
            topic = signature_hash(signature)
            self.events_by_topic[topic] = event
            self.signatures_by_topic[topic] = signature

    def _is_target(self, name: str) -> bool:
        return self.target_names is None or name in self.target_names

    @staticmethod
    def _raw_fields(raw_log: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "address": raw_log.get("address") or "",
            "block_number": _parse_int(raw_log.get("blockNumber")) or 0,
            "block_hash": _hex(raw_log.get("blockHash")),
            "transaction_hash": _hex(raw_log.get("transactionHash")) or "",
            "transaction_index": _parse_int(raw_log.get("transactionIndex")),
            "log_index": _parse_int(raw_log.get("logIndex")) or 0,
            "topics": [_hex(topic).lower() for topic in raw_log.get("topics") or []],
            "data": _hex(raw_log.get("data")) or "0x",
            "removed": bool(raw_log.get("removed", False)),
        }

    def _log_entry(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Shape ``get_event_data`` expects: byte topics and every receipt key present."""
        return {
            "address": fields["address"],
            "topics": [HexBytes(topic) for topic in fields["topics"]],
            "data": HexBytes(fields["data"]),
            "blockNumber": fields["block_number"],
            "blockHash": fields["block_hash"],
            "transactionHash": fields["transaction_hash"],
            "transactionIndex": fields["transaction_index"],
            "logIndex": fields["log_index"],
        }

    def decode(self, raw_log: Mapping[str, Any]) -> Optional[LogRecord]:
        fields = self._raw_fields(raw_log)
        topic0 = fields["topics"][0] if fields["topics"] else None
        event = self.events_by_topic.get(topic0) if topic0 else None

        if event is None:
            self._logger.warning(
                f"No ABI event for log (blockNumber: {fields['block_number']}, topic0: {topic0}), keeping raw"
            )
            return LogRecord(**fields, args=None, decoded=False)

        try:
            event_data = get_event_data(self.codec, event.to_abi_dict(), self._log_entry(fields))
        except Exception as e:
            self._logger.warning(
                f"Failed to decode '{event.name}' log (blockNumber: {fields['block_number']}, "
                f"logIndex: {fields['log_index']}): {e}"
            )
            return LogRecord(**fields, args=None, decoded=False)

        if not self._is_target(event.name):
            return None

        args = {item.name: to_jsonable(event_data["args"][item.name])
                for item in event.inputs if item.name in event_data["args"]}
        return LogRecord(
            **fields,
            name=event.name,
            signature=self.signatures_by_topic[topic0],
            args=args,
            decoded=True,
        )

    def decode_many(self, raw_logs: Sequence[Mapping[str, Any]]) -> List[LogRecord]:
        records = (self.decode(raw_log) for raw_log in raw_logs)
        return [record for record in records if record is not None]

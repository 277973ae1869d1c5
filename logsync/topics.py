"""Topic filter construction for ``eth_getLogs``.

A topic filter is a list of up to four slots. Slot 0 holds the event signature
hash (or a list of hashes, OR-ed), slots 1-3 the indexed parameters in
declaration order. Each slot is ``None`` (match any), a 32-byte hex string, or
a list of such strings.
"""
from typing import Any, List, Mapping, Optional, Sequence, Union

from eth_abi import encode
from eth_utils import encode_hex, keccak, to_bytes
from pydantic import ValidationError

from logsync.exceptions import AbiError
from logsync.logging import logger
from logsync.models.abi import AbiParameter, EventAbiEntry, event_entries, parse_abi

TopicSlot = Union[None, str, List[str]]
TopicFilter = List[TopicSlot]
EventNames = Union[None, str, Sequence[str]]

_logger = logger.bind(module='LogTopicBuilder')


def normalize_event_names(event_names: EventNames) -> Optional[List[str]]:
    if event_names is None:
        return None
    if isinstance(event_names, str):
        return [event_names]
    return list(event_names)


def select_events(abi: Sequence[Any], event_names: EventNames = None) -> List[EventAbiEntry]:
    """Event entries of ``abi``, restricted to ``event_names`` when given (ABI order)."""
    names = normalize_event_names(event_names)
    events = event_entries(abi)
    if names is None:
        return events
    return [event for event in events if event.name in names]


def canonical_type(param: AbiParameter) -> str:
    """Solidity canonical type, tuples expanded to ``(t1,t2)`` with any array suffix kept."""
    if param.is_tuple:
        inner = ",".join(canonical_type(component) for component in param.components)
        return f"({inner}){param.type[len('tuple'):]}"
    return param.type


def _as_event(entry: Any) -> EventAbiEntry:
    if isinstance(entry, EventAbiEntry):
        return entry
    if isinstance(entry, Mapping) and entry.get("type") != "event":
        raise AbiError(f"Expected an event ABI entry, got type '{entry.get('type')}' ({entry.get('name', '?')})")
    if not isinstance(entry, Mapping):
        raise AbiError(f"Expected an event ABI entry, got {type(entry).__name__}")
    try:
        return parse_abi([entry])[0]
    except ValidationError as e:
        raise AbiError(f"Malformed event ABI entry '{entry.get('name', '?')}': {e}") from e


def event_signature(event: Union[EventAbiEntry, Mapping[str, Any]]) -> str:
    event = _as_event(event)
    return f"{event.name}({','.join(canonical_type(item) for item in event.inputs)})"


def signature_hash(signature: str) -> str:
    return encode_hex(keccak(text=signature))


def derive_event_signature_hashes(events: Sequence[Union[EventAbiEntry, Mapping[str, Any]]]) -> List[str]:
    """topic0 hash for every event entry. Non-event entries raise ``AbiError``."""
    return [signature_hash(event_signature(event)) for event in events]


def _zero_pad(value: str, size: int = 32) -> str:
    raw = to_bytes(hexstr=value)
    if len(raw) > size:
        raise AbiError(f"Value {value} is longer than {size} bytes")
    return encode_hex(raw.rjust(size, b"\x00"))


def _coerce_int(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        return int(text)
    return int(value)


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise AbiError(f"Cannot interpret '{value}' as bool")
    return bool(value)


def encode_indexed_value(value: Any, declared_type: str) -> Optional[str]:
    """Encode one indexed parameter value as a 32-byte topic. ``None`` means no filter."""
    if value is None:
        return None
    try:
        if declared_type == "address":
            return _zero_pad(str(value))
        if declared_type.startswith(("uint", "int")):
            return encode_hex(encode([declared_type], [_coerce_int(value)]))
        if declared_type == "bool":
            return encode_hex(encode(["bool"], [_coerce_bool(value)]))
        if declared_type.startswith("bytes"):
            if isinstance(value, str) and value.startswith("0x"):
                return _zero_pad(value)
            raw = value.encode() if isinstance(value, str) else value
            return encode_hex(encode([declared_type], [raw]))
    except AbiError:
        raise
    except Exception as e:
        raise AbiError(f"Cannot encode {value!r} as indexed {declared_type}: {e}") from e

    try:
        return encode_hex(encode([declared_type], [value]))
    except Exception as e:
        _logger.debug(f"Best-effort encoding of {value!r} as {declared_type} failed ({e}), using str()")
        return str(value)


def build_topics(event_signature_text: str, indexed_args: Optional[Sequence[Any]] = None) -> TopicFilter:
    """Topics from a signature string such as ``Transfer(address,address,uint256)``.

    ``0x`` strings are used as given; anything else is encoded as ``uint256``.
    """
    topics: TopicFilter = [signature_hash(event_signature_text)]
    for arg in indexed_args or []:
        if arg is None:
            topics.append(None)
        elif isinstance(arg, str) and arg.startswith("0x"):
            topics.append(arg)
        else:
            topics.append(encode_hex(encode(["uint256"], [_coerce_int(arg)])))
    return topics


def build_topics_for_single_event(event: Union[EventAbiEntry, Mapping[str, Any]],
                                  indexed_values: Sequence[Any]) -> TopicFilter:
    """``[topic0, *encoded]`` with one slot per supplied value, up to the indexed input count."""
    event = _as_event(event)
    indexed_inputs = event.indexed_inputs
    topics: TopicFilter = [signature_hash(event_signature(event))]
    for value, param in zip(indexed_values, indexed_inputs):
        topics.append(encode_indexed_value(value, param.type))
    return topics


def merge_topic_filters(per_event_topics: Sequence[TopicFilter]) -> TopicFilter:
    """Merge several single-event filters into one.

    Slot 0 becomes the OR of every event's signature hash. For later slots a
    value survives only when every event produced that same value; an event
    with a shorter filter counts as ``None`` there. Otherwise the slot turns
    into ``None`` and matches anything. This loses
    precision: a log of event A passes when it matches B's value at that slot.
    Callers needing exact per-event filtering must query events separately.
    """
    if len(per_event_topics) == 1:
        return list(per_event_topics[0])

    hashes: List[str] = []
    for topics in per_event_topics:
        if topics[0] not in hashes:
            hashes.append(topics[0])
    merged: TopicFilter = [hashes[0] if len(hashes) == 1 else hashes]

    max_length = max(len(topics) for topics in per_event_topics)
    for i in range(1, max_length):
        values = [topics[i] if i < len(topics) else None for topics in per_event_topics]
        first = values[0]
        merged.append(first if all(value == first for value in values) else None)
    return merged


def build_topics_for_event_map(abi: Sequence[Any], event_names: EventNames,
                               per_event_values: Mapping[str, Sequence[Any]]) -> Optional[TopicFilter]:
    """Topic filter for several events, each with its own indexed values.

    Returns ``None`` when no event in the map is usable, telling the caller to
    fall back to a topic0-only query.
    """
    names = normalize_event_names(event_names)
    per_event_topics: List[TopicFilter] = []
    for event in event_entries(abi):
        if event.name not in per_event_values:
            continue
        if names is not None and event.name not in names:
            continue
        values = per_event_values[event.name]
        if not values:
            continue
        per_event_topics.append(build_topics_for_single_event(event, values))

    if not per_event_topics:
        _logger.debug(f"No usable events in topic map {list(per_event_values)}")
        return None
    return merge_topic_filters(per_event_topics)


def build_full_topics_for_events(abi: Sequence[Any], event_names: EventNames,
                                 filter_topics: Union[None, Sequence[Any], Mapping[str, Sequence[Any]]]
                                 ) -> Optional[TopicFilter]:
    """Expand caller ``filter_topics`` (indexed values only) into a full topic filter.

    A mapping is treated as per-event values. A list is paired with the indexed
    inputs of the first target event, with slot 0 OR-ing every target event.
    """
    if filter_topics is None:
        return None

    events = select_events(abi, event_names)
    if not events:
        return None

    if isinstance(filter_topics, Mapping):
        return build_topics_for_event_map(abi, event_names, filter_topics)

    # assumes all target events share the first event's indexed layout
    indexed_inputs = events[0].indexed_inputs
    if not indexed_inputs:
        return None

    topics: TopicFilter = [derive_event_signature_hashes(events)]
    for value, param in zip(filter_topics, indexed_inputs):
        topics.append(encode_indexed_value(value, param.type))
    return topics

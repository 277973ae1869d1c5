from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional, Union


class LogRecord(BaseModel):
    """A blockchain event occurrence, decoded against the ABI or kept raw."""
    model_config = ConfigDict(frozen=True)

    address: str
    block_number: int
    block_hash: Optional[str] = None
    transaction_hash: str
    transaction_index: Optional[int] = None
    log_index: int
    topics: List[str]
    data: str = "0x"
    removed: bool = False
    name: Optional[str] = None
    signature: Optional[str] = None
    # Ordered by ABI declaration; None when decoding failed
    args: Optional[Dict[str, Any]] = None
    decoded: bool = True


class SyncCheckpoint(BaseModel):
    """Resume state stored per contract + event set."""
    start_block: int = Field(..., ge=0)
    nonce: int = Field(0, ge=0)
    last_sync: int = 0  # epoch milliseconds


class SyncResult(BaseModel):
    synced_logs: int
    from_block: int
    to_block: int
    next_nonce: int
    skipped_blocks: List[int] = Field(default_factory=list)


IndexedValue = Union[str, int, bool, None]


class SyncTarget(BaseModel):
    name: str
    contract_address: str
    abi_path: str
    event_names: Optional[List[str]] = None
    start_block: int = 0
    # Either a positional list of indexed values or a per-event mapping
    topics: Optional[Union[List[IndexedValue], Dict[str, List[IndexedValue]]]] = None
    enabled: bool = True


class SyncTargetsConfig(BaseModel):
    targets: List[SyncTarget]

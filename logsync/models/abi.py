"""Typed contract ABI entries.

Raw ABI JSON is parsed into a tagged union keyed on ``type``. Parameters are
recursive; ``components`` is only allowed (and required) on tuple kinds.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class AbiParameter(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    type: str
    indexed: bool = False
    internal_type: Optional[str] = Field(None, alias="internalType")
    components: Optional[List["AbiParameter"]] = None

    @property
    def is_tuple(self) -> bool:
        return self.type.startswith("tuple")

    @model_validator(mode="after")
    def check_components(self):
        if self.is_tuple and self.components is None:
            raise ValueError(f"tuple parameter '{self.name}' is missing components")
        if not self.is_tuple and self.components is not None:
            raise ValueError(f"non-tuple parameter '{self.name}' ({self.type}) cannot carry components")
        return self


class EventAbiEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["event"]
    name: str
    inputs: List[AbiParameter] = []
    anonymous: bool = False

    @property
    def indexed_inputs(self) -> List[AbiParameter]:
        return [item for item in self.inputs if item.indexed]

    def to_abi_dict(self) -> Dict[str, Any]:
        """Plain dict in the shape web3/eth-utils expect."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FunctionAbiEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function"]
    name: str
    inputs: List[AbiParameter] = []
    outputs: List[AbiParameter] = []
    state_mutability: Optional[str] = Field(None, alias="stateMutability")


class ErrorAbiEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["error"]
    name: str
    inputs: List[AbiParameter] = []


class ConstructorAbiEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["constructor"]
    inputs: List[AbiParameter] = []
    state_mutability: Optional[str] = Field(None, alias="stateMutability")


class FallbackAbiEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["fallback", "receive"]
    state_mutability: Optional[str] = Field(None, alias="stateMutability")


AbiEntry = Annotated[
    Union[EventAbiEntry, FunctionAbiEntry, ErrorAbiEntry, ConstructorAbiEntry, FallbackAbiEntry],
    Field(discriminator="type"),
]

_abi_adapter = TypeAdapter(List[AbiEntry])


def parse_abi(abi: Sequence[Union[Dict[str, Any], BaseModel]]) -> List[AbiEntry]:
    """Parse a raw ABI list. Entries without ``type`` are functions, as in solc output."""
    raw = []
    for item in abi:
        if isinstance(item, BaseModel):
            raw.append(item.model_dump(by_alias=True, exclude_none=True))
            continue
        if "type" not in item:
            item = {**item, "type": "function"}
        raw.append(item)
    return _abi_adapter.validate_python(raw)


def event_entries(abi: Sequence[Union[Dict[str, Any], BaseModel]]) -> List[EventAbiEntry]:
    return [entry for entry in parse_abi(abi) if isinstance(entry, EventAbiEntry)]

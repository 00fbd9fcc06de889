"""
Data models for agenda metadata documents and on-chain data.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, StrictBool, StrictInt, TypeAdapter, ValidationError, field_validator

from .constants import ERROR_MESSAGES, HEX_STRING_PATTERN, FUNCTION_SIGNATURE_PATTERN
from .utils import is_valid_address, is_valid_signature, is_valid_transaction_hash, parse_timestamp

_HTTP_URL = TypeAdapter(HttpUrl)


class AbiParameter(BaseModel):
    """Input or output entry of an ABI function descriptor"""
    model_config = ConfigDict(populate_by_name=True)

    internal_type: str = Field(..., alias="internalType")
    name: str
    type: str


class AbiItem(BaseModel):
    """ABI function descriptor attached to an action"""
    model_config = ConfigDict(populate_by_name=True)

    inputs: List[AbiParameter]
    name: str
    outputs: List[AbiParameter]
    state_mutability: str = Field(..., alias="stateMutability")
    type: str


class Action(BaseModel):
    """A single call executed by the agenda"""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=100)
    contract_address: str = Field(..., alias="contractAddress")
    method: str = Field(..., pattern=FUNCTION_SIGNATURE_PATTERN.pattern)
    calldata: str = Field(..., pattern=HEX_STRING_PATTERN.pattern)
    abi: List[AbiItem]
    send_eth: Optional[StrictBool] = Field(None, alias="sendEth")
    id: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)

    @field_validator("contract_address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_valid_address(value):
            raise ValueError(ERROR_MESSAGES["invalid_address_format"].format(address=value))
        return value


class Creator(BaseModel):
    """Address that submitted the agenda and its signature over the metadata"""
    address: str
    signature: str

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_valid_address(value):
            raise ValueError(ERROR_MESSAGES["invalid_address_format"].format(address=value))
        return value

    @field_validator("signature")
    @classmethod
    def _check_signature(cls, value: str) -> str:
        if not is_valid_signature(value):
            raise ValueError(ERROR_MESSAGES["invalid_signature_format"].format(signature=value))
        return value


class AgendaMetadata(BaseModel):
    """Agenda metadata document stored at data/agendas/<network>/agenda-<id>.json"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: StrictInt = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=50000)
    network: Literal["mainnet", "sepolia"]
    transaction: str
    creator: Creator
    actions: List[Action] = Field(..., min_length=1)
    created_at: str = Field(..., alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    snapshot_url: Optional[str] = Field(None, alias="snapshotUrl")
    discourse_url: Optional[str] = Field(None, alias="discourseUrl")

    @field_validator("transaction")
    @classmethod
    def _check_transaction(cls, value: str) -> str:
        if not is_valid_transaction_hash(value):
            raise ValueError(ERROR_MESSAGES["invalid_transaction_hash_format"].format(hash=value))
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _check_timestamp(cls, value: Optional[str]) -> Optional[str]:
        # Keep the raw string: it is part of the signed message
        if value is not None and parse_timestamp(value) is None:
            raise ValueError("Invalid ISO 8601 timestamp")
        return value

    @field_validator("snapshot_url", "discourse_url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                _HTTP_URL.validate_python(value)
            except ValidationError:
                raise ValueError("Invalid URL")
        return value

    @property
    def is_update(self) -> bool:
        """True when the document carries updatedAt."""
        return self.updated_at is not None

    @property
    def signature_timestamp(self) -> str:
        """Timestamp covered by the creator signature."""
        return self.updated_at if self.is_update else self.created_at

    @property
    def expected_memo(self) -> str:
        """Memo expected in newer on-chain encodings."""
        return self.snapshot_url or self.discourse_url or ""


@dataclass
class SchemaResult:
    """Outcome of structural validation"""
    success: bool
    errors: List[str] = field(default_factory=list)
    metadata: Optional[AgendaMetadata] = None


def _format_error(error: Dict[str, Any]) -> str:
    path = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
    return f"{path}: {error.get('msg', 'invalid value')}"


def validate_schema(document: Any) -> SchemaResult:
    """
    Validate the structure of an agenda metadata document.

    Never raises for structural problems; cross-references between fields
    (path, PR title, chain data) are left to later validation steps.

    Args:
        document: Parsed JSON document

    Returns:
        SchemaResult with the parsed model on success or field-level errors
    """
    try:
        metadata = AgendaMetadata.model_validate(document)
    except ValidationError as e:
        return SchemaResult(success=False, errors=[_format_error(err) for err in e.errors()])
    return SchemaResult(success=True, metadata=metadata)


class ChainTransaction(BaseModel):
    """Transaction as returned by a chain-data provider"""
    model_config = ConfigDict(populate_by_name=True)

    hash: str
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    data: str = "0x"
    block_number: Optional[int] = Field(None, alias="blockNumber")


class ChainLog(BaseModel):
    """Event log entry of a receipt"""
    address: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    data: str = "0x"


class ChainReceipt(BaseModel):
    """Transaction receipt as returned by a chain-data provider"""
    model_config = ConfigDict(populate_by_name=True)

    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    status: Optional[int] = None
    block_number: Optional[int] = Field(None, alias="blockNumber")
    logs: List[ChainLog] = Field(default_factory=list)

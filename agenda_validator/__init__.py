"""
Validation of DAO agenda metadata submissions.

Checks a metadata file against its schema, its storage path and PR title,
the creator's signature, and the transaction that created the agenda.
"""
from .version import __version__
from .abi import AgendaAbiCodec, AgendaCreatedEvent
from .calldata import (
    AgendaParams, ApproveAndCall, CalldataVersion,
    decode_agenda_params, decode_agenda_transaction, decode_approve_and_call, detect_version_by_offset,
)
from .config import NetworkConfig
from .exceptions import (
    AgendaValidatorError, MetadataFileError, OnChainLookupError, TransactionNotFoundError,
    ReceiptNotFoundError, EventNotFoundError, DecodeError, CalldataDecodeError, EventDecodeError,
)
from .models import AgendaMetadata, Action, Creator, SchemaResult, ChainTransaction, ChainReceipt, ChainLog, validate_schema
from .onchain import OnChainResult, OnChainValidator, validate_transaction_sender
from .pipeline import (
    AgendaMetadataValidator, FileVerdict, StepOutcome, ValidationStep, parse_steps, validate_metadata,
)
from .provider import ChainDataProvider, Web3ChainProvider
from .remote import RemoteFileChecker
from .signature import (
    get_signature_message, sign_agenda_message, validate_agenda_signature,
    validate_signature_timestamp, verify_agenda_signature,
)
from .utils import PrTitleInfo, normalize_address, parse_pr_title, validate_uint128

__all__ = [
    "__version__",
    "AgendaAbiCodec",
    "AgendaCreatedEvent",
    "AgendaParams",
    "ApproveAndCall",
    "CalldataVersion",
    "decode_agenda_params",
    "decode_agenda_transaction",
    "decode_approve_and_call",
    "detect_version_by_offset",
    "NetworkConfig",
    "AgendaValidatorError",
    "MetadataFileError",
    "OnChainLookupError",
    "TransactionNotFoundError",
    "ReceiptNotFoundError",
    "EventNotFoundError",
    "DecodeError",
    "CalldataDecodeError",
    "EventDecodeError",
    "AgendaMetadata",
    "Action",
    "Creator",
    "SchemaResult",
    "ChainTransaction",
    "ChainReceipt",
    "ChainLog",
    "validate_schema",
    "OnChainResult",
    "OnChainValidator",
    "validate_transaction_sender",
    "AgendaMetadataValidator",
    "FileVerdict",
    "StepOutcome",
    "ValidationStep",
    "parse_steps",
    "validate_metadata",
    "ChainDataProvider",
    "Web3ChainProvider",
    "RemoteFileChecker",
    "get_signature_message",
    "sign_agenda_message",
    "validate_agenda_signature",
    "validate_signature_timestamp",
    "verify_agenda_signature",
    "PrTitleInfo",
    "normalize_address",
    "parse_pr_title",
    "validate_uint128",
]

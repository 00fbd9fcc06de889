"""
Exceptions raised by the agenda metadata validators.

Structural, consistency and signature problems are reported as results;
these exceptions cover the hard failures (missing on-chain data, payloads
that cannot be decoded, unreadable files).
"""


class AgendaValidatorError(Exception):
    """Base exception for agenda validation errors."""
    pass


class MetadataFileError(AgendaValidatorError):
    """Raised when a metadata file cannot be read or is not valid JSON."""
    pass


class OnChainLookupError(AgendaValidatorError):
    """Raised when required on-chain data is absent."""
    pass


class TransactionNotFoundError(OnChainLookupError):
    """Raised when the agenda transaction does not exist on the network."""

    def __init__(self, transaction_hash: str):
        self.transaction_hash = transaction_hash
        super().__init__(f"Transaction not found: {transaction_hash}")


class ReceiptNotFoundError(OnChainLookupError):
    """Raised when the agenda transaction has no receipt."""

    def __init__(self, transaction_hash: str):
        self.transaction_hash = transaction_hash
        super().__init__(f"Transaction receipt not found: {transaction_hash}")


class EventNotFoundError(AgendaValidatorError):
    """Raised when no AgendaCreated log is present in a receipt."""
    pass


class DecodeError(AgendaValidatorError):
    """Base class for payload decoding failures."""
    pass


class CalldataDecodeError(DecodeError):
    """Raised when transaction input or agenda parameters cannot be decoded."""
    pass


class EventDecodeError(DecodeError):
    """Raised when a log carries the AgendaCreated topic but fails to decode."""
    pass

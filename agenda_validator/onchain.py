"""
Cross-validation of agenda metadata against the creating transaction.

Missing on-chain data raises (TransactionNotFoundError, ReceiptNotFoundError,
EventNotFoundError); data that is present but disagrees with the metadata is
reported as a failed result.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .abi import AgendaAbiCodec, AgendaCreatedEvent
from .calldata import AgendaParams, decode_agenda_transaction
from .constants import ERROR_MESSAGES
from .exceptions import EventNotFoundError, ReceiptNotFoundError, TransactionNotFoundError
from .models import AgendaMetadata, ChainLog, ChainReceipt, ChainTransaction
from .provider import ChainDataProvider
from .utils import arrays_equal, normalize_address, truncate_for_display


@dataclass
class OnChainResult:
    """Outcome of the on-chain cross-validation"""
    valid: bool
    failures: List[str] = field(default_factory=list)
    event: Optional[AgendaCreatedEvent] = None
    params: Optional[AgendaParams] = None


def validate_transaction_sender(tx: Optional[ChainTransaction], expected_sender: str) -> bool:
    """
    Compare the transaction sender with the expected address.

    Raises:
        TransactionNotFoundError: If tx is None
    """
    if tx is None:
        raise TransactionNotFoundError("<unknown>")
    return normalize_address(tx.from_address) == normalize_address(expected_sender)


def compare_agenda_params(params: AgendaParams, metadata: AgendaMetadata) -> List[str]:
    """
    Compare decoded agenda parameters with the metadata actions.

    Returns:
        Human-readable mismatch descriptions (empty when everything matches)
    """
    failures = []

    metadata_addresses = [normalize_address(a.contract_address) for a in metadata.actions]
    tx_addresses = [normalize_address(a) for a in params.targets]
    if not arrays_equal(metadata_addresses, tx_addresses):
        failures.append(
            "Actions contractAddress array does not match transaction addresses. "
            f"Metadata: {metadata_addresses}, Transaction: {tx_addresses}"
        )

    metadata_calldatas = [a.calldata.lower() for a in metadata.actions]
    tx_calldatas = [c.lower() for c in params.calldatas]
    if not arrays_equal(metadata_calldatas, tx_calldatas):
        failures.append(
            "Actions calldata array does not match transaction calldatas. "
            f"Metadata: {[truncate_for_display(c) for c in metadata_calldatas]}, "
            f"Transaction: {[truncate_for_display(c) for c in tx_calldatas]}"
        )

    if params.has_memo and params.memo is not None:
        expected_memo = metadata.expected_memo
        if params.memo != expected_memo:
            failures.append(
                "Memo does not match snapshotUrl/discourseUrl. "
                f"Transaction memo: {truncate_for_display(params.memo)!r}, "
                f"Metadata memo: {truncate_for_display(expected_memo)!r}"
            )

    return failures


class OnChainValidator:
    """
    Validates agenda metadata against its transaction, receipt and event log.

    Args:
        provider: Chain-data provider for the metadata's network
        codec: ABI codec for approveAndCall and AgendaCreated
        logger: Optional logger instance
    """

    def __init__(
        self,
        provider: ChainDataProvider,
        codec: Optional[AgendaAbiCodec] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.provider = provider
        self.codec = codec or AgendaAbiCodec()
        self.logger = logger or logging.getLogger(__name__)

    def find_agenda_created_log(self, receipt: ChainReceipt) -> Optional[ChainLog]:
        """Return the first log carrying the AgendaCreated topic, if any."""
        for log in receipt.logs:
            if self.codec.matches_event(log):
                return log
        return None

    def decode_agenda_created_event(self, receipt: Optional[ChainReceipt]) -> AgendaCreatedEvent:
        """
        Locate and decode the AgendaCreated event of a receipt.

        Raises:
            ReceiptNotFoundError: If receipt is None
            EventNotFoundError: If no log carries the AgendaCreated topic
            EventDecodeError: If the matching log cannot be decoded
        """
        if receipt is None:
            raise ReceiptNotFoundError("<unknown>")
        log = self.find_agenda_created_log(receipt)
        if log is None:
            raise EventNotFoundError("AgendaCreated event not found in transaction logs")
        return self.codec.decode_event(log)

    def validate_agenda_id_from_event(self, receipt: Optional[ChainReceipt], expected_id: int) -> bool:
        """Check that the AgendaCreated event carries the expected agenda id."""
        event = self.decode_agenda_created_event(receipt)
        return str(event.id) == str(expected_id)

    def validate_calldata(self, tx: ChainTransaction, metadata: AgendaMetadata) -> bool:
        """
        Check the transaction's agenda parameters against the metadata actions.

        Raises:
            CalldataDecodeError: If the transaction input cannot be decoded
        """
        failures = compare_agenda_params(decode_agenda_transaction(tx.data, self.codec), metadata)
        for failure in failures:
            self.logger.error(failure)
        return not failures

    def validate(self, metadata: AgendaMetadata) -> OnChainResult:
        """
        Run every on-chain check for a metadata document.

        A sender mismatch does not stop the remaining checks; all mismatches
        are collected into the result.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            ReceiptNotFoundError: If the transaction has no receipt
            EventNotFoundError: If the receipt has no AgendaCreated log
            EventDecodeError: If the AgendaCreated log cannot be decoded
            CalldataDecodeError: If the transaction input cannot be decoded
        """
        tx = self.provider.get_transaction(metadata.transaction)
        if tx is None:
            raise TransactionNotFoundError(metadata.transaction)

        failures = []
        if not validate_transaction_sender(tx, metadata.creator.address):
            failures.append(ERROR_MESSAGES["sender_mismatch"].format(
                actual=tx.from_address, expected=metadata.creator.address
            ))

        receipt = self.provider.get_transaction_receipt(metadata.transaction)
        if receipt is None:
            raise ReceiptNotFoundError(metadata.transaction)

        event = self.decode_agenda_created_event(receipt)
        if str(event.id) != str(metadata.id):
            failures.append(ERROR_MESSAGES["agenda_id_mismatch"].format(
                actual=truncate_for_display(event.id), expected=metadata.id
            ))

        params = decode_agenda_transaction(tx.data, self.codec)
        failures.extend(compare_agenda_params(params, metadata))

        for failure in failures:
            self.logger.error(failure)
        return OnChainResult(valid=not failures, failures=failures, event=event, params=params)

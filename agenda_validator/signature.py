"""
Creator signature handling for agenda metadata.

The creator signs a fixed sentence (EIP-191 personal message) naming the
agenda id, the transaction that created it and the time of signing.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from .constants import (
    SIGNATURE_MESSAGE_CREATE, SIGNATURE_MESSAGE_UPDATE,
    SIGNATURE_VALID_DURATION, ERROR_MESSAGES,
)
from .models import AgendaMetadata
from .utils import normalize_address, parse_timestamp

logger = logging.getLogger(__name__)


def get_signature_message(agenda_id: int, transaction_hash: str, timestamp: str, is_update: bool = False) -> str:
    """
    Build the message the agenda creator signs.

    Args:
        agenda_id: On-chain agenda id
        transaction_hash: Hash of the agenda creation transaction
        timestamp: createdAt (create) or updatedAt (update), verbatim
        is_update: Use the update template instead of the create template

    Returns:
        The exact message text
    """
    template = SIGNATURE_MESSAGE_UPDATE if is_update else SIGNATURE_MESSAGE_CREATE
    return template.format(agenda_id=agenda_id, transaction_hash=transaction_hash, timestamp=timestamp)


def validate_signature_timestamp(timestamp: str, now: Optional[datetime] = None) -> bool:
    """
    Check that a signature timestamp lies within the validity window of now.

    Args:
        timestamp: ISO 8601 timestamp
        now: Reference time (defaults to the current UTC time)

    Returns:
        False if the timestamp is unparseable or more than an hour away from now
    """
    signed_at = parse_timestamp(timestamp)
    if signed_at is None:
        logger.error(ERROR_MESSAGES["invalid_timestamp"].format(timestamp=timestamp))
        return False

    current = now or datetime.now(timezone.utc)
    if abs(current - signed_at) > SIGNATURE_VALID_DURATION:
        logger.error(ERROR_MESSAGES["signature_expired"].format(
            signature_time=signed_at.isoformat(),
            current_time=current.isoformat(),
            hours=int(SIGNATURE_VALID_DURATION.total_seconds() // 3600),
        ))
        return False
    return True


def recover_signer(message: str, signature: str) -> str:
    """Recover the address that produced a personal-message signature."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


def verify_agenda_signature(
    agenda_id: int,
    transaction_hash: str,
    timestamp: str,
    signature: str,
    expected_address: str,
    is_update: bool = False,
) -> bool:
    """
    Verify that `signature` over the agenda message was made by `expected_address`.

    Malformed signatures count as a failed verification rather than an error.
    """
    message = get_signature_message(agenda_id, transaction_hash, timestamp, is_update)
    try:
        recovered = recover_signer(message, signature)
    except Exception as e:
        logger.error(f"Signature recovery failed: {e}")
        return False

    if normalize_address(recovered) != normalize_address(expected_address):
        logger.error(ERROR_MESSAGES["signature_mismatch"].format(recovered=recovered, expected=expected_address))
        return False
    return True


def validate_agenda_signature(metadata: AgendaMetadata) -> bool:
    """Verify the creator signature of a parsed metadata document."""
    return verify_agenda_signature(
        agenda_id=metadata.id,
        transaction_hash=metadata.transaction,
        timestamp=metadata.signature_timestamp,
        signature=metadata.creator.signature,
        expected_address=metadata.creator.address,
        is_update=metadata.is_update,
    )


def sign_agenda_message(
    private_key: str,
    agenda_id: int,
    transaction_hash: str,
    timestamp: str,
    is_update: bool = False,
) -> str:
    """
    Sign the agenda message with a private key.

    Returns:
        0x-prefixed 65-byte signature as hex
    """
    message = get_signature_message(agenda_id, transaction_hash, timestamp, is_update)
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return "0x" + bytes(signed.signature).hex()

"""
Decoding of agenda creation calldata.

An agenda is created through TON ``approveAndCall(spender, amount, data)``,
where ``data`` carries the agenda parameters in one of two encodings:

    legacy: (address[] targets, uint128 notice, uint128 voting, bool atomic, bytes[] calldatas)
    new:    legacy fields followed by a string memo (snapshot or discourse URL)
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from eth_abi import decode
from eth_utils import to_checksum_address

from .abi import AgendaAbiCodec, to_bytes, to_hex
from .exceptions import CalldataDecodeError
from .utils import truncate_for_display, validate_uint128

logger = logging.getLogger(__name__)

LEGACY_AGENDA_PARAM_TYPES = ["address[]", "uint128", "uint128", "bool", "bytes[]"]
NEW_AGENDA_PARAM_TYPES = LEGACY_AGENDA_PARAM_TYPES + ["string"]

WORD_SIZE = 32
# Head of the legacy encoding: five 32-byte words
LEGACY_HEAD_SIZE = 5 * WORD_SIZE
# Head of the new encoding: six 32-byte words
NEW_HEAD_SIZE = 6 * WORD_SIZE


class CalldataVersion(str, Enum):
    """Encoding of the agenda parameters"""
    NEW = "new"
    LEGACY = "legacy"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ApproveAndCall:
    """Decoded approveAndCall arguments"""
    spender: str
    amount: int
    data: bytes


@dataclass(frozen=True)
class AgendaParams:
    """Decoded agenda parameters"""
    targets: List[str]
    notice_period_seconds: int
    voting_period_seconds: int
    atomic_execute: bool
    calldatas: List[str]
    version: CalldataVersion
    memo: Optional[str] = None

    @property
    def has_memo(self) -> bool:
        return self.version == CalldataVersion.NEW


def decode_approve_and_call(data: Any, codec: Optional[AgendaAbiCodec] = None) -> ApproveAndCall:
    """
    Decode the outer approveAndCall call of an agenda transaction.

    Raises:
        CalldataDecodeError: If the input is not an approveAndCall call
    """
    codec = codec or AgendaAbiCodec()
    args = codec.decode_function_input(data)
    return ApproveAndCall(
        spender=to_checksum_address(args["spender"]), amount=args["amount"], data=bytes(args["data"])
    )


def _read_word(payload: bytes, offset: int) -> int:
    return int.from_bytes(payload[offset:offset + WORD_SIZE], byteorder="big")


def detect_version_by_offset(payload: Any) -> CalldataVersion:
    """
    Classify agenda parameters by their head offsets without decoding them.

    In the new encoding the sixth head word is the offset of the memo string,
    which points past the six-word head and inside the payload. In the legacy
    encoding that position already holds the start of the first tail item.

    Args:
        payload: Agenda parameter bytes (the ``data`` argument of approveAndCall)

    Returns:
        CalldataVersion.NEW, LEGACY or UNKNOWN
    """
    try:
        raw = to_bytes(payload)
    except (ValueError, TypeError):
        return CalldataVersion.UNKNOWN

    total = len(raw)
    if total < LEGACY_HEAD_SIZE:
        return CalldataVersion.UNKNOWN

    if total >= NEW_HEAD_SIZE:
        memo_offset = _read_word(raw, LEGACY_HEAD_SIZE)
        if NEW_HEAD_SIZE < memo_offset < total:
            return CalldataVersion.NEW

    calldatas_offset = _read_word(raw, 4 * WORD_SIZE)
    if calldatas_offset < total:
        return CalldataVersion.LEGACY
    return CalldataVersion.UNKNOWN


def _decode_as(raw: bytes, version: CalldataVersion) -> AgendaParams:
    types = NEW_AGENDA_PARAM_TYPES if version == CalldataVersion.NEW else LEGACY_AGENDA_PARAM_TYPES
    values = decode(types, raw)
    targets, notice, voting, atomic, calldatas = values[:5]

    for name, period in (("noticePeriodSeconds", notice), ("votingPeriodSeconds", voting)):
        if not validate_uint128(period):
            raise ValueError(f"{name} out of uint128 range: {truncate_for_display(period)}")

    return AgendaParams(
        targets=[to_checksum_address(t) for t in targets],
        notice_period_seconds=notice,
        voting_period_seconds=voting,
        atomic_execute=atomic,
        calldatas=[to_hex(item) for item in calldatas],
        version=version,
        memo=values[5] if version == CalldataVersion.NEW else None,
    )


def decode_agenda_params(payload: Any) -> AgendaParams:
    """
    Decode agenda parameters in either known encoding.

    The offset heuristic picks which encoding is tried first; the other one
    is the fallback. Legacy goes first whenever the heuristic does not point
    at the new encoding, since a lenient decode of new data as legacy would
    silently drop the memo.

    Raises:
        CalldataDecodeError: If neither encoding decodes
    """
    try:
        raw = to_bytes(payload)
    except (ValueError, TypeError) as e:
        raise CalldataDecodeError(f"Invalid agenda parameters: {e}") from e

    detected = detect_version_by_offset(raw)
    if detected == CalldataVersion.NEW:
        order = [CalldataVersion.NEW, CalldataVersion.LEGACY]
    else:
        order = [CalldataVersion.LEGACY, CalldataVersion.NEW]

    errors = []
    for version in order:
        try:
            params = _decode_as(raw, version)
        except Exception as e:
            logger.debug(f"Decoding agenda parameters as {version.value} failed: {e}")
            errors.append(f"{version.value}: {e}")
            continue
        logger.debug(
            "Decoded %s agenda parameters: %d target(s), notice=%s, voting=%s",
            version.value, len(params.targets),
            truncate_for_display(params.notice_period_seconds),
            truncate_for_display(params.voting_period_seconds),
        )
        return params

    raise CalldataDecodeError("Failed to decode agenda parameters (" + "; ".join(errors) + ")")


def decode_agenda_transaction(data: Any, codec: Optional[AgendaAbiCodec] = None) -> AgendaParams:
    """Decode the agenda parameters carried by an approveAndCall transaction input."""
    outer = decode_approve_and_call(data, codec)
    return decode_agenda_params(outer.data)

"""
Pattern and format helpers for agenda metadata validation.

All functions here are pure: they never touch the network or the file system.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PureWindowsPath
from typing import Any, Optional, Sequence

from .constants import (
    ADDRESS_PATTERN, TRANSACTION_HASH_PATTERN, SIGNATURE_PATTERN,
    AGENDA_FILE_PATTERN, AGENDA_PATH_PATTERN, AGENDA_PATH_SEARCH_PATTERN,
    PR_TITLE_CREATE_PATTERN, PR_TITLE_UPDATE_PATTERN,
    UINT128_MAX, DISPLAY_TRUNCATE_LENGTH,
)


@dataclass(frozen=True)
class PrTitleInfo:
    """Fields parsed from an agenda PR title."""
    network: str
    id: int
    title: str
    is_update: bool


def normalize_address(address: str) -> str:
    """Lowercase an address for case-insensitive comparison."""
    return address.lower()


def arrays_equal(a: Sequence[Any], b: Sequence[Any]) -> bool:
    """Compare two ordered sequences element by element."""
    if len(a) != len(b):
        return False
    return all(x == y for x, y in zip(a, b))


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and ADDRESS_PATTERN.fullmatch(address) is not None


def is_valid_transaction_hash(tx_hash: str) -> bool:
    return isinstance(tx_hash, str) and TRANSACTION_HASH_PATTERN.fullmatch(tx_hash) is not None


def is_valid_signature(signature: str) -> bool:
    return isinstance(signature, str) and SIGNATURE_PATTERN.fullmatch(signature) is not None


def is_valid_agenda_filename(filename: str) -> bool:
    return AGENDA_FILE_PATTERN.match(filename) is not None


def _as_posix(file_path: str) -> str:
    # Accept both separators so paths coming from Windows checkouts still match
    return PureWindowsPath(file_path).as_posix() if "\\" in file_path else file_path


def is_valid_agenda_path(file_path: str) -> bool:
    """Check that a repository-relative path lives under data/agendas/<network>/."""
    return AGENDA_PATH_PATTERN.match(_as_posix(file_path)) is not None


def extract_network_from_path(file_path: str) -> Optional[str]:
    """
    Extract the network segment from a storage path.

    Args:
        file_path: Relative or absolute path containing data/agendas/<network>/

    Returns:
        The network segment, or None if the path has no agenda directory
    """
    match = AGENDA_PATH_SEARCH_PATTERN.search(_as_posix(file_path))
    return match.group(1) if match else None


def extract_id_from_filename(file_path: str) -> Optional[int]:
    """Extract the agenda id from a path ending in agenda-<id>.json."""
    filename = _as_posix(file_path).rsplit("/", 1)[-1]
    match = AGENDA_FILE_PATTERN.match(filename)
    return int(match.group(1)) if match else None


def parse_pr_title(pr_title: str) -> Optional[PrTitleInfo]:
    """
    Parse a PR title into network, id, title and create/update flag.

    Accepted forms:
        [Agenda] <network> - <id> - <title>
        [Agenda Update] <network> - <id> - <title>

    Returns:
        PrTitleInfo, or None when the title matches neither form
    """
    for pattern, is_update in ((PR_TITLE_CREATE_PATTERN, False), (PR_TITLE_UPDATE_PATTERN, True)):
        match = pattern.match(pr_title)
        if match:
            return PrTitleInfo(
                network=match.group(1),
                id=int(match.group(2)),
                title=match.group(3).strip(),
                is_update=is_update,
            )
    return None


def validate_uint128(value: Any) -> bool:
    """Return True if value is an integer in [0, 2**128 - 1]."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= UINT128_MAX


def truncate_for_display(value: Any, limit: int = DISPLAY_TRUNCATE_LENGTH) -> str:
    """Render a value for logs, cutting it to `limit` characters plus '...'."""
    text = str(value)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def parse_timestamp(value: str) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware datetime.

    A trailing 'Z' is accepted and naive timestamps are read as UTC.

    Returns:
        The parsed datetime, or None if the value is not a valid timestamp
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

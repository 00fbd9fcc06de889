"""
Constants shared by the agenda metadata validators.
"""
import re
from datetime import timedelta

# Signatures older (or newer) than this relative to "now" are rejected
SIGNATURE_VALID_DURATION = timedelta(hours=1)

NETWORKS = ("mainnet", "sepolia")

# Regex patterns
ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
TRANSACTION_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
SIGNATURE_PATTERN = re.compile(r"^0x[a-fA-F0-9]{130}$")
HEX_STRING_PATTERN = re.compile(r"^0x[a-fA-F0-9]+$")
FUNCTION_SIGNATURE_PATTERN = re.compile(r"^[a-zA-Z0-9_]+\([a-zA-Z0-9_,\s\[\]]*\)$")
AGENDA_FILE_PATTERN = re.compile(r"^agenda-(\d+)\.json$", re.ASCII)
AGENDA_PATH_PATTERN = re.compile(r"^data/agendas/(mainnet|sepolia)/")
AGENDA_PATH_SEARCH_PATTERN = re.compile(r"data/agendas/([^/]+)/")
PR_TITLE_CREATE_PATTERN = re.compile(r"^\[Agenda\]\s+(mainnet|sepolia)\s*-\s*(\d+)\s*-\s*(.+)$", re.ASCII)
PR_TITLE_UPDATE_PATTERN = re.compile(r"^\[Agenda Update\]\s+(mainnet|sepolia)\s*-\s*(\d+)\s*-\s*(.+)$", re.ASCII)

PR_TITLE_CREATE_PREFIX = "[Agenda]"
PR_TITLE_UPDATE_PREFIX = "[Agenda Update]"

UINT128_MAX = 2 ** 128 - 1
DISPLAY_TRUNCATE_LENGTH = 50

# Messages signed by the agenda creator. These must stay byte-for-byte
# identical to the ones produced by the signing page.
SIGNATURE_MESSAGE_CREATE = (
    "I am the one who submitted agenda #{agenda_id} via transaction {transaction_hash}. "
    "I am creating this metadata at {timestamp}. "
    "This signature proves that I am the one who submitted this agenda."
)
SIGNATURE_MESSAGE_UPDATE = (
    "I am the one who submitted agenda #{agenda_id} via transaction {transaction_hash}. "
    "I am updating this metadata at {timestamp}. "
    "This signature proves that I am the one who can update this agenda."
)

# Remote repository holding the accepted agenda files
DEFAULT_METADATA_REPOSITORY = "tokamak-network/dao-agenda-metadata-repository"
DEFAULT_METADATA_BRANCH = "main"
RAW_CONTENT_URL = "https://raw.githubusercontent.com/{repository}/{branch}/{path}"

ERROR_MESSAGES = {
    "invalid_signature_format": (
        "Invalid signature format: {signature}. Expected 0x followed by 130 hex characters."
    ),
    "invalid_address_format": (
        "Invalid address format: {address}. Expected 0x followed by 40 hex characters."
    ),
    "invalid_transaction_hash_format": (
        "Invalid transaction hash format: {hash}. Expected 0x followed by 64 hex characters."
    ),
    "signature_expired": (
        "Signature has expired. Signature time: {signature_time}, Current time: {current_time}. "
        "Signatures must be created within {hours} hour(s)."
    ),
    "invalid_timestamp": "Invalid timestamp format: {timestamp}. Expected ISO 8601 format.",
    "signature_mismatch": (
        "Signature does not match expected address. Recovered: {recovered}, Expected: {expected}"
    ),
    "sender_mismatch": (
        "Transaction sender does not match expected address. Actual: {actual}, Expected: {expected}"
    ),
    "agenda_id_mismatch": (
        "Agenda ID from event does not match metadata. Event: {actual}, Metadata: {expected}"
    ),
    "invalid_event_data": "Failed to parse event data: {error}",
}

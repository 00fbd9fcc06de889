"""
Pytest fixtures for the agenda validator tests.
"""
import json
import time
from datetime import datetime, timezone
from typing import Dict, Optional

import pytest
from eth_abi import encode
from eth_account import Account

from agenda_validator.abi import AgendaAbiCodec
from agenda_validator.calldata import LEGACY_AGENDA_PARAM_TYPES, NEW_AGENDA_PARAM_TYPES
from agenda_validator.config import NetworkConfig
from agenda_validator.models import ChainLog, ChainReceipt, ChainTransaction
from agenda_validator.pipeline import AgendaMetadataValidator
from agenda_validator.signature import sign_agenda_message

# Well-known test key, never used on a real network
TEST_PRIV_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = Account.from_key(TEST_PRIV_KEY).address
OTHER_PRIV_KEY = "0x" + "22" * 32
OTHER_ADDRESS = Account.from_key(OTHER_PRIV_KEY).address

TEST_TX_HASH = "0x" + "ab" * 32
TEST_AGENDA_ID = 101
TEST_NETWORK = "sepolia"
TEST_TITLE = "Upgrade the seigniorage manager"
TEST_PR_TITLE = f"[Agenda] {TEST_NETWORK} - {TEST_AGENDA_ID} - {TEST_TITLE}"
TEST_FILE_PATH = f"data/agendas/{TEST_NETWORK}/agenda-{TEST_AGENDA_ID}.json"

# DAO committee proxy the TON fee is approved to
DAO_COMMITTEE = "0x" + "3c" * 20
AGENDA_FEE = 10 * 10 ** 18

TEST_TARGETS = ["0x" + "a1" * 20, "0x" + "b2" * 20]
TEST_CALLDATAS = [
    "0xa9059cbb" + "00" * 12 + "c3" * 20 + "00" * 31 + "01",
    "0x8456cb59",
]
TEST_SNAPSHOT_URL = "https://snapshot.org/#/tokamak.eth/proposal/0x1234"

FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
CREATED_AT = "2025-01-15T11:30:00.000Z"
UPDATED_AT = "2025-01-15T11:45:00.000Z"


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    """Make retry back-off instantaneous."""
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_network_cache():
    NetworkConfig._networks_cache = None
    yield
    NetworkConfig._networks_cache = None


def encode_agenda_params(
    targets=TEST_TARGETS,
    calldatas=TEST_CALLDATAS,
    memo: Optional[str] = None,
    notice: int = 86400,
    voting: int = 172800,
    atomic: bool = True,
) -> bytes:
    """ABI-encode agenda parameters; a memo selects the new encoding."""
    values = [list(targets), notice, voting, atomic, [bytes.fromhex(c[2:]) for c in calldatas]]
    if memo is None:
        return encode(LEGACY_AGENDA_PARAM_TYPES, values)
    return encode(NEW_AGENDA_PARAM_TYPES, values + [memo])


def encode_approve_and_call(payload: bytes, spender: str = DAO_COMMITTEE, amount: int = AGENDA_FEE) -> str:
    selector = AgendaAbiCodec().function_selector
    return "0x" + (selector + encode(["address", "uint256", "bytes"], [spender, amount, payload])).hex()


def make_agenda_created_log(
    sender: str = TEST_ADDRESS,
    agenda_id: int = TEST_AGENDA_ID,
    targets=TEST_TARGETS,
    notice: int = 86400,
    voting: int = 172800,
    atomic: bool = True,
) -> ChainLog:
    codec = AgendaAbiCodec()
    return ChainLog(
        address=DAO_COMMITTEE,
        topics=[
            codec.event_topic,
            "0x" + encode(["address"], [sender]).hex(),
            "0x" + encode(["uint256"], [agenda_id]).hex(),
        ],
        data="0x" + encode(["address[]", "uint128", "uint128", "bool"], [list(targets), notice, voting, atomic]).hex(),
    )


def make_metadata(
    private_key: str = TEST_PRIV_KEY,
    agenda_id: int = TEST_AGENDA_ID,
    network: str = TEST_NETWORK,
    created_at: str = CREATED_AT,
    updated_at: Optional[str] = None,
    **overrides
) -> Dict:
    """Build a signed metadata document; keyword overrides replace top-level keys."""
    timestamp = updated_at or created_at
    document = {
        "id": agenda_id,
        "title": TEST_TITLE,
        "description": "Upgrade the seigniorage manager to fix reward rounding.",
        "network": network,
        "transaction": TEST_TX_HASH,
        "creator": {
            "address": Account.from_key(private_key).address,
            "signature": sign_agenda_message(
                private_key, agenda_id, TEST_TX_HASH, timestamp, is_update=updated_at is not None
            ),
        },
        "actions": [
            {
                "title": f"Action {index}",
                "contractAddress": target,
                "method": "transfer(address,uint256)",
                "calldata": calldata,
                "abi": [{
                    "inputs": [
                        {"internalType": "address", "name": "to", "type": "address"},
                        {"internalType": "uint256", "name": "amount", "type": "uint256"},
                    ],
                    "name": "transfer",
                    "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
                    "stateMutability": "nonpayable",
                    "type": "function",
                }],
            }
            for index, (target, calldata) in enumerate(zip(TEST_TARGETS, TEST_CALLDATAS))
        ],
        "createdAt": created_at,
    }
    if updated_at is not None:
        document["updatedAt"] = updated_at
    document.update(overrides)
    return document


class FakeChainProvider:
    """In-memory ChainDataProvider"""

    def __init__(self):
        self.transactions: Dict[str, ChainTransaction] = {}
        self.receipts: Dict[str, ChainReceipt] = {}

    def add_agenda(self, tx_hash: str = TEST_TX_HASH, sender: str = TEST_ADDRESS, payload: Optional[bytes] = None,
                   logs=None):
        payload = payload if payload is not None else encode_agenda_params()
        self.transactions[tx_hash] = ChainTransaction(
            hash=tx_hash, from_address=sender, to_address="0x" + "44" * 20,
            data=encode_approve_and_call(payload), block_number=1234,
        )
        self.receipts[tx_hash] = ChainReceipt(
            transaction_hash=tx_hash, status=1, block_number=1234,
            logs=logs if logs is not None else [make_agenda_created_log(sender=sender)],
        )

    def get_transaction(self, transaction_hash):
        return self.transactions.get(transaction_hash)

    def get_transaction_receipt(self, transaction_hash):
        return self.receipts.get(transaction_hash)


class StubRemoteChecker:
    """RemoteFileChecker stand-in answering from a fixed set of paths"""

    def __init__(self, existing=()):
        self.existing = set(existing)
        self.checked = []

    def exists(self, file_path):
        self.checked.append(file_path)
        return file_path.replace("\\", "/").split("data/agendas/", 1)[-1] in self.existing


def write_metadata(root, document, network: str = TEST_NETWORK, agenda_id: int = TEST_AGENDA_ID) -> str:
    """Write a document to <root>/data/agendas/<network>/agenda-<id>.json."""
    directory = root / "data" / "agendas" / network
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"agenda-{agenda_id}.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


@pytest.fixture
def metadata_document():
    return make_metadata()


@pytest.fixture
def fake_provider():
    provider = FakeChainProvider()
    provider.add_agenda()
    return provider


@pytest.fixture
def remote_checker():
    return StubRemoteChecker()


@pytest.fixture
def validator(fake_provider, remote_checker):
    return AgendaMetadataValidator(
        remote_checker=remote_checker,
        provider_factory=lambda network: fake_provider,
        clock=lambda: FIXED_NOW,
    )

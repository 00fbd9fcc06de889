"""
ABI definitions and the codec used to decode agenda transactions and events.

The codec is built once and handed to the validators that need it, instead
of being looked up from a module-level cache.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from eth_abi import decode
from eth_utils import event_abi_to_log_topic, function_abi_to_4byte_selector, to_checksum_address
from hexbytes import HexBytes

from .constants import ERROR_MESSAGES
from .exceptions import CalldataDecodeError, EventDecodeError
from .models import ChainLog

# DAO committee event emitted when an agenda is created
AGENDA_CREATED_EVENT_ABI: Dict[str, Any] = {
    "anonymous": False,
    "inputs": [
        {"indexed": True, "internalType": "address", "name": "from", "type": "address"},
        {"indexed": True, "internalType": "uint256", "name": "id", "type": "uint256"},
        {"indexed": False, "internalType": "address[]", "name": "targets", "type": "address[]"},
        {"indexed": False, "internalType": "uint128", "name": "noticePeriodSeconds", "type": "uint128"},
        {"indexed": False, "internalType": "uint128", "name": "votingPeriodSeconds", "type": "uint128"},
        {"indexed": False, "internalType": "bool", "name": "atomicExecute", "type": "bool"},
    ],
    "name": "AgendaCreated",
    "type": "event",
}

# TON token entry point used to pay the agenda fee and create the agenda in one call
APPROVE_AND_CALL_ABI: Dict[str, Any] = {
    "inputs": [
        {"internalType": "address", "name": "spender", "type": "address"},
        {"internalType": "uint256", "name": "amount", "type": "uint256"},
        {"internalType": "bytes", "name": "data", "type": "bytes"},
    ],
    "name": "approveAndCall",
    "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
    "stateMutability": "nonpayable",
    "type": "function",
}


@dataclass(frozen=True)
class AgendaCreatedEvent:
    """Decoded AgendaCreated log"""
    from_address: str
    id: int
    targets: List[str]
    notice_period_seconds: int
    voting_period_seconds: int
    atomic_execute: bool


def to_bytes(value: Any) -> bytes:
    """Convert a 0x hex string, bytes or HexBytes into bytes."""
    return bytes(HexBytes(value))


def to_hex(value: Any) -> str:
    """Render bytes-like values as a 0x-prefixed lowercase hex string."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return "0x" + bytes(value).hex()


class AgendaAbiCodec:
    """
    Decoder for the approveAndCall envelope and the AgendaCreated event.

    Args:
        event_abi: ABI descriptor of the AgendaCreated event
        function_abi: ABI descriptor of the approveAndCall function
    """

    def __init__(
        self,
        event_abi: Dict[str, Any] = AGENDA_CREATED_EVENT_ABI,
        function_abi: Dict[str, Any] = APPROVE_AND_CALL_ABI,
    ):
        self.event_abi = event_abi
        self.function_abi = function_abi
        self.event_topic = to_hex(event_abi_to_log_topic(event_abi))
        self.function_selector = bytes(function_abi_to_4byte_selector(function_abi))

        self._indexed_types = [i["type"] for i in event_abi["inputs"] if i["indexed"]]
        self._indexed_names = [i["name"] for i in event_abi["inputs"] if i["indexed"]]
        self._data_types = [i["type"] for i in event_abi["inputs"] if not i["indexed"]]
        self._data_names = [i["name"] for i in event_abi["inputs"] if not i["indexed"]]
        self._function_types = [i["type"] for i in function_abi["inputs"]]
        self._function_names = [i["name"] for i in function_abi["inputs"]]

    def matches_event(self, log: ChainLog) -> bool:
        """True if the log's first topic is the AgendaCreated topic."""
        return bool(log.topics) and log.topics[0].lower() == self.event_topic

    def decode_event(self, log: ChainLog) -> AgendaCreatedEvent:
        """
        Decode an AgendaCreated log.

        Raises:
            EventDecodeError: If the topics or data do not match the event ABI
        """
        try:
            values = self._decode_event_values(log)
        except Exception as e:
            raise EventDecodeError(ERROR_MESSAGES["invalid_event_data"].format(error=e)) from e

        return AgendaCreatedEvent(
            from_address=to_checksum_address(values["from"]),
            id=values["id"],
            targets=[to_checksum_address(t) for t in values["targets"]],
            notice_period_seconds=values["noticePeriodSeconds"],
            voting_period_seconds=values["votingPeriodSeconds"],
            atomic_execute=values["atomicExecute"],
        )

    def _decode_event_values(self, log: ChainLog) -> Dict[str, Any]:
        topics = log.topics[1:]
        if len(topics) != len(self._indexed_types):
            raise ValueError(
                f"expected {len(self._indexed_types)} indexed topics, got {len(topics)}"
            )
        values: Dict[str, Any] = {}
        for name, abi_type, topic in zip(self._indexed_names, self._indexed_types, topics):
            (values[name],) = decode([abi_type], to_bytes(topic))
        decoded = decode(self._data_types, to_bytes(log.data))
        values.update(zip(self._data_names, decoded))
        return values

    def decode_function_input(self, data: Any) -> Dict[str, Any]:
        """
        Decode transaction input for the configured function.

        Args:
            data: Raw transaction input (selector + ABI-encoded arguments)

        Returns:
            Mapping of argument name to decoded value

        Raises:
            CalldataDecodeError: If the selector differs or the arguments are malformed
        """
        try:
            raw = to_bytes(data)
        except (ValueError, TypeError) as e:
            raise CalldataDecodeError(f"Invalid transaction input: {e}") from e

        selector = raw[:4]
        if selector != self.function_selector:
            raise CalldataDecodeError(
                f"Unexpected function selector {to_hex(selector)}, "
                f"expected {self.function_abi['name']} ({to_hex(self.function_selector)})"
            )
        try:
            decoded: Sequence[Any] = decode(self._function_types, raw[4:])
        except Exception as e:
            raise CalldataDecodeError(f"Failed to decode {self.function_abi['name']} data: {e}") from e
        return dict(zip(self._function_names, decoded))

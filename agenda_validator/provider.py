"""
Chain-data providers used by the on-chain validator.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol, TypeVar

import requests
from web3 import Web3
from web3.exceptions import TransactionNotFound

from .abi import to_hex
from .config import NetworkConfig
from .models import ChainReceipt, ChainTransaction

T = TypeVar('T')

# Transport failures worth another attempt; anything else propagates at once
RETRYABLE_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    ConnectionError,
    TimeoutError,
)


class ChainDataProvider(Protocol):
    """Protocol for transaction and receipt lookups"""

    def get_transaction(self, transaction_hash: str) -> Optional[ChainTransaction]:
        """Return the transaction, or None if the network does not know it"""
        ...

    def get_transaction_receipt(self, transaction_hash: str) -> Optional[ChainReceipt]:
        """Return the receipt, or None if the network has none"""
        ...


def _to_plain(value: Any) -> Any:
    """Turn web3 AttributeDicts and HexBytes into plain dicts and hex strings."""
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    if isinstance(value, dict) or hasattr(value, "items"):
        return {key: _to_plain(item) for key, item in dict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


class Web3ChainProvider:
    """
    ChainDataProvider backed by a web3 HTTP provider.

    Lookups are retried on transport errors with a linearly increasing delay
    (backoff, 2 * backoff, ...) up to `max_attempts` attempts. A transaction
    the node reports as unknown is returned as None without retrying.
    """

    def __init__(
        self,
        rpc_url: str,
        max_attempts: int = 3,
        backoff: float = 1.0,
        timeout: int = 30,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the provider

        Args:
            rpc_url: Ethereum JSON-RPC endpoint
            max_attempts: Maximum number of attempts per lookup
            backoff: Delay unit in seconds between attempts
            timeout: HTTP timeout per request in seconds
            w3: Preconfigured Web3 instance (mainly for tests)
            logger: Optional logger instance

        Raises:
            ValueError: If max_attempts is lower than 1
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.rpc_url = rpc_url
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.logger = logger or logging.getLogger(__name__)
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

    @classmethod
    def from_network(cls, network: str, rpc_url: Optional[str] = None, **kwargs) -> "Web3ChainProvider":
        """
        Create a provider for a named network.

        Args:
            network: Network name (mainnet or sepolia)
            rpc_url: Optional RPC URL overriding configuration
            **kwargs: Passed to the constructor
        """
        return cls(NetworkConfig.get_rpc_url(network, override=rpc_url), **kwargs)

    def _with_retry(self, description: str, fn: Callable[[], T]) -> Optional[T]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except TransactionNotFound:
                return None
            except RETRYABLE_ERRORS as e:
                if attempt >= self.max_attempts:
                    self.logger.error(f"{description} failed after {attempt} attempt(s): {e}")
                    raise
                wait_time = self.backoff * attempt
                self.logger.warning(f"Retrying {description} in {wait_time}s after error: {e}")
                time.sleep(wait_time)

    def get_transaction(self, transaction_hash: str) -> Optional[ChainTransaction]:
        tx = self._with_retry(
            f"get_transaction({transaction_hash})",
            lambda: self.w3.eth.get_transaction(transaction_hash),
        )
        if tx is None:
            return None
        tx_dict: Dict[str, Any] = _to_plain(tx)
        # JSON-RPC calls the transaction input "input"
        tx_dict.setdefault("data", tx_dict.get("input", "0x"))
        return ChainTransaction.model_validate(tx_dict)

    def get_transaction_receipt(self, transaction_hash: str) -> Optional[ChainReceipt]:
        receipt = self._with_retry(
            f"get_transaction_receipt({transaction_hash})",
            lambda: self.w3.eth.get_transaction_receipt(transaction_hash),
        )
        if receipt is None:
            return None
        return ChainReceipt.model_validate(_to_plain(receipt))

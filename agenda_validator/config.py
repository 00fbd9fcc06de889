"""
Configuration for networks and the remote metadata repository.
"""
import importlib.resources
import json
import logging
import os
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .constants import DEFAULT_METADATA_BRANCH, DEFAULT_METADATA_REPOSITORY

logger = logging.getLogger(__name__)


class NetworkConfig:
    """
    Network configuration loaded from the packaged networks.json.

    RPC endpoints resolve in this order: explicit override, the
    <NETWORK>_RPC_URL environment variable, the packaged default.
    """

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """Load (once) and return all network configurations."""
        if cls._networks_cache is None:
            resource = importlib.resources.files("agenda_validator").joinpath("networks.json")
            with resource.open("r", encoding="utf-8") as f:
                cls._networks_cache = json.load(f)
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the configuration of one network.

        Raises:
            ValueError: If the network is not configured
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @staticmethod
    def rpc_env_var(network: str) -> str:
        """Name of the environment variable overriding a network's RPC URL."""
        return f"{network.upper().replace('-', '_')}_RPC_URL"

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """Resolve the RPC URL for a network."""
        config = cls.get_network(network)
        if override:
            return override
        env_url = os.environ.get(cls.rpc_env_var(network))
        if env_url:
            return env_url
        return config["rpc"]

    @classmethod
    def tx_url(cls, network: str, transaction_hash: str) -> str:
        """Block explorer link for a transaction."""
        explorer = cls.get_network(network)["explorer"].rstrip("/")
        return f"{explorer}/tx/{transaction_hash}"


def get_metadata_repository() -> str:
    """GitHub <org>/<repo> holding accepted agenda files."""
    return os.environ.get("AGENDA_METADATA_REPOSITORY", DEFAULT_METADATA_REPOSITORY)


def get_metadata_branch() -> str:
    return os.environ.get("AGENDA_METADATA_BRANCH", DEFAULT_METADATA_BRANCH)


def load_environment(dotenv_path: Optional[str] = None) -> bool:
    """
    Load variables from a .env file without overriding the real environment.

    Returns:
        True if a .env file was found and loaded
    """
    loaded = load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True), override=False)
    if loaded:
        logger.debug("Loaded environment from .env")
    return loaded

"""Configuration management for the wrapped alpha bridge."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping

import toml

from core.errors import (
    AssetNotFoundError,
    ChainNotBridgeableError,
    ConfigurationError,
    UnsupportedNetworkError,
)
from core.types import Network

logger = logging.getLogger(__name__)


class ChainRegistry:
    """Static networks, wrapped assets and LayerZero endpoint ids."""

    def __init__(
        self,
        networks: Mapping[str, Network],
        netuids: Mapping[str, Mapping[str, str]],
        eids: Mapping[str, int],
    ):
        self.networks: Dict[str, Network] = dict(networks)
        self.assets: Dict[str, Dict[str, str]] = {k: dict(v) for k, v in netuids.items()}
        self.eids: Dict[str, int] = dict(eids)

    @classmethod
    def from_dict(cls, data: Mapping) -> "ChainRegistry":
        """Build a registry from parsed TOML.

        Raises:
            ConfigurationError: If a section is malformed
        """
        try:
            networks = {}
            for network_id, entry in data.get("networks", {}).items():
                rpc_urls = tuple(entry["rpc_urls"])
                if not rpc_urls:
                    raise ConfigurationError(f"Network {network_id} has no rpc_urls")
                networks[network_id] = Network(
                    id=network_id,
                    rpc_urls=rpc_urls,
                    aliases=tuple(a.lower() for a in entry.get("aliases", [])),
                    explorer_tx_url=entry.get("explorer_tx_url"),
                    native_symbol=entry.get("native_symbol", "TAO"),
                )

            netuids = {
                str(netuid): {str(k): str(v) for k, v in contracts.items()}
                for netuid, contracts in data.get("netuids", {}).items()
            }
            eids = {str(k): int(v) for k, v in data.get("eids", {}).items()}
        except KeyError as e:
            raise ConfigurationError(f"Missing required configuration key: {e}")
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid chain configuration: {e}")

        return cls(networks, netuids, eids)

    @classmethod
    def from_file(cls, config_path: Path) -> "ChainRegistry":
        """Load the registry from a TOML file.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        logger.info(f"Loading chain configuration from {config_path}")

        try:
            with open(config_path, "r") as f:
                data = toml.load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to parse configuration file: {e}")

        return cls.from_dict(data)

    def network_ids(self) -> List[str]:
        return list(self.networks)

    def resolve_network(self, name: str) -> Network:
        """Find a network by id or alias."""
        key = (name or "").strip().lower()
        for network in self.networks.values():
            if key == network.id.lower() or key in network.aliases:
                return network
        raise UnsupportedNetworkError(name)

    def netuids(self) -> List[str]:
        return list(self.assets)

    def contract_address(self, netuid: str, network: str) -> str:
        """Contract of a wrapped asset on a network."""
        contracts = self.assets.get(str(netuid))
        if contracts is None:
            raise AssetNotFoundError(str(netuid))
        address = contracts.get(network)
        if not address:
            raise AssetNotFoundError(str(netuid), network)
        return address

    def assets_on(self, network: str) -> Dict[str, str]:
        """netuid -> contract for every asset deployed on a network."""
        return {
            netuid: contracts[network]
            for netuid, contracts in self.assets.items()
            if contracts.get(network)
        }

    def is_bridgeable(self, chain: str) -> bool:
        return chain in self.eids

    def eid(self, chain: str) -> int:
        if chain not in self.eids:
            raise ChainNotBridgeableError(chain)
        return self.eids[chain]


@dataclass
class BridgeSettings:
    """Process settings read from the environment."""

    # Wallet source (first one set wins)
    private_key: str = ""
    mnemonic: str = ""
    key_file: str = "private-key.txt"

    chains_config: str = "chains.toml"
    log_level: str = "WARNING"

    # RPC settings
    rpc_timeout: float = 30.0
    balance_call_delay: float = 0.35

    # Delivery polling
    poll_interval: float = 5.0
    poll_max_attempts: int = 120
    layerzero_scan_url: str = "https://scan.layerzero-api.com"
    layerzero_explorer_url: str = "https://layerzeroscan.com/tx/{hash}"

    wrap_network: str = "tao"
    history_db: str = "bridge.db"

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        """Load settings from environment variables."""
        try:
            return cls(
                private_key=os.getenv("PRIVATE_KEY", ""),
                mnemonic=os.getenv("MNEMONIC", ""),
                key_file=os.getenv("KEY_FILE", "private-key.txt"),
                chains_config=os.getenv("CHAINS_CONFIG", "chains.toml"),
                log_level=os.getenv("LOG_LEVEL", "WARNING"),
                rpc_timeout=float(os.getenv("RPC_TIMEOUT", "30")),
                balance_call_delay=float(os.getenv("BALANCE_CALL_DELAY", "0.35")),
                poll_interval=float(os.getenv("POLL_INTERVAL", "5")),
                poll_max_attempts=int(os.getenv("POLL_MAX_ATTEMPTS", "120")),
                layerzero_scan_url=os.getenv("LAYERZERO_SCAN_URL", "https://scan.layerzero-api.com"),
                layerzero_explorer_url=os.getenv(
                    "LAYERZERO_EXPLORER_URL", "https://layerzeroscan.com/tx/{hash}"
                ),
                wrap_network=os.getenv("WRAP_NETWORK", "tao"),
                history_db=os.getenv("HISTORY_DB", "bridge.db"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment setting: {e}")

    def validate(self) -> None:
        """Validate settings.

        Raises:
            ConfigurationError: If a setting is out of range
        """
        if self.poll_interval < 0:
            raise ConfigurationError("POLL_INTERVAL must not be negative")
        if self.poll_max_attempts < 1:
            raise ConfigurationError("POLL_MAX_ATTEMPTS must be at least 1")
        if self.balance_call_delay < 0:
            raise ConfigurationError("BALANCE_CALL_DELAY must not be negative")
        if self.rpc_timeout <= 0:
            raise ConfigurationError("RPC_TIMEOUT must be positive")
        if "{hash}" not in self.layerzero_explorer_url:
            raise ConfigurationError("LAYERZERO_EXPLORER_URL must contain {hash}")

    def explorer_url(self, tx_hash: str) -> str:
        return self.layerzero_explorer_url.format(hash=tx_hash)

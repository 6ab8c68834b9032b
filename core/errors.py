"""Error types for the wrapped alpha bridge."""

from typing import Dict, Optional


class BridgeError(Exception):
    """Base exception for all bridge errors."""
    pass


class ConfigurationError(BridgeError):
    """Errors related to static configuration or settings."""
    pass


class UnsupportedNetworkError(ConfigurationError):
    """Network name is not one of the configured networks."""

    def __init__(self, network: str):
        self.network = network
        super().__init__(f"Network {network} not found")


class ChainNotBridgeableError(ConfigurationError):
    """Network exists but has no LayerZero endpoint id."""

    def __init__(self, chain: str):
        self.chain = chain
        super().__init__(f"Chain {chain} not supported for bridging")


class AssetNotFoundError(ConfigurationError):
    """No contract is registered for a netuid on a network."""

    def __init__(self, netuid: str, network: Optional[str] = None):
        self.netuid = netuid
        self.network = network
        if network:
            super().__init__(f"Netuid {netuid} has no contract on {network}")
        else:
            super().__init__(f"Netuid {netuid} not found in allowed netuids")


class WalletError(ConfigurationError):
    """Errors loading the signing key."""
    pass


class NetworkError(BridgeError):
    """Errors talking to chain RPC endpoints."""
    pass


class RPCError(NetworkError):
    """Errors from RPC calls."""
    def __init__(self, message: str, method: str = "", details: str = ""):
        self.method = method
        self.details = details
        super().__init__(f"RPC Error [{method}]: {message} - {details}")


class AllEndpointsUnavailable(NetworkError):
    """Every RPC endpoint of a network failed its liveness probe."""

    def __init__(self, network: str, errors: Optional[Dict[str, str]] = None):
        self.network = network
        self.errors = errors or {}
        super().__init__(f"All RPC URLs failed for {network}")


class InputError(BridgeError):
    """User input that cannot be used."""
    pass


class InvalidAddressError(InputError):
    """Destination address failed format validation."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid address: {address}")


class TransferAborted(BridgeError):
    """The user declined to continue."""
    pass


class ExecutionError(BridgeError):
    """On-chain execution failures."""
    pass


class QuoteError(ExecutionError):
    """The fee quote call failed."""
    pass


class SubmitError(ExecutionError):
    """The send transaction failed or reverted."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class DeliveryStatusError(BridgeError):
    """Fatal error while polling the delivery-status service."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

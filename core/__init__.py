"""Core types and errors for the wrapped alpha bridge."""

from core.errors import (
    AllEndpointsUnavailable,
    AssetNotFoundError,
    BridgeError,
    ChainNotBridgeableError,
    ConfigurationError,
    DeliveryStatusError,
    ExecutionError,
    InputError,
    InvalidAddressError,
    NetworkError,
    QuoteError,
    RPCError,
    SubmitError,
    TransferAborted,
    UnsupportedNetworkError,
    WalletError,
)
from core.types import (
    BalanceRecord,
    MessagingFee,
    Network,
    TransferDraft,
    TransferOutcome,
    TransferRequest,
    TransferStatus,
)

__all__ = [
    "AllEndpointsUnavailable",
    "AssetNotFoundError",
    "BridgeError",
    "ChainNotBridgeableError",
    "ConfigurationError",
    "DeliveryStatusError",
    "ExecutionError",
    "InputError",
    "InvalidAddressError",
    "NetworkError",
    "QuoteError",
    "RPCError",
    "SubmitError",
    "TransferAborted",
    "UnsupportedNetworkError",
    "WalletError",
    "BalanceRecord",
    "MessagingFee",
    "Network",
    "TransferDraft",
    "TransferOutcome",
    "TransferRequest",
    "TransferStatus",
]

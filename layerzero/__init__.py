"""LayerZero delivery-status integration."""

from layerzero.models import MessageStatus, ScanMessage, ScanResponse
from layerzero.scan import DEFAULT_SCAN_URL, DeliveryLookup, LayerZeroScanClient

__all__ = [
    "DEFAULT_SCAN_URL",
    "DeliveryLookup",
    "LayerZeroScanClient",
    "MessageStatus",
    "ScanMessage",
    "ScanResponse",
]

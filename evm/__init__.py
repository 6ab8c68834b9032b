"""EVM chain access via JSON-RPC."""

from evm.node import EvmNode, checksum, is_address
from evm.oft import ERC20_ABI, OFT_ABI, OftContract
from evm.pool import EndpointPool

__all__ = [
    "EvmNode",
    "EndpointPool",
    "OftContract",
    "ERC20_ABI",
    "OFT_ABI",
    "checksum",
    "is_address",
]

"""Wrapped alpha OFT contract bindings."""

import logging
from typing import Any, Dict, List

from core.errors import QuoteError
from core.types import MessagingFee, TransferRequest

logger = logging.getLogger(__name__)

ERC20_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]

_SEND_PARAM = {
    "components": [
        {"internalType": "uint32", "name": "dstEid", "type": "uint32"},
        {"internalType": "bytes32", "name": "to", "type": "bytes32"},
        {"internalType": "uint256", "name": "amountLD", "type": "uint256"},
        {"internalType": "uint256", "name": "minAmountLD", "type": "uint256"},
        {"internalType": "bytes", "name": "extraOptions", "type": "bytes"},
        {"internalType": "bytes", "name": "composeMsg", "type": "bytes"},
        {"internalType": "bytes", "name": "oftCmd", "type": "bytes"},
    ],
    "internalType": "struct SendParam",
    "name": "_sendParam",
    "type": "tuple",
}

_MESSAGING_FEE_COMPONENTS = [
    {"internalType": "uint256", "name": "nativeFee", "type": "uint256"},
    {"internalType": "uint256", "name": "lzTokenFee", "type": "uint256"},
]

OFT_ABI: List[Dict[str, Any]] = ERC20_ABI + [
    {
        "inputs": [
            _SEND_PARAM,
            {"internalType": "bool", "name": "_payInLzToken", "type": "bool"},
        ],
        "name": "quoteSend",
        "outputs": [
            {
                "components": _MESSAGING_FEE_COMPONENTS,
                "internalType": "struct MessagingFee",
                "name": "msgFee",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            _SEND_PARAM,
            {
                "components": _MESSAGING_FEE_COMPONENTS,
                "internalType": "struct MessagingFee",
                "name": "_fee",
                "type": "tuple",
            },
            {"internalType": "address", "name": "_refundAddress", "type": "address"},
        ],
        "name": "send",
        "outputs": [
            {
                "components": [
                    {"internalType": "bytes32", "name": "guid", "type": "bytes32"},
                    {"internalType": "uint64", "name": "nonce", "type": "uint64"},
                    {
                        "components": _MESSAGING_FEE_COMPONENTS,
                        "internalType": "struct MessagingFee",
                        "name": "fee",
                        "type": "tuple",
                    },
                ],
                "internalType": "struct MessagingReceipt",
                "name": "msgReceipt",
                "type": "tuple",
            },
            {
                "components": [
                    {"internalType": "uint256", "name": "amountSentLD", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountReceivedLD", "type": "uint256"},
                ],
                "internalType": "struct OFTReceipt",
                "name": "oftReceipt",
                "type": "tuple",
            },
        ],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "amount", "type": "uint256"}],
        "name": "depositTao",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "amount", "type": "uint256"}],
        "name": "withdrawTao",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class OftContract:
    """Transfer-capable wrapped token contract on one chain."""

    def __init__(self, node, address: str, wallet):
        """Bind the contract.

        Args:
            node: Live EvmNode for the contract's chain
            address: Contract address
            wallet: Wallet that signs state-changing calls
        """
        self.node = node
        self.address = address
        self.wallet = wallet
        self.contract = node.contract(address, OFT_ABI)

    async def quote_send(self, request: TransferRequest, pay_in_lz_token: bool = False) -> MessagingFee:
        """Quote the messaging fee for a send.

        Raises:
            QuoteError: If the call fails or returns no native fee
        """
        try:
            result = await self.contract.functions.quoteSend(
                request.to_send_param(), pay_in_lz_token
            ).call()
            return MessagingFee.from_quote(result)
        except Exception as e:
            raise QuoteError(f"Fee quote failed: {e}") from e

    async def send(self, request: TransferRequest, fee: MessagingFee, refund_address: str) -> str:
        """Broadcast the send, paying the native fee as value."""
        call = self.contract.functions.send(request.to_send_param(), fee.as_tuple(), refund_address)
        return await self.node.send_transaction(call, self.wallet, value=fee.native_fee)

    async def wait(self, tx_hash: str, timeout: float = 180.0) -> Dict[str, Any]:
        return await self.node.wait_for_receipt(tx_hash, timeout=timeout)

    async def deposit(self, amount: int) -> str:
        call = self.contract.functions.depositTao(amount)
        return await self.node.send_transaction(call, self.wallet, value=amount)

    async def withdraw(self, amount: int) -> str:
        call = self.contract.functions.withdrawTao(amount)
        return await self.node.send_transaction(call, self.wallet)

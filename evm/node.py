"""EVM JSON-RPC client for one endpoint."""

import logging
from typing import Any, Dict, List, Optional

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from core.errors import RPCError, SubmitError

logger = logging.getLogger(__name__)


class EvmNode:
    """Connection to a single EVM RPC endpoint.

    A node is cheap to create and holds no socket until the first call.
    Once closed it must not be reused; create a new one for the same URL.
    """

    def __init__(self, rpc_url: str, timeout: float = 30.0):
        """Create a new EVM RPC client.

        Args:
            rpc_url: URL of the JSON-RPC endpoint
            timeout: Total timeout per request in seconds
        """
        self.rpc_url = rpc_url
        self.w3 = AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            )
        )
        self._closed = False
        logger.debug(f"Initializing EVM RPC client at {rpc_url}")

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.w3.provider.disconnect()
        except Exception as e:
            logger.debug(f"Error closing provider for {self.rpc_url}: {e}")

    async def get_block_height(self) -> int:
        """Get current chain height.

        Returns:
            Latest block number

        Raises:
            RPCError: If the endpoint does not answer
        """
        try:
            return int(await self.w3.eth.block_number)
        except Exception as e:
            raise RPCError(str(e), method="eth_blockNumber", details=self.rpc_url) from e

    async def get_native_balance(self, address: str) -> int:
        """Get the native balance of an address in wei."""
        try:
            return int(await self.w3.eth.get_balance(Web3.to_checksum_address(address)))
        except Exception as e:
            raise RPCError(str(e), method="eth_getBalance", details=self.rpc_url) from e

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        """Bind a contract ABI at an address on this endpoint."""
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def send_transaction(self, call, wallet, value: int = 0) -> str:
        """Build, sign and broadcast a contract call.

        Args:
            call: Bound contract function (``contract.functions.x(...)``)
            wallet: Wallet whose account signs the transaction
            value: Native value to attach in wei

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            SubmitError: If the transaction cannot be built or is rejected
        """
        try:
            nonce = await self.w3.eth.get_transaction_count(wallet.address, "pending")
            tx = await call.build_transaction({
                "from": wallet.address,
                "value": value,
                "nonce": nonce,
                "chainId": await self.w3.eth.chain_id,
            })
            signed = wallet.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise SubmitError(f"Failed to send transaction: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info(f"Broadcast tx {tx_hex} via {self.rpc_url}")
        return tx_hex

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 180.0) -> Dict[str, Any]:
        """Wait for on-chain inclusion of a transaction.

        Raises:
            SubmitError: If the transaction reverted or was not mined in time
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except Exception as e:
            raise SubmitError(f"Transaction {tx_hash} not confirmed: {e}", tx_hash=tx_hash) from e

        if receipt.get("status") != 1:
            raise SubmitError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)

        logger.info(f"Tx {tx_hash} included in block {receipt.get('blockNumber')}")
        return dict(receipt)

    async def __aenter__(self) -> "EvmNode":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def is_address(value: Optional[str]) -> bool:
    return bool(value) and Web3.is_address(value)


def checksum(address: str) -> str:
    return Web3.to_checksum_address(address)

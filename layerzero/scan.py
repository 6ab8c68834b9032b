"""LayerZero Scan client for cross-chain delivery status."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp
from pydantic import ValidationError

from core.errors import DeliveryStatusError
from layerzero.models import ScanResponse

logger = logging.getLogger(__name__)

DEFAULT_SCAN_URL = "https://scan.layerzero-api.com"

# Statuses the service uses while it has not indexed the tx yet
NOT_INDEXED_HTTP_STATUSES = (400, 404)


@dataclass
class DeliveryLookup:
    """Result of one status lookup."""
    indexed: bool
    status_name: Optional[str] = None
    http_status: int = 200


class LayerZeroScanClient:
    """Reads message status from the LayerZero Scan API.

    Use as an async context manager; the HTTP session lives exactly as long
    as the ``async with`` block.
    """

    def __init__(self, base_url: str = DEFAULT_SCAN_URL, timeout: float = 15.0):
        """Initialize the scan client.

        Args:
            base_url: Scan API root
            timeout: Total timeout per request in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def stop(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def lookup(self, tx_hash: str) -> DeliveryLookup:
        """Look up the message sent by a source-chain transaction.

        Returns:
            DeliveryLookup; ``indexed`` is False while the service has not
            seen the transaction (HTTP 400/404 or an empty ``data`` list)

        Raises:
            DeliveryStatusError: On any other HTTP error, transport failure
                or malformed body
        """
        if not self.session:
            raise DeliveryStatusError("Session not initialized - call start() first")

        url = f"{self.base_url}/v1/messages/tx/{tx_hash}"
        try:
            async with self.session.get(url) as response:
                if response.status in NOT_INDEXED_HTTP_STATUSES:
                    return DeliveryLookup(indexed=False, http_status=response.status)
                if not 200 <= response.status < 300:
                    raise DeliveryStatusError(
                        f"HTTP error: {response.status}", status=response.status
                    )
                payload = await response.json(content_type=None)
                http_status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DeliveryStatusError(f"Failed to reach LayerZero Scan: {e}") from e
        except ValueError as e:
            raise DeliveryStatusError(f"LayerZero Scan returned invalid JSON: {e}") from e

        try:
            body = ScanResponse.model_validate(payload)
        except ValidationError as e:
            raise DeliveryStatusError(f"Malformed LayerZero Scan response: {e}") from e

        if not body.data:
            return DeliveryLookup(indexed=False, http_status=http_status)

        message = body.data[0]
        status_name = message.status.name if message.status else None
        logger.debug(f"LayerZero status for {tx_hash}: {status_name}")
        return DeliveryLookup(indexed=True, status_name=status_name, http_status=http_status)

    async def __aenter__(self) -> "LayerZeroScanClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

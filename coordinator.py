"""Cross-chain transfer execution and delivery confirmation."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from core.errors import DeliveryStatusError, QuoteError, SubmitError, TransferAborted
from core.types import MessagingFee, TransferOutcome, TransferRequest, TransferStatus

logger = logging.getLogger(__name__)

DELIVERED_STATUS = "DELIVERED"
# Names the scan service reports for delivery that are not the exact terminal value
ALT_DELIVERED_STATUSES = ("DELIVERED_DST",)

Progress = Callable[[str], None]


def _log_progress(line: str) -> None:
    logger.info(line)


class TransferCoordinator:
    """Quotes, submits and confirms one validated TransferRequest.

    The scan client is entered as an async context manager for the duration
    of a single confirmation, so no HTTP session outlives ``confirm()``.
    """

    def __init__(
        self,
        scan_client,
        explorer_url: Callable[[str], str],
        poll_interval: float = 5.0,
        max_attempts: int = 120,
        receipt_timeout: float = 180.0,
        history=None,
        progress: Optional[Progress] = None,
    ):
        """Initialize the coordinator.

        Args:
            scan_client: Delivery-status client (LayerZeroScanClient)
            explorer_url: Builds the cross-chain explorer link for a tx hash
            poll_interval: Seconds between status polls
            max_attempts: Status polls before reporting a timeout
            receipt_timeout: Seconds to wait for source-chain inclusion
            history: Optional TransferHistory to record submissions in
            progress: Sink for human-readable progress lines
        """
        self.scan_client = scan_client
        self.explorer_url = explorer_url
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.receipt_timeout = receipt_timeout
        self.history = history
        self.progress = progress or _log_progress

    async def quote(self, oft, request: TransferRequest) -> MessagingFee:
        """Quote the native fee. Failures are fatal and never retried."""
        try:
            fee = await oft.quote_send(request, False)
        except QuoteError:
            raise
        except Exception as e:
            raise QuoteError(f"Fee quote failed: {e}") from e

        logger.info(f"Quoted native fee {fee.native_fee} wei for {request.amount} to eid {request.destination_eid}")
        return fee

    async def submit(self, oft, request: TransferRequest, fee: MessagingFee, refund_address: str) -> str:
        """Broadcast the send and wait for source-chain inclusion.

        Returns:
            Source-chain transaction hash

        Raises:
            SubmitError: If broadcasting fails or the transaction reverts
        """
        tx_hash = await oft.send(request, fee, refund_address)
        if self.history:
            await self.history.record_submission(tx_hash, request, fee.native_fee)

        self.progress("Waiting for tx...")
        try:
            await oft.wait(tx_hash, timeout=self.receipt_timeout)
        except SubmitError:
            if self.history:
                await self.history.update_status(tx_hash, TransferStatus.FAILED_ERROR)
            raise
        return tx_hash

    async def confirm(self, tx_hash: str) -> TransferOutcome:
        """Poll the delivery-status service until DELIVERED or timeout.

        Not-yet-indexed answers keep polling. Any other service error stops
        immediately with FAILED_ERROR. Running out of attempts is reported
        as a timeout, since the message may still be delivered later.
        """
        explorer_url = self.explorer_url(tx_hash)
        status = TransferStatus.SUBMITTED
        last_name: Optional[str] = None
        polls = 0

        async with self.scan_client as scan:
            for attempt in range(self.max_attempts):
                polls += 1
                try:
                    lookup = await scan.lookup(tx_hash)
                except DeliveryStatusError as e:
                    logger.error(f"LayerZero status polling failed for {tx_hash}: {e}")
                    return TransferOutcome(
                        status=TransferStatus.FAILED_ERROR,
                        transaction_hash=tx_hash,
                        explorer_url=explorer_url,
                        polls=polls,
                        last_status_name=last_name,
                        error=str(e),
                    )

                if lookup.indexed:
                    status = TransferStatus.PENDING_CONFIRMATION
                    if lookup.status_name and lookup.status_name != last_name:
                        last_name = lookup.status_name
                        self.progress(f"LayerZero message status: {last_name}")
                    if last_name == DELIVERED_STATUS:
                        return TransferOutcome(
                            status=TransferStatus.DELIVERED,
                            transaction_hash=tx_hash,
                            explorer_url=explorer_url,
                            polls=polls,
                            last_status_name=last_name,
                        )

                if attempt + 1 < self.max_attempts:
                    await asyncio.sleep(self.poll_interval)

        logger.warning(f"No delivery confirmation for {tx_hash} after {polls} polls (last status {status.value})")
        final = TransferStatus.FAILED_TIMEOUT
        if last_name in ALT_DELIVERED_STATUSES:
            final = TransferStatus.DELIVERED_ALT
        return TransferOutcome(
            status=final,
            transaction_hash=tx_hash,
            explorer_url=explorer_url,
            polls=polls,
            last_status_name=last_name,
        )

    async def execute(
        self,
        oft,
        request: TransferRequest,
        refund_address: str,
        approve_fee: Optional[Callable[[MessagingFee], Awaitable[bool]]] = None,
        source_explorer_url: Optional[Callable[[str], Optional[str]]] = None,
    ) -> TransferOutcome:
        """Quote, submit and confirm a transfer.

        Raises:
            QuoteError: If the fee quote fails
            TransferAborted: If ``approve_fee`` declines the quoted fee
            SubmitError: If the send fails or reverts
        """
        fee = await self.quote(oft, request)
        self.progress(f"Native fee (wei): {fee.native_fee}")

        if approve_fee is not None and not await approve_fee(fee):
            raise TransferAborted("Transfer cancelled")

        tx_hash = await self.submit(oft, request, fee, refund_address)
        self.progress("Bridged tx confirmed!")
        if source_explorer_url and source_explorer_url(tx_hash):
            self.progress(f"Source tx: {source_explorer_url(tx_hash)}")
        self.progress(f"Track tx on LayerZero Scan: {self.explorer_url(tx_hash)}")
        self.progress("Waiting for LayerZero tx, this may take a minute...")

        outcome = await self.confirm(tx_hash)
        outcome.native_fee = fee.native_fee
        if source_explorer_url:
            outcome.source_explorer_url = source_explorer_url(tx_hash)
        if self.history:
            await self.history.update_status(tx_hash, outcome.status, outcome.last_status_name)
        return outcome


def describe_outcome(outcome: TransferOutcome) -> List[str]:
    """Human-readable lines for a final outcome."""
    if outcome.delivered:
        return ["Bridged successfully!"]

    if outcome.status is TransferStatus.FAILED_ERROR:
        lines = [f"LayerZero status polling failed: {outcome.error}"]
    elif outcome.last_status_name is None:
        lines = ["No delivery confirmation received yet."]
    else:
        lines = [f"LayerZero message status: {outcome.last_status_name}"]
    lines.append("Warning: Message not finalized, check LayerZero Scan for details.")
    lines.append(f"LayerZero Scan: {outcome.explorer_url}")
    return lines

import asyncio

import pytest

from coordinator import TransferCoordinator, describe_outcome
from core.errors import DeliveryStatusError, QuoteError, SubmitError, TransferAborted
from core.types import MessagingFee, TransferRequest, TransferStatus

from conftest import FakeScanClient

TX = "0x" + "ab" * 32


def _coordinator(script, max_attempts=5, **kwargs):
    scan = FakeScanClient(script)
    coordinator = TransferCoordinator(
        scan,
        explorer_url=lambda h: f"https://layerzeroscan.com/tx/{h}",
        poll_interval=0,
        max_attempts=max_attempts,
        progress=lambda line: None,
        **kwargs,
    )
    return coordinator, scan


def _request() -> TransferRequest:
    return TransferRequest.build(
        {"chainA": 30001, "chainB": 30002},
        netuid="1",
        source_chain="chainA",
        destination_chain="chainB",
        token_contract="0x1111111111111111111111111111111111111111",
        amount=10 ** 9,
        observed_balance=10 ** 12,
        recipient="0x2c7536E3605D9C16a7a3D7b1898e529396a65c23",
    )


class FakeOft:
    def __init__(self, fee=MessagingFee(10 ** 15), quote_error=None, revert=False):
        self.fee = fee
        self.quote_error = quote_error
        self.revert = revert
        self.sent = []

    async def quote_send(self, request, pay_in_lz_token=False):
        if self.quote_error:
            raise self.quote_error
        return self.fee

    async def send(self, request, fee, refund_address):
        self.sent.append((request, fee, refund_address))
        return TX

    async def wait(self, tx_hash, timeout=180.0):
        if self.revert:
            raise SubmitError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)
        return {"status": 1}


def test_delivered_after_not_indexed_and_pending() -> None:
    coordinator, scan = _coordinator(["404", "404", "INFLIGHT", "DELIVERED"])

    outcome = asyncio.run(coordinator.confirm(TX))

    assert outcome.status is TransferStatus.DELIVERED
    assert outcome.delivered
    assert outcome.polls == 4
    assert outcome.explorer_url == f"https://layerzeroscan.com/tx/{TX}"
    assert scan.entered == 1 and scan.exited == 1


def test_never_indexed_times_out() -> None:
    coordinator, scan = _coordinator(["404"], max_attempts=5)

    outcome = asyncio.run(coordinator.confirm(TX))

    assert outcome.status is TransferStatus.FAILED_TIMEOUT
    assert not outcome.delivered
    assert outcome.polls == 5
    assert scan.lookups == 5
    assert outcome.last_status_name is None
    assert "No delivery confirmation received yet." in describe_outcome(outcome)


def test_status_error_stops_polling_immediately() -> None:
    coordinator, scan = _coordinator([DeliveryStatusError("HTTP error: 500", status=500), "DELIVERED"])

    outcome = asyncio.run(coordinator.confirm(TX))

    assert outcome.status is TransferStatus.FAILED_ERROR
    assert outcome.polls == 1
    assert "HTTP error: 500" in outcome.error
    assert scan.exited == 1


def test_alternate_delivered_name_is_reported_as_unconfirmed() -> None:
    coordinator, _ = _coordinator(["DELIVERED_DST"], max_attempts=3)

    outcome = asyncio.run(coordinator.confirm(TX))

    assert outcome.status is TransferStatus.DELIVERED_ALT
    assert not outcome.delivered
    assert outcome.polls == 3
    assert outcome.last_status_name == "DELIVERED_DST"


def test_no_sleep_after_last_attempt(monkeypatch) -> None:
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("coordinator.asyncio.sleep", fake_sleep)
    coordinator, _ = _coordinator(["404"], max_attempts=4)

    asyncio.run(coordinator.confirm(TX))

    assert len(sleeps) == 3


def test_execute_pays_quoted_fee_and_confirms() -> None:
    coordinator, _ = _coordinator(["DELIVERED"])
    oft = FakeOft()
    request = _request()

    outcome = asyncio.run(coordinator.execute(oft, request, "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"))

    assert outcome.delivered
    assert outcome.native_fee == 10 ** 15
    assert outcome.transaction_hash == TX
    sent_request, sent_fee, refund = oft.sent[0]
    assert sent_request is request
    assert sent_fee == MessagingFee(10 ** 15)
    assert refund == "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"


def test_quote_failure_is_fatal_and_nothing_is_sent() -> None:
    coordinator, scan = _coordinator(["DELIVERED"])
    oft = FakeOft(quote_error=RuntimeError("execution reverted"))

    with pytest.raises(QuoteError):
        asyncio.run(coordinator.execute(oft, _request(), "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"))

    assert oft.sent == []
    assert scan.lookups == 0


def test_declined_fee_aborts_before_sending() -> None:
    coordinator, _ = _coordinator(["DELIVERED"])
    oft = FakeOft()

    async def decline(fee):
        return False

    with pytest.raises(TransferAborted):
        asyncio.run(coordinator.execute(oft, _request(), "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23", approve_fee=decline))

    assert oft.sent == []


def test_reverted_send_is_fatal_and_not_polled() -> None:
    coordinator, scan = _coordinator(["DELIVERED"])
    oft = FakeOft(revert=True)

    with pytest.raises(SubmitError):
        asyncio.run(coordinator.execute(oft, _request(), "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"))

    assert scan.lookups == 0

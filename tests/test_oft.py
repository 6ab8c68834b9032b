import asyncio

import pytest

from core.errors import QuoteError
from core.types import MessagingFee, TransferRequest
from evm.oft import OFT_ABI, OftContract

from conftest import TOKEN_A, FakeNode, token_values


def _request() -> TransferRequest:
    return TransferRequest.build(
        {"chainA": 30001, "chainB": 30002},
        netuid="1",
        source_chain="chainA",
        destination_chain="chainB",
        token_contract=TOKEN_A,
        amount=10 ** 9,
        observed_balance=10 ** 9,
        recipient="0x2c7536E3605D9C16a7a3D7b1898e529396a65c23",
    )


@pytest.mark.parametrize("quote", [(123, 0), {"nativeFee": 123, "lzTokenFee": 0}])
def test_quote_is_normalized(quote) -> None:
    node = FakeNode(contracts={TOKEN_A: token_values(0, quote=quote)})
    oft = OftContract(node, TOKEN_A, wallet=None)

    assert asyncio.run(oft.quote_send(_request())) == MessagingFee(123, 0)


def test_quote_failure_raises_quote_error() -> None:
    node = FakeNode(contracts={TOKEN_A: token_values(0, quote=RuntimeError("reverted"))})
    oft = OftContract(node, TOKEN_A, wallet=None)

    with pytest.raises(QuoteError):
        asyncio.run(oft.quote_send(_request()))


def test_send_attaches_native_fee_and_send_param() -> None:
    node = FakeNode(contracts={TOKEN_A: token_values(0)})
    oft = OftContract(node, TOKEN_A, wallet=None)
    request = _request()

    asyncio.run(oft.send(request, MessagingFee(77, 0), "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"))

    sent = node.sent[0]
    assert sent["name"] == "send"
    assert sent["value"] == 77
    assert sent["args"] == (request.to_send_param(), (77, 0), "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23")


def test_deposit_pays_amount_and_withdraw_pays_nothing() -> None:
    node = FakeNode(contracts={TOKEN_A: token_values(0)})
    oft = OftContract(node, TOKEN_A, wallet=None)

    async def run():
        await oft.deposit(5)
        await oft.withdraw(3)

    asyncio.run(run())

    assert [(s["name"], s["args"], s["value"]) for s in node.sent] == [
        ("depositTao", (5,), 5),
        ("withdrawTao", (3,), 0),
    ]


def test_abi_declares_every_used_function() -> None:
    names = {entry["name"] for entry in OFT_ABI}
    assert {"balanceOf", "decimals", "symbol", "quoteSend", "send", "depositTao", "withdrawTao"} <= names

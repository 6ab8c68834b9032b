"""Shared fakes for nodes, contracts, the scan client and the prompter."""

from typing import Any, Callable, Dict, List, Optional

import pytest

from config import BridgeSettings, ChainRegistry
from core.errors import RPCError
from layerzero.scan import DeliveryLookup
from prompting import Prompter
from session import Session
from wallet import load_wallet_from_key

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"
OTHER = "0x3333333333333333333333333333333333333333"


class FakeCall:
    """Bound contract function; ``call()`` is awaitable like web3's."""

    def __init__(self, name: str, args: tuple, value: Any):
        self.name = name
        self.args = args
        self.value = value

    async def call(self):
        value = self.value
        if callable(value):
            value = value(*self.args)
        if isinstance(value, Exception):
            raise value
        return value


class FakeFunctions:
    def __init__(self, values: Dict[str, Any]):
        self._values = values

    def __getattr__(self, name: str):
        def bind(*args):
            return FakeCall(name, args, self._values.get(name, RPCError("execution reverted", name)))
        return bind


class FakeContract:
    def __init__(self, address: str, values: Dict[str, Any]):
        self.address = address
        self.functions = FakeFunctions(values)


class FakeNode:
    """In-memory stand-in for EvmNode."""

    def __init__(
        self,
        url: str = "http://fake",
        alive: bool = True,
        native: int = 10 ** 18,
        contracts: Optional[Dict[str, Dict[str, Any]]] = None,
        height: int = 100,
        on_send: Optional[Callable[[FakeCall, int], None]] = None,
        reverts: bool = False,
    ):
        self.rpc_url = url
        self.alive = alive
        self.native = native
        self.contracts = contracts if contracts is not None else {}
        self.height = height
        self.on_send = on_send
        self.reverts = reverts
        self.probes = 0
        self.sent: List[Dict[str, Any]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._closed = True

    async def get_block_height(self) -> int:
        self.probes += 1
        if not self.alive:
            raise RPCError("connection refused", method="eth_blockNumber", details=self.rpc_url)
        return self.height

    async def get_native_balance(self, address: str) -> int:
        return self.native

    def contract(self, address: str, abi):
        return FakeContract(address, self.contracts.get(address.lower(), {}))

    async def send_transaction(self, call, wallet, value: int = 0) -> str:
        tx_hash = "0x" + f"{len(self.sent) + 1:064x}"
        self.sent.append({"name": call.name, "args": call.args, "value": value, "hash": tx_hash})
        if self.on_send:
            self.on_send(call, value)
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 180.0):
        from core.errors import SubmitError
        if self.reverts:
            raise SubmitError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash)
        return {"status": 1, "blockNumber": self.height}


def token_values(balance: int, decimals: int = 9, symbol: str = "wSN", quote=(10 ** 15, 0)) -> Dict[str, Any]:
    return {
        "balanceOf": balance,
        "decimals": decimals,
        "symbol": symbol,
        "quoteSend": quote,
    }


class ScriptedPrompter(Prompter):
    """Replays answers in order and captures everything said."""

    def __init__(self, answers: Optional[List[str]] = None):
        self.answers = list(answers or [])
        self.questions: List[str] = []
        self.lines: List[str] = []

    async def ask(self, question: str = "") -> str:
        if question:
            self.say(question)
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"No scripted answer left for: {question or self.lines[-1:]}")
        return self.answers.pop(0)

    def say(self, line: str = "") -> None:
        self.lines.append(line)

    @property
    def output(self) -> str:
        return "\n".join(self.lines)


class FakeScanClient:
    """Replays lookups. ``"404"`` means not indexed; the last entry repeats."""

    def __init__(self, script: List[Any]):
        self.script = list(script)
        self.lookups = 0
        self.entered = 0
        self.exited = 0

    async def __aenter__(self) -> "FakeScanClient":
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited += 1

    async def lookup(self, tx_hash: str) -> DeliveryLookup:
        idx = min(self.lookups, len(self.script) - 1)
        self.lookups += 1
        item = self.script[idx]
        if isinstance(item, Exception):
            raise item
        if item in ("404", "400"):
            return DeliveryLookup(indexed=False, http_status=int(item))
        if item is None:
            return DeliveryLookup(indexed=False)
        return DeliveryLookup(indexed=True, status_name=item)


def make_registry(networks=("chainA", "chainB"), eids=None, assets=None) -> ChainRegistry:
    eids = eids if eids is not None else {"chainA": 30001, "chainB": 30002}
    assets = assets if assets is not None else {"1": {n: TOKEN_A for n in networks}}
    return ChainRegistry.from_dict({
        "networks": {
            n: {
                "rpc_urls": [f"http://{n}-1", f"http://{n}-2"],
                "explorer_tx_url": f"https://{n}.example/tx/{{hash}}",
            }
            for n in networks
        },
        "eids": eids,
        "netuids": assets,
    })


@pytest.fixture
def wallet():
    return load_wallet_from_key(TEST_KEY)


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def settings(tmp_path):
    return BridgeSettings(
        poll_interval=0,
        poll_max_attempts=5,
        balance_call_delay=0,
        wrap_network="chainA",
        history_db=str(tmp_path / "history.db"),
    )


def make_session(registry, settings, wallet, prompter, nodes: Dict[str, FakeNode]) -> Session:
    """Session whose pools hand out ``nodes[url]``, or a fresh live node."""
    def factory(url: str) -> FakeNode:
        return nodes.setdefault(url, FakeNode(url))

    return Session(
        registry=registry,
        settings=settings,
        wallet=wallet,
        prompter=prompter,
        node_factory=factory,
    )

"""Wrapped alpha bridge application."""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import balances
from config import BridgeSettings, ChainRegistry
from coordinator import TransferCoordinator, describe_outcome
from core.errors import TransferAborted
from core.types import BalanceRecord, MessagingFee, TransferDraft, TransferOutcome
from core.units import format_units
from database import TransferHistory
from evm.oft import OftContract
from layerzero.scan import LayerZeroScanClient
from prompting import Prompter, spaced_text
from resolver import LOW_BALANCE_WEI, ResolverState, TransferParameterResolver, token_label
from session import Session
from wallet import Wallet, load_wallet
from workflow import StepResult, Workflow, WorkflowToken
from wrapping import ConversionResult, UnwrapFlow, WrapFlow

logger = logging.getLogger(__name__)


class BridgeApp:
    """Wrapped alpha bridge.

    Resolves transfer parameters interactively, sends wrapped tokens across
    chains through LayerZero and converts between TAO and wrapped tokens.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        prompter: Prompter,
        registry: Optional[ChainRegistry] = None,
        wallet: Optional[Wallet] = None,
        node_factory=None,
        scan_client_factory: Optional[Callable[[], Any]] = None,
        fetch_balances: Callable[..., Awaitable[List[BalanceRecord]]] = balances.fetch_all,
        confirm_fee: bool = False,
    ):
        """Initialize the bridge.

        Args:
            settings: Process settings
            prompter: Question/answer channel
            registry: Chain registry; loaded from ``settings.chains_config`` if None
            wallet: Signer; loaded from the configured source if None
            node_factory: Builds an EvmNode for an RPC URL
            scan_client_factory: Builds a delivery-status client
            fetch_balances: Balance aggregator
            confirm_fee: Ask before paying the quoted native fee
        """
        self.settings = settings
        self.prompter = prompter
        self.registry = registry
        self.wallet = wallet
        self.node_factory = node_factory
        self.scan_client_factory = scan_client_factory or (
            lambda: LayerZeroScanClient(settings.layerzero_scan_url)
        )
        self.fetch_balances = fetch_balances
        self.confirm_fee = confirm_fee

        self.history = TransferHistory(settings.history_db)
        self.session: Optional[Session] = None

        logger.info("Initialized wrapped alpha bridge")

    async def start(self) -> None:
        """Load configuration and the wallet, open the history store.

        Raises:
            ConfigurationError: If settings, registry or wallet are invalid
        """
        self.settings.validate()

        if self.registry is None:
            self.registry = ChainRegistry.from_file(Path(self.settings.chains_config))
        if self.wallet is None:
            self.wallet = load_wallet(
                private_key=self.settings.private_key or None,
                mnemonic=self.settings.mnemonic or None,
                keyfile=self.settings.key_file or None,
            )

        await self.history.start()

        self.session = Session(
            registry=self.registry,
            settings=self.settings,
            wallet=self.wallet,
            prompter=self.prompter,
            node_factory=self.node_factory,
        )
        logger.info(f"Bridge started for {self.wallet.address}")

    async def stop(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
        await self.history.stop()
        logger.info("Bridge stopped")

    async def __aenter__(self) -> "BridgeApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def _coordinator(self) -> TransferCoordinator:
        return TransferCoordinator(
            self.scan_client_factory(),
            explorer_url=self.settings.explorer_url,
            poll_interval=self.settings.poll_interval,
            max_attempts=self.settings.poll_max_attempts,
            history=self.history,
            progress=self.prompter.say,
        )

    def _workflow(self) -> Workflow:
        return Workflow({
            "bridge": self._bridge_step,
            "wrap": WrapFlow(self.session).run,
            "unwrap": UnwrapFlow(self.session, self.fetch_balances).run,
        })

    async def account(self, network: Optional[str] = None) -> Dict[str, Any]:
        """Print address, native balance and wrapped balances of one network."""
        session = self.session
        say = self.prompter.say
        net = self.registry.resolve_network(network or self.settings.wrap_network)
        node = await session.acquire(net.id)

        native = await self.wallet.get_balance(node)
        say(spaced_text("Account Information"))
        say(f"EVM address: {self.wallet.address}")
        say(f"TAO address: {self.wallet.ss58_address()}")
        say(f"Balance: {format_units(native, 18)} {net.native_symbol}")
        if native == 0:
            say(f"Your balance is empty! Load your EVM address with {net.native_symbol}")
        elif native < LOW_BALANCE_WEI:
            say("Your balance is low on funds make sure you have enough funds to pay transaction fees")

        contracts = self.registry.assets_on(net.id)
        records = await self.fetch_balances(
            list(contracts.values()),
            self.wallet.address,
            node,
            self.settings.balance_call_delay,
        )
        held = sorted(
            ((netuid, record) for netuid, record in zip(contracts, records) if record.balance > 0),
            key=lambda item: item[1].balance,
            reverse=True,
        )

        say("")
        say(spaced_text("Wrapped Token Balances"))
        if not held:
            say("No wrapped token balances found")
        for netuid, record in held:
            say(f"{token_label(netuid)}: {format_units(record.balance, record.decimals)}")

        return {
            "address": self.wallet.address,
            "ss58_address": self.wallet.ss58_address(),
            "native": native,
            "tokens": dict(held),
        }

    async def bridge(self, draft: TransferDraft) -> TransferOutcome:
        """Resolve and execute one cross-chain transfer.

        Raises:
            TransferAborted: If the user cancels
            BridgeError: On any fatal configuration, network or execution error
        """
        saved = {
            "netuid": draft.netuid,
            "from_chain": draft.from_chain,
            "to_chain": draft.to_chain,
            "amount": draft.amount,
            "destination": draft.destination,
        }
        return await self._workflow().run(WorkflowToken(next_step="bridge", saved=saved))

    async def _bridge_step(self, token: WorkflowToken) -> StepResult:
        session = self.session
        draft = TransferDraft(
            netuid=token.saved.get("netuid"),
            from_chain=token.saved.get("from_chain"),
            to_chain=token.saved.get("to_chain"),
            amount=token.saved.get("amount"),
            destination=token.saved.get("destination"),
            after_wrap=bool(token.saved.get("after_wrap")),
        )

        resolver = TransferParameterResolver(session, fetch_balances=self.fetch_balances)
        resolution = await resolver.resolve(draft)
        if resolution.state is ResolverState.HANDOFF:
            return StepResult(next=resolution.continuation)
        if resolution.state is ResolverState.ABORT:
            raise TransferAborted(resolution.reason or "Transfer cancelled")

        request = resolution.request
        network = self.registry.resolve_network(request.source_chain)
        node = await session.acquire(request.source_chain)
        oft = OftContract(node, request.token_contract, self.wallet)

        approve_fee = None
        if self.confirm_fee:
            async def approve_fee(fee: MessagingFee) -> bool:
                shown = format_units(fee.native_fee, 18, places=None)
                return await self.prompter.confirm(f"Pay a native fee of {shown} {network.native_symbol}?")

        outcome = await self._coordinator().execute(
            oft,
            request,
            self.wallet.address,
            approve_fee=approve_fee,
            source_explorer_url=network.explorer_url,
        )
        for line in describe_outcome(outcome):
            self.prompter.say(line)
        return StepResult(outcome=outcome)

    async def wrap(self, netuid: Optional[str] = None, amount: Optional[str] = None) -> ConversionResult:
        """Convert TAO into a wrapped token."""
        token = WorkflowToken(next_step="wrap", saved={"netuid": netuid, "amount": amount})
        return await self._workflow().run(token)

    async def unwrap(self, netuid: Optional[str] = None, amount: Optional[str] = None) -> ConversionResult:
        """Convert a wrapped token back into TAO."""
        token = WorkflowToken(next_step="unwrap", saved={"netuid": netuid, "amount": amount})
        return await self._workflow().run(token)

    async def transfer_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Print the most recent transfers."""
        rows = await self.history.recent(limit)
        say = self.prompter.say
        say(spaced_text("Transfer History"))
        if not rows:
            say("No transfers recorded")
        for row in rows:
            say(
                f"{row['created_at']}  wSN{row['netuid']}  {row['source_chain']} -> "
                f"{row['destination_chain']}  {row['status']}  {row['tx_hash']}"
            )
        return rows

    async def status(self, tx_hash: str) -> TransferOutcome:
        """Poll delivery status of an earlier transfer."""
        self.prompter.say(f"Track tx on LayerZero Scan: {self.settings.explorer_url(tx_hash)}")
        outcome = await self._coordinator().confirm(tx_hash)

        if await self.history.get(tx_hash):
            await self.history.update_status(tx_hash, outcome.status, outcome.last_status_name)
        for line in describe_outcome(outcome):
            self.prompter.say(line)
        return outcome

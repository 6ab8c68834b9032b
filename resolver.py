"""Interactive resolution of transfer parameters.

The resolver walks an explicit state machine. Each state fills one field of
the draft, either from a pre-supplied argument or by asking the user, and
validates it before moving on. Recoverable input errors re-prompt a bounded
number of times; configuration errors and malformed destination addresses
are fatal.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import balances
from core.errors import ConfigurationError, InvalidAddressError
from core.types import BalanceRecord, TransferDraft, TransferRequest
from core.units import format_units, parse_units
from evm.node import checksum, is_address
from prompting import spaced_text
from session import Session
from workflow import WorkflowToken

logger = logging.getLogger(__name__)

ALL_SENTINEL = "all"
LOW_BALANCE_WEI = 10 ** 16


class ResolverState(Enum):
    SELECT_SOURCE_CHAIN = "select_source_chain"
    SELECT_DEST_CHAIN = "select_dest_chain"
    CHECK_BALANCES = "check_balances"
    SELECT_TOKEN = "select_token"
    SELECT_AMOUNT = "select_amount"
    SELECT_DESTINATION = "select_destination"
    CONFIRM = "confirm"
    SUBMIT = "submit"
    ABORT = "abort"
    HANDOFF = "handoff"  # another flow runs first, see Resolution.continuation

    @property
    def is_terminal(self) -> bool:
        return self in (ResolverState.SUBMIT, ResolverState.ABORT, ResolverState.HANDOFF)


@dataclass(frozen=True)
class Valid:
    value: Any


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class Aborted:
    reason: str


FieldResult = Union[Valid, Invalid, Aborted]


@dataclass
class Resolution:
    """Terminal result of one resolution attempt."""
    state: ResolverState
    request: Optional[TransferRequest] = None
    balance: Optional[BalanceRecord] = None
    continuation: Optional[WorkflowToken] = None
    reason: Optional[str] = None


def validate_amount(text: Optional[str], balance: int, decimals: int) -> FieldResult:
    """Turn an amount answer into smallest units.

    ``all`` selects the full observed balance exactly.
    """
    text = (text or "").strip()
    if text.lower() == ALL_SENTINEL:
        if balance <= 0:
            return Invalid("No balance available")
        return Valid(balance)

    units = parse_units(text, decimals)
    if units is None:
        return Invalid(f'Invalid amount: enter a number with at most {decimals} decimals or "all"')
    if units <= 0:
        return Invalid("Amount must be greater than zero")
    if units > balance:
        return Invalid(
            f"Insufficient balance: {format_units(balance, decimals)} available"
        )
    return Valid(units)


def validate_destination(text: Optional[str], default: str) -> str:
    """Blank means ``default``; anything else must be a valid address.

    Raises:
        InvalidAddressError: If the address is malformed
    """
    text = (text or "").strip()
    if not text:
        return checksum(default)
    if not is_address(text):
        raise InvalidAddressError(text)
    return checksum(text)


def token_label(netuid: str) -> str:
    return f"wSN{netuid}"


class TransferParameterResolver:
    """Builds a validated TransferRequest from arguments and prompts."""

    def __init__(
        self,
        session: Session,
        max_attempts: int = 3,
        fetch_balances: Callable[..., Awaitable[List[BalanceRecord]]] = balances.fetch_all,
    ):
        """Initialize the resolver.

        Args:
            session: Session carrying registry, wallet, prompter and pools
            max_attempts: Prompts per field before giving up
            fetch_balances: Balance aggregator used for the token list
        """
        self.session = session
        self.max_attempts = max_attempts
        self.fetch_balances = fetch_balances
        self.trail: List[ResolverState] = []

        self._amount: Optional[int] = None
        self._recipient: Optional[str] = None
        self._request: Optional[TransferRequest] = None
        self._continuation: Optional[WorkflowToken] = None
        self._abort_reason: Optional[str] = None

        self._handlers: Dict[ResolverState, Callable[[TransferDraft], Awaitable[ResolverState]]] = {
            ResolverState.SELECT_SOURCE_CHAIN: self._select_source_chain,
            ResolverState.SELECT_DEST_CHAIN: self._select_dest_chain,
            ResolverState.CHECK_BALANCES: self._check_balances,
            ResolverState.SELECT_TOKEN: self._select_token,
            ResolverState.SELECT_AMOUNT: self._select_amount,
            ResolverState.SELECT_DESTINATION: self._select_destination,
            ResolverState.CONFIRM: self._confirm,
        }

    @property
    def say(self):
        return self.session.prompter.say

    async def resolve(self, draft: TransferDraft) -> Resolution:
        """Run the state machine to a terminal state.

        Raises:
            ConfigurationError: Unsupported network, chain or asset
            InvalidAddressError: Malformed destination address
            NetworkError: No endpoint of the source chain answered
        """
        state = ResolverState.SELECT_SOURCE_CHAIN
        while not state.is_terminal:
            self.trail.append(state)
            logger.debug(f"Resolver state {state.value}")
            state = await self._handlers[state](draft)
        self.trail.append(state)

        if state is ResolverState.SUBMIT:
            return Resolution(
                state=state,
                request=self._request,
                balance=draft.balances.get(self._request.netuid),
            )
        if state is ResolverState.HANDOFF:
            return Resolution(state=state, continuation=self._continuation)
        return Resolution(state=state, reason=self._abort_reason)

    async def _field(self, read: Callable[[], Awaitable[FieldResult]]) -> FieldResult:
        """Read one field, re-prompting on invalid answers."""
        for _ in range(self.max_attempts):
            result = await read()
            if not isinstance(result, Invalid):
                return result
            self.say(result.reason)
        return Aborted("Too many invalid answers")

    async def _choice(self, question: str, options: List[str]) -> FieldResult:
        async def read() -> FieldResult:
            answer = await self.session.prompter.choose(question, options)
            return Valid(answer) if answer is not None else Invalid("Invalid selection")
        return await self._field(read)

    def _abort(self, reason: str) -> ResolverState:
        self._abort_reason = reason
        self.say(reason)
        return ResolverState.ABORT

    async def _select_source_chain(self, draft: TransferDraft) -> ResolverState:
        registry = self.session.registry
        if draft.from_chain:
            draft.from_chain = registry.resolve_network(draft.from_chain).id
            return ResolverState.SELECT_DEST_CHAIN

        options = registry.network_ids()
        if draft.to_chain:
            to_id = registry.resolve_network(draft.to_chain).id
            options = [n for n in options if n != to_id]

        result = await self._choice("Which chain are you bridging from?", options)
        if isinstance(result, Aborted):
            return self._abort(result.reason)
        draft.from_chain = result.value
        self.say("")
        return ResolverState.SELECT_DEST_CHAIN

    async def _select_dest_chain(self, draft: TransferDraft) -> ResolverState:
        registry = self.session.registry
        if draft.to_chain:
            draft.to_chain = registry.resolve_network(draft.to_chain).id
            if draft.to_chain == draft.from_chain:
                raise ConfigurationError("Source and destination chains must differ")
        else:
            options = [n for n in registry.network_ids() if n != draft.from_chain]
            if not options:
                raise ConfigurationError("No available chains to bridge to")
            if len(options) == 1:
                draft.to_chain = options[0]
                self.say(f"Only one destination chain available, automatically selecting: {draft.to_chain}")
                self.say("")
            else:
                result = await self._choice("Which chain are you bridging to?", options)
                if isinstance(result, Aborted):
                    return self._abort(result.reason)
                draft.to_chain = result.value

        # A network can be reachable over RPC and still have no LayerZero id
        registry.eid(draft.from_chain)
        registry.eid(draft.to_chain)
        return ResolverState.CHECK_BALANCES

    async def _check_balances(self, draft: TransferDraft) -> ResolverState:
        session = self.session
        registry = session.registry
        node = await session.acquire(draft.from_chain)
        network = registry.resolve_network(draft.from_chain)

        native = await session.wallet.get_balance(node)
        self.say(f"Balance: {format_units(native, 18)} {network.native_symbol}")
        if native == 0:
            self.say(
                "Your balance is empty! Load your EVM address with "
                f"{network.native_symbol} to pay transaction fees"
            )
        elif native < LOW_BALANCE_WEI:
            self.say("Your balance is low on funds make sure you have enough funds to bridge successfully")

        if draft.netuid:
            contracts = {draft.netuid: registry.contract_address(draft.netuid, draft.from_chain)}
        else:
            contracts = registry.assets_on(draft.from_chain)

        records = await self.fetch_balances(
            list(contracts.values()),
            session.wallet.address,
            node,
            session.settings.balance_call_delay,
        )
        draft.balances = {
            netuid: record
            for netuid, record in zip(contracts.keys(), records)
            if record.balance > 0
        }

        self.say(spaced_text("Wrapped Token Balances"))
        if not draft.balances:
            self.say("No wrapped token balances found")
            if draft.after_wrap:
                return self._abort("Nothing to bridge after wrapping")
            wrap_network = registry.resolve_network(session.settings.wrap_network)
            if network.id != wrap_network.id:
                return self._abort(
                    f"Nothing to bridge on {network.id}. TAO can only be wrapped on "
                    f"{wrap_network.id}; bridge from there first"
                )
            if await session.prompter.confirm("Would you like to convert TAO to wrapped tokens first?"):
                self._continuation = WorkflowToken(
                    next_step="wrap",
                    saved={"netuid": draft.netuid},
                    follow_up=WorkflowToken(
                        next_step="bridge",
                        saved={**draft.saved_parameters(), "after_wrap": True},
                    ),
                )
                return ResolverState.HANDOFF
            return self._abort("Nothing to bridge")

        for netuid, record in draft.balances.items():
            self.say(f"{token_label(netuid)}: {format_units(record.balance, record.decimals)}")
        self.say("")
        return ResolverState.SELECT_TOKEN

    async def _select_token(self, draft: TransferDraft) -> ResolverState:
        labels = {token_label(netuid): netuid for netuid in draft.balances}
        options = list(labels)

        if len(options) == 1:
            self.say(f"Only one token available, automatically selecting: {options[0]}")
            draft.netuid = labels[options[0]]
            return ResolverState.SELECT_AMOUNT

        result = await self._choice("Which token?", options)
        if isinstance(result, Aborted):
            return self._abort(result.reason)
        draft.netuid = labels[result.value]
        return ResolverState.SELECT_AMOUNT

    async def _select_amount(self, draft: TransferDraft) -> ResolverState:
        record = draft.balances[draft.netuid]
        label = token_label(draft.netuid)
        self.say("")
        self.say(f"Available balance: {format_units(record.balance, record.decimals)} {label}")

        if draft.amount is not None:
            result = validate_amount(draft.amount, record.balance, record.decimals)
            if isinstance(result, Valid):
                self._amount = result.value
                return ResolverState.SELECT_DESTINATION
            self.say(f"{result.reason} ({draft.amount})")

        async def read() -> FieldResult:
            answer = await self.session.prompter.ask(
                'How much do you want to bridge? (enter amount or "all" for full balance):'
            )
            return validate_amount(answer, record.balance, record.decimals)

        result = await self._field(read)
        if isinstance(result, Aborted):
            return self._abort(result.reason)
        self._amount = result.value
        return ResolverState.SELECT_DESTINATION

    async def _select_destination(self, draft: TransferDraft) -> ResolverState:
        own = self.session.wallet.address
        text = draft.destination
        if text is None:
            self.say("")
            text = await self.session.prompter.ask(
                f"Enter destination address or leave blank for ({own})"
            )
        # Malformed addresses are fatal rather than re-prompted
        self._recipient = validate_destination(text, own)
        return ResolverState.CONFIRM

    async def _confirm(self, draft: TransferDraft) -> ResolverState:
        registry = self.session.registry
        record = draft.balances[draft.netuid]
        request = TransferRequest.build(
            registry.eids,
            netuid=draft.netuid,
            source_chain=draft.from_chain,
            destination_chain=draft.to_chain,
            token_contract=registry.contract_address(draft.netuid, draft.from_chain),
            amount=self._amount,
            observed_balance=record.balance,
            recipient=self._recipient,
        )

        self.say("")
        self.say(spaced_text("Transfer Summary"))
        self.say(f"Token:       {token_label(request.netuid)}")
        self.say(f"Amount:      {format_units(request.amount, record.decimals, places=None)}")
        self.say(f"From:        {request.source_chain}")
        self.say(f"To:          {request.destination_chain} (eid {request.destination_eid})")
        self.say(f"Recipient:   {request.recipient}")

        if not await self.session.prompter.confirm("Would you like to bridge tokens?"):
            return self._abort("Transfer cancelled")

        self._request = request
        return ResolverState.SUBMIT

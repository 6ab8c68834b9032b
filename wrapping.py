"""Conversion between native TAO and wrapped alpha tokens."""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

import balances
from core.errors import ConfigurationError, TransferAborted
from core.types import BalanceRecord
from core.units import format_units
from evm.oft import OftContract
from prompting import spaced_text
from resolver import Valid, token_label, validate_amount
from session import Session
from workflow import StepResult, WorkflowToken

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


@dataclass
class ConversionResult:
    """A mined wrap or unwrap transaction."""
    netuid: str
    amount: int
    transaction_hash: str
    explorer_url: Optional[str] = None


async def ask_amount(
    session: Session,
    question: str,
    balance: int,
    decimals: int,
    preset: Optional[str] = None,
    blank_means_all: bool = False,
    max_attempts: int = 3,
) -> int:
    """Prompt until a valid amount is given.

    A pre-supplied amount is checked first; if invalid it is reported and
    the user is asked instead.

    Raises:
        TransferAborted: After ``max_attempts`` invalid answers
    """
    if preset is not None:
        result = validate_amount(preset, balance, decimals)
        if isinstance(result, Valid):
            return result.value
        session.prompter.say(f"{result.reason} ({preset})")

    for _ in range(max_attempts):
        answer = (await session.prompter.ask(question)).strip()
        if not answer and blank_means_all:
            answer = "all"
        result = validate_amount(answer, balance, decimals)
        if isinstance(result, Valid):
            return result.value
        session.prompter.say(result.reason)
    raise TransferAborted("Too many invalid answers")


async def choose_netuid(session: Session, netuids: List[str], preset: Optional[str] = None) -> str:
    """Pick one netuid, auto-selecting when there is nothing to choose."""
    if preset:
        if preset not in netuids:
            raise ConfigurationError(f"Netuid {preset} is not available on {session.settings.wrap_network}")
        return preset
    if not netuids:
        raise ConfigurationError(f"No wrapped tokens configured on {session.settings.wrap_network}")
    if len(netuids) == 1:
        session.prompter.say(f"Only one token available, automatically selecting: {token_label(netuids[0])}")
        return netuids[0]

    labels = {token_label(n): n for n in netuids}
    answer = await session.prompter.choose("Which token?", list(labels))
    if answer is None:
        raise TransferAborted("Invalid selection")
    return labels[answer]


class WrapFlow:
    """Deposits native TAO into a wrapped alpha contract."""

    def __init__(self, session: Session):
        self.session = session

    async def run(self, token: WorkflowToken) -> StepResult:
        """Workflow step: wrap, then continue with the follow-up if any."""
        session = self.session
        say = session.prompter.say
        network = session.registry.resolve_network(session.settings.wrap_network)
        contracts = session.registry.assets_on(network.id)

        netuid = await choose_netuid(session, list(contracts), token.saved.get("netuid"))
        node = await session.acquire(network.id)

        native = await session.wallet.get_balance(node)
        say(spaced_text("Wrap"))
        say(f"Balance: {format_units(native, NATIVE_DECIMALS)} {network.native_symbol}")
        if native == 0:
            raise TransferAborted(
                f"Your balance is empty! Load your EVM address with {network.native_symbol}"
            )

        amount = await ask_amount(
            session,
            f'How much {network.native_symbol} do you want to wrap? (enter amount or "all"):',
            native,
            NATIVE_DECIMALS,
            preset=token.saved.get("amount"),
        )
        label = token_label(netuid)
        shown = format_units(amount, NATIVE_DECIMALS, places=None)
        if not await session.prompter.confirm(f"Would you like to wrap {shown} {network.native_symbol} into {label}?"):
            raise TransferAborted("Wrap cancelled")

        oft = OftContract(node, contracts[netuid], session.wallet)
        tx_hash = await oft.deposit(amount)
        logger.info(f"Wrap of {amount} wei into {label} sent: {tx_hash}")
        say("Waiting for tx...")
        await oft.wait(tx_hash)

        explorer = network.explorer_url(tx_hash)
        say(f"Wrapped {shown} {network.native_symbol} into {label}")
        if explorer:
            say(f"Transaction: {explorer}")

        result = ConversionResult(netuid, amount, tx_hash, explorer)
        follow_up = token.follow_up
        if follow_up is not None:
            # The bridge that asked for the wrap continues with the new asset
            follow_up = WorkflowToken(
                next_step=follow_up.next_step,
                saved={**follow_up.saved, "netuid": netuid},
                follow_up=follow_up.follow_up,
            )
            say("")
        return StepResult(outcome=result, next=follow_up)


class UnwrapFlow:
    """Withdraws native TAO from a wrapped alpha contract."""

    def __init__(
        self,
        session: Session,
        fetch_balances: Callable[..., Awaitable[List[BalanceRecord]]] = balances.fetch_all,
    ):
        self.session = session
        self.fetch_balances = fetch_balances

    async def run(self, token: WorkflowToken) -> StepResult:
        session = self.session
        say = session.prompter.say
        network = session.registry.resolve_network(session.settings.wrap_network)
        contracts = session.registry.assets_on(network.id)
        preset = token.saved.get("netuid")
        if preset:
            contracts = {preset: session.registry.contract_address(preset, network.id)}

        node = await session.acquire(network.id)
        records = await self.fetch_balances(
            list(contracts.values()),
            session.wallet.address,
            node,
            session.settings.balance_call_delay,
        )
        held = {
            netuid: record
            for netuid, record in zip(contracts, records)
            if record.balance > 0
        }

        say(spaced_text("Unwrap"))
        if not held:
            raise TransferAborted("No wrapped token balances found")
        for netuid, record in held.items():
            say(f"{token_label(netuid)}: {format_units(record.balance, record.decimals)}")

        netuid = await choose_netuid(session, list(held), preset)
        record = held[netuid]
        label = token_label(netuid)

        amount = await ask_amount(
            session,
            f"How much {label} do you want to unwrap? (leave blank for full balance):",
            record.balance,
            record.decimals,
            preset=token.saved.get("amount"),
            blank_means_all=True,
        )
        shown = format_units(amount, record.decimals, places=None)
        if not await session.prompter.confirm(f"Would you like to unwrap {shown} {label}?"):
            raise TransferAborted("Unwrap cancelled")

        oft = OftContract(node, contracts[netuid], session.wallet)
        tx_hash = await oft.withdraw(amount)
        logger.info(f"Unwrap of {amount} from {label} sent: {tx_hash}")
        say("Waiting for tx...")
        await oft.wait(tx_hash)

        explorer = network.explorer_url(tx_hash)
        say(f"Unwrapped {shown} {label}")
        if explorer:
            say(f"Transaction: {explorer}")

        updated = await self.fetch_balances(
            [contracts[netuid]], session.wallet.address, node, session.settings.balance_call_delay
        )
        say(f"New balance: {format_units(updated[0].balance, updated[0].decimals)} {label}")

        return StepResult(outcome=ConversionResult(netuid, amount, tx_hash, explorer))

"""Rate-limited ERC20 balance lookups."""

import asyncio
import logging
from typing import List, Sequence

from core.types import BalanceRecord
from evm.node import checksum
from evm.oft import ERC20_ABI

logger = logging.getLogger(__name__)

DEFAULT_CALL_DELAY = 0.35


async def fetch_all(
    contracts: Sequence[str],
    owner: str,
    node,
    inter_call_delay: float = DEFAULT_CALL_DELAY,
) -> List[BalanceRecord]:
    """Fetch balance, decimals and symbol for each contract.

    Contracts are read one after another with ``inter_call_delay`` seconds
    between them so public endpoints do not throttle us. The three reads of
    one contract run together. A contract whose reads fail gets an
    ``Unknown`` record instead of aborting the batch; nothing is retried.

    Args:
        contracts: Token contract addresses
        owner: Address whose balances are read
        node: Live EvmNode to read through
        inter_call_delay: Seconds to wait after each contract

    Returns:
        One record per contract, in input order
    """
    owner = checksum(owner)
    results: List[BalanceRecord] = []

    for address in contracts:
        try:
            contract = node.contract(address, ERC20_ABI)
            reads = await asyncio.gather(
                contract.functions.balanceOf(owner).call(),
                contract.functions.decimals().call(),
                contract.functions.symbol().call(),
                return_exceptions=True,
            )
            for read in reads:
                if isinstance(read, Exception):
                    raise read
            balance, decimals, symbol = reads
            results.append(BalanceRecord(
                symbol=str(symbol),
                balance=int(balance),
                decimals=int(decimals),
                contract=address,
            ))
        except Exception as e:
            logger.warning(f"Balance lookup failed for {address}: {e}")
            results.append(BalanceRecord.unknown(address))

        await asyncio.sleep(inter_call_delay)

    return results

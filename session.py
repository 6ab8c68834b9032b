"""Per-invocation context shared by the resolver, coordinator and flows."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from config import BridgeSettings, ChainRegistry
from evm.node import EvmNode
from evm.pool import EndpointPool
from prompting import Prompter
from wallet import Wallet

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Registry, wallet, prompt channel and endpoint pools of one CLI run."""
    registry: ChainRegistry
    settings: BridgeSettings
    wallet: Wallet
    prompter: Prompter
    node_factory: Optional[Callable[[str], EvmNode]] = None
    pools: Dict[str, EndpointPool] = field(default_factory=dict)

    def pool(self, network: str) -> EndpointPool:
        """Endpoint pool of a network, created on first use."""
        net = self.registry.resolve_network(network)
        if net.id not in self.pools:
            factory = self.node_factory or (
                lambda url: EvmNode(url, timeout=self.settings.rpc_timeout)
            )
            self.pools[net.id] = EndpointPool(net, node_factory=factory)
        return self.pools[net.id]

    async def acquire(self, network: str) -> EvmNode:
        return await self.pool(network).acquire()

    async def close(self) -> None:
        for pool in self.pools.values():
            await pool.close()
        self.pools.clear()

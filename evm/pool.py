"""Failover selection across the RPC endpoints of one network."""

import logging
from typing import Callable, Dict, List, Optional

from core.errors import AllEndpointsUnavailable, NetworkError
from core.types import Network
from evm.node import EvmNode

logger = logging.getLogger(__name__)

NodeFactory = Callable[[str], EvmNode]


class EndpointPool:
    """Owns the endpoint handles of one network and a sticky last-good cursor.

    Acquisitions are sequential: each candidate is probed in turn, starting
    at the last endpoint that answered. A candidate that fails its probe is
    closed and dropped; a fresh handle is created for that URL the next time
    it comes up.
    """

    def __init__(self, network: Network, node_factory: Optional[NodeFactory] = None):
        """Initialize the pool.

        Args:
            network: Network whose endpoints this pool serves
            node_factory: Creates a node for a URL (defaults to EvmNode)
        """
        if not network.rpc_urls:
            raise ValueError(f"Network {network.id} has no RPC URLs")

        self.network = network
        self._node_factory = node_factory or EvmNode
        self._nodes: List[Optional[EvmNode]] = [None] * len(network.rpc_urls)
        self._current_idx = 0

    @property
    def current_index(self) -> int:
        return self._current_idx

    def _node_at(self, idx: int) -> EvmNode:
        node = self._nodes[idx]
        if node is None or node.closed:
            node = self._node_factory(self.network.rpc_urls[idx])
            self._nodes[idx] = node
        return node

    async def acquire(self) -> EvmNode:
        """Return a live node, freshly probed during this call.

        Raises:
            AllEndpointsUnavailable: If every endpoint failed its probe
        """
        errors: Dict[str, str] = {}
        count = len(self._nodes)

        for i in range(count):
            idx = (self._current_idx + i) % count
            node = self._node_at(idx)
            try:
                height = await node.get_block_height()
            except NetworkError as e:
                url = self.network.rpc_urls[idx]
                logger.warning(f"RPC endpoint {url} for {self.network.id} failed probe: {e}")
                errors[url] = str(e)
                self._nodes[idx] = None
                await node.close()
                continue

            if idx != self._current_idx:
                logger.info(f"Switched {self.network.id} to endpoint #{idx}")
            self._current_idx = idx
            logger.debug(f"{self.network.id} endpoint #{idx} live at height {height}")
            return node

        raise AllEndpointsUnavailable(self.network.id, errors)

    async def close(self) -> None:
        """Close every open handle."""
        for idx, node in enumerate(self._nodes):
            if node is not None:
                await node.close()
                self._nodes[idx] = None

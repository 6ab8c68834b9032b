import asyncio

import pytest

from core.errors import AllEndpointsUnavailable
from core.types import Network
from evm.pool import EndpointPool

from conftest import FakeNode

URLS = ("http://rpc-0", "http://rpc-1", "http://rpc-2")


def _pool(alive):
    created = []

    def factory(url):
        node = FakeNode(url, alive=alive[URLS.index(url)])
        created.append(node)
        return node

    pool = EndpointPool(Network(id="chainA", rpc_urls=URLS), node_factory=factory)
    return pool, created


def test_first_dead_endpoint_is_skipped_and_closed() -> None:
    pool, created = _pool([False, True, True])

    node = asyncio.run(pool.acquire())

    assert node.rpc_url == "http://rpc-1"
    assert pool.current_index == 1
    assert created[0].closed
    assert not node.closed


def test_last_good_endpoint_is_sticky() -> None:
    pool, created = _pool([False, True, True])

    async def run():
        first = await pool.acquire()
        second = await pool.acquire()
        return first, second

    first, second = asyncio.run(run())

    assert first is second
    assert pool.current_index == 1
    # The dead endpoint is probed once only
    assert [n.rpc_url for n in created].count("http://rpc-0") == 1


def test_all_endpoints_dead_raises_and_keeps_index() -> None:
    pool, created = _pool([True, False, False])

    async def run():
        node = await pool.acquire()
        node.alive = False
        with pytest.raises(AllEndpointsUnavailable) as exc_info:
            await pool.acquire()
        return exc_info.value

    error = asyncio.run(run())

    assert pool.current_index == 0
    assert error.network == "chainA"
    assert set(error.errors) == set(URLS)


def test_discarded_endpoint_gets_a_fresh_handle() -> None:
    alive = [True, False, False]
    pool, created = _pool(alive)

    async def run():
        node = await pool.acquire()
        node.alive = False
        with pytest.raises(AllEndpointsUnavailable):
            await pool.acquire()
        alive[0] = True
        replacement = await pool.acquire()
        return node, replacement

    dead, replacement = asyncio.run(run())

    assert dead.closed
    assert replacement is not dead
    assert replacement.rpc_url == "http://rpc-0"
    assert pool.current_index == 0


def test_close_closes_open_handles() -> None:
    pool, created = _pool([True, True, True])

    async def run():
        await pool.acquire()
        await pool.close()

    asyncio.run(run())
    assert all(node.closed for node in created)

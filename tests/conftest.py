"""Pytest configuration and fixtures."""

import asyncio

import pytest

from chains.hardhat import hardhat
from clients.evm.account import Account
from clients.evm.chain import Chain
from clients.evm.dex.pool import Pool
from clients.evm.registry import Registries
from tests.helpers.constants import (
    DAI,
    EMPTY_PAIR,
    FACTORY,
    LP_TOTAL_SUPPLY,
    PAIR,
    USDC,
    USDC_RESERVE,
    USER,
    USER_LP_BALANCE,
    WETH,
    WETH_RESERVE,
)
from tests.helpers.fake_web3 import FakeNode, FakeWeb3


@pytest.fixture
def node() -> FakeNode:
    """A node with USDC/WETH and DAI/WETH pairs and a uniswap_v2 factory."""
    node = FakeNode(chain_id=hardhat.chain_id)
    node.native_balances[USER.lower()] = 10 * 10**18

    node.add_erc20(USDC, "USDC", 6, {USER: 50_000 * 10**6}, name="USD Coin")
    node.add_erc20(WETH, "WETH", 18, {USER: 20 * 10**18}, name="Wrapped Ether")
    node.add_erc20(DAI, "DAI", 18, {USER: 0}, name="Dai Stablecoin")

    node.add_pair(
        PAIR,
        USDC,
        WETH,
        USDC_RESERVE,
        WETH_RESERVE,
        LP_TOTAL_SUPPLY,
        {USER: USER_LP_BALANCE},
        factory=FACTORY,
    )
    node.add_pair(EMPTY_PAIR, DAI, WETH, 0, 0, 0, factory=FACTORY)
    node.add_factory(FACTORY, {(USDC, WETH): PAIR, (DAI, WETH): EMPTY_PAIR})
    return node


@pytest.fixture
def w3(node: FakeNode) -> FakeWeb3:
    return FakeWeb3(node)


@pytest.fixture
def registries() -> Registries:
    """Fresh registries so no test sees another test's instances."""
    return Registries()


@pytest.fixture
def chain(w3: FakeWeb3, registries: Registries) -> Chain:
    return asyncio.run(Chain.create(hardhat, registries, w3))


@pytest.fixture
def account(chain: Chain) -> Account:
    return asyncio.run(Account.create(chain, USER))


@pytest.fixture
def pool(chain: Chain) -> Pool:
    return asyncio.run(Pool.create(PAIR, chain, "uniswap_v2"))


@pytest.fixture
def empty_pool(chain: Chain) -> Pool:
    return asyncio.run(Pool.create(EMPTY_PAIR, chain, "uniswap_v2"))

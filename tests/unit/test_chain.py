"""Tests for the chain connection wrapper."""

import asyncio
import logging
from decimal import Decimal

import pytest

from chains import registery
from chains.ethereum import ethereum
from chains.hardhat import hardhat
from clients.evm.chain import Chain
from clients.evm.errors import InvalidParameter, NetworkError, UnsupportedDexVariant
from clients.evm.registry import Registries


class TestChainCreate:
    def test_cached_per_config_name(self, chain, registries, w3):
        again = asyncio.run(Chain.create(hardhat, registries, w3))
        assert again is chain

    def test_network_id(self, chain):
        assert chain.get_network_id() == 31337
        assert chain.is_local

    def test_provider_is_borrowed(self, chain, w3):
        assert chain.get_provider() is w3
        # closing a borrowed provider is a no-op
        asyncio.run(chain.close())

    def test_chain_id_mismatch_logged(self, w3, caplog):
        with caplog.at_level(logging.WARNING, logger="clients.evm.chain"):
            chain = asyncio.run(Chain.create(ethereum, Registries(), w3))

        assert chain.chain_id == 31337
        assert "config says 1" in caplog.text

    def test_context_manager(self, w3):
        async def main():
            async with Chain(hardhat, Registries(), w3) as chain:
                return await chain.get_block_number()

        assert asyncio.run(main()) == 19_000_000


class TestDexConfig:
    def test_known_variant(self, chain):
        dex = chain.get_dex_config("uniswap_v2")
        assert dex.factory_address == hardhat.dexes["uniswap_v2"].factory_address

    def test_variant_names_are_case_insensitive(self, chain):
        assert chain.get_dex_config("SushiSwap") is hardhat.dexes["sushiswap"]

    def test_known_variant_missing_on_chain(self, chain):
        with pytest.raises(UnsupportedDexVariant) as exc_info:
            chain.get_dex_config("pancakeswap")
        assert exc_info.value.chain_name == "hardhat"

    def test_unknown_variant(self, chain):
        with pytest.raises(UnsupportedDexVariant):
            chain.get_dex_config("curve")


class TestGas:
    def test_eip1559_fees(self, chain):
        gas = asyncio.run(chain.get_gas_info())

        # base fee 10 gwei * 2 + 2 gwei tip
        assert gas.max_fee_per_gas == 22 * 10**9
        assert gas.max_priority_fee_per_gas == 2 * 10**9
        assert gas.max_fee_per_gas_gwei == Decimal(22)
        assert gas.gas_price_gwei == Decimal(30)

    def test_legacy_chain(self, chain, node):
        node.base_fee = None
        gas = asyncio.run(chain.get_gas_info())

        assert gas.max_fee_per_gas is None
        assert gas.max_priority_fee_per_gas is None
        assert gas.gas_price == 30 * 10**9

    def test_gas_fees(self, chain):
        assert asyncio.run(chain.get_gas_fees()) == (2 * 10**9, 22 * 10**9)

    def test_status(self, chain):
        status = asyncio.run(chain.get_status())

        assert status.name == "hardhat"
        assert status.chain_id == 31337
        assert status.block_number == 19_000_000


class TestMakeRequest:
    def test_local_request_forwarded(self, chain, node):
        asyncio.run(chain.make_request("evm_mine", []))
        assert node.rpc_requests == [("evm_mine", [])]

    def test_node_error_raises(self, chain, node):
        node.rpc_errors["evm_mine"] = "method not found"
        with pytest.raises(NetworkError, match="method not found"):
            asyncio.run(chain.make_request("evm_mine", []))

    def test_rejected_on_public_chain(self, w3, node):
        chain = asyncio.run(Chain.create(ethereum, Registries(), w3))
        with pytest.raises(InvalidParameter):
            asyncio.run(chain.make_request("hardhat_setBalance", []))
        assert node.rpc_requests == []


class TestChainRegistry:
    def test_lookup(self):
        assert registery.get(1) is ethereum
        assert registery.get_by_name("hardhat") is hardhat
        assert registery.get(999) is None

    def test_list(self):
        names = [config.name for config in registery.list()]
        assert names == ["ethereum", "base", "bsc", "hardhat"]

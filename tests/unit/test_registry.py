"""Tests for the identity-keyed instance registry."""

import asyncio

import pytest

from clients.evm.errors import InvalidAddress
from clients.evm.registry import IdentityRegistry, Registries, identity_key
from tests.helpers.constants import WETH


class TestIdentityKey:
    def test_key_is_lowercased(self):
        assert identity_key("hardhat", WETH) == f"hardhat:{WETH.lower()}"

    def test_checksum_and_lowercase_map_to_same_key(self):
        assert identity_key("hardhat", WETH) == identity_key("hardhat", WETH.lower())

    def test_accepts_objects_with_address(self):
        class Holder:
            address = WETH

        assert identity_key("hardhat", Holder()) == identity_key("hardhat", WETH)

    def test_invalid_address_rejected(self):
        with pytest.raises(InvalidAddress):
            identity_key("hardhat", "0x1234")

    def test_object_without_address_rejected(self):
        with pytest.raises(InvalidAddress):
            identity_key("hardhat", object())


class TestIdentityRegistry:
    def test_concurrent_callers_share_one_construction(self):
        """N concurrent get_or_create calls run the factory once."""
        registry = IdentityRegistry("test")
        constructed = []

        async def factory():
            await asyncio.sleep(0)
            instance = object()
            constructed.append(instance)
            return instance

        async def main():
            return await asyncio.gather(
                *(registry.get_or_create("k", factory) for _ in range(10))
            )

        results = asyncio.run(main())

        assert len(constructed) == 1
        assert all(result is results[0] for result in results)
        assert registry.get("k") is results[0]

    def test_cached_instance_returned(self):
        registry = IdentityRegistry("test")
        calls = []

        async def factory():
            calls.append(1)
            return object()

        async def main():
            first = await registry.get_or_create("k", factory)
            second = await registry.get_or_create("k", factory)
            return first, second

        first, second = asyncio.run(main())
        assert first is second
        assert len(calls) == 1

    def test_failed_construction_not_cached(self):
        """A failing factory leaves no entry; the next call retries."""
        registry = IdentityRegistry("test")
        attempts = []

        async def factory():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def main():
            with pytest.raises(RuntimeError):
                await registry.get_or_create("k", factory)
            assert "k" not in registry
            return await registry.get_or_create("k", factory)

        assert asyncio.run(main()) == "ok"
        assert len(attempts) == 2

    def test_clear_during_construction(self):
        """The waiter still gets its instance; the cleared registry stays empty."""
        registry = IdentityRegistry("test")

        async def main():
            gate = asyncio.Event()

            async def factory():
                await gate.wait()
                return "value"

            waiter = asyncio.ensure_future(registry.get_or_create("k", factory))
            await asyncio.sleep(0)
            registry.clear()
            gate.set()
            return await waiter

        assert asyncio.run(main()) == "value"
        assert "k" not in registry
        assert len(registry) == 0

    def test_cancelled_waiter_does_not_cancel_construction(self):
        registry = IdentityRegistry("test")

        async def main():
            gate = asyncio.Event()

            async def factory():
                await gate.wait()
                return "value"

            first = asyncio.ensure_future(registry.get_or_create("k", factory))
            await asyncio.sleep(0)
            second = asyncio.ensure_future(registry.get_or_create("k", factory))
            await asyncio.sleep(0)

            first.cancel()
            await asyncio.sleep(0)
            gate.set()
            return first, await second

        first, value = asyncio.run(main())
        assert first.cancelled()
        assert value == "value"
        assert registry.get("k") == "value"

    def test_list_keys(self):
        registry = IdentityRegistry("test")

        async def main():
            for key in ("a", "b"):
                await registry.get_or_create(key, lambda: asyncio.sleep(0, result=key))

        asyncio.run(main())
        assert sorted(registry.list_keys()) == ["a", "b"]


class TestRegistries:
    def test_kinds_do_not_collide(self):
        """An LP token and its pool share an address but not a registry."""
        registries = Registries()
        key = identity_key("hardhat", WETH)

        async def main():
            token = await registries.tokens.get_or_create(key, lambda: asyncio.sleep(0, result="token"))
            pool = await registries.pools.get_or_create(key, lambda: asyncio.sleep(0, result="pool"))
            return token, pool

        assert asyncio.run(main()) == ("token", "pool")

    def test_clear_empties_every_kind(self):
        registries = Registries()

        async def main():
            await registries.tokens.get_or_create("t", lambda: asyncio.sleep(0, result=1))
            await registries.pools.get_or_create("p", lambda: asyncio.sleep(0, result=2))

        asyncio.run(main())
        registries.clear()

        assert len(registries.tokens) == 0
        assert len(registries.pools) == 0

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from clients.evm.dto import AddressLike
from utils.utils import address_of, to_checksum


module_logger = logging.getLogger(__name__)

T = TypeVar("T")


def identity_key(discriminator: str, address: AddressLike) -> str:
    # raises InvalidAddress before anything touches the network
    to_checksum(address)
    return f"{discriminator}:{address_of(address).lower()}"


class IdentityRegistry(Generic[T]):
    """One live instance per key.

    Construction is started at most once per key: callers arriving while it is
    in flight await the same task instead of running the factory again. A
    failed construction is not cached.
    """

    def __init__(self, name: str = "registry"):
        self.name = name
        self._instances: dict[str, T] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._generation = 0

    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        if key in self._instances:
            return self._instances[key]

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            generation = self._generation
            task.add_done_callback(
                lambda done: self._on_created(key, done, generation)
            )
            module_logger.debug(f"{self.name}: constructing {key}")

        # shielded so a cancelled waiter does not cancel the shared construction
        return await asyncio.shield(task)

    def _on_created(self, key: str, task: asyncio.Task, generation: int) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            module_logger.debug(f"{self.name}: construction of {key} failed: {error!r}")
            return

        if generation == self._generation:
            self._instances[key] = task.result()

    def get(self, key: str) -> T | None:
        return self._instances.get(key)

    def clear(self) -> None:
        self._generation += 1
        self._instances.clear()
        self._pending.clear()

    def list_keys(self) -> list[str]:
        return list(self._instances.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)


@dataclass
class Registries:
    chains: IdentityRegistry[Any] = field(default_factory=lambda: IdentityRegistry("chains"))
    accounts: IdentityRegistry[Any] = field(default_factory=lambda: IdentityRegistry("accounts"))
    tokens: IdentityRegistry[Any] = field(default_factory=lambda: IdentityRegistry("tokens"))
    pools: IdentityRegistry[Any] = field(default_factory=lambda: IdentityRegistry("pools"))

    def clear(self) -> None:
        for registry in (self.chains, self.accounts, self.tokens, self.pools):
            registry.clear()

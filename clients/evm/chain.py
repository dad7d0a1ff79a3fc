import asyncio
import logging
from decimal import Decimal
from typing import Any

from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from chains.dto import ChainConfig, DexConfig
from clients.evm.base import rpc_call
from clients.evm.dto import ChainStatus, GasInfo
from clients.evm.errors import InvalidParameter, NetworkError, UnsupportedDexVariant
from clients.evm.registry import Registries
from config import settings
from enums.dex import DexVariant


module_logger = logging.getLogger(__name__)


class Chain:
    def __init__(
        self,
        config: ChainConfig,
        registries: Registries,
        w3: AsyncWeb3 | None = None,
    ):
        self.config = config
        self.registries = registries
        self._owns_provider = w3 is None
        self._w3 = w3 or AsyncWeb3(
            AsyncHTTPProvider(settings.rpc_url_for(config.name, config.rpc_url))
        )
        self.chain_id: int | None = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_local(self) -> bool:
        return self.config.is_local

    async def init(self) -> "Chain":
        self.chain_id = await rpc_call("get chain id", self.name, self.w3.eth.chain_id)

        if self.chain_id != self.config.chain_id:
            module_logger.warning(
                f"Chain {self.name}: node reports chain id {self.chain_id}, "
                f"config says {self.config.chain_id}"
            )

        module_logger.info(f"Chain {self.name} connected (chain id {self.chain_id})")
        return self

    @classmethod
    async def create(
        cls,
        config: ChainConfig,
        registries: Registries,
        w3: AsyncWeb3 | None = None,
    ) -> "Chain":
        async def build() -> "Chain":
            chain = cls(config, registries, w3)
            return await chain.init()

        return await registries.chains.get_or_create(config.name, build)

    async def close(self) -> None:
        if self._owns_provider:
            disconnect = getattr(self._w3.provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()

    def get_provider(self) -> AsyncWeb3:
        return self._w3

    def get_network_id(self) -> int | None:
        return self.chain_id

    def get_dex_config(self, dex_variant: "str | DexVariant") -> DexConfig:
        variant = DexVariant.parse(dex_variant)
        dex = self.config.dexes.get(variant.value) if variant else None
        if dex is None:
            name = getattr(dex_variant, "value", dex_variant)
            raise UnsupportedDexVariant(str(name), self.name)
        return dex

    async def get_latest_block(self):
        return await rpc_call(
            "get latest block", self.name, self.w3.eth.get_block("latest")
        )

    async def get_block_number(self) -> int:
        return await rpc_call("get block number", self.name, self.w3.eth.block_number)

    async def get_gas_info(self) -> GasInfo:
        latest_block, gas_price = await asyncio.gather(
            self.get_latest_block(),
            rpc_call("get gas price", self.name, self.w3.eth.gas_price),
        )
        base_fee = latest_block.get("baseFeePerGas")

        max_fee = None
        max_priority_fee = None
        if base_fee is not None:
            max_priority_fee = await rpc_call(
                "get max priority fee", self.name, self.w3.eth.max_priority_fee
            )
            max_fee = base_fee * 2 + max_priority_fee

        return GasInfo(
            gas_price=gas_price,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=max_priority_fee,
            gas_price_gwei=self._to_gwei(gas_price),
            max_fee_per_gas_gwei=self._to_gwei(max_fee),
            max_priority_fee_per_gas_gwei=self._to_gwei(max_priority_fee),
        )

    async def get_gas_fees(self) -> tuple[int, int]:
        gas = await self.get_gas_info()
        if gas.max_fee_per_gas is None:
            return gas.gas_price, gas.gas_price
        return gas.max_priority_fee_per_gas, gas.max_fee_per_gas

    async def get_status(self) -> ChainStatus:
        block_number, gas = await asyncio.gather(
            self.get_block_number(), self.get_gas_info()
        )
        return ChainStatus(
            name=self.name,
            chain_id=self.chain_id,
            block_number=block_number,
            gas=gas,
        )

    async def make_request(self, method: str, params: list[Any]) -> Any:
        if not self.is_local:
            raise InvalidParameter(f"{method} is only available on local dev chains")

        response = await rpc_call(
            method, self.name, self.w3.provider.make_request(method, params)
        )
        if isinstance(response, dict) and "error" in response:
            error = response["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise NetworkError(f"{method} rejected by node: {message}")
        return response

    @staticmethod
    def _to_gwei(value: int | None) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value) / Decimal(10**9)

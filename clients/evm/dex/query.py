import logging

from eth_abi.abi import decode as abi_decode
from web3 import AsyncWeb3

from clients.evm.base import BaseDexClient, rpc_call
from clients.evm.chain import Chain
from clients.evm.dex.dto import PairSnapshot
from clients.evm.dex.pool import resolve_dex_variant
from clients.evm.dto import AddressLike
from clients.evm.errors import InvalidParameter
from enums.dex import DexVariant
from utils.utils import to_checksum


module_logger = logging.getLogger(__name__)


class PairQueryClient(BaseDexClient):
    """Batched factory enumeration and reserve snapshots over Multicall3."""

    def __init__(self, chain: Chain):
        super().__init__(chain)

    def _get_variant_factory(self, dex_variant: "str | DexVariant"):
        dex = self.chain.get_dex_config(resolve_dex_variant(dex_variant))
        return self._get_factory_contract(dex.factory_address)

    async def _aggregate(self, calls: list[tuple]) -> list[tuple[bool, bytes]]:
        if not calls:
            return []

        multicall = self._get_multicall_contract()
        return await rpc_call(
            "multicall aggregate3",
            multicall.address,
            multicall.functions.aggregate3(calls).call(),
        )

    @staticmethod
    def _decode_address(chunk: tuple[bool, bytes]) -> str | None:
        success, data = chunk
        if not success or not data or len(data) < 32:
            return None

        (address,) = abi_decode(["address"], data)
        return AsyncWeb3.to_checksum_address(address)

    @staticmethod
    def _decode_reserves(chunk: tuple[bool, bytes]) -> tuple[int, int, int] | None:
        success, data = chunk
        if not success or not data or len(data) < 96:
            return None

        reserve0, reserve1, timestamp = abi_decode(["uint112", "uint112", "uint32"], data)
        return int(reserve0), int(reserve1), int(timestamp)

    async def get_pairs_length(self, dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2) -> int:
        factory = self._get_variant_factory(dex_variant)
        length = await rpc_call(
            "get pairs length", factory.address, factory.functions.allPairsLength().call()
        )
        return int(length)

    async def get_pairs_by_index_range(
        self,
        dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2,
        start: int = 0,
        stop: int | None = None,
    ) -> list[PairSnapshot]:
        if stop is None:
            stop = await self.get_pairs_length(dex_variant)
        if start < 0 or stop < start:
            raise InvalidParameter(f"Invalid pair index range [{start}, {stop})")

        factory = self._get_variant_factory(dex_variant)
        pair_calls = [
            self._create_call(
                factory.address, factory.functions.allPairs(index)._encode_transaction_data()
            )
            for index in range(start, stop)
        ]
        pairs = [
            pair
            for pair in map(self._decode_address, await self._aggregate(pair_calls))
            if pair is not None
        ]

        token_calls = []
        for pair in pairs:
            contract = self._get_pair_contract(pair)
            token_calls.extend([
                self._create_call(pair, contract.functions.token0()._encode_transaction_data()),
                self._create_call(pair, contract.functions.token1()._encode_transaction_data()),
            ])
        results = await self._aggregate(token_calls)

        snapshots = []
        for i, pair in enumerate(pairs):
            token0 = self._decode_address(results[2 * i])
            token1 = self._decode_address(results[2 * i + 1])
            if token0 is None or token1 is None:
                module_logger.warning(f"Skipping pair {pair}: token lookup failed")
                continue
            snapshots.append(PairSnapshot(pair=pair, token0=token0, token1=token1))

        module_logger.debug(
            f"Fetched {len(snapshots)} pairs in [{start}, {stop}) on {self.chain.name}"
        )
        return snapshots

    async def get_reserves_by_pairs(
        self,
        pairs: list[AddressLike],
    ) -> dict[str, tuple[int, int, int]]:
        addresses = [to_checksum(pair) for pair in pairs]

        calls = []
        for address in addresses:
            contract = self._get_pair_contract(address)
            calls.append(
                self._create_call(address, contract.functions.getReserves()._encode_transaction_data())
            )
        results = await self._aggregate(calls)

        reserves = {}
        for address, chunk in zip(addresses, results):
            decoded = self._decode_reserves(chunk)
            if decoded is None:
                module_logger.warning(f"Skipping pair {address}: getReserves failed")
                continue
            reserves[address] = decoded

        return reserves

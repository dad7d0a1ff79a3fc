import logging

from eth_abi.packed import encode_packed
from eth_utils import to_bytes
from eth_utils.crypto import keccak
from web3 import AsyncWeb3
from web3.constants import ADDRESS_ZERO

from clients.evm.base import BaseDexClient, rpc_call
from clients.evm.chain import Chain
from clients.evm.dex.pool import Pool, resolve_dex_variant
from clients.evm.dto import AddressLike
from clients.evm.errors import InvalidParameter, PoolDoesNotExist
from clients.evm.token import ERC20Token
from enums.dex import DexVariant
from utils.utils import same_address, to_checksum


module_logger = logging.getLogger(__name__)


class PoolFactory(BaseDexClient):
    def __init__(self, chain: Chain):
        super().__init__(chain)

    @staticmethod
    def _sort_tokens(token_x: str, token_y: str) -> tuple[str, str]:
        return (token_x, token_y) if token_x.lower() < token_y.lower() else (token_y, token_x)

    def compute_pair_address(
        self,
        token_a: AddressLike,
        token_b: AddressLike,
        dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2,
    ) -> str | None:
        """CREATE2 address of the pair, or None when the variant's init code hash is unknown."""
        variant = resolve_dex_variant(dex_variant)
        dex = self.chain.get_dex_config(variant)
        if not dex.init_code_hash:
            return None

        token0, token1 = self._sort_tokens(to_checksum(token_a), to_checksum(token_b))
        salt = keccak(encode_packed(["address", "address"], [token0, token1]))
        packed = (
            b"\xff"
            + to_bytes(hexstr=dex.factory_address)
            + salt
            + to_bytes(hexstr=dex.init_code_hash)
        )

        return AsyncWeb3.to_checksum_address(keccak(packed)[12:])

    async def get_pair_address(
        self,
        token_a: AddressLike,
        token_b: AddressLike,
        dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2,
    ) -> str:
        address_a = to_checksum(token_a)
        address_b = to_checksum(token_b)
        if same_address(address_a, address_b):
            raise InvalidParameter("A pair needs two different tokens")

        variant = resolve_dex_variant(dex_variant)
        dex = self.chain.get_dex_config(variant)
        factory = self._get_factory_contract(dex.factory_address)

        pair_address = await rpc_call(
            "get pair",
            f"{dex.factory_address} ({address_a}, {address_b})",
            factory.functions.getPair(address_a, address_b).call(),
        )

        if not pair_address or same_address(pair_address, ADDRESS_ZERO):
            raise PoolDoesNotExist(
                f"No {variant.value} pair for {address_a} and {address_b} on {self.chain.name}"
            )

        module_logger.debug(
            f"Factory {dex.factory_address} resolved pair {pair_address} "
            f"for {address_a}/{address_b}"
        )
        return to_checksum(pair_address)

    async def create_from_tokens(
        self,
        token_a: ERC20Token,
        token_b: ERC20Token,
        dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2,
    ) -> Pool:
        variant = resolve_dex_variant(dex_variant)
        pair_address = await self.get_pair_address(token_a, token_b, variant)

        return await Pool.create(
            pair_address,
            self.chain,
            variant,
            token_a=token_a,
            token_b=token_b,
        )

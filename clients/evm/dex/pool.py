import asyncio
import logging
import math
import time
from decimal import Decimal, localcontext
from fractions import Fraction

from web3 import AsyncWeb3

from clients.evm.base import BaseDexClient, rpc_call
from clients.evm.chain import Chain
from clients.evm.dex.dto import LiquidityPosition, PoolInfo, PoolTVL, Price, Reserves
from clients.evm.dto import AddressLike, Amount, TxReceipt
from clients.evm.errors import (
    DivisionByZero,
    InsufficientBalance,
    InsufficientLiquidityBalance,
    InvalidParameter,
    LiquidityAddFailed,
    LiquidityRemoveFailed,
    PoolNotFound,
    TokenNotInPool,
    UnsupportedDexVariant,
)
from clients.evm.registry import identity_key
from clients.evm.token import ERC20Token
from config import settings
from enums.dex import DexVariant
from utils.utils import address_of, format_amount, human_amount, same_address, to_checksum


module_logger = logging.getLogger(__name__)

PRICE_PRECISION = 60
SLIPPAGE_SCALE = 1000


def slippage_tenths(slippage_percent) -> Fraction:
    try:
        value = Fraction(str(slippage_percent))
    except (ValueError, ZeroDivisionError):
        raise InvalidParameter(f"Invalid slippage: {slippage_percent!r}") from None

    if value < 0 or value > 100:
        raise InvalidParameter(f"Slippage must be between 0 and 100%, got {slippage_percent}")

    return value * 10


def apply_slippage(amount: int, slippage_percent) -> int:
    # amount * (1000 - slippage * 10) / 1000, floored, exact
    tenths = slippage_tenths(slippage_percent)
    return math.floor(Fraction(amount) * (SLIPPAGE_SCALE - tenths) / SLIPPAGE_SCALE)


def resolve_dex_variant(dex_variant) -> DexVariant:
    variant = DexVariant.parse(dex_variant)
    if variant is None:
        raise UnsupportedDexVariant(str(getattr(dex_variant, "value", dex_variant)))
    return variant


class Pool(BaseDexClient):
    def __init__(self, address: str, chain: Chain, dex_variant: DexVariant = DexVariant.UNISWAP_V2):
        super().__init__(chain)
        self.address = to_checksum(address)
        self.dex_variant = resolve_dex_variant(dex_variant)
        self.contract = self._get_pair_contract(self.address)

        self.token0: ERC20Token | None = None
        self.token1: ERC20Token | None = None
        self.lp_token: ERC20Token | None = None

        # snapshot taken by init(); operations that need fresh state re-query
        self.reserve0: int | None = None
        self.reserve1: int | None = None
        self.block_timestamp_last: int | None = None
        self.total_supply: int | None = None

    @classmethod
    async def create(
        cls,
        address: AddressLike,
        chain: Chain,
        dex_variant: "str | DexVariant" = DexVariant.UNISWAP_V2,
        token_a: ERC20Token | None = None,
        token_b: ERC20Token | None = None,
    ) -> "Pool":
        variant = resolve_dex_variant(dex_variant)
        key = identity_key(chain.name, address)
        checksummed = to_checksum(address)

        async def build() -> "Pool":
            pool = cls(checksummed, chain, variant)
            return await pool.init(token_a, token_b)

        pool = await chain.registries.pools.get_or_create(key, build)
        if pool.dex_variant != variant:
            raise InvalidParameter(
                f"Pool {pool.address} on {chain.name} is already registered as "
                f"{pool.dex_variant.value}, not {variant.value}"
            )
        return pool

    async def init(
        self,
        token_a: ERC20Token | None = None,
        token_b: ERC20Token | None = None,
    ) -> "Pool":
        dex = self.chain.config.dexes.get(self.dex_variant.value)
        calls = [self.contract.functions.token0().call(), self.contract.functions.token1().call()]
        if dex is not None:
            calls.append(self.contract.functions.factory().call())

        try:
            token0_address, token1_address, *deployer = await asyncio.gather(*calls)
        except Exception as e:
            module_logger.error(f"No pair contract at {self.address} on {self.chain.name}: {e!r}")
            raise PoolNotFound(
                f"{self.address} on {self.chain.name} does not expose the pair interface"
            ) from e

        # liquidity is routed through the variant's router, which only serves its own factory
        if dex is not None and not same_address(deployer[0], dex.factory_address):
            module_logger.error(
                f"Pair {self.address} was deployed by {deployer[0]}, "
                f"not the {self.dex_variant.value} factory {dex.factory_address}"
            )
            raise PoolNotFound(
                f"{self.address} on {self.chain.name} is not a {self.dex_variant.value} pair"
            )

        seeded = [token for token in (token_a, token_b) if isinstance(token, ERC20Token)]

        self.token0, self.token1, self.lp_token = await asyncio.gather(
            self._resolve_token(token0_address, seeded),
            self._resolve_token(token1_address, seeded),
            ERC20Token.create(self.address, self.chain),
        )

        await self._load_state()

        module_logger.info(
            f"Pool {self.address} ({self.dex_variant.value}) initialized: "
            f"{self.token0.symbol}/{self.token1.symbol}, reserves "
            f"{self.token0.format_amount(self.reserve0)} {self.token0.symbol} / "
            f"{self.token1.format_amount(self.reserve1)} {self.token1.symbol}"
        )
        return self

    async def _resolve_token(self, address: str, seeded: list[ERC20Token]) -> ERC20Token:
        for token in seeded:
            if same_address(token, address):
                return token
        return await ERC20Token.create(address, self.chain)

    async def _fetch_reserves(self) -> tuple[int, int, int]:
        reserve0, reserve1, timestamp = await rpc_call(
            "get reserves", self.address, self.contract.functions.getReserves().call()
        )
        return int(reserve0), int(reserve1), int(timestamp)

    async def _fetch_total_supply(self) -> int:
        total_supply = await rpc_call(
            "get total supply", self.address, self.contract.functions.totalSupply().call()
        )
        self.total_supply = int(total_supply)
        return self.total_supply

    async def _load_state(self) -> None:
        (reserve0, reserve1, timestamp), _ = await asyncio.gather(
            self._fetch_reserves(), self._fetch_total_supply()
        )
        self.reserve0, self.reserve1, self.block_timestamp_last = reserve0, reserve1, timestamp

    @property
    def liquidity_spender(self) -> str:
        dex = self.chain.config.dexes.get(self.dex_variant.value)
        if dex is not None and dex.router_address:
            return AsyncWeb3.to_checksum_address(dex.router_address)
        return self.address

    def _get_liquidity_contract(self):
        return self._get_router_contract(self.liquidity_spender)

    def get_tokens(self) -> tuple[ERC20Token, ERC20Token]:
        return self.token0, self.token1

    def has_token(self, token: AddressLike) -> bool:
        return same_address(token, self.token0) or same_address(token, self.token1)

    def get_other_token(self, token: AddressLike) -> ERC20Token:
        if same_address(token, self.token0):
            return self.token1
        if same_address(token, self.token1):
            return self.token0
        raise TokenNotInPool(address_of(token), self.address)

    def _slot_of(self, token: AddressLike) -> int:
        if same_address(token, self.token0):
            return 0
        if same_address(token, self.token1):
            return 1
        raise TokenNotInPool(address_of(token), self.address)

    async def get_reserves(self) -> Reserves:
        reserve0, reserve1, timestamp = await self._fetch_reserves()
        self.reserve0, self.reserve1, self.block_timestamp_last = reserve0, reserve1, timestamp

        return Reserves(
            reserve0=reserve0,
            reserve1=reserve1,
            block_timestamp_last=timestamp,
            formatted={
                self.token0.address: self.token0.format_amount(reserve0),
                self.token1.address: self.token1.format_amount(reserve1),
            },
        )

    async def get_price(
        self,
        token_in: AddressLike,
        token_out: AddressLike | None = None,
    ) -> Price:
        slot_in = self._slot_of(token_in)
        if token_out is not None and self._slot_of(token_out) == slot_in:
            raise InvalidParameter("token_in and token_out must be different pool tokens")

        reserves = await self.get_reserves()

        if slot_in == 0:
            reserve_in, reserve_out = reserves.reserve0, reserves.reserve1
            tok_in, tok_out = self.token0, self.token1
        else:
            reserve_in, reserve_out = reserves.reserve1, reserves.reserve0
            tok_in, tok_out = self.token1, self.token0

        if reserve_in == 0:
            raise DivisionByZero(f"{tok_in.symbol} reserve of pool {self.address} is zero")

        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            price = human_amount(reserve_out, tok_out.decimals) / human_amount(
                reserve_in, tok_in.decimals
            )
            inverted = Decimal(1) / price if price != 0 else None

        return Price(
            price=price,
            inverted=inverted,
            formatted=f"1 {tok_in.symbol} = {format_amount(price)} {tok_out.symbol}",
            inverted_formatted=(
                f"1 {tok_out.symbol} = {format_amount(inverted)} {tok_in.symbol}"
                if inverted is not None
                else None
            ),
        )

    def _token1_in_token0_terms(self, amount1: Decimal, reserve0: int, reserve1: int) -> Decimal:
        # spot price quoted by this pool, not an external valuation
        if reserve1 == 0:
            return Decimal(0)

        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            price = human_amount(reserve0, self.token0.decimals) / human_amount(
                reserve1, self.token1.decimals
            )
            return amount1 * price

    @staticmethod
    def _deadline(deadline_seconds: int) -> int:
        if int(deadline_seconds) <= 0:
            raise InvalidParameter(f"Deadline must be positive, got {deadline_seconds}")
        return int(time.time()) + int(deadline_seconds)

    async def add_liquidity(
        self,
        account,
        amount0: str,
        amount1: str,
        slippage_percent=None,
        deadline_seconds: int | None = None,
    ) -> TxReceipt:
        if slippage_percent is None:
            slippage_percent = settings.DEFAULT_SLIPPAGE_PERCENT
        if deadline_seconds is None:
            deadline_seconds = settings.DEFAULT_DEADLINE_SECONDS

        amount0_desired = self.token0.to_base_units(amount0)
        amount1_desired = self.token1.to_base_units(amount1)
        if amount0_desired <= 0 or amount1_desired <= 0:
            raise InvalidParameter("Both liquidity amounts must be greater than zero")

        amount0_min = apply_slippage(amount0_desired, slippage_percent)
        amount1_min = apply_slippage(amount1_desired, slippage_percent)
        deadline = self._deadline(deadline_seconds)
        spender = self.liquidity_spender

        module_logger.info(
            f"Adding liquidity to pool {self.address}: "
            f"{amount0} {self.token0.symbol} + {amount1} {self.token1.symbol}"
        )
        module_logger.debug(
            f"addLiquidity mins {amount0_min}/{amount1_min}, deadline {deadline}, spender {spender}"
        )

        try:
            # both legs checked before the first approval goes out
            await asyncio.gather(
                self.token0.ensure_balance(account, amount0, amount0_desired),
                self.token1.ensure_balance(account, amount1, amount1_desired),
            )

            await self.token0.approve(account, spender, amount0)
            await self.token1.approve(account, spender, amount1)

            contract = self._get_liquidity_contract()
            func = contract.functions.addLiquidity(
                self.token0.address,
                self.token1.address,
                amount0_desired,
                amount1_desired,
                amount0_min,
                amount1_min,
                account.address,
                deadline,
            )
            receipt = await account.sign_and_send(self._build_tx(contract, func))
        except (InsufficientBalance, InvalidParameter):
            raise
        except Exception as e:
            module_logger.error(f"Error adding liquidity to pool {self.address}: {e!r}")
            raise LiquidityAddFailed(
                f"Adding liquidity to pool {self.address} failed: {e}"
            ) from e

        module_logger.info(f"Liquidity added to {self.address} in block {receipt.block_number}")
        return receipt

    async def remove_liquidity(
        self,
        account,
        liquidity_amount: str,
        slippage_percent=None,
        deadline_seconds: int | None = None,
    ) -> TxReceipt:
        if slippage_percent is None:
            slippage_percent = settings.DEFAULT_SLIPPAGE_PERCENT
        if deadline_seconds is None:
            deadline_seconds = settings.DEFAULT_DEADLINE_SECONDS

        liquidity = self.lp_token.to_base_units(liquidity_amount)
        if liquidity <= 0:
            raise InvalidParameter("Liquidity amount must be greater than zero")
        slippage_tenths(slippage_percent)
        deadline = self._deadline(deadline_seconds)
        spender = self.liquidity_spender

        module_logger.info(
            f"Removing {liquidity_amount} {self.lp_token.symbol} liquidity from pool {self.address}"
        )

        try:
            balance = await self.lp_token.get_balance(account)
            if balance.raw < liquidity:
                raise InsufficientLiquidityBalance(
                    self.lp_token.symbol, liquidity_amount, balance.formatted
                )

            reserves, total_supply = await asyncio.gather(
                self.get_reserves(), self._fetch_total_supply()
            )
            if total_supply == 0:
                raise DivisionByZero(f"Pool {self.address} has no liquidity supply")

            amount0_min = apply_slippage(reserves.reserve0 * liquidity // total_supply, slippage_percent)
            amount1_min = apply_slippage(reserves.reserve1 * liquidity // total_supply, slippage_percent)
            module_logger.debug(
                f"removeLiquidity mins {amount0_min}/{amount1_min}, deadline {deadline}, spender {spender}"
            )

            await self.lp_token.approve(account, spender, liquidity_amount)

            contract = self._get_liquidity_contract()
            func = contract.functions.removeLiquidity(
                self.token0.address,
                self.token1.address,
                liquidity,
                amount0_min,
                amount1_min,
                account.address,
                deadline,
            )
            receipt = await account.sign_and_send(self._build_tx(contract, func))
        except (InsufficientBalance, DivisionByZero):
            raise
        except Exception as e:
            module_logger.error(f"Error removing liquidity from pool {self.address}: {e!r}")
            raise LiquidityRemoveFailed(
                f"Removing liquidity from pool {self.address} failed: {e}"
            ) from e

        module_logger.info(f"Liquidity removed from {self.address} in block {receipt.block_number}")
        return receipt

    async def get_liquidity_position(self, account: AddressLike) -> LiquidityPosition:
        lp_balance, reserves, total_supply = await asyncio.gather(
            self.lp_token.get_balance(account),
            self.get_reserves(),
            self._fetch_total_supply(),
        )

        if total_supply == 0:
            share = Decimal(0)
            underlying0 = underlying1 = 0
        else:
            with localcontext() as ctx:
                ctx.prec = PRICE_PRECISION
                share = Decimal(lp_balance.raw) * 100 / Decimal(total_supply)
            underlying0 = reserves.reserve0 * lp_balance.raw // total_supply
            underlying1 = reserves.reserve1 * lp_balance.raw // total_supply

        amount0 = human_amount(underlying0, self.token0.decimals)
        amount1 = human_amount(underlying1, self.token1.decimals)

        return LiquidityPosition(
            lp_balance=lp_balance,
            share_percent=share,
            underlying={
                self.token0.address: Amount(underlying0, self.token0.format_amount(underlying0)),
                self.token1.address: Amount(underlying1, self.token1.format_amount(underlying1)),
            },
            total_value_in_token0=amount0
            + self._token1_in_token0_terms(amount1, reserves.reserve0, reserves.reserve1),
        )

    async def get_tvl(self) -> PoolTVL:
        """Total value locked, expressed in token0.

        The token1 leg is converted with this pool's own spot price, so the
        figure is an approximation that assumes the pool quotes the fair price.
        It is meant for display and must not be used as an oracle.
        """
        reserves = await self.get_reserves()
        token0_value = human_amount(reserves.reserve0, self.token0.decimals)
        token1_value = human_amount(reserves.reserve1, self.token1.decimals)

        return PoolTVL(
            token0=token0_value,
            token1=token1_value,
            total_in_token0=token0_value
            + self._token1_in_token0_terms(token1_value, reserves.reserve0, reserves.reserve1),
        )

    async def get_pool_info(self) -> PoolInfo:
        tvl, total_supply = await asyncio.gather(self.get_tvl(), self._fetch_total_supply())

        return PoolInfo(
            address=self.address,
            dex_variant=self.dex_variant.value,
            token0=self.token0.meta,
            token1=self.token1.meta,
            reserves={
                self.token0.address: self.token0.format_amount(self.reserve0),
                self.token1.address: self.token1.format_amount(self.reserve1),
            },
            total_supply=self.lp_token.format_amount(total_supply),
            tvl=tvl,
        )

    def __repr__(self) -> str:
        pair = (
            f"{self.token0.symbol}/{self.token1.symbol}"
            if self.token0 is not None and self.token1 is not None
            else "?"
        )
        return f"Pool({pair}, {self.address}, {self.dex_variant.value})"

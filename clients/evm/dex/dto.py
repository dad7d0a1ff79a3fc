from dataclasses import dataclass, field
from decimal import Decimal

from clients.evm.dto import Amount, TokenMeta


@dataclass
class Reserves:
    reserve0: int
    reserve1: int
    block_timestamp_last: int
    formatted: dict[str, str] = field(default_factory=dict)


@dataclass
class Price:
    price: Decimal
    inverted: Decimal | None
    formatted: str
    inverted_formatted: str | None


@dataclass
class LiquidityPosition:
    lp_balance: Amount
    share_percent: Decimal
    underlying: dict[str, Amount]
    total_value_in_token0: Decimal


@dataclass
class PoolTVL:
    token0: Decimal
    token1: Decimal
    total_in_token0: Decimal


@dataclass
class PoolInfo:
    address: str
    dex_variant: str
    token0: TokenMeta
    token1: TokenMeta
    reserves: dict[str, str]
    total_supply: str
    tvl: PoolTVL


@dataclass
class PairSnapshot:
    pair: str
    token0: str
    token1: str
    reserve0: int | None = None
    reserve1: int | None = None
    block_timestamp_last: int | None = None

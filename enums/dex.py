from enum import Enum


class DexVariant(str, Enum):
    UNISWAP_V2 = "uniswap_v2"
    SUSHISWAP = "sushiswap"
    PANCAKESWAP = "pancakeswap"

    @classmethod
    def parse(cls, value: "str | DexVariant") -> "DexVariant | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None

from dataclasses import dataclass, field


@dataclass
class DexConfig:
    factory_address: str
    router_address: str | None = None
    init_code_hash: str | None = None


@dataclass
class ChainConfig:
    chain_id: int
    name: str
    display_name: str
    symbol: str
    explorer: str
    rpc_url: str
    weth_address: str
    multicall3_address: str
    dexes: dict[str, DexConfig] = field(default_factory=dict)
    is_local: bool = False

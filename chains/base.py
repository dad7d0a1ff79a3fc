from chains.dto import ChainConfig, DexConfig


base = ChainConfig(
    chain_id=8453,
    name="base",
    display_name="Base",
    symbol="ETH",
    explorer="https://basescan.org/",
    rpc_url="https://base.drpc.org",
    weth_address="0x4200000000000000000000000000000000000006",
    multicall3_address="0xcA11bde05977b3631167028862bE2a173976CA11",
    dexes={
        "uniswap_v2": DexConfig(
            factory_address="0x8909Dc15e40173Ff4699343b6eB8132c65e18eC6",
            router_address="0x4752ba5DBc23f44D87826276BF6Fd6b1C372aD24",
        ),
    },
)

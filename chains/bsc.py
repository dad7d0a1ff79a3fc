from chains.dto import ChainConfig, DexConfig


bsc = ChainConfig(
    chain_id=56,
    name="bsc",
    display_name="BSC",
    symbol="BNB",
    explorer="https://bscscan.com/",
    rpc_url="https://bsc.rpc.blxrbdn.com",
    weth_address="0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    multicall3_address="0xcA11bde05977b3631167028862bE2a173976CA11",
    dexes={
        "pancakeswap": DexConfig(
            factory_address="0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",
            router_address="0x10ED43C718714eb63d5aA57B78B54704E256024E",
            init_code_hash="00fb7f630766e6a796048ea87d01acd3068e8ff67d078148a3fa3f4a84f69bd5",
        ),
    },
)

from chains.dto import ChainConfig, DexConfig


# mainnet fork served by a local hardhat node
hardhat = ChainConfig(
    chain_id=31337,
    name="hardhat",
    display_name="Hardhat",
    symbol="ETH",
    explorer="",
    rpc_url="http://127.0.0.1:8545",
    weth_address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    multicall3_address="0xcA11bde05977b3631167028862bE2a173976CA11",
    dexes={
        "uniswap_v2": DexConfig(
            factory_address="0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
            router_address="0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
            init_code_hash="96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f",
        ),
        "sushiswap": DexConfig(
            factory_address="0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
            router_address="0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
            init_code_hash="e18a34eb0e04b04f7a0ac29a6e80748dca96319b42c54d679cb821dca90c6303",
        ),
    },
    is_local=True,
)

import logging
from abc import ABC
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

from web3 import AsyncWeb3

from clients.evm.errors import AmmClientError, NetworkError

if TYPE_CHECKING:
    from clients.evm.chain import Chain


module_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def rpc_call(operation: str, target: str, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except AmmClientError:
        raise
    except Exception as e:
        module_logger.error(f"Error in {operation} for {target}: {e!r}")
        raise NetworkError(f"{operation} failed for {target}: {e}") from e


class BaseWeb3Client(ABC):
    MULTICALL3_ABI = [
        {
            "name": "aggregate3",
            "type": "function",
            "stateMutability": "payable",
            "inputs": [
                {
                    "name": "calls",
                    "type": "tuple[]",
                    "internalType": "struct Multicall3.Call3[]",
                    "components": [
                        {"name": "target", "type": "address", "internalType": "address"},
                        {"name": "allowFailure", "type": "bool", "internalType": "bool"},
                        {"name": "callData", "type": "bytes", "internalType": "bytes"},
                    ],
                }
            ],
            "outputs": [
                {
                    "name": "returnData",
                    "type": "tuple[]",
                    "internalType": "struct Multicall3.Result[]",
                    "components": [
                        {"name": "success", "type": "bool", "internalType": "bool"},
                        {"name": "returnData", "type": "bytes", "internalType": "bytes"},
                    ],
                }
            ],
        }
    ]

    ERC20_ABI = [
        {
            "inputs": [],
            "name": "name",
            "outputs": [{"name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "symbol",
            "outputs": [{"name": "", "type": "string"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "decimals",
            "outputs": [{"name": "", "type": "uint8"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [],
            "name": "totalSupply",
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [{"name": "owner", "type": "address"}],
            "name": "balanceOf",
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "name": "allowance",
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "name": "approve",
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function",
        },
        {
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "name": "transfer",
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
            "type": "function",
        },
    ]

    def __init__(self, chain: "Chain"):
        self.chain = chain

    @property
    def w3(self) -> AsyncWeb3:
        return self.chain.w3

    @staticmethod
    def _create_call(target: str, calldata: bytes, allow_failure: bool = True) -> tuple:
        return (target, allow_failure, calldata)

    @staticmethod
    def _build_tx(contract, func) -> dict[str, Any]:
        return {
            "to": contract.address,
            "data": func._encode_transaction_data(),
        }

    def _get_multicall_contract(self):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self.chain.config.multicall3_address),
            abi=self.MULTICALL3_ABI,
        )

    def _get_erc20_contract(self, token_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(token_address), abi=self.ERC20_ABI
        )


class BaseDexClient(BaseWeb3Client, ABC):
    PAIR_ABI = [
        {
            "constant": True,
            "inputs": [],
            "name": "token0",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [],
            "name": "token1",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [],
            "name": "getReserves",
            "outputs": [
                {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
                {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
                {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"},
            ],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [],
            "name": "totalSupply",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [],
            "name": "factory",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
    ]

    FACTORY_ABI = [
        {
            "constant": True,
            "inputs": [
                {"internalType": "address", "name": "", "type": "address"},
                {"internalType": "address", "name": "", "type": "address"},
            ],
            "name": "getPair",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "name": "allPairs",
            "outputs": [{"internalType": "address", "name": "", "type": "address"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
        {
            "constant": True,
            "inputs": [],
            "name": "allPairsLength",
            "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
            "payable": False,
            "stateMutability": "view",
            "type": "function",
        },
    ]

    ROUTER_ABI = [
        {
            "inputs": [
                {"internalType": "address", "name": "tokenA", "type": "address"},
                {"internalType": "address", "name": "tokenB", "type": "address"},
                {"internalType": "uint256", "name": "amountADesired", "type": "uint256"},
                {"internalType": "uint256", "name": "amountBDesired", "type": "uint256"},
                {"internalType": "uint256", "name": "amountAMin", "type": "uint256"},
                {"internalType": "uint256", "name": "amountBMin", "type": "uint256"},
                {"internalType": "address", "name": "to", "type": "address"},
                {"internalType": "uint256", "name": "deadline", "type": "uint256"},
            ],
            "name": "addLiquidity",
            "outputs": [
                {"internalType": "uint256", "name": "amountA", "type": "uint256"},
                {"internalType": "uint256", "name": "amountB", "type": "uint256"},
                {"internalType": "uint256", "name": "liquidity", "type": "uint256"},
            ],
            "stateMutability": "nonpayable",
            "type": "function",
        },
        {
            "inputs": [
                {"internalType": "address", "name": "tokenA", "type": "address"},
                {"internalType": "address", "name": "tokenB", "type": "address"},
                {"internalType": "uint256", "name": "liquidity", "type": "uint256"},
                {"internalType": "uint256", "name": "amountAMin", "type": "uint256"},
                {"internalType": "uint256", "name": "amountBMin", "type": "uint256"},
                {"internalType": "address", "name": "to", "type": "address"},
                {"internalType": "uint256", "name": "deadline", "type": "uint256"},
            ],
            "name": "removeLiquidity",
            "outputs": [
                {"internalType": "uint256", "name": "amountA", "type": "uint256"},
                {"internalType": "uint256", "name": "amountB", "type": "uint256"},
            ],
            "stateMutability": "nonpayable",
            "type": "function",
        },
    ]

    def _get_pair_contract(self, pair_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(pair_address), abi=self.PAIR_ABI
        )

    def _get_factory_contract(self, factory_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(factory_address), abi=self.FACTORY_ABI
        )

    def _get_router_contract(self, router_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(router_address), abi=self.ROUTER_ABI
        )

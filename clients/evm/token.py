import asyncio
import logging

from clients.evm.base import BaseWeb3Client, rpc_call
from clients.evm.chain import Chain
from clients.evm.dto import AddressLike, Amount, TokenMeta, TxReceipt
from clients.evm.errors import InsufficientBalance, TokenMetadataUnavailable
from clients.evm.registry import identity_key
from utils.utils import format_units, to_base_units, to_checksum


module_logger = logging.getLogger(__name__)


class ERC20Token(BaseWeb3Client):
    def __init__(self, address: str, chain: Chain):
        super().__init__(chain)
        self.address = to_checksum(address)
        self.contract = self._get_erc20_contract(self.address)
        self._meta: TokenMeta | None = None

    @property
    def meta(self) -> TokenMeta:
        if self._meta is None:
            raise TokenMetadataUnavailable(f"Token {self.address} is not initialized")
        return self._meta

    @property
    def decimals(self) -> int:
        return self.meta.decimals

    @property
    def symbol(self) -> str:
        return self.meta.symbol

    @property
    def name(self) -> str:
        return self.meta.name

    async def _fetch_token_meta(self) -> TokenMeta:
        try:
            decimals, symbol, name = await asyncio.gather(
                self.contract.functions.decimals().call(),
                self.contract.functions.symbol().call(),
                self.contract.functions.name().call(),
            )
        except Exception as e:
            module_logger.error(f"Error initializing token at {self.address}: {e!r}")
            raise TokenMetadataUnavailable(
                f"Cannot read metadata of token {self.address} on {self.chain.name}"
            ) from e

        return TokenMeta(
            address=self.address,
            name=name,
            symbol=symbol,
            decimals=int(decimals),
        )

    async def init(self) -> "ERC20Token":
        if self._meta is None:
            self._meta = await self._fetch_token_meta()
            module_logger.info(
                f"Token {self.symbol} ({self.name}) initialized at {self.address}, "
                f"decimals {self.decimals}"
            )
        return self

    @classmethod
    async def create(cls, address: AddressLike, chain: Chain) -> "ERC20Token":
        key = identity_key(chain.name, address)
        checksummed = to_checksum(address)

        async def build() -> "ERC20Token":
            token = cls(checksummed, chain)
            return await token.init()

        return await chain.registries.tokens.get_or_create(key, build)

    @classmethod
    async def weth(cls, chain: Chain) -> "ERC20Token":
        """Wrapped native token of the chain, shared with ``create``."""
        return await cls.create(chain.config.weth_address, chain)

    def to_base_units(self, amount: str) -> int:
        return to_base_units(amount, self.decimals)

    def format_amount(self, raw: int) -> str:
        return format_units(raw, self.decimals)

    def _amount(self, raw: int) -> Amount:
        return Amount(raw=int(raw), formatted=self.format_amount(raw))

    async def get_total_supply(self) -> Amount:
        raw = await rpc_call(
            "get total supply",
            self.address,
            self.contract.functions.totalSupply().call(),
        )
        return self._amount(raw)

    async def get_balance(self, account: AddressLike) -> Amount:
        owner = to_checksum(account)
        raw = await rpc_call(
            "get balance",
            f"{self.address} holder {owner}",
            self.contract.functions.balanceOf(owner).call(),
        )
        return self._amount(raw)

    async def allowance(self, owner: AddressLike, spender: AddressLike) -> Amount:
        owner_address = to_checksum(owner)
        spender_address = to_checksum(spender)
        raw = await rpc_call(
            "get allowance",
            f"{self.address} owner {owner_address}",
            self.contract.functions.allowance(owner_address, spender_address).call(),
        )
        return self._amount(raw)

    async def ensure_balance(self, account: AddressLike, amount: str, raw: int) -> None:
        balance = await self.get_balance(account)
        if balance.raw < raw:
            raise InsufficientBalance(self.symbol, amount, balance.formatted)

    async def approve(self, account, spender: AddressLike, amount: str) -> TxReceipt:
        spender_address = to_checksum(spender)
        raw = self.to_base_units(amount)

        await self.ensure_balance(account, amount, raw)

        module_logger.info(f"Approving {amount} {self.symbol} for spender {spender_address}")
        func = self.contract.functions.approve(spender_address, raw)
        return await account.sign_and_send(self._build_tx(self.contract, func))

    async def transfer(self, from_account, to: AddressLike, amount: str) -> TxReceipt:
        recipient = to_checksum(to)
        raw = self.to_base_units(amount)

        await self.ensure_balance(from_account, amount, raw)

        module_logger.info(
            f"Transferring {amount} {self.symbol} "
            f"from {from_account.address} to {recipient}"
        )
        func = self.contract.functions.transfer(recipient, raw)
        return await from_account.sign_and_send(self._build_tx(self.contract, func))

    def __repr__(self) -> str:
        symbol = self._meta.symbol if self._meta else "?"
        return f"ERC20Token({symbol}, {self.address}, {self.chain.name})"

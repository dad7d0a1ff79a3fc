import logging
from typing import Any

from eth_account import Account as EthAccount

from clients.evm.base import BaseWeb3Client, rpc_call
from clients.evm.chain import Chain
from clients.evm.dto import AddressLike, Amount, TxReceipt
from clients.evm.errors import InsufficientBalance, InvalidParameter, TransactionReverted
from clients.evm.registry import identity_key
from config import settings
from enums.account import SignerMode
from utils.utils import format_units, to_base_units, to_checksum


module_logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


class Account(BaseWeb3Client):
    def __init__(
        self,
        address: str,
        chain: Chain,
        mode: SignerMode = SignerMode.NODE,
        private_key: str | None = None,
    ):
        super().__init__(chain)
        self.address = to_checksum(address)
        self.mode = SignerMode(mode)
        self._account = None

        if self.mode is SignerMode.LOCAL_KEY:
            if not private_key:
                raise InvalidParameter("Private key is required for local signing")
            self._account = EthAccount.from_key(private_key)
            if self._account.address != self.address:
                raise InvalidParameter(
                    f"Private key does not belong to {self.address}"
                )
        elif self.mode is SignerMode.IMPERSONATED and not chain.is_local:
            raise InvalidParameter(
                f"Impersonation is not available on {chain.name}"
            )

    async def init(self) -> "Account":
        if self.mode is SignerMode.IMPERSONATED:
            await self.chain.make_request("hardhat_impersonateAccount", [self.address])
            module_logger.info(f"Impersonating {self.address} on {self.chain.name}")
        return self

    @classmethod
    async def create(
        cls,
        chain: Chain,
        address: AddressLike,
        mode: SignerMode = SignerMode.NODE,
        private_key: str | None = None,
    ) -> "Account":
        key = identity_key(chain.name, address)
        checksummed = to_checksum(address)

        async def build() -> "Account":
            account = cls(checksummed, chain, mode, private_key)
            return await account.init()

        return await chain.registries.accounts.get_or_create(key, build)

    @classmethod
    async def from_private_key(cls, chain: Chain, private_key: str) -> "Account":
        if not private_key.startswith("0x"):
            private_key = f"0x{private_key}"
        address = EthAccount.from_key(private_key).address
        return await cls.create(chain, address, SignerMode.LOCAL_KEY, private_key)

    def get_address(self) -> str:
        return self.address

    async def get_native_balance(self) -> Amount:
        raw = await rpc_call(
            "get native balance", self.address, self.w3.eth.get_balance(self.address)
        )
        return Amount(raw=raw, formatted=format_units(raw, NATIVE_DECIMALS))

    async def transfer_native(self, to: AddressLike, amount: str) -> TxReceipt:
        recipient = to_checksum(to)
        value = to_base_units(amount, NATIVE_DECIMALS)

        balance = await self.get_native_balance()
        if balance.raw < value:
            raise InsufficientBalance(self.chain.config.symbol, amount, balance.formatted)

        module_logger.info(
            f"Transferring {amount} {self.chain.config.symbol} "
            f"from {self.address} to {recipient}"
        )
        return await self.sign_and_send({"to": recipient, "value": value})

    async def set_balance(self, amount: str) -> None:
        value = to_base_units(amount, NATIVE_DECIMALS)
        await self.chain.make_request("hardhat_setBalance", [self.address, hex(value)])
        module_logger.info(f"Set balance of {self.address} to {amount}")

    async def _fill_tx(self, tx: dict[str, Any]) -> dict[str, Any]:
        tx = dict(tx)
        tx["from"] = self.address

        if "nonce" not in tx:
            tx["nonce"] = await rpc_call(
                "get nonce",
                self.address,
                self.w3.eth.get_transaction_count(self.address, "pending"),
            )

        if "maxFeePerGas" not in tx and "gasPrice" not in tx:
            gas = await self.chain.get_gas_info()
            if gas.max_fee_per_gas is not None:
                tx["maxFeePerGas"] = gas.max_fee_per_gas
                tx["maxPriorityFeePerGas"] = gas.max_priority_fee_per_gas
            else:
                tx["gasPrice"] = gas.gas_price

        if "chainId" not in tx and self.chain.chain_id is not None:
            tx["chainId"] = self.chain.chain_id

        if "gas" not in tx:
            estimate = await rpc_call(
                "estimate gas", str(tx.get("to")), self.w3.eth.estimate_gas(tx)
            )
            tx["gas"] = int(estimate * settings.GAS_LIMIT_MULTIPLIER)

        return tx

    async def _send(self, tx: dict[str, Any]):
        if self.mode is SignerMode.LOCAL_KEY:
            signed = self.w3.eth.account.sign_transaction(tx, self._account.key)
            return await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return await self.w3.eth.send_transaction(tx)

    async def sign_and_send(self, tx: dict[str, Any]) -> TxReceipt:
        tx = await self._fill_tx(tx)
        target = str(tx.get("to"))

        tx_hash = await rpc_call("send transaction", target, self._send(tx))
        receipt = await rpc_call(
            "wait for receipt",
            target,
            self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=settings.TX_RECEIPT_TIMEOUT,
                poll_latency=settings.TX_POLL_LATENCY,
            ),
        )

        result = TxReceipt.from_web3(dict(receipt))
        if result.status != 1:
            module_logger.error(f"Transaction {result.tx_hash} to {target} reverted")
            raise TransactionReverted(result.tx_hash, result.raw)

        module_logger.info(
            f"Transaction {result.tx_hash} confirmed in block {result.block_number}, "
            f"gas used {result.gas_used}"
        )
        return result

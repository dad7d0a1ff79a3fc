from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol, Union


class HasAddress(Protocol):
    address: str


AddressLike = Union[str, HasAddress]


@dataclass(frozen=True)
class TokenMeta:
    address: str
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Amount:
    raw: int
    formatted: str


@dataclass
class TxReceipt:
    tx_hash: str
    block_number: int
    gas_used: int
    status: int
    effective_gas_price: int | None = None
    raw: dict[str, Any] | None = None

    @classmethod
    def from_web3(cls, receipt: dict[str, Any]) -> "TxReceipt":
        tx_hash = receipt.get("transactionHash")
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = "0x" + bytes(tx_hash).hex()
        elif hasattr(tx_hash, "to_0x_hex"):
            tx_hash = tx_hash.to_0x_hex()

        return cls(
            tx_hash=str(tx_hash),
            block_number=int(receipt.get("blockNumber", 0)),
            gas_used=int(receipt.get("gasUsed", 0)),
            status=int(receipt.get("status", 0)),
            effective_gas_price=receipt.get("effectiveGasPrice"),
            raw=dict(receipt),
        )


@dataclass
class GasInfo:
    gas_price: int | None
    max_fee_per_gas: int | None
    max_priority_fee_per_gas: int | None
    gas_price_gwei: Decimal | None = None
    max_fee_per_gas_gwei: Decimal | None = None
    max_priority_fee_per_gas_gwei: Decimal | None = None


@dataclass
class ChainStatus:
    name: str
    chain_id: int
    block_number: int
    gas: GasInfo

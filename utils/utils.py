from decimal import Decimal, InvalidOperation

from eth_typing import ChecksumAddress
from web3 import AsyncWeb3

from clients.evm.dto import AddressLike
from clients.evm.errors import InvalidAddress, InvalidParameter


def address_of(value: AddressLike) -> str:
    if isinstance(value, str):
        return value
    address = getattr(value, "address", None)
    if not isinstance(address, str):
        raise InvalidAddress(value)
    return address


def to_checksum(value: AddressLike) -> ChecksumAddress:
    address = address_of(value)
    if not AsyncWeb3.is_address(address):
        raise InvalidAddress(address)
    return AsyncWeb3.to_checksum_address(address)


def same_address(a: AddressLike, b: AddressLike) -> bool:
    return address_of(a).lower() == address_of(b).lower()


def to_base_units(amount: str | int | Decimal, decimals: int) -> int:
    if isinstance(amount, float):
        raise InvalidParameter("Amounts must be given as decimal strings, not floats")

    if isinstance(amount, Decimal):
        if not amount.is_finite():
            raise InvalidParameter(f"Invalid amount: {amount}")
        text = format(amount, "f")
    else:
        text = str(amount).strip()

    try:
        Decimal(text)
    except InvalidOperation:
        raise InvalidParameter(f"Invalid amount: {amount!r}") from None

    if text.startswith("-"):
        raise InvalidParameter(f"Amount must not be negative: {amount}")

    whole, _, frac = text.lstrip("+").partition(".")
    if not (whole or frac) or not (whole + frac).isdigit():
        raise InvalidParameter(f"Invalid amount: {amount!r}")

    frac = frac.rstrip("0")
    if len(frac) > decimals:
        raise InvalidParameter(
            f"Amount {amount} has more than {decimals} fractional digits"
        )

    return int(whole or "0") * 10 ** decimals + int(frac.ljust(decimals, "0") or "0")


def format_units(raw: int, decimals: int) -> str:
    sign = "-" if raw < 0 else ""
    whole, frac = divmod(abs(int(raw)), 10 ** decimals)

    if decimals == 0 or frac == 0:
        return f"{sign}{whole}"

    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}"


def human_amount(raw: int, decimals: int) -> Decimal:
    return Decimal(format_units(raw, decimals))


def format_amount(value: Decimal, places: int = 6) -> str:
    if value == 0:
        return "0"

    return f"{value:.{places}f}".rstrip("0").rstrip(".")

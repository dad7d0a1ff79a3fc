class AmmClientError(Exception):
    """Base error for pool, token and account operations."""


class InvalidAddress(AmmClientError, ValueError):
    def __init__(self, address):
        self.address = address
        super().__init__(f"Invalid address: {address!r}")


class InvalidParameter(AmmClientError, ValueError):
    """Amount, slippage or signer configuration rejected before any network call."""


class UnsupportedDexVariant(AmmClientError):
    def __init__(self, dex_variant: str, chain_name: str | None = None):
        self.dex_variant = dex_variant
        self.chain_name = chain_name
        where = f" on {chain_name}" if chain_name else ""
        super().__init__(f"Unsupported DEX variant: {dex_variant}{where}")


class PoolNotFound(AmmClientError):
    """Address does not answer the pair interface."""


class PoolDoesNotExist(AmmClientError):
    """Factory has no pair deployed for the requested tokens."""


class TokenNotInPool(AmmClientError):
    def __init__(self, token: str, pool: str):
        self.token = token
        self.pool = pool
        super().__init__(f"Token {token} not found in pool {pool}")


class TokenMetadataUnavailable(AmmClientError):
    """decimals/symbol/name could not be read from the token contract."""


class InsufficientBalance(AmmClientError):
    def __init__(self, symbol: str, needed: str, available: str):
        self.symbol = symbol
        self.needed = needed
        self.available = available
        super().__init__(
            f"Insufficient {symbol} balance. Needed: {needed}, Has: {available}"
        )


class InsufficientLiquidityBalance(InsufficientBalance):
    pass


class DivisionByZero(AmmClientError, ZeroDivisionError):
    pass


class LiquidityAddFailed(AmmClientError):
    pass


class LiquidityRemoveFailed(AmmClientError):
    pass


class TransactionReverted(AmmClientError):
    def __init__(self, tx_hash: str, receipt: dict | None = None):
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"Transaction {tx_hash} reverted")


class NetworkError(AmmClientError):
    """Wraps an RPC failure; the underlying error is kept in ``__cause__``."""

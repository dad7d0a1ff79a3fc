import os
from dataclasses import dataclass, field
from decimal import Decimal

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _rpc_overrides() -> dict[str, str]:
    prefix = "RPC_URL_"
    return {
        key[len(prefix):].lower().replace("_", "-"): value
        for key, value in os.environ.items()
        if key.startswith(prefix) and value
    }


@dataclass(frozen=True)
class Settings:
    DEFAULT_SLIPPAGE_PERCENT: Decimal = Decimal("0.5")
    DEFAULT_DEADLINE_SECONDS: int = 300
    TX_RECEIPT_TIMEOUT: int = 120
    TX_POLL_LATENCY: float = 0.5
    GAS_LIMIT_MULTIPLIER: float = 1.2
    RPC_URLS: dict[str, str] = field(default_factory=dict)

    def rpc_url_for(self, chain_name: str, default: str) -> str:
        return self.RPC_URLS.get(chain_name, default)


def get_settings() -> Settings:
    return Settings(
        DEFAULT_SLIPPAGE_PERCENT=Decimal(_env("DEFAULT_SLIPPAGE_PERCENT", "0.5")),
        DEFAULT_DEADLINE_SECONDS=int(_env("DEFAULT_DEADLINE_SECONDS", "300")),
        TX_RECEIPT_TIMEOUT=int(_env("TX_RECEIPT_TIMEOUT", "120")),
        TX_POLL_LATENCY=float(_env("TX_POLL_LATENCY", "0.5")),
        GAS_LIMIT_MULTIPLIER=float(_env("GAS_LIMIT_MULTIPLIER", "1.2")),
        RPC_URLS=_rpc_overrides(),
    )


settings = get_settings()

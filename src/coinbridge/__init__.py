"""coinbridge: unified async client for cryptocurrency exchange REST APIs."""

from .settings import Settings
from .exchanges import (
    BaseExchangeClient,
    ExchangeClient,
    create_exchange_client,
    normalize_symbol,
    extract_base_symbol,
)
from .exchanges.errors import ExchangeError

__all__ = [
    "Settings",
    "BaseExchangeClient",
    "ExchangeClient",
    "ExchangeError",
    "create_exchange_client",
    "normalize_symbol",
    "extract_base_symbol",
]

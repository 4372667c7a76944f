"""Exchange adapters and connectivity layer."""

from .protocol import (
    ExchangeClient,
    Balance,
    Balances,
    Currency,
    DepositAddress,
    Market,
    OHLCV,
    Order,
    OrderBook,
    Ticker,
    Trade,
    Transaction,
)
from .normalization import normalize_symbol, extract_base_symbol, common_currency_code
from .factory import create_exchange_client, EXCHANGE_CLIENTS
from .base import BaseExchangeClient, ProxyConfig
from .bleutrade import BleutradeClient
from .dx import DXClient
from .gemini import GeminiClient
from . import errors

__all__ = [
    "ExchangeClient",
    "Balance",
    "Balances",
    "Currency",
    "DepositAddress",
    "Market",
    "OHLCV",
    "Order",
    "OrderBook",
    "Ticker",
    "Trade",
    "Transaction",
    "normalize_symbol",
    "extract_base_symbol",
    "common_currency_code",
    "create_exchange_client",
    "EXCHANGE_CLIENTS",
    "BaseExchangeClient",
    "ProxyConfig",
    "BleutradeClient",
    "DXClient",
    "GeminiClient",
    "errors",
]

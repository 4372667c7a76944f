"""Static per-exchange configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Type

from .errors import ExchangeError
from .precision import DECIMAL_PLACES

# Capabilities every adapter starts from. Adapters switch on what they implement.
DEFAULT_HAS: dict[str, bool] = {
    "publicAPI": True,
    "privateAPI": True,
    "cancelOrder": True,
    "createDepositAddress": False,
    "createOrder": True,
    "createMarketOrder": True,
    "createLimitOrder": True,
    "fetchBalance": True,
    "fetchClosedOrders": False,
    "fetchCurrencies": False,
    "fetchDepositAddress": False,
    "fetchDeposits": False,
    "fetchMarkets": True,
    "fetchMyTrades": False,
    "fetchOHLCV": False,
    "fetchOpenOrders": False,
    "fetchOrder": False,
    "fetchOrderBook": True,
    "fetchOrders": False,
    "fetchOrderTrades": False,
    "fetchTicker": True,
    "fetchTickers": False,
    "fetchTrades": True,
    "fetchTransactions": False,
    "fetchWithdrawals": False,
    "signIn": False,
    "withdraw": False,
}

# Aliases applied by every exchange before its own table.
DEFAULT_COMMON_CURRENCIES: dict[str, str] = {
    "XBT": "BTC",
    "BCC": "BCH",
    "DRK": "DASH",
    "BCHABC": "BCH",
    "BCHSV": "BSV",
}


@dataclass(frozen=True)
class ExchangeDescription:
    """Everything about an exchange that does not change between instances.

    ``urls["api"]`` is either a single base URL or a mapping of API section
    (``public``, ``private``, ...) to base URL. ``urls["test"]`` has the same
    shape and is used when the client runs in sandbox mode.
    """

    id: str
    name: str
    version: str = "v1"
    countries: tuple[str, ...] = ()
    rate_limit: int = 2000
    urls: dict[str, Any] = field(default_factory=dict)
    api: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    has: dict[str, bool] = field(default_factory=dict)
    timeframes: dict[str, str] = field(default_factory=dict)
    required_credentials: dict[str, bool] = field(
        default_factory=lambda: {"api_key": True, "api_secret": True}
    )
    common_currencies: dict[str, str] = field(default_factory=dict)
    exact_exceptions: dict[str, Type[ExchangeError]] = field(default_factory=dict)
    broad_exceptions: dict[str, Type[ExchangeError]] = field(default_factory=dict)
    http_exceptions: dict[str, Type[ExchangeError]] = field(default_factory=dict)
    precision_mode: int = DECIMAL_PLACES
    fees: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)
    hostname: str | None = None
    min_address_length: int = 1

    def capabilities(self) -> dict[str, bool]:
        return {**DEFAULT_HAS, **self.has}

    def currency_aliases(self) -> dict[str, str]:
        return {**DEFAULT_COMMON_CURRENCIES, **self.common_currencies}

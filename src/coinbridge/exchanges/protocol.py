"""Normalized records and the protocol every exchange client satisfies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, runtime_checkable


@dataclass(slots=True)
class MinMax:
    min: float | None = None
    max: float | None = None


@dataclass(slots=True)
class MarketLimits:
    amount: MinMax = field(default_factory=MinMax)
    price: MinMax = field(default_factory=MinMax)
    cost: MinMax = field(default_factory=MinMax)


@dataclass(slots=True)
class MarketPrecision:
    """Number of decimal places for amounts and prices."""

    amount: int | None = None
    price: int | None = None


@dataclass(slots=True)
class Market:
    """A tradable base/quote pair."""

    id: str
    symbol: str
    base: str
    quote: str
    base_id: str | None = None
    quote_id: str | None = None
    active: bool | None = None
    precision: MarketPrecision = field(default_factory=MarketPrecision)
    limits: MarketLimits = field(default_factory=MarketLimits)
    numeric_id: int | None = None
    base_numeric_id: int | None = None
    quote_numeric_id: int | None = None
    info: Any = None


@dataclass(slots=True)
class Currency:
    id: str
    code: str
    numeric_id: int | None = None
    precision: int | None = None
    active: bool | None = None
    fee: float | None = None
    info: Any = None


@dataclass(slots=True)
class Fee:
    cost: float | None = None
    currency: str | None = None
    rate: float | None = None


@dataclass(slots=True)
class Ticker:
    symbol: str | None
    timestamp: int | None = None
    datetime: str | None = None
    high: float | None = None
    low: float | None = None
    bid: float | None = None
    bid_volume: float | None = None
    ask: float | None = None
    ask_volume: float | None = None
    vwap: float | None = None
    open: float | None = None
    close: float | None = None
    last: float | None = None
    previous_close: float | None = None
    change: float | None = None
    percentage: float | None = None
    average: float | None = None
    base_volume: float | None = None
    quote_volume: float | None = None
    info: Any = None


@dataclass(slots=True)
class OrderBook:
    """Bids sorted best (highest) first, asks sorted best (lowest) first."""

    bids: list[list[float]] = field(default_factory=list)
    asks: list[list[float]] = field(default_factory=list)
    timestamp: int | None = None
    datetime: str | None = None
    nonce: int | None = None
    info: Any = None


@dataclass(slots=True)
class OHLCV:
    timestamp: int | None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None
    info: Any = None


@dataclass(slots=True)
class Order:
    """Snapshot of an order as reported by the exchange."""

    id: str | None
    symbol: str | None = None
    type: str | None = None
    side: str | None = None
    price: float | None = None
    amount: float | None = None
    filled: float | None = None
    remaining: float | None = None
    status: str | None = None
    timestamp: int | None = None
    datetime: str | None = None
    last_trade_timestamp: int | None = None
    average: float | None = None
    cost: float | None = None
    fee: Fee | None = None
    info: Any = None


@dataclass(slots=True)
class Trade:
    id: str | None
    symbol: str | None = None
    order: str | None = None
    type: str | None = None
    side: str | None = None
    taker_or_maker: str | None = None
    price: float | None = None
    amount: float | None = None
    cost: float | None = None
    fee: Fee | None = None
    timestamp: int | None = None
    datetime: str | None = None
    info: Any = None


@dataclass(slots=True)
class Balance:
    """Balance of a single currency."""

    currency: str
    free: float | None = None
    used: float | None = None
    total: float | None = None

    def fill_missing(self) -> None:
        """Derive whichever of free/used/total is missing from the other two."""
        if self.total is None and self.free is not None and self.used is not None:
            self.total = self.free + self.used
        elif self.used is None and self.free is not None and self.total is not None:
            self.used = self.total - self.free
        elif self.free is None and self.used is not None and self.total is not None:
            self.free = self.total - self.used


@dataclass(slots=True)
class Balances:
    """Account balances keyed by common currency code."""

    balances: dict[str, Balance] = field(default_factory=dict)
    info: Any = None

    def __getitem__(self, code: str) -> Balance:
        return self.balances[code]

    def __contains__(self, code: object) -> bool:
        return code in self.balances

    def __iter__(self) -> Iterator[str]:
        return iter(self.balances)

    def __len__(self) -> int:
        return len(self.balances)

    @property
    def free(self) -> dict[str, float | None]:
        return {code: b.free for code, b in self.balances.items()}

    @property
    def used(self) -> dict[str, float | None]:
        return {code: b.used for code, b in self.balances.items()}

    @property
    def total(self) -> dict[str, float | None]:
        return {code: b.total for code, b in self.balances.items()}


@dataclass(slots=True)
class Transaction:
    """A deposit or withdrawal."""

    id: str | None
    currency: str | None = None
    amount: float | None = None
    address: str | None = None
    tag: str | None = None
    type: str | None = None
    status: str | None = None
    txid: str | None = None
    fee: Fee | None = None
    timestamp: int | None = None
    datetime: str | None = None
    updated: int | None = None
    info: Any = None


@dataclass(slots=True)
class DepositAddress:
    currency: str
    address: str
    tag: str | None = None
    info: Any = None


@runtime_checkable
class ExchangeClient(Protocol):
    """Protocol for exchange connectivity.

    Every operation is optional. ``has`` tells which ones the exchange
    supports. The others raise :class:`~coinbridge.exchanges.errors.NotSupported`.
    """

    id: str
    has: dict[str, bool]
    markets: dict[str, Market]
    timeframes: dict[str, str]

    async def __aenter__(self) -> "ExchangeClient":
        ...

    async def __aexit__(self, *exc_info: Any) -> None:
        ...

    async def load_markets(self, reload: bool = False) -> dict[str, Market]:
        ...

    async def fetch_markets(self) -> list[Market]:
        ...

    async def fetch_ticker(self, symbol: str) -> Ticker:
        """Fetch price/volume statistics for a unified symbol such as ``BTC/USD``."""
        ...

    async def fetch_order_book(self, symbol: str, limit: int | None = None) -> OrderBook:
        ...

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int | None = None,
    ) -> list[OHLCV]:
        ...

    async def fetch_trades(self, symbol: str, since: int | None = None, limit: int | None = None) -> list[Trade]:
        ...

    async def fetch_balance(self) -> Balances:
        ...

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: float | None = None,
    ) -> Order:
        """Place an order.

        Args:
            symbol: Unified symbol
            type: 'limit' or 'market'
            side: 'buy' or 'sell'
            amount: Order amount in base currency
            price: Limit price, required for limit orders

        Returns:
            Order carrying at least the exchange order id
        """
        ...

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        ...

    async def fetch_open_orders(
        self,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        ...

    async def withdraw(self, code: str, amount: float, address: str, tag: str | None = None) -> Transaction:
        ...

    async def close(self) -> None:
        """Release the HTTP session."""
        ...

"""Bleutrade exchange adapter.

Bleutrade runs a copy of the Bittrex v1.1 API, so most endpoints go through
:class:`~coinbridge.exchanges.bittrex_family.BittrexFamilyApi`. This module
keeps what Bleutrade does differently: ``_``-separated market ids, the
``orderid`` field, candles, order history and the ``Label`` field of
transfers.
"""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseExchangeClient
from .bittrex_family import (
    BITTREX_BROAD_EXCEPTIONS,
    BITTREX_EXCEPTIONS,
    BittrexFamilyApi,
    BittrexFamilyConfig,
)
from .description import ExchangeDescription
from .errors import (
    AuthenticationError,
    BadRequest,
    ExchangeError,
    InsufficientFunds,
    InvalidOrder,
)
from .helpers import (
    filter_by,
    iso8601,
    parse8601,
    safe_float,
    safe_string,
    safe_string_2,
    safe_value,
)
from .protocol import (
    OHLCV,
    Balances,
    Currency,
    DepositAddress,
    Fee,
    Market,
    Order,
    OrderBook,
    Ticker,
    Trade,
    Transaction,
)

logger = logging.getLogger(__name__)

TIMEFRAMES = {
    "15m": "15m",
    "20m": "20m",
    "30m": "30m",
    "1h": "1h",
    "2h": "2h",
    "3h": "3h",
    "4h": "4h",
    "6h": "6h",
    "8h": "8h",
    "12h": "12h",
    "1d": "1d",
}

ORDER_STATUSES = {
    "OK": "closed",
    "OPEN": "open",
    "CANCELED": "canceled",
}

DESCRIPTION = ExchangeDescription(
    id="bleutrade",
    name="Bleutrade",
    version="v2",
    countries=("BR",),
    rate_limit=1000,
    hostname="bleutrade.com",
    urls={
        "api": {
            "public": "https://{hostname}/api",
            "account": "https://{hostname}/api",
            "market": "https://{hostname}/api",
        },
        "www": "https://bleutrade.com",
        "doc": "https://bleutrade.com/help/API",
        "fees": "https://bleutrade.com/help/fees_and_deadlines",
    },
    api={
        "public": {
            "get": [
                "candles",
                "currencies",
                "markethistory",
                "markets",
                "marketsummaries",
                "marketsummary",
                "orderbook",
                "ticker",
            ],
        },
        "account": {
            "get": [
                "balance",
                "balances",
                "depositaddress",
                "deposithistory",
                "order",
                "orders",
                "orderhistory",
                "withdrawhistory",
                "withdraw",
            ],
        },
        "market": {
            "get": [
                "buylimit",
                "selllimit",
                "cancel",
                "openorders",
            ],
        },
    },
    has={
        "createMarketOrder": False,
        "fetchClosedOrders": True,
        "fetchCurrencies": True,
        "fetchDepositAddress": True,
        "fetchDeposits": True,
        "fetchOHLCV": True,
        "fetchOpenOrders": True,
        "fetchOrder": True,
        "fetchOrders": True,
        "fetchOrderTrades": True,
        "fetchTickers": True,
        "fetchWithdrawals": True,
        "withdraw": True,
    },
    timeframes=TIMEFRAMES,
    common_currencies={"EPC": "Epacoin"},
    exact_exceptions={
        **BITTREX_EXCEPTIONS,
        "Insufficient funds!": InsufficientFunds,
        "Invalid Order ID": InvalidOrder,
        "Invalid apikey or apisecret": AuthenticationError,
    },
    broad_exceptions=dict(BITTREX_BROAD_EXCEPTIONS),
    fees={
        "trading": {
            "tier_based": False,
            "percentage": True,
            "taker": 0.0025,
            "maker": 0.0025,
        },
        "funding": {
            "withdraw": {
                "BTC": 0.001,
                "BCC": 0.001,
                "DASH": 0.001,
                "DOGE": 10.0,
                "ETH": 0.01,
                "LTC": 0.001,
            },
        },
    },
)

BLEUTRADE_API = BittrexFamilyConfig(
    order_id_field="orderid",
    symbol_separator="_",
    disable_nonce=False,
    parse_order_status=True,
    withdrawal_id_fields=("uuid", "Id", "WithdrawalId"),
)


class BleutradeClient(BaseExchangeClient):
    """Bleutrade client."""

    description = DESCRIPTION

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.api = BittrexFamilyApi(self, BLEUTRADE_API)

    # --- transport ---------------------------------------------------

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self.api.sign(path, api, method, params)

    def handle_errors(
        self,
        code: int,
        reason: str | None,
        url: str,
        method: str,
        headers: dict[str, str] | None,
        body: str | None,
        response: Any,
    ) -> None:
        self.api.handle_errors(body, response)

    # --- markets -----------------------------------------------------

    async def fetch_markets(self) -> list[Market]:
        return await self.api.fetch_markets()

    async def fetch_currencies(self) -> list[Currency]:
        return await self.api.fetch_currencies()

    def parse_symbol(self, market_id: str) -> str:
        return self.api.parse_symbol(market_id)

    # --- market data -------------------------------------------------

    def parse_ticker(self, ticker: Any, market: Market | None = None) -> Ticker:
        return self.api.parse_ticker(ticker, market)

    async def fetch_ticker(self, symbol: str) -> Ticker:
        return await self.api.fetch_ticker(symbol)

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict[str, Ticker]:
        return await self.api.fetch_tickers(symbols)

    async def fetch_order_book(self, symbol: str, limit: int | None = None) -> OrderBook:
        await self.load_markets()
        request: dict[str, Any] = {
            "market": self.market_id(symbol),
            "type": "ALL",
        }
        if limit is not None:
            request["depth"] = limit
        response = await self.request("orderbook", params=request)
        orderbook = safe_value(response, "result")
        if not orderbook:
            raise ExchangeError(f"{self.id} getorderbook returned no result {response}", exchange_id=self.id, response=response)
        return self.parse_order_book(orderbook, None, "buy", "sell", "Rate", "Quantity")

    def parse_ohlcv(self, ohlcv: Any, market: Market | None = None, timeframe: str = "15m") -> OHLCV:
        timestamp = parse8601(safe_string(ohlcv, "TimeStamp"))
        return OHLCV(
            timestamp=timestamp,
            open=safe_float(ohlcv, "Open"),
            high=safe_float(ohlcv, "High"),
            low=safe_float(ohlcv, "Low"),
            close=safe_float(ohlcv, "Close"),
            volume=safe_float(ohlcv, "Volume"),
            info=ohlcv,
        )

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "15m",
        since: int | None = None,
        limit: int | None = None,
    ) -> list[OHLCV]:
        await self.load_markets()
        market = self.market(symbol)
        if timeframe not in self.timeframes:
            raise BadRequest(f"{self.id} does not support timeframe {timeframe}", exchange_id=self.id)
        response = await self.request("candles", params={
            "period": self.timeframes[timeframe],
            "market": market.id,
            "count": limit,
        })
        return self.parse_ohlcvs(safe_value(response, "result"), market, timeframe, since, limit)

    def parse_trade(self, trade: Any, market: Market | None = None) -> Trade:
        timestamp = parse8601(safe_string(trade, "TimeStamp"))
        side = {"BUY": "buy", "SELL": "sell"}.get(safe_string(trade, "OrderType"))
        price = safe_float(trade, "Price")
        amount = safe_float(trade, "Quantity")
        cost = price * amount if price is not None and amount is not None else None
        return Trade(
            id=safe_string(trade, "TradeID"),
            symbol=market.symbol if market is not None else None,
            type="limit",
            side=side,
            price=price,
            amount=amount,
            cost=cost,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=trade,
        )

    async def fetch_trades(self, symbol: str, since: int | None = None, limit: int | None = None) -> list[Trade]:
        return await self.api.fetch_trades(symbol, since, limit)

    # --- account -----------------------------------------------------

    async def fetch_balance(self) -> Balances:
        return await self.api.fetch_balance()

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: float | None = None,
    ) -> Order:
        return await self.api.create_order(symbol, type, side, amount, price)

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        return await self.api.cancel_order(id, symbol)

    def parse_order_status(self, status: str | None) -> str | None:
        return ORDER_STATUSES.get(status, status)

    def parse_order(self, order: Any, market: Market | None = None) -> Order:
        side = safe_string_2(order, "OrderType", "Type")
        if side in {"LIMIT_BUY", "BUY"}:
            side = "buy"
        elif side in {"LIMIT_SELL", "SELL"}:
            side = "sell"

        # later fields win: an order may be closed and then canceled
        status = None
        if safe_value(order, "Opened"):
            status = "open"
        if safe_value(order, "Closed"):
            status = "closed"
        if safe_value(order, "CancelInitiated"):
            status = "canceled"
        if "Status" in order and self.api.config.parse_order_status:
            status = self.parse_order_status(safe_string(order, "Status"))

        symbol = None
        market_id = safe_string(order, "Exchange")
        if market_id is None:
            if market is not None:
                symbol = market.symbol
        elif market_id in self.markets_by_id:
            market = self.markets_by_id[market_id]
            symbol = market.symbol
        else:
            symbol = self.parse_symbol(market_id)
            logger.debug("%s: order %s is on unlisted market %s", self.id, BittrexFamilyApi.order_id(order), market_id)

        timestamp = parse8601(safe_string(order, "Created")) or parse8601(safe_string(order, "Opened"))
        last_trade_timestamp = parse8601(safe_string(order, "Closed")) or parse8601(safe_string(order, "TimeStamp"))
        if timestamp is None:
            timestamp = last_trade_timestamp

        fee = None
        commission = safe_float(order, "Commission", safe_float(order, "CommissionPaid"))
        if commission is not None:
            fee_currency = None
            if market is not None:
                fee_currency = market.quote
            elif symbol is not None:
                fee_currency = self.safe_currency_code(symbol.split("/")[1])
            fee = Fee(cost=commission, currency=fee_currency)

        price = safe_float(order, "Price")
        amount = safe_float(order, "Quantity")
        remaining = safe_float(order, "QuantityRemaining")
        filled = amount - remaining if amount is not None and remaining is not None else None
        cost = price * filled if price and filled else None
        return Order(
            id=BittrexFamilyApi.order_id(order),
            symbol=symbol,
            type="limit",
            side=side,
            price=price,
            amount=amount,
            filled=filled,
            remaining=remaining,
            status=status,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            last_trade_timestamp=last_trade_timestamp,
            average=safe_float(order, "PricePerUnit"),
            cost=cost,
            fee=fee,
            info=order,
        )

    async def fetch_order(self, id: str, symbol: str | None = None) -> Order:
        return await self.api.fetch_order(id, symbol)

    async def fetch_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        await self.load_markets()
        market = self.market(symbol) if symbol is not None else None
        response = await self.request("orders", api="account", params={
            "market": market.id if market is not None else "ALL",
            "orderstatus": "ALL",
        })
        return self.parse_orders(safe_value(response, "result"), market, since, limit)

    async def fetch_open_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        return await self.api.fetch_open_orders(symbol, since, limit)

    async def fetch_closed_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        orders = await self.fetch_orders(symbol, since, limit)
        return filter_by(orders, "status", "closed")

    async def fetch_order_trades(
        self,
        id: str,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[Trade]:
        await self.load_markets()
        response = await self.request("orderhistory", api="account", params={"orderid": id})
        return self.parse_trades(safe_value(response, "result"), None, since, limit, {"order": id})

    # --- funding -----------------------------------------------------

    def parse_transaction(self, transaction: Any, currency: Currency | None = None) -> Transaction:
        amount = safe_float(transaction, "Amount")
        type = "deposit"
        if amount is not None and amount < 0:
            amount = abs(amount)
            type = "withdrawal"
        code = self.safe_currency_code(safe_string(transaction, "Coin"))
        timestamp = parse8601(safe_string(transaction, "TimeStamp"))
        txid = safe_string(transaction, "TransactionId")

        # withdrawals carry "amount;address;fee" in the label
        label = safe_string(transaction, "Label") or ""
        parts = label.split(";")
        address = label or None
        fee = None
        if len(parts) == 3:
            amount = safe_float(parts, 0)
            address = parts[1]
            fee = Fee(cost=safe_float(parts, 2), currency=code)

        status = "ok"
        if txid == "CANCELED":
            txid = None
            status = "canceled"
        return Transaction(
            id=safe_string(transaction, "Id"),
            currency=code,
            amount=amount,
            address=address,
            type=type,
            status=status,
            txid=txid,
            fee=fee,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=transaction,
        )

    async def _fetch_transactions_by_type(self, type: str, code: str | None, since: int | None, limit: int | None) -> list[Transaction]:
        await self.load_markets()
        path = "deposithistory" if type == "deposit" else "withdrawhistory"
        response = await self.request(path, api="account")
        result = self.parse_transactions(safe_value(response, "result"))
        return self.filter_by_currency_since_limit(result, code, since, limit)

    async def fetch_deposits(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        return await self._fetch_transactions_by_type("deposit", code, since, limit)

    async def fetch_withdrawals(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        return await self._fetch_transactions_by_type("withdrawal", code, since, limit)

    async def fetch_deposit_address(self, code: str) -> DepositAddress:
        return await self.api.fetch_deposit_address(code)

    async def withdraw(self, code: str, amount: float, address: str, tag: str | None = None) -> Transaction:
        return await self.api.withdraw(code, amount, address, tag)

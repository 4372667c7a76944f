"""DX.Exchange adapter.

DX speaks JSON-RPC 2.0 over a single POST endpoint. Private methods need an
access token obtained from ``Authorization.LoginByToken`` via :meth:`DXClient.sign_in`.
Quantities and prices travel as ``{"value": int, "decimals": int}`` objects.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from .base import BaseExchangeClient
from .description import ExchangeDescription
from .errors import (
    AuthenticationError,
    BadRequest,
    BadResponse,
    InsufficientFunds,
    InvalidOrder,
    RequestTimeout,
    raise_mapped_error,
)
from .helpers import iso8601, safe_float, safe_integer, safe_string, safe_value
from .precision import number_to_object, object_to_number
from .protocol import (
    OHLCV,
    Balance,
    Balances,
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    Order,
    OrderBook,
    Ticker,
)

logger = logging.getLogger(__name__)

DESCRIPTION = ExchangeDescription(
    id="dx",
    name="DX.Exchange",
    version="v1",
    countries=("GB", "EU"),
    rate_limit=1500,
    urls={
        "api": "https://acl.dx.exchange",
        "www": "https://dx.exchange",
        "doc": "https://apidocs.dx.exchange",
        "fees": "https://dx.exchange/fees",
    },
    api={
        "public": {
            "post": [
                "AssetManagement.GetInstruments",
                "AssetManagement.GetTicker",
                "AssetManagement.History",
                "Authorization.LoginByToken",
                "OrderManagement.GetOrderBook",
            ],
        },
        "private": {
            "post": [
                "Balance.Get",
                "OrderManagement.Cancel",
                "OrderManagement.Create",
                "OrderManagement.OpenOrders",
                "OrderManagement.OrderHistory",
            ],
        },
    },
    has={
        "fetchClosedOrders": True,
        "fetchOHLCV": True,
        "fetchOpenOrders": True,
        "fetchTrades": False,
        "signIn": True,
    },
    timeframes={
        "1m": "1m",
        "5m": "5m",
        "1h": "1h",
        "1d": "1d",
    },
    required_credentials={"api_key": True, "api_secret": False},
    common_currencies={"BCH": "Bitcoin Cash"},
    exact_exceptions={
        "EOF": BadRequest,
    },
    broad_exceptions={
        "json: cannot unmarshal object into Go value of type": BadRequest,
        "not allowed to cancel this order": BadRequest,
        "request timed out": RequestTimeout,
        "balance_freezing.freezing validation.balance_freeze": InsufficientFunds,
        "order_creation.validation.validation": InvalidOrder,
    },
    fees={
        "trading": {
            "tier_based": True,
            "percentage": True,
            "taker": 0.25 / 100,
            "maker": 0.25 / 100,
        },
    },
    options={
        "order_types": {"market": 1, "limit": 2},
        "order_side": {"buy": 1, "sell": 2},
    },
)


class DXClient(BaseExchangeClient):
    """DX.Exchange client."""

    description = DESCRIPTION

    # --- market data -------------------------------------------------

    async def fetch_markets(self) -> list[Market]:
        response = await self.request("AssetManagement.GetInstruments")
        instruments = safe_value(safe_value(response, "result"), "instruments")
        if not isinstance(instruments, list):
            raise BadResponse(f"{self.id} GetInstruments returned no instruments: {response}", exchange_id=self.id, response=response)
        result = []
        for instrument in instruments:
            asset = safe_value(instrument, "asset", {})
            full_name = safe_string(asset, "fullName")
            if not full_name or "/" not in full_name:
                raise BadResponse(f"{self.id} malformed instrument name {full_name!r}", exchange_id=self.id, response=instrument)
            base_id, quote_id = full_name.split("/", 1)
            multiplier = safe_float(instrument, "meQuantityMultiplier")
            amount_precision = 0
            if multiplier:
                amount_precision = int(round(math.log10(multiplier)))
            base = self.common_currency_code(base_id)
            quote = self.common_currency_code(quote_id)
            result.append(Market(
                id=safe_string(instrument, "id"),
                numeric_id=safe_integer(instrument, "id"),
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=safe_string(asset, "baseCurrencyId"),
                quote_id=safe_string(asset, "quotedCurrencyId"),
                base_numeric_id=safe_integer(asset, "baseCurrencyId"),
                quote_numeric_id=safe_integer(asset, "quotedCurrencyId"),
                precision=MarketPrecision(
                    amount=amount_precision,
                    price=safe_integer(asset, "tailDigits"),
                ),
                limits=MarketLimits(
                    amount=MinMax(
                        min=safe_float(instrument, "minOrderQuantity"),
                        max=safe_float(instrument, "maxOrderQuantity"),
                    ),
                    price=MinMax(min=0),
                    cost=MinMax(min=0),
                ),
                info=instrument,
            ))
        return result

    def parse_ticker(self, ticker: Any, market: Market | None = None) -> Ticker:
        # tickers arrive keyed by instrument id: {"<id>": {...}}
        instrument_id = next(iter(ticker), None) if isinstance(ticker, dict) else None
        data = safe_value(ticker, instrument_id, {})
        market = self.safe_market(instrument_id, market)
        time_us = safe_integer(data, "time")
        timestamp = time_us // 1000 if time_us is not None else None
        last = safe_float(data, "last")
        return Ticker(
            symbol=market.symbol if market is not None else None,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            high=safe_float(data, "high24"),
            low=safe_float(data, "low24"),
            close=last,
            last=last,
            change=safe_float(data, "change"),
            base_volume=safe_float(data, "volume24"),
            quote_volume=safe_float(data, "volume24converted"),
            info=data,
        )

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("AssetManagement.GetTicker", params={
            "instrumentIds": [market.numeric_id],
            "currencyId": market.quote_numeric_id,
        })
        return self.parse_ticker(safe_value(safe_value(response, "result"), "tickers", {}), market)

    def parse_ohlcv(self, ohlcv: Any, market: Market | None = None, timeframe: str = "1m") -> OHLCV:
        date = safe_integer(ohlcv, "date")
        return OHLCV(
            timestamp=date * 1000 if date is not None else None,
            open=safe_float(ohlcv, "open"),
            high=safe_float(ohlcv, "high"),
            low=safe_float(ohlcv, "low"),
            close=safe_float(ohlcv, "close"),
            volume=safe_float(ohlcv, "volume"),
            info=ohlcv,
        )

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int | None = None,
    ) -> list[OHLCV]:
        await self.load_markets()
        market = self.market(symbol)
        if timeframe not in self.timeframes:
            raise BadRequest(f"{self.id} does not support timeframe {timeframe}", exchange_id=self.id)
        response = await self.request("AssetManagement.History", params={
            "timestampFrom": since,
            "timestampTill": None,
            "instrumentId": market.numeric_id,
            "type": self.timeframes[timeframe],
            "pagination": {"limit": limit, "offset": 0},
        })
        assets = safe_value(safe_value(response, "result"), "assets", [])
        return self.parse_ohlcvs(assets, market, timeframe, since, limit)

    def parse_bid_ask(self, bidask: Any, price_key: Any = 0, amount_key: Any = 1) -> list[float | None]:
        return [
            object_to_number(safe_value(bidask, price_key)),
            object_to_number(safe_value(bidask, amount_key)),
        ]

    async def fetch_order_book(self, symbol: str, limit: int | None = None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("OrderManagement.GetOrderBook", params={
            "instrumentId": market.numeric_id,
        })
        orderbook = safe_value(response, "result", {})
        # DX labels the bid side "sell" and the ask side "buy"
        return self.parse_order_book(orderbook, None, "sell", "buy", "price", "qty")

    # --- account -----------------------------------------------------

    async def sign_in(self) -> dict[str, Any]:
        """Exchange the API key and secret for a session access token."""
        self.check_required_credentials()
        response = await self.request("Authorization.LoginByToken", params={
            "token": self.api_key,
            "secret": self.api_secret,
        })
        result = safe_value(response, "result", {})
        token = safe_string(result, "token")
        if token is None:
            raise AuthenticationError(f"{self.id} sign_in() returned no token", exchange_id=self.id, response=response)
        expires_in = safe_integer(result, "expiry")
        self.options["access_token"] = token
        self.options["expires"] = self.milliseconds() + expires_in * 1000 if expires_in is not None else None
        logger.info("%s signed in, token expires in %s s", self.id, expires_in)
        return response

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.request("Balance.Get", api="private")
        balances = safe_value(safe_value(response, "result"), "balance", {})
        result: dict[str, Balance] = {}
        for currency_id, balance in balances.items():
            currency = self.currencies_by_id.get(currency_id)
            if currency is None:
                logger.debug("%s: skipping balance of unknown currency id %s", self.id, currency_id)
                continue
            result[currency.code] = Balance(
                currency=currency.code,
                free=safe_float(balance, "available"),
                used=safe_float(balance, "frozen"),
                total=safe_float(balance, "total"),
            )
        return self.parse_balance(result, response)

    def parse_order(self, order: Any, market: Market | None = None) -> Order:
        status_map = {"1": "open"}
        inner = safe_value(order, "order")
        if inner is not None:
            # order history wraps each order in an extra object
            order = inner
            status_map = {"1": "closed", "2": "canceled"}
        side = "sell" if safe_integer(order, "direction") == self.options["order_side"]["sell"] else "buy"
        order_type = "market" if safe_integer(order, "orderType") == self.options["order_types"]["market"] else "limit"
        status = status_map.get(safe_string(order, "status"))
        market = self.safe_market(safe_string(order, "instrumentId"), market)
        seconds = safe_integer(order, "time")
        timestamp = seconds * 1000 if seconds is not None else None
        amount = object_to_number(safe_value(order, "quantity"))
        filled = object_to_number(safe_value(order, "filledQuantity"))
        remaining = amount - filled if amount is not None and filled is not None else None
        return Order(
            id=safe_string(order, "externalOrderId"),
            symbol=market.symbol if market is not None else None,
            type=order_type,
            side=side,
            price=object_to_number(safe_value(order, "price")),
            amount=amount,
            filled=filled,
            remaining=remaining,
            status=status,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=order,
        )

    async def _fetch_orders_from(self, method: str, key: str, symbol: str | None, since: int | None, limit: int | None) -> list[Order]:
        await self.load_markets()
        request: dict[str, Any] = {"pagination": {"limit": limit, "offset": 0}}
        market = None
        if symbol is not None:
            market = self.market(symbol)
            request["instrumentId"] = market.numeric_id
        response = await self.request(method, api="private", params=request)
        return self.parse_orders(safe_value(safe_value(response, "result"), key, []), market, since, limit)

    async def fetch_open_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        return await self._fetch_orders_from("OrderManagement.OpenOrders", "orders", symbol, since, limit)

    async def fetch_closed_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        return await self._fetch_orders_from("OrderManagement.OrderHistory", "ordersForHistory", symbol, since, limit)

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: float | None = None,
    ) -> Order:
        await self.load_markets()
        market = self.market(symbol)
        if type not in self.options["order_types"]:
            raise InvalidOrder(f"{self.id} unknown order type {type}", exchange_id=self.id)
        if side not in self.options["order_side"]:
            raise InvalidOrder(f"{self.id} unknown order side {side}", exchange_id=self.id)
        order: dict[str, Any] = {
            "direction": self.options["order_side"][side],
            "instrumentId": market.numeric_id,
            "orderType": self.options["order_types"][type],
            "quantity": number_to_object(amount),
        }
        if type == "limit":
            if price is None:
                raise InvalidOrder(f"{self.id} limit orders require a price", exchange_id=self.id)
            order["price"] = number_to_object(price)
        response = await self.request("OrderManagement.Create", api="private", params={"order": order})
        return Order(
            id=safe_string(safe_value(response, "result"), "externalOrderId"),
            symbol=market.symbol,
            type=type,
            side=side,
            price=price,
            amount=amount,
            info=response,
        )

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        response = await self.request("OrderManagement.Cancel", api="private", params={"externalOrderId": id})
        return Order(id=id, symbol=symbol, status="canceled", info=response)

    # --- transport ---------------------------------------------------

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "POST",
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        envelope = {
            "jsonrpc": "2.0",
            "id": self.milliseconds(),
            "method": path,
            "params": [params or {}],
        }
        headers = {"Content-Type": "application/json-rpc"}
        if api == "private":
            token = safe_string(self.options, "access_token")
            if token is None:
                raise AuthenticationError(
                    f"{self.id} {path} endpoint requires a prior call to sign_in() method",
                    exchange_id=self.id,
                )
            expires = safe_integer(self.options, "expires")
            if expires is not None and self.milliseconds() >= expires:
                raise AuthenticationError(f"{self.id} access token expired, call sign_in() method", exchange_id=self.id)
            headers["Authorization"] = token
        return {"url": self.get_api_url(api), "method": "POST", "headers": headers, "body": self.json(envelope)}

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
        if not isinstance(response, dict):
            return
        error = response.get("error")
        if not error:
            return
        message = safe_string(error, "message") if isinstance(error, dict) else str(error)
        feedback = f"{self.id} {self.json(response)}"
        raise_mapped_error(
            self.exact_exceptions,
            self.broad_exceptions,
            [safe_string(error, "code"), message],
            feedback,
            exchange_id=self.id,
            response=response,
        )

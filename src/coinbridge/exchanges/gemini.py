"""Gemini exchange adapter."""

from __future__ import annotations

import base64
import logging
from typing import Any

from .base import BaseExchangeClient
from .description import ExchangeDescription
from .errors import (
    ArgumentsRequired,
    AuthenticationError,
    BadRequest,
    BadResponse,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidNonce,
    InvalidOrder,
    NotSupported,
    OrderNotFound,
    PermissionDenied,
    raise_mapped_error,
)
from .helpers import (
    extract_params,
    implode_params,
    iso8601,
    omit,
    safe_float,
    safe_integer,
    safe_string,
    safe_value,
    urlencode,
)
from .precision import precision_from_string
from .protocol import (
    Balance,
    Balances,
    Currency,
    DepositAddress,
    Fee,
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    Order,
    OrderBook,
    Ticker,
    Trade,
    Transaction,
)

logger = logging.getLogger(__name__)

DESCRIPTION = ExchangeDescription(
    id="gemini",
    name="Gemini",
    version="v1",
    countries=("US",),
    rate_limit=1500,
    urls={
        "api": {
            "public": "https://api.gemini.com",
            "private": "https://api.gemini.com",
            "web": "https://docs.gemini.com",
        },
        "test": {
            "public": "https://api.sandbox.gemini.com",
            "private": "https://api.sandbox.gemini.com",
            "web": "https://docs.gemini.com",
        },
        "www": "https://gemini.com/",
        "doc": "https://docs.gemini.com/rest-api",
    },
    api={
        "web": {"get": ["rest-api"]},
        "public": {
            "get": [
                "symbols",
                "pubticker/{symbol}",
                "book/{symbol}",
                "trades/{symbol}",
                "auction/{symbol}",
                "auction/{symbol}/history",
            ],
        },
        "private": {
            "post": [
                "order/new",
                "order/cancel",
                "order/cancel/session",
                "order/cancel/all",
                "order/status",
                "orders",
                "mytrades",
                "tradevolume",
                "transfers",
                "balances",
                "deposit/{currency}/newAddress",
                "withdraw/{currency}",
                "heartbeat",
            ],
        },
    },
    has={
        "createDepositAddress": True,
        "createMarketOrder": False,
        "fetchMyTrades": True,
        "fetchOpenOrders": True,
        "fetchOrder": True,
        "fetchTransactions": True,
        "withdraw": True,
    },
    http_exceptions={
        "400": BadRequest,
        "403": PermissionDenied,
        "404": OrderNotFound,
        "406": InsufficientFunds,
        "429": DDoSProtection,
        "500": ExchangeError,
        "502": ExchangeError,
        "503": ExchangeNotAvailable,
    },
    exact_exceptions={
        "AuctionNotOpen": BadRequest,
        "ClientOrderIdTooLong": BadRequest,
        "ClientOrderIdMustBeString": BadRequest,
        "ConflictingOptions": BadRequest,
        "EndpointMismatch": BadRequest,
        "EndpointNotFound": BadRequest,
        "IneligibleTiming": BadRequest,
        "InsufficientFunds": InsufficientFunds,
        "InvalidJson": BadRequest,
        "InvalidNonce": InvalidNonce,
        "InvalidOrderType": InvalidOrder,
        "InvalidPrice": InvalidOrder,
        "InvalidQuantity": InvalidOrder,
        "InvalidSide": InvalidOrder,
        "InvalidSignature": AuthenticationError,
        "InvalidSymbol": BadRequest,
        "InvalidTimestampInPayload": BadRequest,
        "Maintenance": ExchangeNotAvailable,
        "MarketNotOpen": InvalidOrder,
        "MissingApikeyHeader": AuthenticationError,
        "MissingOrderField": InvalidOrder,
        "MissingRole": AuthenticationError,
        "MissingPayloadHeader": AuthenticationError,
        "MissingSignatureHeader": AuthenticationError,
        "NoSSL": AuthenticationError,
        "OptionsMustBeArray": BadRequest,
        "OrderNotFound": OrderNotFound,
        "RateLimit": DDoSProtection,
        "System": ExchangeError,
        "UnsupportedOption": BadRequest,
    },
    fees={"trading": {"taker": 0.0035, "maker": 0.001}},
    options={"fetch_markets_method": "fetch_markets_from_web"},
)

SYMBOLS_SECTION = '<h1 id="symbols-and-minimums">Symbols and minimums</h1>'


class GeminiClient(BaseExchangeClient):
    """Gemini exchange client."""

    description = DESCRIPTION

    # --- markets -----------------------------------------------------

    async def fetch_markets(self) -> list[Market]:
        method = self.options.get("fetch_markets_method", "fetch_markets_from_api")
        if method not in {"fetch_markets_from_web", "fetch_markets_from_api"}:
            raise NotSupported(f"{self.id} unknown fetch_markets_method {method!r}", exchange_id=self.id)
        return await getattr(self, method)()

    async def fetch_markets_from_web(self) -> list[Market]:
        """Scrape the symbols table of the REST API docs for precision and minimums."""
        response = await self.request("rest-api", api="web")
        error = (
            f"{self.id} the {self.name} API doc HTML markup has changed, breaking the parser "
            f"of order limits and precision info for {self.name} markets."
        )
        sections = str(response).split(SYMBOLS_SECTION)
        if len(sections) != 2:
            raise NotSupported(error, exchange_id=self.id)
        tables = sections[1].split("tbody>")
        if len(tables) < 2:
            raise NotSupported(error, exchange_id=self.id)
        rows = tables[1].split("<tr>\n")
        if len(rows) < 2:
            raise NotSupported(error, exchange_id=self.id)
        result = []
        # the first element is whatever precedes the first row
        for row in rows[1:]:
            cells = row.split("</td>\n")
            if len(cells) < 7:
                raise NotSupported(error, exchange_id=self.id)
            # [symbol, quote, base, min amount, amount tick, price tick, '</tr>']
            market_id = cells[0].replace("<td>", "").replace('<code class="prettyprint">', "").replace("</code>", "")
            base_id = cells[2].replace("<td>", "")
            quote_id = cells[1].replace("<td>", "")
            min_amount = cells[3].replace("<td>", "").split(" ")
            amount_tick = cells[4].replace("<td>", "").split(" ")
            price_tick = cells[5].replace("<td>", "").split(" ")
            base = self.common_currency_code(base_id)
            quote = self.common_currency_code(quote_id)
            result.append(Market(
                id=market_id,
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=base_id.lower(),
                quote_id=quote_id.lower(),
                precision=MarketPrecision(
                    amount=precision_from_string(amount_tick[0]),
                    price=precision_from_string(price_tick[0]),
                ),
                limits=MarketLimits(amount=MinMax(min=safe_float(min_amount, 0))),
                info=row,
            ))
        logger.debug("%s: read %d markets from the API docs", self.id, len(result))
        return result

    async def fetch_markets_from_api(self) -> list[Market]:
        response = await self.request("symbols")
        if not isinstance(response, list) or not all(isinstance(market_id, str) for market_id in response):
            raise BadResponse(f"{self.id} symbols returned a malformed list: {response}", exchange_id=self.id, response=response)
        result = []
        for market_id in response:
            base_id = market_id[0:3]
            quote_id = market_id[3:6]
            base = self.common_currency_code(base_id.upper())
            quote = self.common_currency_code(quote_id.upper())
            result.append(Market(
                id=market_id,
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=base_id,
                quote_id=quote_id,
                info=market_id,
            ))
        return result

    # --- market data -------------------------------------------------

    async def fetch_order_book(self, symbol: str, limit: int | None = None) -> OrderBook:
        await self.load_markets()
        request: dict[str, Any] = {"symbol": self.market_id(symbol)}
        if limit is not None:
            request["limit_bids"] = limit
            request["limit_asks"] = limit
        response = await self.request("book/{symbol}", params=request)
        return self.parse_order_book(response, None, "bids", "asks", "price", "amount")

    def parse_ticker(self, ticker: Any, market: Market | None = None) -> Ticker:
        volume = safe_value(ticker, "volume", {})
        timestamp = safe_integer(volume, "timestamp")
        last = safe_float(ticker, "last")
        return Ticker(
            symbol=market.symbol if market is not None else None,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            bid=safe_float(ticker, "bid"),
            ask=safe_float(ticker, "ask"),
            close=last,
            last=last,
            base_volume=safe_float(volume, market.base) if market is not None else None,
            quote_volume=safe_float(volume, market.quote) if market is not None else None,
            info=ticker,
        )

    async def fetch_ticker(self, symbol: str) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("pubticker/{symbol}", params={"symbol": market.id})
        return self.parse_ticker(response, market)

    def parse_trade(self, trade: Any, market: Market | None = None) -> Trade:
        timestamp = safe_integer(trade, "timestampms")
        fee = None
        fee_cost = safe_float(trade, "fee_amount")
        if fee_cost is not None:
            fee = Fee(cost=fee_cost, currency=self.safe_currency_code(safe_string(trade, "fee_currency")))
        price = safe_float(trade, "price")
        amount = safe_float(trade, "amount")
        cost = price * amount if price is not None and amount is not None else None
        side = safe_string(trade, "type")
        return Trade(
            id=safe_string(trade, "tid"),
            order=safe_string(trade, "order_id"),
            symbol=market.symbol if market is not None else None,
            side=side.lower() if side is not None else None,
            price=price,
            amount=amount,
            cost=cost,
            fee=fee,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=trade,
        )

    async def fetch_trades(self, symbol: str, since: int | None = None, limit: int | None = None) -> list[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("trades/{symbol}", params={"symbol": market.id})
        return self.parse_trades(response, market, since, limit)

    # --- account -----------------------------------------------------

    async def fetch_balance(self) -> Balances:
        await self.load_markets()
        response = await self.request("balances", api="private", method="POST")
        result: dict[str, Balance] = {}
        for balance in response or []:
            code = self.common_currency_code(safe_string(balance, "currency"))
            if code is None:
                continue
            result[code] = Balance(
                currency=code,
                free=safe_float(balance, "available"),
                total=safe_float(balance, "amount"),
            )
        return self.parse_balance(result, response)

    def parse_order(self, order: Any, market: Market | None = None) -> Order:
        timestamp = safe_integer(order, "timestampms")
        filled = safe_float(order, "executed_amount")
        average = safe_float(order, "avg_execution_price")
        status = "closed"
        if safe_value(order, "is_live"):
            status = "open"
        if safe_value(order, "is_cancelled"):
            status = "canceled"
        order_type = safe_string(order, "type")
        if order_type == "exchange limit":
            order_type = "limit"
        elif order_type in {"market buy", "market sell"}:
            order_type = "market"
        if market is None:
            market = self.safe_market(safe_string(order, "symbol"))
        side = safe_string(order, "side")
        return Order(
            id=safe_string(order, "order_id"),
            symbol=market.symbol if market is not None else None,
            type=order_type,
            side=side.lower() if side is not None else None,
            price=safe_float(order, "price"),
            average=average,
            cost=filled * average if filled is not None and average is not None else None,
            amount=safe_float(order, "original_amount"),
            filled=filled,
            remaining=safe_float(order, "remaining_amount"),
            status=status,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=order,
        )

    async def fetch_order(self, id: str, symbol: str | None = None) -> Order:
        await self.load_markets()
        response = await self.request("order/status", api="private", method="POST", params={"order_id": id})
        return self.parse_order(response)

    async def fetch_open_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        await self.load_markets()
        response = await self.request("orders", api="private", method="POST")
        orders = self.parse_orders(response, None, since, limit)
        if symbol is not None:
            market = self.market(symbol)
            orders = [order for order in orders if order.symbol == market.symbol]
        return orders

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: float | None = None,
    ) -> Order:
        await self.load_markets()
        if type == "market":
            raise ExchangeError(f"{self.id} allows limit orders only", exchange_id=self.id)
        if price is None:
            raise ArgumentsRequired(f"{self.id} create_order() requires a price", exchange_id=self.id)
        market = self.market(symbol)
        response = await self.request("order/new", api="private", method="POST", params={
            "client_order_id": str(self.nonce()),
            "symbol": market.id,
            "amount": str(amount),
            "price": str(price),
            "side": side,
            "type": "exchange limit",
        })
        return Order(
            id=safe_string(response, "order_id"),
            symbol=market.symbol,
            type="limit",
            side=side,
            price=price,
            amount=amount,
            info=response,
        )

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        await self.load_markets()
        response = await self.request("order/cancel", api="private", method="POST", params={"order_id": id})
        return self.parse_order(response)

    async def fetch_my_trades(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Trade]:
        if symbol is None:
            raise ArgumentsRequired(f"{self.id} fetch_my_trades() requires a symbol argument", exchange_id=self.id)
        await self.load_markets()
        market = self.market(symbol)
        request: dict[str, Any] = {"symbol": market.id}
        if limit is not None:
            request["limit_trades"] = limit
        if since is not None:
            request["timestamp"] = since // 1000
        response = await self.request("mytrades", api="private", method="POST", params=request)
        return self.parse_trades(response, market, since, limit)

    async def withdraw(self, code: str, amount: float, address: str, tag: str | None = None) -> Transaction:
        self.check_address(address)
        await self.load_markets()
        currency = self.currency(code)
        response = await self.request("withdraw/{currency}", api="private", method="POST", params={
            "currency": currency.id,
            "amount": amount,
            "address": address,
        })
        return Transaction(
            id=safe_string(response, "txHash"),
            txid=safe_string(response, "txHash"),
            currency=currency.code,
            amount=amount,
            address=address,
            type="withdrawal",
            info=response,
        )

    async def fetch_transactions(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        await self.load_markets()
        request: dict[str, Any] = {}
        if limit is not None:
            request["limit_transfers"] = limit
        if since is not None:
            request["timestamp"] = since
        response = await self.request("transfers", api="private", method="POST", params=request)
        currency = self.currency(code) if code is not None else None
        return self.parse_transactions(response, currency, since, limit)

    def parse_transaction(self, transaction: Any, currency: Currency | None = None) -> Transaction:
        timestamp = safe_integer(transaction, "timestampms")
        code = self.safe_currency_code(safe_string(transaction, "currency"))
        if code is None and currency is not None:
            code = currency.code
        kind = safe_string(transaction, "type")
        if kind is not None:
            kind = kind.lower()
            if kind == "withdraw":
                kind = "withdrawal"
        # Advanced or Complete transfers are available for trading
        status = "ok" if safe_value(transaction, "status") else "pending"
        fee = None
        fee_cost = safe_float(transaction, "feeAmount")
        if fee_cost is not None:
            fee = Fee(cost=fee_cost, currency=code)
        return Transaction(
            id=safe_string(transaction, "eid"),
            txid=safe_string(transaction, "txHash"),
            currency=code,
            amount=safe_float(transaction, "amount"),
            address=safe_string(transaction, "destination"),
            type=kind,
            status=status,
            fee=fee,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=transaction,
        )

    async def create_deposit_address(self, code: str) -> DepositAddress:
        await self.load_markets()
        currency = self.currency(code)
        response = await self.request(
            "deposit/{currency}/newAddress",
            api="private",
            method="POST",
            params={"currency": currency.id},
        )
        address = self.check_address(safe_string(response, "address"))
        return DepositAddress(currency=currency.code, address=address, info=response)

    # --- transport ---------------------------------------------------

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        params = params or {}
        url = "/" + implode_params(path, params)
        if api != "web":
            url = "/" + self.version + url
        query = omit(params, extract_params(path))
        headers = None
        if api == "private":
            self.check_required_credentials()
            request = {"request": url, "nonce": self.nonce(), **query}
            payload = base64.b64encode(self.json(request).encode()).decode()
            signature = self.generate_signature(self.api_secret, payload, "sha384")
            headers = {
                "Content-Type": "text/plain",
                "X-GEMINI-APIKEY": self.api_key,
                "X-GEMINI-PAYLOAD": payload,
                "X-GEMINI-SIGNATURE": signature,
            }
        elif query:
            url += "?" + urlencode(query)
        return {"url": self.get_api_url(api) + url, "method": method, "headers": headers, "body": None}

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
        # {"result": "error", "reason": "BadNonce", "message": "Out-of-sequence nonce ..."}
        if not isinstance(response, dict) or safe_string(response, "result") != "error":
            return
        reason_code = safe_string(response, "reason")
        message = safe_string(response, "message")
        raise_mapped_error(
            self.exact_exceptions,
            self.broad_exceptions,
            [reason_code, message],
            f"{self.id} {self.json(response)}",
            exchange_id=self.id,
            response=response,
        )

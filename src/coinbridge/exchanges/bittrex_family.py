"""Shared implementation for exchanges that clone the Bittrex v1.1 REST API.

Several exchanges copied Bittrex's API: the ``/public/get<name>``,
``/account/get<name>`` and ``/market/<name>`` routes, the ``apisign``
HMAC-SHA512 header, and the ``{"success", "message", "result"}`` envelope.
They differ in a few field names and flags. :class:`BittrexFamilyApi` holds the
common behaviour and is parameterized by a :class:`BittrexFamilyConfig`. An
adapter creates one and delegates to it. Parsing of orders, trades and
transactions stays on the adapter, so the helper always calls back into it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import (
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
    PermissionDenied,
    BadResponse,
    raise_mapped_error,
)
from .helpers import (
    iso8601,
    parse8601,
    safe_bool,
    safe_float,
    safe_string,
    safe_string_2,
    safe_value,
    urlencode,
)
from .normalization import market_id_to_symbol
from .protocol import (
    Balance,
    Balances,
    Currency,
    DepositAddress,
    Market,
    MarketLimits,
    MarketPrecision,
    MinMax,
    Order,
    Ticker,
    Trade,
    Transaction,
)

if TYPE_CHECKING:
    from .base import BaseExchangeClient

logger = logging.getLogger(__name__)

# Error messages common to the whole API family.
BITTREX_EXCEPTIONS = {
    "APISIGN_NOT_PROVIDED": AuthenticationError,
    "INVALID_SIGNATURE": AuthenticationError,
    "INVALID_CURRENCY": ExchangeError,
    "INVALID_PERMISSION": PermissionDenied,
    "INSUFFICIENT_FUNDS": InsufficientFunds,
    "QUANTITY_NOT_PROVIDED": InvalidOrder,
    "MIN_TRADE_REQUIREMENT_NOT_MET": InvalidOrder,
    "ORDER_NOT_OPEN": OrderNotFound,
    "INVALID_ORDER": InvalidOrder,
    "UUID_INVALID": OrderNotFound,
    "RATE_NOT_PROVIDED": InvalidOrder,
    "WHITELIST_VIOLATION_IP": PermissionDenied,
    "APIKEY_INVALID": AuthenticationError,
}

BITTREX_BROAD_EXCEPTIONS = {
    "throttled": DDoSProtection,
    "problem": ExchangeNotAvailable,
}

# Bittrex API paths on the account section that do not take a "get" prefix.
UNPREFIXED_ACCOUNT_PATHS = {"withdraw"}


@dataclass(frozen=True)
class BittrexFamilyConfig:
    """What differs between members of the Bittrex API family."""

    order_id_field: str = "uuid"
    symbol_separator: str = "-"
    disable_nonce: bool = False
    parse_order_status: bool = False
    precision: int = 8
    withdrawal_id_fields: tuple[str, ...] = ("uuid",)


class BittrexFamilyApi:
    """Bittrex-style endpoints bound to one client."""

    def __init__(self, client: "BaseExchangeClient", config: BittrexFamilyConfig):
        self.client = client
        self.config = config

    @property
    def id(self) -> str:
        return self.client.id

    # --- transport ---------------------------------------------------

    def sign(self, path: str, api: str = "public", method: str = "GET", params: dict[str, Any] | None = None) -> dict[str, Any]:
        client = self.client
        params = params or {}
        url = f"{client.get_api_url(api)}/{client.version}/{api}/"
        headers = None
        if api == "public":
            url += method.lower() + path
            query = urlencode(params)
            if query:
                url += "?" + query
        else:
            client.check_required_credentials()
            if (api == "account" and path not in UNPREFIXED_ACCOUNT_PATHS) or path == "openorders":
                url += method.lower()
            request: dict[str, Any] = {"apikey": client.api_key}
            if not self.config.disable_nonce:
                request["nonce"] = client.nonce()
            url += path + "?" + urlencode({**request, **params})
            headers = {"apisign": client.generate_signature(client.api_secret, url, "sha512")}
        return {"url": url, "method": method, "headers": headers, "body": None}

    def handle_errors(self, body: str | None, response: Any) -> None:
        if not isinstance(response, dict):
            return
        success = safe_bool(response, "success")
        if success is None:
            raise BadResponse(f"{self.id} malformed response: {body}", exchange_id=self.id, response=response)
        if success:
            return
        message = safe_string(response, "message")
        raise_mapped_error(
            self.client.exact_exceptions,
            self.client.broad_exceptions,
            [message],
            f"{self.id} {body}",
            exchange_id=self.id,
            response=response,
        )

    async def _result(self, path: str, api: str = "public", params: dict[str, Any] | None = None) -> Any:
        response = await self.client.request(path, api=api, method="GET", params=params)
        return safe_value(response, "result")

    # --- markets and currencies -------------------------------------

    async def fetch_markets(self) -> list[Market]:
        client = self.client
        markets = await self._result("markets")
        if not isinstance(markets, list):
            raise BadResponse(f"{self.id} getmarkets returned no markets", exchange_id=self.id, response=markets)
        result = []
        for market in markets:
            market_id = safe_string(market, "MarketName")
            base_id = safe_string(market, "MarketCurrency")
            quote_id = safe_string(market, "BaseCurrency")
            if not (market_id and base_id and quote_id):
                raise BadResponse(f"{self.id} getmarkets returned a malformed market: {market}", exchange_id=self.id, response=market)
            base = client.common_currency_code(base_id)
            quote = client.common_currency_code(quote_id)
            precision = self.config.precision
            result.append(Market(
                id=market_id,
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=base_id,
                quote_id=quote_id,
                active=safe_bool(market, "IsActive"),
                precision=MarketPrecision(amount=precision, price=precision),
                limits=MarketLimits(
                    amount=MinMax(min=safe_float(market, "MinTradeSize")),
                    price=MinMax(min=10 ** -precision),
                ),
                info=market,
            ))
        return result

    async def fetch_currencies(self) -> list[Currency]:
        currencies = await self._result("currencies")
        result = []
        for currency in currencies or []:
            currency_id = safe_string(currency, "Currency")
            result.append(Currency(
                id=currency_id,
                code=self.client.common_currency_code(currency_id),
                precision=self.config.precision,
                active=safe_bool(currency, "IsActive"),
                fee=safe_float(currency, "TxFee"),
                info=currency,
            ))
        return result

    # --- market data -------------------------------------------------

    def parse_ticker(self, ticker: Any, market: Market | None = None) -> Ticker:
        timestamp = parse8601(safe_string(ticker, "TimeStamp"))
        market = self.client.safe_market(safe_string(ticker, "MarketName"), market)
        previous = safe_float(ticker, "PrevDay")
        last = safe_float(ticker, "Last")
        change = None
        percentage = None
        if last is not None and previous is not None:
            change = last - previous
            if previous > 0:
                percentage = change / previous * 100
        return Ticker(
            symbol=market.symbol if market is not None else None,
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            high=safe_float(ticker, "High"),
            low=safe_float(ticker, "Low"),
            bid=safe_float(ticker, "Bid"),
            ask=safe_float(ticker, "Ask"),
            open=previous,
            close=last,
            last=last,
            change=change,
            percentage=percentage,
            base_volume=safe_float(ticker, "Volume"),
            quote_volume=safe_float(ticker, "BaseVolume"),
            info=ticker,
        )

    async def fetch_ticker(self, symbol: str) -> Ticker:
        client = self.client
        await client.load_markets()
        market = client.market(symbol)
        result = await self._result("marketsummary", params={"market": market.id})
        ticker = result[0] if isinstance(result, list) and result else result
        if not ticker:
            raise BadResponse(f"{self.id} getmarketsummary returned nothing for {symbol}", exchange_id=self.id)
        return client.parse_ticker(ticker, market)

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict[str, Ticker]:
        client = self.client
        await client.load_markets()
        summaries = await self._result("marketsummaries")
        result: dict[str, Ticker] = {}
        for summary in summaries or []:
            market_id = safe_string(summary, "MarketName")
            market = client.safe_market(market_id)
            if market is None:
                logger.debug("%s: skipping summary of unlisted market %s", self.id, market_id)
                continue
            ticker = client.parse_ticker(summary, market)
            result[market.symbol] = ticker
        if symbols is not None:
            wanted = {client.market(s).symbol for s in symbols}
            result = {s: t for s, t in result.items() if s in wanted}
        return result

    async def fetch_trades(self, symbol: str, since: int | None = None, limit: int | None = None) -> list[Trade]:
        client = self.client
        await client.load_markets()
        market = client.market(symbol)
        result = await self._result("markethistory", params={"market": market.id, "count": limit})
        return client.parse_trades(result, market, since, limit)

    # --- account -----------------------------------------------------

    async def fetch_balance(self) -> Balances:
        client = self.client
        await client.load_markets()
        response = await client.request("balances", api="account", method="GET")
        result: dict[str, Balance] = {}
        for balance in safe_value(response, "result", []):
            code = client.safe_currency_code(safe_string(balance, "Currency"))
            if code is None:
                continue
            result[code] = Balance(
                currency=code,
                free=safe_float(balance, "Available"),
                total=safe_float(balance, "Balance"),
            )
        return client.parse_balance(result, response)

    async def create_order(self, symbol: str, type: str, side: str, amount: float, price: float | None = None) -> Order:
        client = self.client
        if type != "limit":
            raise InvalidOrder(f"{self.id} allows limit orders only", exchange_id=self.id)
        if side not in {"buy", "sell"}:
            raise InvalidOrder(f"{self.id} unknown order side {side}", exchange_id=self.id)
        if price is None:
            raise InvalidOrder(f"{self.id} limit orders require a price", exchange_id=self.id)
        await client.load_markets()
        market = client.market(symbol)
        response = await client.request(side + type, api="market", method="GET", params={
            "market": market.id,
            "quantity": client.amount_to_precision(symbol, amount),
            "rate": client.price_to_precision(symbol, price),
        })
        return Order(
            id=safe_string(safe_value(response, "result"), self.config.order_id_field),
            symbol=market.symbol,
            type=type,
            side=side,
            price=price,
            amount=amount,
            status="open",
            info=response,
        )

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        client = self.client
        await client.load_markets()
        response = await client.request("cancel", api="market", method="GET", params={
            self.config.order_id_field: id,
        })
        return Order(id=id, symbol=symbol, status="canceled", info=response)

    async def fetch_open_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        client = self.client
        await client.load_markets()
        params: dict[str, Any] = {}
        market = None
        if symbol is not None:
            market = client.market(symbol)
            params["market"] = market.id
        result = await self._result("openorders", api="market", params=params)
        return client.parse_orders(result, market, since, limit)

    async def fetch_order(self, id: str, symbol: str | None = None) -> Order:
        client = self.client
        await client.load_markets()
        market = client.market(symbol) if symbol is not None else None
        result = await self._result("order", api="account", params={self.config.order_id_field: id})
        if isinstance(result, list):
            result = result[0] if result else None
        if not result:
            raise OrderNotFound(f"{self.id} order {id} not found", exchange_id=self.id)
        return client.parse_order(result, market)

    async def fetch_deposit_address(self, code: str) -> DepositAddress:
        client = self.client
        await client.load_markets()
        currency = client.currency(code)
        result = await self._result("depositaddress", api="account", params={"currency": currency.id})
        address = client.check_address(safe_string(result, "Address"))
        return DepositAddress(currency=currency.code, address=address, info=result)

    async def withdraw(self, code: str, amount: float, address: str, tag: str | None = None) -> Transaction:
        client = self.client
        client.check_address(address)
        await client.load_markets()
        currency = client.currency(code)
        params: dict[str, Any] = {
            "currency": currency.id,
            "quantity": amount,
            "address": address,
        }
        if tag is not None:
            params["paymentid"] = tag
        response = await client.request("withdraw", api="account", method="GET", params=params)
        result = safe_value(response, "result", {})
        withdrawal_id = None
        for field_name in self.config.withdrawal_id_fields:
            withdrawal_id = safe_string(result, field_name)
            if withdrawal_id is not None:
                break
        return Transaction(
            id=withdrawal_id,
            currency=currency.code,
            amount=amount,
            address=address,
            tag=tag,
            type="withdrawal",
            status="pending",
            info=response,
        )

    # --- helpers for adapters -----------------------------------------

    def parse_symbol(self, market_id: str) -> str:
        """Unified symbol for a market id the exchange did not list."""
        return market_id_to_symbol(market_id, self.config.symbol_separator, self.client.common_currencies)

    @staticmethod
    def order_id(order: Any) -> str | None:
        return safe_string_2(order, "OrderUuid", "OrderId")

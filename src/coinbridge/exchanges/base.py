"""Base client class for exchange adapters."""

from __future__ import annotations

import asyncio
import base64
import copy
import hashlib
import hmac
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, ClassVar, Mapping

import aiohttp

from .description import ExchangeDescription
from .errors import (
    BASE_HTTP_EXCEPTIONS,
    AuthenticationError,
    BadRequest,
    BadResponse,
    BadSymbol,
    ExchangeError,
    InvalidAddress,
    NetworkError,
    NotSupported,
    RequestTimeout,
)
from .helpers import (
    filter_by_since_limit,
    implode_params,
    iso8601,
    safe_float,
    safe_value,
    sort_by,
    urlencode,
)
from .normalization import common_currency_code, normalize_symbol
from .precision import ROUND, TRUNCATE, decimal_to_precision
from .protocol import (
    OHLCV,
    Balance,
    Balances,
    Currency,
    DepositAddress,
    Market,
    Order,
    OrderBook,
    Ticker,
    Trade,
    Transaction,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "coinbridge/1.0"
SUPPORTED_DIGESTS = {"sha256", "sha384", "sha512"}


class ProxyConfig:
    """HTTP proxy configuration."""

    def __init__(self, url: str | None = None, username: str | None = None, password: str | None = None):
        self.url = url
        self.username = username
        self.password = password

    @property
    def proxy_url(self) -> str | None:
        if not self.url:
            return None
        if self.username and self.password:
            protocol = self.url.split("://")[0] if "://" in self.url else "http"
            rest = self.url.split("://")[1] if "://" in self.url else self.url
            return f"{protocol}://{self.username}:{self.password}@{rest}"
        return self.url


class BaseExchangeClient(ABC):
    """Base class for all exchange adapters.

    Subclasses set ``description`` and implement ``fetch_markets`` plus
    whichever optional operations the exchange offers. Operations an exchange
    lacks raise :class:`NotSupported`.
    """

    description: ClassVar[ExchangeDescription]

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        *,
        sandbox: bool = False,
        proxy: ProxyConfig | None = None,
        timeout_ms: int = 10000,
        user_agent: str = DEFAULT_USER_AGENT,
        **options: Any,
    ):
        """Initialize exchange client.

        Args:
            api_key: API key (not needed for public endpoints)
            api_secret: API secret
            sandbox: Use sandbox/testnet environment
            proxy: Proxy configuration
            timeout_ms: Per-request transport timeout in milliseconds
            user_agent: User-Agent header sent with every request
            **options: Exchange-specific options, merged over the defaults
        """
        desc = self.description
        self.id = desc.id
        self.name = desc.name
        self.version = desc.version
        self.api_key = api_key
        self.api_secret = api_secret
        self.sandbox = sandbox
        self.proxy = proxy or ProxyConfig()
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent
        self.options: dict[str, Any] = {**copy.deepcopy(desc.options), **options}
        self.has = desc.capabilities()
        self.timeframes = dict(desc.timeframes)
        self.common_currencies = desc.currency_aliases()
        self.exact_exceptions = dict(desc.exact_exceptions)
        self.broad_exceptions = dict(desc.broad_exceptions)
        self.http_exceptions = {**BASE_HTTP_EXCEPTIONS, **desc.http_exceptions}
        self.session: aiohttp.ClientSession | None = None

        self.markets: dict[str, Market] = {}
        self.markets_by_id: dict[str, Market] = {}
        self.symbols: list[str] = []
        self.ids: list[str] = []
        self.currencies: dict[str, Currency] = {}
        self.currencies_by_id: dict[str, Currency] = {}

        if sandbox and "test" not in desc.urls:
            raise NotSupported(f"{self.id} does not have a sandbox environment", exchange_id=self.id)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} sandbox={self.sandbox}>"

    async def __aenter__(self) -> "BaseExchangeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # urls, credentials, signing primitives

    def get_api_url(self, api: str = "public") -> str:
        """Base URL for an API section, honouring sandbox mode."""
        urls = self.description.urls
        api_urls = urls["test"] if self.sandbox else urls.get("api")
        if isinstance(api_urls, Mapping):
            url = api_urls.get(api)
            if url is None:
                raise NotSupported(f"{self.id} has no {api!r} API", exchange_id=self.id)
        else:
            url = api_urls
        if self.description.hostname:
            url = implode_params(url, {"hostname": self.description.hostname})
        return url

    @staticmethod
    def generate_signature(secret: str, message: str | bytes, method: str = "sha256", digest: str = "hex") -> str:
        """Generate an HMAC signature.

        Args:
            secret: Secret key
            message: Message to sign
            method: Hash function (sha256, sha384 or sha512)
            digest: Output encoding ('hex' or 'base64')

        Returns:
            Encoded signature
        """
        if method not in SUPPORTED_DIGESTS:
            raise ValueError(f"Unsupported signature method: {method}")
        payload = message.encode() if isinstance(message, str) else message
        mac = hmac.new(secret.encode(), payload, getattr(hashlib, method))
        if digest == "hex":
            return mac.hexdigest()
        if digest == "base64":
            return base64.b64encode(mac.digest()).decode()
        raise ValueError(f"Unsupported digest encoding: {digest}")

    @staticmethod
    def milliseconds() -> int:
        return int(time.time() * 1000)

    def nonce(self) -> int:
        return self.milliseconds()

    @staticmethod
    def json(data: Any) -> str:
        return json.dumps(data, separators=(",", ":"))

    def check_required_credentials(self) -> None:
        for name, required in self.description.required_credentials.items():
            if required and not getattr(self, name, None):
                raise AuthenticationError(f'{self.id} requires "{name}" credential', exchange_id=self.id)

    def check_address(self, address: str | None) -> str:
        """Validate a deposit or withdrawal address without touching the network."""
        if address is None or not isinstance(address, str):
            raise InvalidAddress(f"{self.id} address is undefined", exchange_id=self.id)
        if (
            len(address) < self.description.min_address_length
            or any(ch.isspace() for ch in address)
            or len(set(address)) == 1
        ):
            raise InvalidAddress(
                f"{self.id} address is invalid or has less than "
                f"{self.description.min_address_length} characters: {address!r}",
                exchange_id=self.id,
            )
        return address

    # ------------------------------------------------------------------
    # markets and currencies

    def common_currency_code(self, code: str | None) -> str | None:
        return common_currency_code(code, self.common_currencies)

    def safe_currency_code(self, currency_id: str | None) -> str | None:
        if currency_id is None:
            return None
        currency = self.currencies_by_id.get(currency_id)
        if currency is not None:
            return currency.code
        return self.common_currency_code(currency_id)

    async def load_markets(self, reload: bool = False) -> dict[str, Market]:
        """Fetch and cache the instrument list.

        Subsequent calls return the cache unless ``reload`` is set.
        """
        if self.markets and not reload:
            return self.markets
        currencies = None
        if self.has.get("fetchCurrencies"):
            currencies = await self.fetch_currencies()
        markets = await self.fetch_markets()
        self.set_markets(markets, currencies)
        logger.info("Loaded %d markets and %d currencies for %s", len(self.markets), len(self.currencies), self.id)
        return self.markets

    def set_markets(self, markets: list[Market], currencies: list[Currency] | None = None) -> None:
        if not isinstance(markets, list):
            raise BadResponse(f"{self.id} fetch_markets() returned {type(markets).__name__}", exchange_id=self.id, response=markets)
        self.markets = {m.symbol: m for m in markets}
        self.markets_by_id = {str(m.id): m for m in markets}
        self.symbols = sorted(self.markets)
        self.ids = sorted(self.markets_by_id)

        if currencies is None:
            currencies = self._currencies_from_markets(markets)
        self.currencies = {c.code: c for c in currencies}
        self.currencies_by_id = {str(c.id): c for c in currencies}

    @staticmethod
    def _currencies_from_markets(markets: list[Market]) -> list[Currency]:
        found: dict[str, Currency] = {}
        for m in markets:
            legs = (
                (m.base_id, m.base, m.base_numeric_id, m.precision.amount),
                (m.quote_id, m.quote, m.quote_numeric_id, m.precision.price),
            )
            for currency_id, code, numeric_id, precision in legs:
                if code and code not in found:
                    found[code] = Currency(
                        id=currency_id if currency_id is not None else code,
                        code=code,
                        numeric_id=numeric_id,
                        precision=precision,
                    )
        return list(found.values())

    def market(self, symbol: str) -> Market:
        """Look up a market by unified symbol or exchange id."""
        if not self.markets:
            raise ExchangeError(f"{self.id} markets not loaded", exchange_id=self.id)
        if symbol in self.markets:
            return self.markets[symbol]
        if symbol in self.markets_by_id:
            return self.markets_by_id[symbol]
        normalized = normalize_symbol(symbol)
        if normalized in self.markets:
            return self.markets[normalized]
        raise BadSymbol(f"{self.id} does not have market symbol {symbol}", exchange_id=self.id)

    def market_id(self, symbol: str) -> str:
        return self.market(symbol).id

    def safe_market(self, market_id: str | None, market: Market | None = None) -> Market | None:
        if market_id is not None and str(market_id) in self.markets_by_id:
            return self.markets_by_id[str(market_id)]
        if market_id is not None:
            logger.debug("%s: unknown market id %s", self.id, market_id)
        return market

    def currency(self, code: str) -> Currency:
        if not self.currencies:
            raise ExchangeError(f"{self.id} currencies not loaded", exchange_id=self.id)
        if code in self.currencies:
            return self.currencies[code]
        upper = code.upper()
        if upper in self.currencies:
            return self.currencies[upper]
        raise BadRequest(f"{self.id} does not have currency code {code}", exchange_id=self.id)

    def amount_to_precision(self, symbol: str, amount: float) -> str:
        precision = self.market(symbol).precision.amount
        return decimal_to_precision(amount, TRUNCATE, precision)

    def price_to_precision(self, symbol: str, price: float) -> str:
        precision = self.market(symbol).precision.price
        return decimal_to_precision(price, ROUND, precision)

    # ------------------------------------------------------------------
    # transport

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            connector = aiohttp.TCPConnector()
            self.session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self.user_agent},
            )
        return self.session

    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build the outbound request.

        The default is an unsigned public GET with a query string. Adapters
        override this with their authentication scheme.
        """
        params = params or {}
        url = self.get_api_url(api) + "/" + implode_params(path, params)
        query = urlencode(params)
        if query:
            url += "?" + query
        return {"url": url, "method": method, "headers": None, "body": None}

    async def request(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Sign, send and error-check one API call. Returns the decoded body."""
        signed = self.sign(path, api, method, params or {})
        logger.debug("%s %s %s/%s", self.id, signed["method"], api, path)
        return await self.fetch(signed["url"], signed["method"], signed["headers"], signed["body"])

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str | None = None,
    ) -> Any:
        session = await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000)
        try:
            async with session.request(
                method,
                url,
                headers=headers,
                data=body,
                proxy=self.proxy.proxy_url,
                timeout=timeout,
            ) as resp:
                status = resp.status
                reason = resp.reason
                text = await resp.text()
        except asyncio.TimeoutError as exc:
            raise RequestTimeout(f"{self.id} {method} {url} request timed out", exchange_id=self.id) from exc
        except aiohttp.ClientError as exc:
            raise NetworkError(f"{self.id} {method} {url} {exc}", exchange_id=self.id) from exc

        response = self.parse_json(text)
        self.handle_errors(status, reason, url, method, headers, text, response)
        self.handle_http_status_code(status, reason, url, method, text)
        return response

    @staticmethod
    def parse_json(text: str | None) -> Any:
        """Decode a JSON body. Non-JSON bodies (HTML pages) come back as text."""
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

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
        """Raise a taxonomy error for an exchange-level failure in ``response``.

        Runs before the HTTP status check. Adapters override this.
        """

    def handle_http_status_code(self, code: int, reason: str | None, url: str, method: str, body: str | None) -> None:
        if 200 <= code < 300:
            return
        error_class = self.http_exceptions.get(str(code))
        if error_class is None and code < 400:
            return
        error_class = error_class or ExchangeError
        raise error_class(f"{self.id} {method} {url} {code} {reason} {body}", exchange_id=self.id, response=body)

    async def close(self) -> None:
        """Close connections."""
        if self.session:
            await self.session.close()
            self.session = None

    # ------------------------------------------------------------------
    # parsing

    def parse_balance(self, balances: dict[str, Balance], info: Any) -> Balances:
        for balance in balances.values():
            balance.fill_missing()
        return Balances(balances=balances, info=info)

    def parse_bid_ask(self, bidask: Any, price_key: Any = 0, amount_key: Any = 1) -> list[float | None]:
        return [safe_float(bidask, price_key), safe_float(bidask, amount_key)]

    def parse_bids_asks(self, bidasks: Any, price_key: Any = 0, amount_key: Any = 1) -> list[list[float]]:
        result = []
        for bidask in bidasks or []:
            parsed = self.parse_bid_ask(bidask, price_key, amount_key)
            if parsed[0] is not None:
                result.append(parsed)
        return result

    def parse_order_book(
        self,
        orderbook: Any,
        timestamp: int | None = None,
        bids_key: str = "bids",
        asks_key: str = "asks",
        price_key: Any = 0,
        amount_key: Any = 1,
    ) -> OrderBook:
        bids = self.parse_bids_asks(safe_value(orderbook, bids_key, []), price_key, amount_key)
        asks = self.parse_bids_asks(safe_value(orderbook, asks_key, []), price_key, amount_key)
        return OrderBook(
            bids=sorted(bids, key=lambda entry: entry[0], reverse=True),
            asks=sorted(asks, key=lambda entry: entry[0]),
            timestamp=timestamp,
            datetime=iso8601(timestamp),
            info=orderbook,
        )

    def parse_ticker(self, ticker: Any, market: Market | None = None) -> Ticker:
        raise NotSupported(f"{self.id} parse_ticker() is not supported", exchange_id=self.id)

    def parse_order(self, order: Any, market: Market | None = None) -> Order:
        raise NotSupported(f"{self.id} parse_order() is not supported", exchange_id=self.id)

    def parse_trade(self, trade: Any, market: Market | None = None) -> Trade:
        raise NotSupported(f"{self.id} parse_trade() is not supported", exchange_id=self.id)

    def parse_transaction(self, transaction: Any, currency: Currency | None = None) -> Transaction:
        raise NotSupported(f"{self.id} parse_transaction() is not supported", exchange_id=self.id)

    def parse_ohlcv(self, ohlcv: Any, market: Market | None = None, timeframe: str = "1m") -> OHLCV:
        return OHLCV(
            timestamp=safe_value(ohlcv, 0),
            open=safe_float(ohlcv, 1),
            high=safe_float(ohlcv, 2),
            low=safe_float(ohlcv, 3),
            close=safe_float(ohlcv, 4),
            volume=safe_float(ohlcv, 5),
            info=ohlcv,
        )

    def parse_ohlcvs(
        self,
        ohlcvs: Any,
        market: Market | None = None,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int | None = None,
    ) -> list[OHLCV]:
        result = [self.parse_ohlcv(item, market, timeframe) for item in ohlcvs or []]
        return filter_by_since_limit(sort_by(result, "timestamp"), since, limit)

    def parse_orders(
        self,
        orders: Any,
        market: Market | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        result = sort_by([self.parse_order(order, market) for order in orders or []], "timestamp")
        symbol = market.symbol if market is not None else None
        return self.filter_by_symbol_since_limit(result, symbol, since, limit)

    def parse_trades(
        self,
        trades: Any,
        market: Market | None = None,
        since: int | None = None,
        limit: int | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> list[Trade]:
        result = [self.parse_trade(trade, market) for trade in trades or []]
        if overrides:
            result = [replace(trade, **overrides) for trade in result]
        result = sort_by(result, "timestamp")
        symbol = market.symbol if market is not None else None
        return self.filter_by_symbol_since_limit(result, symbol, since, limit)

    def parse_transactions(
        self,
        transactions: Any,
        currency: Currency | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        result = sort_by([self.parse_transaction(tx, currency) for tx in transactions or []], "timestamp")
        code = currency.code if currency is not None else None
        return self.filter_by_currency_since_limit(result, code, since, limit)

    @staticmethod
    def filter_by_symbol_since_limit(items: list[Any], symbol: str | None, since: int | None, limit: int | None) -> list[Any]:
        if symbol is not None:
            items = [item for item in items if item.symbol == symbol]
        return filter_by_since_limit(items, since, limit)

    @staticmethod
    def filter_by_currency_since_limit(items: list[Any], code: str | None, since: int | None, limit: int | None) -> list[Any]:
        if code is not None:
            items = [item for item in items if item.currency == code]
        return filter_by_since_limit(items, since, limit)

    # ------------------------------------------------------------------
    # unified operations, all optional

    def _not_supported(self, method: str) -> NotSupported:
        return NotSupported(f"{self.id} {method}() is not supported", exchange_id=self.id)

    @abstractmethod
    async def fetch_markets(self) -> list[Market]:
        """Fetch the exchange's instrument list."""
        ...

    async def fetch_currencies(self) -> list[Currency]:
        raise self._not_supported("fetch_currencies")

    async def fetch_ticker(self, symbol: str) -> Ticker:
        raise self._not_supported("fetch_ticker")

    async def fetch_tickers(self, symbols: list[str] | None = None) -> dict[str, Ticker]:
        raise self._not_supported("fetch_tickers")

    async def fetch_order_book(self, symbol: str, limit: int | None = None) -> OrderBook:
        raise self._not_supported("fetch_order_book")

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: int | None = None,
        limit: int | None = None,
    ) -> list[OHLCV]:
        raise self._not_supported("fetch_ohlcv")

    async def fetch_trades(self, symbol: str, since: int | None = None, limit: int | None = None) -> list[Trade]:
        raise self._not_supported("fetch_trades")

    async def fetch_balance(self) -> Balances:
        raise self._not_supported("fetch_balance")

    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: float | None = None,
    ) -> Order:
        raise self._not_supported("create_order")

    async def cancel_order(self, id: str, symbol: str | None = None) -> Order:
        raise self._not_supported("cancel_order")

    async def fetch_order(self, id: str, symbol: str | None = None) -> Order:
        raise self._not_supported("fetch_order")

    async def fetch_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        raise self._not_supported("fetch_orders")

    async def fetch_open_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        raise self._not_supported("fetch_open_orders")

    async def fetch_closed_orders(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Order]:
        raise self._not_supported("fetch_closed_orders")

    async def fetch_my_trades(self, symbol: str | None = None, since: int | None = None, limit: int | None = None) -> list[Trade]:
        raise self._not_supported("fetch_my_trades")

    async def fetch_order_trades(
        self,
        id: str,
        symbol: str | None = None,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[Trade]:
        raise self._not_supported("fetch_order_trades")

    async def fetch_transactions(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        raise self._not_supported("fetch_transactions")

    async def fetch_deposits(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        raise self._not_supported("fetch_deposits")

    async def fetch_withdrawals(self, code: str | None = None, since: int | None = None, limit: int | None = None) -> list[Transaction]:
        raise self._not_supported("fetch_withdrawals")

    async def withdraw(self, code: str, amount: float, address: str, tag: str | None = None) -> Transaction:
        raise self._not_supported("withdraw")

    async def create_deposit_address(self, code: str) -> DepositAddress:
        raise self._not_supported("create_deposit_address")

    async def fetch_deposit_address(self, code: str) -> DepositAddress:
        raise self._not_supported("fetch_deposit_address")

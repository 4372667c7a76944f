"""Tests for the Bleutrade adapter and the shared Bittrex-style endpoints."""

import hashlib
import hmac
from urllib.parse import parse_qs, urlparse

import pytest

from coinbridge.exchanges.bittrex_family import BittrexFamilyApi, BittrexFamilyConfig
from coinbridge.exchanges.bleutrade import BleutradeClient
from coinbridge.exchanges.errors import (
    AuthenticationError,
    BadResponse,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidAddress,
    InvalidOrder,
    OrderNotFound,
)
from tests.conftest import mock_session, sent_headers, sent_url

CURRENCIES = {
    "success": "true",
    "message": "",
    "result": [
        {"Currency": "BTC", "CurrencyLong": "Bitcoin", "MinConfirmation": 2, "TxFee": "0.00080000", "IsActive": "true"},
        {"Currency": "ETH", "CurrencyLong": "Ethereum", "MinConfirmation": 12, "TxFee": "0.01000000", "IsActive": "true"},
        {"Currency": "EPC", "CurrencyLong": "Epacoin", "MinConfirmation": 6, "TxFee": "0.1", "IsActive": "false"},
    ],
}

MARKETS = {
    "success": "true",
    "message": "",
    "result": [
        {"MarketCurrency": "ETH", "BaseCurrency": "BTC", "MarketName": "ETH_BTC", "MinTradeSize": "0.00010000",
         "IsActive": "true"},
        {"MarketCurrency": "EPC", "BaseCurrency": "BTC", "MarketName": "EPC_BTC", "MinTradeSize": "1.00000000",
         "IsActive": "false"},
    ],
}


def ok(result):
    return {"success": "true", "message": "", "result": result}


def query(session, call=-1):
    return {k: v[0] for k, v in parse_qs(urlparse(sent_url(session, call)).query).items()}


async def loaded_client(*args, responses=()):
    client = BleutradeClient(*args)
    session = mock_session(client, CURRENCIES, MARKETS, *responses)
    await client.load_markets()
    return client, session


class TestBleutradeMarkets:
    """Tests for markets and currencies."""

    @pytest.mark.asyncio
    async def test_load_markets_fetches_currencies_first(self):
        client, session = await loaded_client()

        assert sent_url(session, 0) == "https://bleutrade.com/api/v2/public/getcurrencies"
        assert sent_url(session, 1) == "https://bleutrade.com/api/v2/public/getmarkets"
        assert set(client.markets) == {"ETH/BTC", "Epacoin/BTC"}
        eth = client.markets["ETH/BTC"]
        assert eth.id == "ETH_BTC"
        assert eth.active is True
        assert eth.precision.amount == 8
        assert eth.limits.amount.min == 0.0001
        assert eth.limits.price.min == pytest.approx(1e-8)
        assert client.markets["Epacoin/BTC"].active is False
        assert client.currencies["Epacoin"].id == "EPC"
        assert client.currencies["BTC"].fee == 0.0008

    def test_parse_symbol(self):
        client = BleutradeClient()
        assert client.parse_symbol("EPC_BTC") == "Epacoin/BTC"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("market", [
        {"MarketCurrency": "ETH", "BaseCurrency": "BTC"},
        {"MarketName": "ETH_BTC", "BaseCurrency": "BTC"},
        {"MarketName": "ETH_BTC", "MarketCurrency": "ETH"},
    ])
    async def test_malformed_market(self, market):
        client = BleutradeClient()
        mock_session(client, CURRENCIES, ok([market]))

        with pytest.raises(BadResponse) as exc_info:
            await client.load_markets()

        assert exc_info.value.response == market
        assert client.markets == {}


class TestBleutradeMarketData:
    """Tests for public market data."""

    @pytest.mark.asyncio
    async def test_fetch_ticker(self):
        summary = {
            "MarketName": "ETH_BTC", "High": "0.032", "Low": "0.030", "Volume": "120.5", "Last": "0.0315",
            "BaseVolume": "3.8", "TimeStamp": "2018-10-20 01:46:40", "Bid": "0.0314", "Ask": "0.0316",
            "PrevDay": "0.0300",
        }
        client, session = await loaded_client(responses=[ok([summary])])

        ticker = await client.fetch_ticker("ETH/BTC")

        assert ticker.symbol == "ETH/BTC"
        assert ticker.timestamp == 1540000000000
        assert ticker.last == 0.0315
        assert ticker.open == 0.03
        assert ticker.change == pytest.approx(0.0015)
        assert ticker.percentage == pytest.approx(5.0)
        assert ticker.base_volume == 120.5
        assert ticker.quote_volume == 3.8
        assert sent_url(session) == "https://bleutrade.com/api/v2/public/getmarketsummary?market=ETH_BTC"

    @pytest.mark.asyncio
    async def test_fetch_tickers(self):
        summaries = [
            {"MarketName": "ETH_BTC", "Last": "0.0315", "PrevDay": "0.03", "TimeStamp": "2018-10-20 01:46:40"},
            {"MarketName": "EPC_BTC", "Last": "0.00001", "PrevDay": "0.00001", "TimeStamp": "2018-10-20 01:46:40"},
            {"MarketName": "NEW_BTC", "Last": "1", "PrevDay": "1", "TimeStamp": "2018-10-20 01:46:40"},
        ]
        client, _ = await loaded_client(responses=[ok(summaries), ok(summaries)])

        tickers = await client.fetch_tickers()
        only_eth = await client.fetch_tickers(["ETH/BTC"])

        assert set(tickers) == {"ETH/BTC", "Epacoin/BTC"}
        assert tickers["Epacoin/BTC"].change == 0
        assert set(only_eth) == {"ETH/BTC"}

    @pytest.mark.asyncio
    async def test_fetch_order_book(self):
        book = {
            "buy": [{"Quantity": "4.99", "Rate": "0.0310"}, {"Quantity": "1", "Rate": "0.0312"}],
            "sell": [{"Quantity": "2", "Rate": "0.0320"}],
        }
        client, session = await loaded_client(responses=[ok(book)])

        result = await client.fetch_order_book("ETH/BTC", limit=20)

        assert result.bids == [[0.0312, 1.0], [0.031, 4.99]]
        assert result.asks == [[0.032, 2.0]]
        assert query(session) == {"market": "ETH_BTC", "type": "ALL", "depth": "20"}

    @pytest.mark.asyncio
    async def test_empty_order_book(self):
        client, _ = await loaded_client(responses=[ok(None)])

        with pytest.raises(ExchangeError):
            await client.fetch_order_book("ETH/BTC")

    @pytest.mark.asyncio
    async def test_fetch_ohlcv(self):
        candles = [
            {"TimeStamp": "2018-10-20 02:01:40", "Open": "2", "High": "3", "Low": "1", "Close": "2.5", "Volume": "10"},
            {"TimeStamp": "2018-10-20 01:46:40", "Open": "1", "High": "2", "Low": "0.5", "Close": "2", "Volume": "5"},
        ]
        client, session = await loaded_client(responses=[ok(candles)])

        result = await client.fetch_ohlcv("ETH/BTC", "15m", limit=2)

        assert [c.timestamp for c in result] == [1540000000000, 1540000900000]
        assert result[1].close == 2.5
        assert query(session) == {"period": "15m", "market": "ETH_BTC", "count": "2"}

    @pytest.mark.asyncio
    async def test_fetch_trades(self):
        trades = [
            {"TimeStamp": "2018-10-20 01:46:41", "Quantity": "2", "Price": "0.031", "Total": "0.062", "OrderType": "SELL",
             "TradeID": "t2"},
            {"TimeStamp": "2018-10-20 01:46:40", "Quantity": "1", "Price": "0.03", "Total": "0.03", "OrderType": "BUY",
             "TradeID": "t1"},
        ]
        client, session = await loaded_client(responses=[ok(trades)])

        result = await client.fetch_trades("ETH/BTC", limit=50)

        assert [(t.id, t.side) for t in result] == [("t1", "buy"), ("t2", "sell")]
        assert result[1].cost == pytest.approx(0.062)
        assert result[0].symbol == "ETH/BTC"
        assert query(session) == {"market": "ETH_BTC", "count": "50"}


class TestBleutradePrivate:
    """Tests for signed account and market endpoints."""

    @pytest.mark.asyncio
    async def test_signed_url(self):
        client, session = await loaded_client("key", "secret", responses=[ok([
            {"Currency": "BTC", "Balance": "1.5", "Available": "1.0", "Pending": "0", "CryptoAddress": None},
            {"Currency": "EPC", "Balance": "10", "Available": "10", "Pending": "0", "CryptoAddress": None},
        ])])

        balances = await client.fetch_balance()

        url = sent_url(session)
        assert url.startswith("https://bleutrade.com/api/v2/account/getbalances?apikey=key&nonce=")
        expected = hmac.new(b"secret", url.encode(), hashlib.sha512).hexdigest()
        assert sent_headers(session) == {"apisign": expected}
        assert balances["BTC"].used == 0.5
        assert balances["Epacoin"].total == 10.0

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client, session = await loaded_client()

        with pytest.raises(AuthenticationError):
            await client.fetch_balance()
        assert session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_create_order(self):
        client, session = await loaded_client("key", "secret", responses=[ok({"orderid": "65478"})])

        order = await client.create_order("ETH/BTC", "limit", "buy", 1.123456789, 0.031234567)

        assert order.id == "65478"
        assert order.status == "open"
        assert urlparse(sent_url(session)).path == "/api/v2/market/buylimit"
        params = query(session)
        assert params["market"] == "ETH_BTC"
        assert params["quantity"] == "1.12345678"
        assert params["rate"] == "0.03123457"

    @pytest.mark.asyncio
    async def test_create_order_rejects_market_orders(self):
        client, session = await loaded_client("key", "secret")

        with pytest.raises(InvalidOrder):
            await client.create_order("ETH/BTC", "market", "buy", 1)
        assert session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_cancel_order(self):
        client, session = await loaded_client("key", "secret", responses=[ok(None)])

        order = await client.cancel_order("65478")

        assert order.status == "canceled"
        assert urlparse(sent_url(session)).path == "/api/v2/market/cancel"
        assert query(session)["orderid"] == "65478"

    @pytest.mark.asyncio
    async def test_fetch_open_orders(self):
        open_orders = [
            {"OrderId": "1", "Exchange": "ETH_BTC", "Type": "BUY", "Quantity": "2", "QuantityRemaining": "1.5",
             "Price": "0.03", "Status": "OPEN", "Created": "2018-10-20 01:46:40", "Comments": ""},
        ]
        client, session = await loaded_client("key", "secret", responses=[ok(open_orders)])

        orders = await client.fetch_open_orders("ETH/BTC")

        assert urlparse(sent_url(session)).path == "/api/v2/market/getopenorders"
        assert len(orders) == 1
        order = orders[0]
        assert order.id == "1"
        assert order.status == "open"
        assert order.side == "buy"
        assert order.filled == 0.5
        assert order.cost == pytest.approx(0.015)
        assert order.timestamp == 1540000000000

    @pytest.mark.asyncio
    async def test_fetch_order(self):
        raw = {"OrderId": "7", "Exchange": "LTC_BTC", "Type": "SELL", "Quantity": "1", "QuantityRemaining": "0",
               "Price": "0.01", "Status": "OK", "Created": "2018-10-20 01:46:40", "CommissionPaid": "0.0001"}
        client, session = await loaded_client("key", "secret", responses=[ok([raw])])

        order = await client.fetch_order("7")

        assert urlparse(sent_url(session)).path == "/api/v2/account/getorder"
        assert query(session)["orderid"] == "7"
        assert order.status == "closed"
        assert order.symbol == "LTC/BTC"
        assert order.fee.cost == 0.0001
        assert order.fee.currency == "BTC"

    @pytest.mark.asyncio
    async def test_fetch_order_not_found(self):
        client, _ = await loaded_client("key", "secret", responses=[ok([])])

        with pytest.raises(OrderNotFound):
            await client.fetch_order("7")

    @pytest.mark.asyncio
    async def test_fetch_orders_and_closed_orders(self):
        orders = [
            {"OrderId": "1", "Exchange": "ETH_BTC", "Type": "BUY", "Quantity": "1", "QuantityRemaining": "0",
             "Price": "0.03", "Status": "OK", "Created": "2018-10-20 01:46:40"},
            {"OrderId": "2", "Exchange": "ETH_BTC", "Type": "SELL", "Quantity": "1", "QuantityRemaining": "1",
             "Price": "0.04", "Status": "OPEN", "Created": "2018-10-20 01:46:41"},
            {"OrderId": "3", "Exchange": "ETH_BTC", "Type": "SELL", "Quantity": "1", "QuantityRemaining": "1",
             "Price": "0.05", "Status": "CANCELED", "Created": "2018-10-20 01:46:42"},
        ]
        client, session = await loaded_client("key", "secret", responses=[ok(orders), ok(orders)])

        everything = await client.fetch_orders()
        closed = await client.fetch_closed_orders("ETH/BTC")

        assert [o.status for o in everything] == ["closed", "open", "canceled"]
        assert query(session, 2)["market"] == "ALL"
        assert query(session, 2)["orderstatus"] == "ALL"
        assert query(session, 3)["market"] == "ETH_BTC"
        assert [o.id for o in closed] == ["1"]

    @pytest.mark.asyncio
    async def test_fetch_order_trades(self):
        history = [
            {"TimeStamp": "2018-10-20 01:46:40", "Quantity": "1", "Price": "0.03", "OrderType": "BUY", "TradeID": "t1"},
        ]
        client, session = await loaded_client("key", "secret", responses=[ok(history)])

        trades = await client.fetch_order_trades("65478")

        assert urlparse(sent_url(session)).path == "/api/v2/account/getorderhistory"
        assert trades[0].order == "65478"
        assert trades[0].side == "buy"

    @pytest.mark.asyncio
    async def test_fetch_deposits_and_withdrawals(self):
        deposits = [
            {"Id": "96974373", "Coin": "ETH", "Amount": "12.05752192", "TimeStamp": "2017-09-29 08:10:09",
             "Label": "0x3a1f29bd8fc3d5b9e6cbb8c0d0c0dd7d4f9c1c22"},
        ]
        withdrawals = [
            {"Id": "98009125", "Coin": "BTC", "Amount": "-0.71300000", "TimeStamp": "2017-07-19 17:14:24",
             "Label": "0.71200000;PER9VM2txt4BTdfyWgvv3GziECRdVEPN63;0.00100000", "TransactionId": "CANCELED"},
            {"Id": "98009126", "Coin": "ETH", "Amount": "-1", "TimeStamp": "2017-07-20 17:14:24",
             "Label": "0.99;0x3a1f29bd8fc3d5b9e6cbb8c0d0c0dd7d4f9c1c22;0.01", "TransactionId": "0xabc"},
        ]
        client, session = await loaded_client("key", "secret", responses=[ok(deposits), ok(withdrawals)])

        fetched_deposits = await client.fetch_deposits()
        fetched_withdrawals = await client.fetch_withdrawals("BTC")

        deposit = fetched_deposits[0]
        assert deposit.type == "deposit"
        assert deposit.status == "ok"
        assert deposit.amount == 12.05752192
        assert deposit.address == "0x3a1f29bd8fc3d5b9e6cbb8c0d0c0dd7d4f9c1c22"
        assert deposit.fee is None
        assert urlparse(sent_url(session, 2)).path == "/api/v2/account/getdeposithistory"

        assert len(fetched_withdrawals) == 1
        withdrawal = fetched_withdrawals[0]
        assert withdrawal.type == "withdrawal"
        assert withdrawal.status == "canceled"
        assert withdrawal.txid is None
        assert withdrawal.amount == 0.712
        assert withdrawal.address == "PER9VM2txt4BTdfyWgvv3GziECRdVEPN63"
        assert withdrawal.fee.cost == 0.001
        assert withdrawal.fee.currency == "BTC"
        assert urlparse(sent_url(session)).path == "/api/v2/account/getwithdrawhistory"

    @pytest.mark.asyncio
    async def test_fetch_deposit_address(self):
        client, session = await loaded_client("key", "secret", responses=[
            ok({"Currency": "BTC", "Address": "1EdWhc4RiYqrnSVrdNrbkJ2RYaXd9EfEen"}),
        ])

        address = await client.fetch_deposit_address("BTC")

        assert address.address == "1EdWhc4RiYqrnSVrdNrbkJ2RYaXd9EfEen"
        assert urlparse(sent_url(session)).path == "/api/v2/account/getdepositaddress"

    @pytest.mark.asyncio
    async def test_withdraw(self):
        client, session = await loaded_client("key", "secret", responses=[ok({"uuid": "w-1"})])

        tx = await client.withdraw("BTC", 0.5, "1EdWhc4RiYqrnSVrdNrbkJ2RYaXd9EfEen", tag="memo")

        assert tx.id == "w-1"
        assert tx.type == "withdrawal"
        assert urlparse(sent_url(session)).path == "/api/v2/account/withdraw"
        params = query(session)
        assert params["currency"] == "BTC"
        assert params["quantity"] == "0.5"
        assert params["paymentid"] == "memo"

    @pytest.mark.asyncio
    async def test_withdraw_invalid_address(self):
        client = BleutradeClient("key", "secret")
        session = mock_session(client)

        with pytest.raises(InvalidAddress):
            await client.withdraw("BTC", 0.5, "x x")
        session.request.assert_not_called()


class TestBleutradeErrors:
    """Tests for the success/message envelope."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message, error",
        [
            ("Insufficient funds!", InsufficientFunds),
            ("Invalid Order ID", InvalidOrder),
            ("Invalid apikey or apisecret", AuthenticationError),
            ("APIKEY_INVALID", AuthenticationError),
            ("You have been throttled", DDoSProtection),
            ("There was a problem", ExchangeNotAvailable),
        ],
    )
    async def test_mapped_messages(self, message, error):
        client = BleutradeClient()
        mock_session(client, {"success": "false", "message": message, "result": None})

        with pytest.raises(error):
            await client.fetch_currencies()

    @pytest.mark.asyncio
    async def test_unmapped_message(self):
        client = BleutradeClient()
        mock_session(client, {"success": False, "message": "Something new", "result": None})

        with pytest.raises(ExchangeError) as exc_info:
            await client.fetch_currencies()
        assert type(exc_info.value) is ExchangeError

    @pytest.mark.asyncio
    async def test_missing_success_flag(self):
        client = BleutradeClient()
        mock_session(client, {"result": []})

        with pytest.raises(BadResponse):
            await client.fetch_currencies()


class TestBittrexFamilyConfig:
    """Tests for the configurable parts of the shared helper."""

    def test_nonce_can_be_disabled(self):
        client = BleutradeClient("key", "secret")
        api = BittrexFamilyApi(client, BittrexFamilyConfig(disable_nonce=True))

        signed = api.sign("balances", "account")

        assert "nonce=" not in signed["url"]
        assert signed["url"] == "https://bleutrade.com/api/v2/account/getbalances?apikey=key"

    def test_order_id_field(self):
        assert BittrexFamilyConfig().order_id_field == "uuid"
        assert BleutradeClient().api.config.order_id_field == "orderid"

    def test_symbol_separator(self):
        client = BleutradeClient()
        api = BittrexFamilyApi(client, BittrexFamilyConfig())

        assert api.parse_symbol("LTC-BTC") == "LTC/BTC"
        assert client.api.parse_symbol("LTC_BTC") == "LTC/BTC"

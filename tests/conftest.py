"""Pytest configuration and fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from coinbridge.exchanges.protocol import Market, MarketPrecision


def create_async_response(body=None, status=200, reason="OK"):
    """Create a mock aiohttp response usable as ``async with session.request(...)``."""
    if body is None:
        text = ""
    elif isinstance(body, str):
        text = body
    else:
        text = json.dumps(body)
    resp = AsyncMock()
    resp.status = status
    resp.reason = reason
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


def mock_session(client, *responses):
    """Attach a mocked session to ``client`` that answers with ``responses`` in order.

    Each response is a body (dict, list or str) or an already built mock
    response. Returns the session so tests can inspect ``session.request``.
    """
    prepared = [
        resp if isinstance(resp, AsyncMock) else create_async_response(resp)
        for resp in responses
    ]
    session = MagicMock()
    session.request = MagicMock(side_effect=prepared)
    client._ensure_session = AsyncMock(return_value=session)
    return session


def sent_url(session, call=-1):
    """URL of a recorded ``session.request`` call."""
    return session.request.call_args_list[call].args[1]


def sent_headers(session, call=-1):
    return session.request.call_args_list[call].kwargs["headers"]


def sent_body(session, call=-1):
    return session.request.call_args_list[call].kwargs["data"]


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def api_secret():
    """Test API secret."""
    return "test_api_secret_789012"


@pytest.fixture
def btc_usd_market():
    return Market(
        id="btcusd",
        symbol="BTC/USD",
        base="BTC",
        quote="USD",
        base_id="btc",
        quote_id="usd",
        precision=MarketPrecision(amount=8, price=2),
    )


@pytest.fixture
def eth_btc_market():
    return Market(
        id="ethbtc",
        symbol="ETH/BTC",
        base="ETH",
        quote="BTC",
        base_id="eth",
        quote_id="btc",
        precision=MarketPrecision(amount=6, price=5),
    )

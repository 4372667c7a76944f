"""Factory for creating exchange client instances."""

from __future__ import annotations

from typing import Any, Type

from .base import BaseExchangeClient, ProxyConfig
from .bleutrade import BleutradeClient
from .dx import DXClient
from .gemini import GeminiClient


# Registry keyed by the id each adapter declares in its description.
EXCHANGE_CLIENTS: dict[str, Type[BaseExchangeClient]] = {
    client_class.description.id: client_class
    for client_class in (DXClient, GeminiClient, BleutradeClient)
}


def _proxy_config(proxy: ProxyConfig | dict[str, Any] | None) -> ProxyConfig | None:
    if proxy is None or isinstance(proxy, ProxyConfig):
        return proxy
    if not proxy.get("url"):
        return None
    return ProxyConfig(url=proxy["url"], username=proxy.get("username"), password=proxy.get("password"))


def create_exchange_client(
    exchange: str,
    api_key: str | None = None,
    api_secret: str | None = None,
    *,
    sandbox: bool = False,
    proxy: ProxyConfig | dict[str, Any] | None = None,
    **options: Any,
) -> BaseExchangeClient:
    """Create an exchange client instance.

    Credentials are optional: public market data works without them, and a
    private call without them raises ``AuthenticationError`` at request time.
    For DX the ``api_key`` is the access token returned by ``sign_in``.

    Args:
        exchange: Exchange id (dx, gemini, bleutrade), case-insensitive
        api_key: API key
        api_secret: API secret
        sandbox: Use the sandbox environment; raises NotSupported where
            the exchange has none
        proxy: ProxyConfig, or a dict with url, username and password
        **options: Transport settings (timeout_ms, user_agent) and
            exchange-specific options

    Raises:
        ValueError: If exchange is not supported
    """
    client_class = EXCHANGE_CLIENTS.get(exchange.lower())
    if client_class is None:
        supported = ", ".join(sorted(EXCHANGE_CLIENTS))
        raise ValueError(f"Unsupported exchange: {exchange}. Supported exchanges: {supported}")

    return client_class(
        api_key,
        api_secret,
        sandbox=sandbox,
        proxy=_proxy_config(proxy),
        **options,
    )

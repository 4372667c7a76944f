"""Exchange client initialization from settings."""

from __future__ import annotations

import logging
from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeError
from .factory import create_exchange_client
from ..settings import ExchangeSettings, Settings

logger = logging.getLogger(__name__)


def _secret(value: Any) -> str | None:
    return value.get_secret_value() if value is not None else None


def client_kwargs(settings: Settings, exchange_config: ExchangeSettings) -> dict[str, Any]:
    """Keyword arguments for :func:`create_exchange_client` from one settings entry."""
    creds = exchange_config.credentials
    kwargs: dict[str, Any] = {
        "api_key": _secret(creds.api_key) if creds else None,
        "api_secret": _secret(creds.api_secret) if creds else None,
        "sandbox": exchange_config.sandbox,
        "timeout_ms": settings.http.timeout_ms,
        "user_agent": settings.http.user_agent,
    }
    if settings.proxy.enabled and settings.proxy.url:
        kwargs["proxy"] = {
            "url": settings.proxy.url,
            "username": settings.proxy.username,
            "password": _secret(settings.proxy.password),
        }
    kwargs.update(exchange_config.options)
    return kwargs


def create_exchange_client_from_settings(settings: Settings, exchange_name: str) -> BaseExchangeClient:
    """Build one client, using the settings entry for ``exchange_name`` when present."""
    exchange_config = settings.exchanges.get(exchange_name, ExchangeSettings())
    return create_exchange_client(exchange_name, **client_kwargs(settings, exchange_config))


def create_exchange_clients_from_settings(settings: Settings) -> dict[str, BaseExchangeClient]:
    """Create a client for every enabled exchange in settings."""
    clients: dict[str, BaseExchangeClient] = {}

    for exchange_name, exchange_config in settings.exchanges.items():
        if not exchange_config.enabled:
            logger.debug("Exchange %s is disabled, skipping", exchange_name)
            continue

        if not exchange_config.credentials:
            logger.info("Exchange %s has no credentials, only public endpoints will work", exchange_name)

        try:
            client = create_exchange_client(exchange_name, **client_kwargs(settings, exchange_config))
        except (ValueError, TypeError, ExchangeError) as e:
            logger.error("Failed to initialize exchange client for %s: %s", exchange_name, e)
            continue

        clients[exchange_name] = client
        logger.info("Initialized exchange client for %s", exchange_name)

    return clients

"""Shared error taxonomy for exchange adapters.

Every adapter maps its native error codes and messages onto these classes, so
callers can catch by category without knowing which exchange raised.
"""

from __future__ import annotations

from typing import Any, Mapping, Type


class ExchangeError(Exception):
    """Base exception for all exchange-related errors."""

    def __init__(self, message: str, *, exchange_id: str | None = None, response: Any = None):
        super().__init__(message)
        self.exchange_id = exchange_id
        self.response = response


class AuthenticationError(ExchangeError):
    """Credentials are missing, invalid, or the session token expired."""


class PermissionDenied(AuthenticationError):
    """The API key lacks the role required by the endpoint."""


class ArgumentsRequired(ExchangeError):
    """A method was called without an argument the exchange requires."""


class BadRequest(ExchangeError):
    """The exchange rejected the request as malformed."""


class BadSymbol(BadRequest):
    """Unknown market symbol or id."""


class BadResponse(ExchangeError):
    """The exchange answered with a payload that cannot be parsed."""


class InsufficientFunds(ExchangeError):
    pass


class InvalidAddress(ExchangeError):
    """Deposit or withdrawal address failed validation."""


class InvalidOrder(ExchangeError):
    pass


class OrderNotFound(InvalidOrder):
    pass


class NotSupported(ExchangeError):
    """The exchange does not offer this operation."""


class NetworkError(ExchangeError):
    """Transport-level failure."""


class DDoSProtection(NetworkError):
    """Rate limit or anti-DDoS protection kicked in."""


class ExchangeNotAvailable(NetworkError):
    """Exchange is down or under maintenance."""


class InvalidNonce(NetworkError):
    pass


class RequestTimeout(NetworkError):
    pass


ErrorTable = Mapping[str, Type[ExchangeError]]


# Default HTTP status mapping, exchange tables are layered on top of it.
BASE_HTTP_EXCEPTIONS: dict[str, Type[ExchangeError]] = {
    "401": AuthenticationError,
    "403": PermissionDenied,
    "404": ExchangeNotAvailable,
    "408": RequestTimeout,
    "418": DDoSProtection,
    "422": ExchangeError,
    "429": DDoSProtection,
    "500": ExchangeNotAvailable,
    "501": ExchangeNotAvailable,
    "502": ExchangeNotAvailable,
    "503": ExchangeNotAvailable,
    "504": RequestTimeout,
    "511": AuthenticationError,
    "520": ExchangeNotAvailable,
    "521": ExchangeNotAvailable,
    "522": ExchangeNotAvailable,
    "525": ExchangeNotAvailable,
    "526": ExchangeNotAvailable,
}


def find_broadly_matched_key(broad: ErrorTable, string: str | None) -> str | None:
    """Return the first key of ``broad`` that occurs inside ``string``."""
    if not string:
        return None
    for key in broad:
        if key in string:
            return key
    return None


def throw_exactly_matched_exception(
    exact: ErrorTable,
    string: str | None,
    message: str,
    *,
    exchange_id: str | None = None,
    response: Any = None,
) -> None:
    if string is not None and string in exact:
        raise exact[string](message, exchange_id=exchange_id, response=response)


def throw_broadly_matched_exception(
    broad: ErrorTable,
    string: str | None,
    message: str,
    *,
    exchange_id: str | None = None,
    response: Any = None,
) -> None:
    key = find_broadly_matched_key(broad, string)
    if key is not None:
        raise broad[key](message, exchange_id=exchange_id, response=response)


def raise_mapped_error(
    exact: ErrorTable,
    broad: ErrorTable,
    codes: list[str | None],
    message: str,
    *,
    exchange_id: str | None = None,
    response: Any = None,
) -> None:
    """Raise the taxonomy error for the first matching code.

    Each candidate in ``codes`` is tried against the exact table, then each is
    tried against the broad table. Unmatched errors fall back to
    :class:`ExchangeError` so the raw payload still reaches the caller.
    """
    for code in codes:
        throw_exactly_matched_exception(exact, code, message, exchange_id=exchange_id, response=response)
    for code in codes:
        throw_broadly_matched_exception(broad, code, message, exchange_id=exchange_id, response=response)
    raise ExchangeError(message, exchange_id=exchange_id, response=response)

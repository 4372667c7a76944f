"""Symbol and currency-code normalization."""

from __future__ import annotations

import logging
from typing import Mapping

logger = logging.getLogger(__name__)

# Quote currencies recognised when splitting a symbol without a separator,
# longest first so USDT wins over USD.
KNOWN_QUOTES = ("USDT", "USDC", "BUSD", "TUSD", "USDD", "DAI", "USD", "EUR", "GBP", "BTC", "ETH")


def common_currency_code(code: str | None, aliases: Mapping[str, str] | None = None) -> str | None:
    """Map an exchange currency code onto its common code.

    Exchanges name some assets differently (XBT for BTC, BCC for BCH). Codes
    without an alias pass through unchanged.
    """
    if code is None:
        return None
    if aliases and code in aliases:
        return aliases[code]
    return code


def extract_base_symbol(symbol: str) -> tuple[str, str]:
    """Extract base and quote currency from a symbol.

    Handles various formats:
    - BTC/USDT -> (BTC, USDT)
    - BTC-USDT -> (BTC, USDT)
    - ETH_BTC -> (ETH, BTC)
    - BTCUSDT -> (BTC, USDT)
    - BTC -> (BTC, '')

    Args:
        symbol: Symbol in any format

    Returns:
        Tuple of (base, quote) currencies
    """
    if not symbol:
        return "", ""

    symbol = symbol.strip().upper()

    for separator in ("/", "-", "_"):
        if separator in symbol:
            parts = symbol.split(separator)
            if len(parts) == 2:
                return parts[0].strip(), parts[1].strip()

    for quote in sorted(KNOWN_QUOTES, key=len, reverse=True):
        if symbol.endswith(quote):
            base = symbol[: -len(quote)]
            if base:
                return base, quote

    return symbol, ""


def normalize_symbol(symbol: str) -> str:
    """Normalize a symbol to the unified ``BASE/QUOTE`` format.

    - btcusd -> BTC/USD
    - BTC-USD -> BTC/USD
    - eth_btc -> ETH/BTC

    Symbols that cannot be split are returned upper-cased.
    """
    if not symbol:
        return symbol
    base, quote = extract_base_symbol(symbol)
    if base and quote:
        return f"{base}/{quote}"
    return symbol.strip().upper()


def market_id_to_symbol(
    market_id: str,
    separator: str,
    aliases: Mapping[str, str] | None = None,
) -> str:
    """Build a unified symbol from an exchange id such as ``ETH_BTC``."""
    base, _, quote = market_id.partition(separator)
    if not quote:
        logger.debug("Market id %s has no %r separator", market_id, separator)
    return f"{common_currency_code(base, aliases)}/{common_currency_code(quote, aliases)}"

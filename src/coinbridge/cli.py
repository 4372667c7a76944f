"""Typer-based CLI for querying exchanges."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from .exchanges.factory import EXCHANGE_CLIENTS

if TYPE_CHECKING:
    from .exchanges.protocol import ExchangeClient
    from .settings import Settings

T = TypeVar("T")


# Import with local function to avoid circular imports
def _load_settings(config_path: Optional[Path] = None) -> "Settings":
    from .config import load_settings
    return load_settings(config_path)


def _create_client(settings: "Settings", exchange: str) -> "ExchangeClient":
    from .exchanges.init import create_exchange_client_from_settings
    return create_exchange_client_from_settings(settings, exchange)


app = typer.Typer(help="Unified cryptocurrency exchange client CLI")
console = Console()
logger = logging.getLogger(__name__)

ConfigOption = typer.Option(None, "--config", help="Path to YAML config file (default: COINBRIDGE_CONFIG or ./config.yml)")

# Capabilities shown by the `exchanges` command.
LISTED_CAPABILITIES = ("fetchOHLCV", "fetchTickers", "fetchTrades", "fetchOrder", "withdraw")


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def _fmt(value: Any, digits: int = 8) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.{digits}f}".rstrip("0").rstrip(".") or "0"
    return str(value)


def _fmt_time(timestamp: int | None) -> str:
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


async def _call(exchange: str, config: Optional[Path], operation: Callable[["ExchangeClient"], Awaitable[T]]) -> T:
    settings = _load_settings(config)
    client = _create_client(settings, exchange)
    async with client:
        return await operation(client)


def _run(exchange: str, config: Optional[Path], operation: Callable[["ExchangeClient"], Awaitable[T]]) -> T:
    """Run one client operation, turning any failure into a red message and exit code 1."""
    try:
        return asyncio.run(_call(exchange, config, operation))
    except Exception as e:
        logger.error("%s request failed: %s", exchange, e, exc_info=logger.isEnabledFor(logging.DEBUG))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def exchanges() -> None:
    """List supported exchanges."""
    table = Table(title="Supported Exchanges")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Sandbox", style="yellow")
    for capability in LISTED_CAPABILITIES:
        table.add_column(capability, style="magenta")

    for exchange_id, client_class in EXCHANGE_CLIENTS.items():
        description = client_class.description
        has = description.capabilities()
        table.add_row(
            exchange_id,
            description.name,
            "yes" if "test" in description.urls else "no",
            *("yes" if has.get(capability) else "" for capability in LISTED_CAPABILITIES),
        )

    console.print(table)


@app.command()
def markets(
    exchange: str = typer.Argument(..., help="Exchange id"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """List the markets an exchange trades."""
    loaded = _run(exchange, config, lambda client: client.load_markets())

    table = Table(title=f"{exchange} markets")
    table.add_column("Symbol", style="green")
    table.add_column("Id", style="cyan")
    table.add_column("Base")
    table.add_column("Quote")
    table.add_column("Amount precision", style="magenta")
    table.add_column("Price precision", style="magenta")
    table.add_column("Min amount", style="yellow")

    for symbol in sorted(loaded):
        market = loaded[symbol]
        table.add_row(
            symbol,
            str(market.id),
            market.base,
            market.quote,
            _fmt(market.precision.amount),
            _fmt(market.precision.price),
            _fmt(market.limits.amount.min),
        )

    console.print(table)
    console.print(f"\n[bold]Total markets:[/bold] {len(loaded)}")


@app.command()
def ticker(
    exchange: str = typer.Argument(..., help="Exchange id"),
    symbol: str = typer.Argument(..., help="Unified symbol, e.g. BTC/USD"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Show the ticker of one market."""
    result = _run(exchange, config, lambda client: client.fetch_ticker(symbol))

    table = Table(title=f"{exchange} {result.symbol or symbol}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for label, value in (
        ("Time", _fmt_time(result.timestamp)),
        ("Last", _fmt(result.last)),
        ("Bid", _fmt(result.bid)),
        ("Ask", _fmt(result.ask)),
        ("High", _fmt(result.high)),
        ("Low", _fmt(result.low)),
        ("Change", _fmt(result.change)),
        ("Change %", _fmt(result.percentage, 2)),
        ("Base volume", _fmt(result.base_volume)),
        ("Quote volume", _fmt(result.quote_volume)),
    ):
        table.add_row(label, value)

    console.print(table)


@app.command()
def order_book(
    exchange: str = typer.Argument(..., help="Exchange id"),
    symbol: str = typer.Argument(..., help="Unified symbol, e.g. BTC/USD"),
    limit: int = typer.Option(10, "--limit", help="Levels to show per side"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Show the top of an order book."""
    book = _run(exchange, config, lambda client: client.fetch_order_book(symbol, limit))

    table = Table(title=f"{exchange} {symbol} order book")
    table.add_column("Bid amount", style="green")
    table.add_column("Bid", style="green")
    table.add_column("Ask", style="red")
    table.add_column("Ask amount", style="red")

    bids = book.bids[:limit]
    asks = book.asks[:limit]
    for i in range(max(len(bids), len(asks))):
        bid = bids[i] if i < len(bids) else [None, None]
        ask = asks[i] if i < len(asks) else [None, None]
        table.add_row(_fmt(bid[1]), _fmt(bid[0]), _fmt(ask[0]), _fmt(ask[1]))

    console.print(table)


@app.command()
def ohlcv(
    exchange: str = typer.Argument(..., help="Exchange id"),
    symbol: str = typer.Argument(..., help="Unified symbol, e.g. ETH/BTC"),
    timeframe: Optional[str] = typer.Option(None, "--timeframe", help="Candle size (default: first the exchange supports)"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of candles"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Show OHLCV candles."""

    async def fetch(client: "ExchangeClient"):
        frame = timeframe or next(iter(client.timeframes), "1m")
        return await client.fetch_ohlcv(symbol, frame, None, limit)

    candles = _run(exchange, config, fetch)

    table = Table(title=f"{exchange} {symbol} candles")
    table.add_column("Time", style="dim")
    for column in ("Open", "High", "Low", "Close", "Volume"):
        table.add_column(column)
    for candle in candles:
        table.add_row(
            _fmt_time(candle.timestamp),
            _fmt(candle.open),
            _fmt(candle.high),
            _fmt(candle.low),
            _fmt(candle.close),
            _fmt(candle.volume),
        )

    console.print(table)
    console.print(f"\n[bold]Total candles:[/bold] {len(candles)}")


@app.command()
def balance(
    exchange: str = typer.Argument(..., help="Exchange id"),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Show account balances. Needs credentials in the config."""

    async def fetch(client: "ExchangeClient"):
        if client.has.get("signIn"):
            await client.sign_in()
        return await client.fetch_balance()

    balances = _run(exchange, config, fetch)

    table = Table(title=f"{exchange} balance")
    table.add_column("Currency", style="cyan")
    table.add_column("Free", style="green")
    table.add_column("Used", style="yellow")
    table.add_column("Total", style="magenta")
    for code in sorted(balances.balances):
        entry = balances[code]
        if not entry.total:
            continue
        table.add_row(code, _fmt(entry.free), _fmt(entry.used), _fmt(entry.total))

    console.print(table)


def main():
    """CLI main entry point."""
    app()


if __name__ == "__main__":
    main()

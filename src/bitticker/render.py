"""Terminal rendering of published quotes."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.console import Group
from rich.table import Table
from rich.text import Text

from .exchanges.protocol import NormalizedQuote
from .exchanges.registry import EXCHANGES
from .logging import LogEntry


def display_price(quote: NormalizedQuote) -> str:
    if quote.is_error:
        return "$ERR"
    if quote.is_no_data:
        return "$0"
    return f"${quote.price:,.2f}"


def display_change_percent(quote: NormalizedQuote) -> str:
    if quote.is_error:
        return "ERR%"
    if quote.is_no_data:
        return "0%"
    sign = "+" if quote.change_percent >= 0 else ""
    return f"{sign}{quote.change_percent:.2f}%"


def quote_style(quote: NormalizedQuote) -> str:
    # NoData and Error share one colour; the text tells them apart
    if not quote.is_ok:
        return "dark_orange"
    return "green" if quote.change_percent >= 0 else "red"


def quotes_table(quotes: Sequence[NormalizedQuote], *, title: str | None = None) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Symbol", style="bold")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("24h %", justify="right")
    table.add_column("24h Change", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Low", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Market Cap", justify="right")
    table.add_column("Updated")

    for quote in quotes:
        style = quote_style(quote)
        if quote.is_ok:
            details = [
                f"${quote.change_absolute:,.2f}",
                f"${quote.high:,.2f}",
                f"${quote.low:,.2f}",
                f"{quote.volume_base:,.0f}",
                f"${quote.market_cap:,.0f}" if quote.market_cap > 0 else "N/A",
            ]
        else:
            details = ["-"] * 5
        table.add_row(
            quote.symbol,
            quote.display_name,
            Text(display_price(quote), style=style),
            Text(display_change_percent(quote), style=style),
            *details,
            f"{quote.observed_at:%H:%M:%S}",
        )
    return table


def exchanges_table() -> Table:
    table = Table(title="Supported exchanges")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Base URL")
    table.add_column("API key")
    for descriptor in EXCHANGES:
        table.add_row(
            descriptor.id,
            descriptor.display_name,
            descriptor.base_url,
            "required" if descriptor.requires_api_key else "-",
        )
    return table


def log_lines(entries: Iterable[LogEntry]) -> Text:
    styles = {"Debug": "dim", "Info": "", "Warning": "yellow", "Error": "red"}
    text = Text()
    for entry in entries:
        text.append(entry.formatted + "\n", style=styles.get(entry.level.value, ""))
    return text


def dashboard(quotes: Sequence[NormalizedQuote], entries: Sequence[LogEntry], *, title: str) -> Group | Table:
    table = quotes_table(quotes, title=title)
    if not entries:
        return table
    return Group(table, log_lines(entries))

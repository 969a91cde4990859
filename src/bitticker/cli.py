"""Typer-based CLI for the crypto ticker."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.live import Live

from .config import ConfigStore
from .exchanges.factory import create_exchange_client
from .exchanges.protocol import NormalizedQuote
from .exchanges.registry import get_descriptor, is_supported, resolve_exchange_id
from .logging import TickerLogger

app = typer.Typer(help="Multi-exchange crypto ticker CLI")
config_app = typer.Typer(help="Show or edit the ticker configuration")
app.add_typer(config_app, name="config")

console = Console()
logger = logging.getLogger(__name__)


def run_cli(argv: list[str] | None = None) -> None:
    """Run CLI with optional argv parameter."""
    app(argv)


def _config_store(config_path: Optional[Path]) -> ConfigStore:
    return ConfigStore(config_path)


@app.command()
def exchanges() -> None:
    """List supported exchanges."""
    from .render import exchanges_table

    console.print(exchanges_table())


@app.command()
def quote(
    symbols: Optional[List[str]] = typer.Argument(None, help="Symbols to fetch (default: configured list)"),
    exchange: Optional[str] = typer.Option(None, "--exchange", "-e", help="Exchange id (default: configured)"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (default: configured key)"),
    as_json: bool = typer.Option(False, "--json", help="Print rows as JSON"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Fetch quotes once and print them."""
    settings = _config_store(config).load()

    exchange_id = settings.selected_exchange
    if exchange is not None:
        if not is_supported(exchange):
            console.print(f"[red]Error:[/red] Unsupported exchange '{exchange}'")
            raise typer.Exit(1)
        exchange_id = resolve_exchange_id(exchange)

    wanted = [s.strip().upper() for s in symbols or [] if s.strip()] or list(settings.symbols)
    key = api_key if api_key is not None else settings.api_key_for(exchange_id)

    quotes = asyncio.run(_fetch_once(exchange_id, key, wanted))

    if as_json:
        typer.echo(json.dumps([q.as_dict() for q in quotes], indent=2))
        return

    from .render import quotes_table

    console.print(quotes_table(quotes, title=get_descriptor(exchange_id).display_name))


async def _fetch_once(exchange_id: str, api_key: Optional[str], symbols: list[str]) -> list[NormalizedQuote]:
    client = create_exchange_client(exchange_id, api_key, log=TickerLogger())
    try:
        return await client.fetch_quotes(symbols)
    finally:
        await client.close()


@app.command()
def watch(
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
    show_log: int = typer.Option(0, "--show-log", help="Show the last N log lines under the table"),
) -> None:
    """Poll continuously and keep a live table on screen (Ctrl+C to stop)."""
    store = _config_store(config)
    try:
        asyncio.run(_watch_async(store, max(0, show_log)))
    except KeyboardInterrupt:
        console.print("[dim]stopped[/dim]")


async def _watch_async(store: ConfigStore, show_log: int) -> None:
    from .di import build_container
    from .render import dashboard
    from .runtime import run

    container = build_container(store)

    def _render():
        settings = container.orchestrator.settings or container.settings
        title = f"{get_descriptor(settings.selected_exchange).display_name} - every {settings.refresh_interval_minutes} min"
        return dashboard(container.orchestrator.quotes, container.log.tail(show_log), title=title)

    with Live(_render(), console=console, refresh_per_second=4) as live:
        container.orchestrator.subscribe(lambda: live.update(_render()))
        await run(container)


@config_app.command("show")
def config_show(config: Optional[Path] = typer.Option(None, help="Path to config file")) -> None:
    """Print the effective configuration (API keys masked)."""
    store = _config_store(config)
    console.print(f"[bold]{store.path}[/bold]")
    console.print_json(data=store.load().redacted())


@config_app.command("set-exchange")
def config_set_exchange(
    exchange: str = typer.Argument(..., help="Exchange id or name"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Select the exchange to poll."""
    settings = _save(lambda store: store.set_exchange(exchange), config)
    console.print(f"[green]✓[/green] Exchange set to {get_descriptor(settings.selected_exchange).display_name}")


@config_app.command("set-key")
def config_set_key(
    exchange: str = typer.Argument(..., help="Exchange id or name"),
    api_key: str = typer.Argument("", help="API key (empty to remove)"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Store or remove an exchange API key."""
    settings = _save(lambda store: store.set_api_key(exchange, api_key), config)
    state = "set" if settings.api_key_for(exchange) else "removed"
    console.print(f"[green]✓[/green] API key for {exchange} {state}")


@config_app.command("set-symbols")
def config_set_symbols(
    symbols: List[str] = typer.Argument(..., help="Symbols in display order"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Replace the symbol list."""
    settings = _save(lambda store: store.set_symbols(symbols), config)
    console.print(f"[green]✓[/green] Symbols: {', '.join(settings.symbols)}")


@config_app.command("set-interval")
def config_set_interval(
    minutes: int = typer.Argument(..., help="Refresh interval in minutes (1-1440)"),
    config: Optional[Path] = typer.Option(None, help="Path to config file"),
) -> None:
    """Set the refresh interval."""
    settings = _save(lambda store: store.set_interval(minutes), config)
    console.print(f"[green]✓[/green] Refresh every {settings.refresh_interval_minutes} min")


def _save(action, config: Optional[Path]):
    store = _config_store(config)
    try:
        return action(store)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except OSError as e:
        logger.error("Failed to save configuration: %s", e, exc_info=True)
        console.print(f"[red]Error:[/red] cannot save {store.path}: {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

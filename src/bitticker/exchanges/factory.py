"""Factory for creating exchange client instances."""

from __future__ import annotations

from typing import Any, Type

from ..logging import TickerLogger
from .base import BaseExchangeClient
from .binance import BinanceClient
from .bitfinex import BitfinexClient
from .bitstamp import BitstampClient
from .bybit import BybitClient
from .coinbase import CoinbaseClient
from .coinmarketcap import CoinMarketCapClient
from .cryptocom import CryptoComClient
from .gate import GateClient
from .huobi import HuobiClient
from .kraken import KrakenClient
from .kucoin import KuCoinClient
from .okx import OKXClient
from .registry import DEFAULT_EXCHANGE, resolve_exchange_id


EXCHANGE_CLIENTS: dict[str, Type[BaseExchangeClient]] = {
    "coinmarketcap": CoinMarketCapClient,
    "binance": BinanceClient,
    "bitfinex": BitfinexClient,
    "bitstamp": BitstampClient,
    "bybit": BybitClient,
    "coinbase": CoinbaseClient,
    "cryptocom": CryptoComClient,
    "gate": GateClient,
    "huobi": HuobiClient,
    "kraken": KrakenClient,
    "kucoin": KuCoinClient,
    "okx": OKXClient,
}


def create_exchange_client(
    exchange: str | None,
    api_key: str | None = None,
    log: TickerLogger | None = None,
    **options: Any,
) -> BaseExchangeClient:
    """Create an exchange client instance.

    Args:
        exchange: Exchange id or display name (binance, okx, Gate.io, etc.)
        api_key: API key; blank values are treated as absent
        log: Exchange-tagged logger shared with the caller
        **options: Additional client options (timeout, max_concurrency, session)

    Returns:
        Configured exchange client. An unknown or empty id yields the
        default exchange's client and a logged warning, never an error.
    """
    log = log if log is not None else TickerLogger()
    exchange_id = resolve_exchange_id(exchange)

    if exchange_id is None or exchange_id not in EXCHANGE_CLIENTS:
        log.warning(
            "Factory",
            f"Unsupported exchange: {exchange!r}; falling back to {DEFAULT_EXCHANGE}",
        )
        exchange_id = DEFAULT_EXCHANGE

    client_class = EXCHANGE_CLIENTS[exchange_id]
    api_key = api_key.strip() if api_key else None

    return client_class(api_key or None, log=log, **options)

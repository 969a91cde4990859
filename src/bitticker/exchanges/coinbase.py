"""Coinbase Exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .normalization import SymbolMap, isoformat_to_local
from .protocol import NormalizedQuote


class CoinbaseClient(BaseExchangeClient):
    """Coinbase client combining the product stats and ticker endpoints.

    ``/stats`` carries the 24h open/high/low/volume, ``/ticker`` the last
    trade and top of book. An unknown product answers 404 on both.
    """

    symbol_map = SymbolMap("{base}-USD")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("coinbase", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        product = self.to_instrument(symbol)
        stats = await self._get_json(f"/products/{product}/stats")
        ticker = await self._get_json(f"/products/{product}/ticker")

        if not isinstance(stats, dict) or not isinstance(ticker, dict):
            self.log.warning(self.name, f"{symbol}: Invalid data for {product}")
            return self.no_data_quote(symbol)

        return self.build_quote(
            symbol,
            ticker.get("price"),
            open=stats.get("open"),
            high=stats.get("high"),
            low=stats.get("low"),
            bid=ticker.get("bid"),
            ask=ticker.get("ask"),
            volume_base=stats.get("volume"),
            observed_at=isoformat_to_local(ticker.get("time")),
        )

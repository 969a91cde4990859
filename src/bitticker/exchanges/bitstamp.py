"""Bitstamp exchange adapter."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .base import BaseExchangeClient
from .normalization import SymbolMap, decimal_or_zero, timestamp_to_local
from .protocol import NormalizedQuote


class BitstampClient(BaseExchangeClient):
    """Bitstamp v2 ticker client (lower-case pairs such as ``btcusd``)."""

    symbol_map = SymbolMap("{lower}usd")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("bitstamp", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        pair = self.to_instrument(symbol)
        ticker = await self._get_json(f"/api/v2/ticker/{pair}/")

        if not isinstance(ticker, dict) or not ticker.get("last"):
            self.log.warning(self.name, f"{symbol}: Invalid data received")
            return self.no_data_quote(symbol)

        volume = decimal_or_zero(ticker.get("volume"))
        vwap = decimal_or_zero(ticker.get("vwap"))
        return self.build_quote(
            symbol,
            ticker.get("last"),
            open=ticker.get("open"),
            high=ticker.get("high"),
            low=ticker.get("low"),
            bid=ticker.get("bid"),
            ask=ticker.get("ask"),
            volume_base=volume,
            # approximate: no quote volume on this endpoint
            volume_quote=volume * vwap if vwap else Decimal(0),
            observed_at=timestamp_to_local(ticker.get("timestamp"), unit="s"),
        )

"""Binance exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError
from .normalization import SymbolMap, timestamp_to_local
from .protocol import NormalizedQuote, QuoteStatus

# Binance error code for an unknown trading pair
INVALID_SYMBOL = -1121


class BinanceClient(BaseExchangeClient):
    """Binance spot 24h ticker client."""

    symbol_map = SymbolMap("{base}USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("binance", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        ticker = await self._get_json("/api/v3/ticker/24hr", params={"symbol": instrument})

        if not isinstance(ticker, dict) or not ticker.get("lastPrice"):
            self.log.warning(self.name, f"{symbol}: Missing required fields in API response")
            return self.no_data_quote(symbol)

        return self.build_quote(
            symbol,
            ticker.get("lastPrice"),
            open=ticker.get("openPrice"),
            change=ticker.get("priceChange"),
            high=ticker.get("highPrice"),
            low=ticker.get("lowPrice"),
            bid=ticker.get("bidPrice"),
            ask=ticker.get("askPrice"),
            volume_base=ticker.get("volume"),
            volume_quote=ticker.get("quoteVolume"),
            observed_at=timestamp_to_local(ticker.get("closeTime")),
        )

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        payload = error.payload if isinstance(error.payload, dict) else {}
        if error.status == 400 and payload.get("code") == INVALID_SYMBOL:
            return QuoteStatus.NO_DATA
        return super().classify_http_error(error)

"""OKX exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import SymbolMap, timestamp_to_local
from .protocol import NormalizedQuote, QuoteStatus

# 51001: "Instrument ID does not exist"
INSTRUMENT_NOT_FOUND = "51001"


class OKXClient(BaseExchangeClient):
    """OKX v5 market ticker client."""

    symbol_map = SymbolMap("{base}-USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("okx", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        payload = await self._get_json("/api/v5/market/ticker", params={"instId": instrument})
        if not isinstance(payload, dict) or "code" not in payload:
            raise ExchangeProtocolError("ticker response has no code")

        code = str(payload.get("code"))
        if code != "0":
            self.log.warning(self.name, f"{symbol}: API returned code {code}: {payload.get('msg') or 'Unknown error'}")
            if code == INSTRUMENT_NOT_FOUND:
                return self.no_data_quote(symbol)
            return self.error_quote(symbol)

        data = payload.get("data") or []
        if not data:
            self.log.warning(self.name, f"{symbol}: empty ticker data for {instrument}")
            return self.no_data_quote(symbol)

        ticker = data[0]
        return self.build_quote(
            symbol,
            ticker.get("last"),
            open=ticker.get("open24h"),
            high=ticker.get("high24h"),
            low=ticker.get("low24h"),
            bid=ticker.get("bidPx"),
            ask=ticker.get("askPx"),
            volume_base=ticker.get("vol24h"),
            volume_quote=ticker.get("volCcy24h"),
            observed_at=timestamp_to_local(ticker.get("ts")),
        )

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        payload = error.payload if isinstance(error.payload, dict) else {}
        if str(payload.get("code")) == INSTRUMENT_NOT_FOUND:
            return QuoteStatus.NO_DATA
        return super().classify_http_error(error)

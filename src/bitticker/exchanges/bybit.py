"""Bybit exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient, scaled_percent
from .errors import ExchangeProtocolError
from .normalization import SymbolMap, timestamp_to_local
from .protocol import NormalizedQuote

# retCode for "params error: symbol invalid"
INVALID_SYMBOL_CODES = frozenset({10001})


class BybitClient(BaseExchangeClient):
    """Bybit v5 spot tickers client."""

    symbol_map = SymbolMap("{base}USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("bybit", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        payload = await self._get_json(
            "/v5/market/tickers",
            params={"category": "spot", "symbol": instrument},
        )
        if not isinstance(payload, dict) or "retCode" not in payload:
            raise ExchangeProtocolError("tickers response has no retCode")

        code = payload.get("retCode")
        if code != 0:
            self.log.warning(self.name, f"{symbol}: API returned code {code}: {payload.get('retMsg') or 'Unknown error'}")
            if code in INVALID_SYMBOL_CODES:
                return self.no_data_quote(symbol)
            return self.error_quote(symbol)

        items = (payload.get("result") or {}).get("list") or []
        if not items:
            self.log.warning(self.name, f"{symbol}: empty ticker list for {instrument}")
            return self.no_data_quote(symbol)

        ticker = items[0]
        return self.build_quote(
            symbol,
            ticker.get("lastPrice"),
            open=ticker.get("prevPrice24h"),
            # price24hPcnt is a fraction (0.0123 == 1.23%)
            percent=scaled_percent(ticker.get("price24hPcnt"), fraction=True),
            high=ticker.get("highPrice24h"),
            low=ticker.get("lowPrice24h"),
            bid=ticker.get("bid1Price"),
            ask=ticker.get("ask1Price"),
            volume_base=ticker.get("volume24h"),
            volume_quote=ticker.get("turnover24h"),
            observed_at=timestamp_to_local(payload.get("time")),
        )

"""Crypto.com Exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient, scaled_percent
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import SymbolMap, timestamp_to_local
from .protocol import NormalizedQuote, QuoteStatus

# 30003 SYMBOL_NOT_FOUND, 40004 MISSING_OR_INVALID_ARGUMENT
NOT_FOUND_CODES = frozenset({30003, 40004})


def _code(payload: Any) -> int | None:
    if not isinstance(payload, dict):
        return None
    try:
        return int(payload.get("code"))
    except (TypeError, ValueError):
        return None


class CryptoComClient(BaseExchangeClient):
    """Crypto.com Exchange v1 public tickers client.

    Field names are single letters: ``a`` last trade price, ``c`` 24h change
    as a fraction, ``h``/``l`` high/low, ``b``/``k`` best bid/ask, ``v`` base
    volume, ``vv`` volume in USD, ``t`` timestamp in ms.
    """

    symbol_map = SymbolMap("{base}_USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("cryptocom", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        payload = await self._get_json(
            "/exchange/v1/public/get-tickers",
            params={"instrument_name": instrument},
        )
        code = _code(payload)
        if code is None:
            raise ExchangeProtocolError("get-tickers response has no code")

        if code != 0:
            self.log.warning(self.name, f"{symbol}: API returned code {code}: {payload.get('message') or 'Unknown error'}")
            return self.no_data_quote(symbol) if code in NOT_FOUND_CODES else self.error_quote(symbol)

        data = (payload.get("result") or {}).get("data") or []
        if not data:
            self.log.warning(self.name, f"{symbol}: no ticker for {instrument}")
            return self.no_data_quote(symbol)

        ticker = data[0]
        return self.build_quote(
            symbol,
            ticker.get("a"),
            percent=scaled_percent(ticker.get("c"), fraction=True),
            high=ticker.get("h"),
            low=ticker.get("l"),
            bid=ticker.get("b"),
            ask=ticker.get("k"),
            volume_base=ticker.get("v"),
            volume_quote=ticker.get("vv"),
            observed_at=timestamp_to_local(ticker.get("t")),
        )

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        if _code(error.payload) in NOT_FOUND_CODES:
            return QuoteStatus.NO_DATA
        return super().classify_http_error(error)

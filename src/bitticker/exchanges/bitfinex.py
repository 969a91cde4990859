"""Bitfinex exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError
from .normalization import SymbolMap, canonical_symbol
from .protocol import NormalizedQuote, QuoteStatus

# ["error", 10020, "symbol: invalid"]
SYMBOL_INVALID = 10020

# Positions in the v2 trading ticker array
BID, BID_SIZE, ASK, ASK_SIZE, DAILY_CHANGE, DAILY_CHANGE_RELATIVE, LAST_PRICE, VOLUME, HIGH, LOW = range(10)


class BitfinexSymbolMap(SymbolMap):
    """Bitfinex joins bases longer than three letters with a colon (tAVAX:USD)."""

    def to_instrument(self, symbol: str) -> str:
        base = canonical_symbol(symbol)
        if base in self.overrides:
            return self.overrides[base]
        if len(base) > 3:
            return f"t{base}:USD"
        return f"t{base}USD"


def _error_code(payload: Any) -> int | None:
    if isinstance(payload, list) and len(payload) >= 2 and payload[0] == "error":
        code = payload[1]
        return code if isinstance(code, int) else None
    return None


class BitfinexClient(BaseExchangeClient):
    """Bitfinex public v2 ticker client."""

    symbol_map = BitfinexSymbolMap("t{base}USD", {"USDT": "tUSTUSD"})

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("bitfinex", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        ticker = await self._get_json(f"/v2/ticker/{instrument}")

        code = _error_code(ticker)
        if code is not None:
            self.log.warning(self.name, f"{symbol}: API returned error {code}")
            return self.no_data_quote(symbol) if code == SYMBOL_INVALID else self.error_quote(symbol)

        if not isinstance(ticker, list) or len(ticker) < 10:
            self.log.warning(self.name, f"{symbol}: no ticker for {instrument}")
            return self.no_data_quote(symbol)

        return self.build_quote(
            symbol,
            ticker[LAST_PRICE],
            change=ticker[DAILY_CHANGE],
            high=ticker[HIGH],
            low=ticker[LOW],
            bid=ticker[BID],
            ask=ticker[ASK],
            volume_base=ticker[VOLUME],
        )

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        if _error_code(error.payload) == SYMBOL_INVALID:
            return QuoteStatus.NO_DATA
        return super().classify_http_error(error)

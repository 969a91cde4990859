"""Gate.io exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import SymbolMap, parse_decimal
from .protocol import NormalizedQuote

INVALID_PAIR_LABEL = "INVALID_CURRENCY_PAIR"


class GateClient(BaseExchangeClient):
    """Gate.io v4 spot tickers client.

    The tickers endpoint returns every pair in one response, so a cycle is a
    single request filtered locally.
    """

    symbol_map = SymbolMap("{base}_USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("gate", api_key, **options)

    async def _fetch_all(self, symbols: list[str]) -> list[NormalizedQuote]:
        try:
            tickers = await self._get_json("/api/v4/spot/tickers")
        except ExchangeHTTPError as e:
            self.log.http_error(self.name, e.url, str(e))
            tickers = e.payload if isinstance(e.payload, dict) else {"label": f"HTTP_{e.status}"}

        if isinstance(tickers, dict):
            label = str(tickers.get("label") or "")
            self.log.error(self.name, f"API returned {label or 'an object'}: {tickers.get('message') or 'Unknown error'}")
            if label == INVALID_PAIR_LABEL:
                return [self.no_data_quote(s) for s in symbols]
            return [self.error_quote(s) for s in symbols]
        if not isinstance(tickers, list):
            raise ExchangeProtocolError("tickers response is not a list")

        by_pair: dict[str, dict[str, Any]] = {}
        for ticker in tickers:
            if isinstance(ticker, dict) and ticker.get("currency_pair"):
                by_pair[str(ticker["currency_pair"]).upper()] = ticker

        return [self.guarded_build(s, self._from_ticker, by_pair.get(self.to_instrument(s).upper())) for s in symbols]

    def _from_ticker(self, symbol: str, ticker: dict[str, Any] | None) -> NormalizedQuote:
        if ticker is None:
            self.log.warning(self.name, f"{symbol}: Symbol not found in ticker data")
            return self.no_data_quote(symbol)

        return self.build_quote(
            symbol,
            ticker.get("last"),
            # change_percentage is already in percent
            percent=parse_decimal(ticker.get("change_percentage")),
            high=ticker.get("high_24h"),
            low=ticker.get("low_24h"),
            bid=ticker.get("highest_bid"),
            ask=ticker.get("lowest_ask"),
            volume_base=ticker.get("base_volume"),
            volume_quote=ticker.get("quote_volume"),
        )

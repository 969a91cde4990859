"""Kraken exchange adapter."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeProtocolError
from .normalization import SymbolMap, decimal_or_zero, first_item
from .protocol import NormalizedQuote

UNKNOWN_PAIR = "EQuery:Unknown asset pair"


def _second(value: Any) -> Any:
    """Kraken sends [today, last 24 hours] pairs; we want the 24h value."""
    if isinstance(value, (list, tuple)) and len(value) > 1:
        return value[1]
    return None


def _pair_key(name: str) -> str:
    """Drop the legacy X/Z asset prefixes: XLTCZUSD -> LTCUSD, XXBTZUSD -> XBTUSD."""
    name = name.upper()
    if len(name) == 8 and name[0] in "XZ" and name[4] in "XZ":
        return name[1:4] + name[5:]
    return name


def _find_ticker(result: dict[str, Any], instrument: str) -> Any:
    if instrument in result:
        return result[instrument]
    wanted = _pair_key(instrument)
    for key, value in result.items():
        if _pair_key(key) == wanted:
            return value
    return None


def _single_result(instrument: str, result: dict[str, Any]) -> dict[str, Any]:
    # Kraken may answer a single-pair query under its own pair name (XBTUSD -> XXBTZUSD)
    if instrument not in result and len(result) == 1:
        return {instrument: next(iter(result.values()))}
    return result


class KrakenClient(BaseExchangeClient):
    """Kraken public Ticker client.

    All pairs are requested in one call. Kraken rejects the whole request
    when any pair is unknown, so on ``EQuery:Unknown asset pair`` the pairs
    are re-queried one at a time to tell listed from unlisted symbols.
    """

    symbol_map = SymbolMap(
        "{base}USD",
        {
            "BTC": "XXBTZUSD",
            "ETH": "XETHZUSD",
            "XRP": "XXRPZUSD",
            "LTC": "XLTCZUSD",
            "XMR": "XXMRZUSD",
            "XLM": "XXLMZUSD",
            "ETC": "XETCZUSD",
            "ZEC": "XZECZUSD",
            "SOL": "SOLUSD",
            "ADA": "ADAUSD",
            "AVAX": "AVAXUSD",
            "DOGE": "XDGUSD",
            "DOT": "DOTUSD",
        },
    )

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("kraken", api_key, **options)

    async def _query(self, pairs: list[str]) -> tuple[list[str], dict[str, Any]]:
        payload = await self._get_json("/0/public/Ticker", params={"pair": ",".join(pairs)})
        if not isinstance(payload, dict):
            raise ExchangeProtocolError("Ticker response is not an object")
        errors = [str(e) for e in payload.get("error") or []]
        result = payload.get("result") or {}
        if not isinstance(result, dict):
            raise ExchangeProtocolError("Ticker result is not an object")
        return errors, result

    async def _fetch_all(self, symbols: list[str]) -> list[NormalizedQuote]:
        pairs = list(dict.fromkeys(self.to_instrument(s) for s in symbols))
        errors, result = await self._query(pairs)

        if errors and any(UNKNOWN_PAIR in e for e in errors) and len(pairs) > 1:
            self.log.warning(self.name, "Batch rejected for an unknown pair; querying pairs individually")
            return await super()._fetch_all(symbols)

        if errors and not result:
            if any(UNKNOWN_PAIR in e for e in errors):
                return [self.no_data_quote(s) for s in symbols]
            self.log.error(self.name, f"API returned errors: {', '.join(errors)}")
            return [self.error_quote(s) for s in symbols]

        if len(pairs) == 1:
            result = _single_result(pairs[0], result)
        return [self.guarded_build(s, self._from_result, result) for s in symbols]

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        errors, result = await self._query([self.to_instrument(symbol)])
        if errors and not result:
            if any(UNKNOWN_PAIR in e for e in errors):
                self.log.warning(self.name, f"{symbol}: {errors[0]}")
                return self.no_data_quote(symbol)
            self.log.error(self.name, f"{symbol}: API returned errors: {', '.join(errors)}")
            return self.error_quote(symbol)
        return self._from_result(symbol, _single_result(self.to_instrument(symbol), result))

    def _from_result(self, symbol: str, result: dict[str, Any]) -> NormalizedQuote:
        ticker = _find_ticker(result, self.to_instrument(symbol))
        if not isinstance(ticker, dict):
            self.log.warning(self.name, f"{symbol}: pair not present in ticker result")
            return self.no_data_quote(symbol)

        volume = decimal_or_zero(_second(ticker.get("v")))
        vwap = decimal_or_zero(_second(ticker.get("p")))
        return self.build_quote(
            symbol,
            first_item(ticker.get("c")),
            open=ticker.get("o"),
            high=_second(ticker.get("h")),
            low=_second(ticker.get("l")),
            bid=first_item(ticker.get("b")),
            ask=first_item(ticker.get("a")),
            volume_base=volume,
            volume_quote=volume * vwap if vwap else Decimal(0),
        )

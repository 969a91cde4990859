"""CoinMarketCap adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import canonical_symbol, isoformat_to_local, parse_decimal
from .protocol import NormalizedQuote


def _status(payload: Any) -> tuple[int, str]:
    status = payload.get("status") if isinstance(payload, dict) else None
    if not isinstance(status, dict):
        return 0, ""
    try:
        code = int(status.get("error_code") or 0)
    except (TypeError, ValueError):
        code = 0
    return code, str(status.get("error_message") or "")


class CoinMarketCapClient(BaseExchangeClient):
    """CoinMarketCap quotes/latest client.

    Needs an API key (``X-CMC_PRO_API_KEY``). All symbols go in one request
    with ``skip_invalid`` so unknown symbols are left out of ``data`` instead
    of failing the whole request. Only this source provides market cap.
    """

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("coinmarketcap", api_key, **options)

    def _get_headers(self) -> dict[str, str]:
        headers = super()._get_headers()
        if self.api_key:
            headers["X-CMC_PRO_API_KEY"] = self.api_key
        return headers

    async def _fetch_all(self, symbols: list[str]) -> list[NormalizedQuote]:
        wanted = list(dict.fromkeys(canonical_symbol(s) for s in symbols if canonical_symbol(s)))
        try:
            payload = await self._get_json(
                "/v1/cryptocurrency/quotes/latest",
                params={"symbol": ",".join(wanted), "convert": "USD", "skip_invalid": "true"},
            )
        except ExchangeHTTPError as e:
            code, message = _status(e.payload)
            self.log.http_error(self.name, e.url, f"HTTP {e.status} ({code}): {message or e}")
            if e.status == 400 and "symbol" in message.lower():
                return [self.no_data_quote(s) for s in symbols]
            return [self.error_quote(s) for s in symbols]

        code, message = _status(payload)
        if code != 0:
            self.log.error(self.name, f"API returned error {code}: {message}")
            return [self.error_quote(s) for s in symbols]

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ExchangeProtocolError("quotes response has no data object")

        return [self.guarded_build(s, self._from_entry, data.get(canonical_symbol(s))) for s in symbols]

    def _from_entry(self, symbol: str, entry: Any) -> NormalizedQuote:
        # data values are objects in v1, lists of objects when a symbol is ambiguous
        if isinstance(entry, list):
            entry = entry[0] if entry else None
        if not isinstance(entry, dict):
            self.log.warning(self.name, f"{symbol}: not listed")
            return self.no_data_quote(symbol)

        usd = ((entry.get("quote") or {}).get("USD")) or {}
        return self.build_quote(
            symbol,
            usd.get("price"),
            percent=parse_decimal(usd.get("percent_change_24h")),
            volume_quote=usd.get("volume_24h"),
            market_cap=usd.get("market_cap"),
            display_name=entry.get("name") or None,
            observed_at=isoformat_to_local(usd.get("last_updated") or entry.get("last_updated")),
        )

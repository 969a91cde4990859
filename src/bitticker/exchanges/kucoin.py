"""KuCoin exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import SymbolMap, timestamp_to_local
from .protocol import NormalizedQuote, QuoteStatus

SUCCESS = "200000"
# 400100: "invalid symbol" / parameter error
INVALID_SYMBOL = "400100"


class KuCoinClient(BaseExchangeClient):
    """KuCoin 24h market stats client.

    KuCoin answers an unknown symbol with a successful envelope whose
    ``last`` is null; that is reported as NoData through the price check.
    """

    symbol_map = SymbolMap("{base}-USDT")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("kucoin", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        payload = await self._get_json("/api/v1/market/stats", params={"symbol": instrument})
        if not isinstance(payload, dict) or "code" not in payload:
            raise ExchangeProtocolError("stats response has no code")

        code = str(payload.get("code"))
        data = payload.get("data")
        if code != SUCCESS or not isinstance(data, dict):
            self.log.warning(self.name, f"{symbol}: API returned code {code}: {payload.get('msg') or 'Unknown error'}")
            if code == INVALID_SYMBOL or (code == SUCCESS and data is None):
                return self.no_data_quote(symbol)
            return self.error_quote(symbol)

        return self.build_quote(
            symbol,
            data.get("last"),
            change=data.get("changePrice"),
            high=data.get("high"),
            low=data.get("low"),
            bid=data.get("buy"),
            ask=data.get("sell"),
            volume_base=data.get("vol"),
            volume_quote=data.get("volValue"),
            observed_at=timestamp_to_local(data.get("time")),
        )

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        payload = error.payload if isinstance(error.payload, dict) else {}
        if str(payload.get("code")) == INVALID_SYMBOL:
            return QuoteStatus.NO_DATA
        return super().classify_http_error(error)

"""Huobi (HTX) exchange adapter."""

from __future__ import annotations

from typing import Any

from .base import BaseExchangeClient
from .errors import ExchangeProtocolError
from .normalization import SymbolMap, first_item, timestamp_to_local
from .protocol import NormalizedQuote

NOT_FOUND_CODES = frozenset({"invalid-parameter", "bad-request", "base-symbol-error"})


class HuobiClient(BaseExchangeClient):
    """Huobi merged market detail client (lower-case pairs such as ``btcusdt``)."""

    symbol_map = SymbolMap("{lower}usdt")

    def __init__(self, api_key: str | None = None, **options: Any):
        super().__init__("huobi", api_key, **options)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        instrument = self.to_instrument(symbol)
        payload = await self._get_json("/market/detail/merged", params={"symbol": instrument})
        if not isinstance(payload, dict) or "status" not in payload:
            raise ExchangeProtocolError("detail response has no status")

        if payload.get("status") != "ok":
            code = payload.get("err-code") or "unknown"
            self.log.warning(self.name, f"{symbol}: API returned {code}: {payload.get('err-msg') or 'Unknown error'}")
            return self.no_data_quote(symbol) if code in NOT_FOUND_CODES else self.error_quote(symbol)

        tick = payload.get("tick")
        if not isinstance(tick, dict):
            self.log.warning(self.name, f"{symbol}: no tick for {instrument}")
            return self.no_data_quote(symbol)

        return self.build_quote(
            symbol,
            tick.get("close"),
            open=tick.get("open"),
            high=tick.get("high"),
            low=tick.get("low"),
            bid=first_item(tick.get("bid")),
            ask=first_item(tick.get("ask")),
            volume_base=tick.get("amount"),
            volume_quote=tick.get("vol"),
            observed_at=timestamp_to_local(payload.get("ts")),
        )

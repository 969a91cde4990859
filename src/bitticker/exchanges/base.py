"""Base client class for exchange adapters."""

from __future__ import annotations

import asyncio
import json
from abc import ABC
from decimal import Decimal
from typing import Any, Callable, Sequence

import aiohttp

from ..logging import TickerLogger
from .errors import ExchangeHTTPError, ExchangeProtocolError
from .normalization import (
    SymbolMap,
    decimal_or_zero,
    derive_change,
    display_name,
    parse_decimal,
)
from .protocol import NormalizedQuote, QuoteStatus
from .registry import get_descriptor

USER_AGENT = "bitticker/1.0"


class BaseExchangeClient(ABC):
    """Base class for all exchange adapters.

    Subclasses implement ``_fetch_symbol`` (one request per symbol) or
    override ``_fetch_all`` (batch endpoints). Everything that can go wrong
    inside those is turned into NoData/Error rows here, so ``fetch_quotes``
    never raises.
    """

    symbol_map: SymbolMap = SymbolMap("{base}USDT")

    def __init__(
        self,
        name: str,
        api_key: str | None = None,
        *,
        log: TickerLogger | None = None,
        timeout: float = 15.0,
        max_concurrency: int = 4,
        session: aiohttp.ClientSession | None = None,
        **options: Any,
    ):
        """Initialize exchange client.

        Args:
            name: Registry id of the exchange
            api_key: API key, only sent by exchanges that need one
            log: Exchange-tagged logger (a private one is created when omitted)
            timeout: Total timeout per HTTP request in seconds
            max_concurrency: Per-symbol requests in flight at once
            session: Externally owned aiohttp session (not closed by ``close``)
            **options: Additional exchange-specific options
        """
        descriptor = get_descriptor(name)
        self.name = descriptor.id
        self.display_name = descriptor.display_name
        self.base_url = descriptor.base_url
        self.requires_api_key = descriptor.requires_api_key
        self.api_key = api_key or None
        self.log = log if log is not None else TickerLogger()
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.options = options
        self.session = session
        self._owns_session = session is None

    def get_base_url(self) -> str:
        return self.base_url

    def _get_headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self.session

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises:
            ExchangeHTTPError: HTTP status >= 400 (payload decoded when possible)
            ExchangeProtocolError: 2xx response whose body is not JSON
        """
        session = await self._ensure_session()
        url = f"{self.get_base_url()}{path}"
        # injected sessions have none of our default headers
        request_headers = {**self._get_headers(), **(headers or {})}
        self.log.http_request(self.name, "GET", _with_query(url, params))

        async with session.get(url, params=params, headers=request_headers) as resp:
            body = await resp.text()
            self.log.http_response(self.name, resp.status, f"{len(body)} bytes")

        try:
            payload = json.loads(body) if body else None
        except ValueError as exc:
            if resp.status >= 400:
                raise ExchangeHTTPError(resp.status, url, None) from exc
            raise ExchangeProtocolError(f"invalid JSON from {url}: {exc}") from exc

        if resp.status >= 400:
            raise ExchangeHTTPError(resp.status, url, payload)
        return payload

    async def fetch_quotes(self, symbols: Sequence[str]) -> list[NormalizedQuote]:
        """Fetch one quote per symbol; never raises."""
        symbols = list(symbols)
        self.log.info(self.name, f"Starting data fetch for {len(symbols)} symbols")

        if self.requires_api_key and not self.api_key:
            self.log.error(self.name, "API key required but not configured; skipping request")
            return [self.error_quote(s) for s in symbols]

        if not symbols:
            return []

        try:
            quotes = list(await self._fetch_all(symbols))
        except Exception as e:
            self.log.error(self.name, f"General API error: {e}")
            return [self.error_quote(s) for s in symbols]

        if len(quotes) != len(symbols):
            self.log.error(
                self.name,
                f"Adapter returned {len(quotes)} rows for {len(symbols)} symbols; reporting errors",
            )
            return [self.error_quote(s) for s in symbols]

        self._log_summary(quotes)
        return quotes

    async def _fetch_all(self, symbols: list[str]) -> list[NormalizedQuote]:
        """Default: one guarded request per symbol, bounded concurrency, input order kept."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(symbol: str) -> NormalizedQuote:
            async with semaphore:
                return await self._guarded_fetch(symbol)

        return list(await asyncio.gather(*(_one(s) for s in symbols)))

    async def _guarded_fetch(self, symbol: str) -> NormalizedQuote:
        try:
            return await self._fetch_symbol(symbol)
        except Exception as e:
            return self._recover(symbol, e)

    def guarded_build(self, symbol: str, build: Callable[..., NormalizedQuote], *args: Any) -> NormalizedQuote:
        """Build one row of a batch response; a failure only affects that symbol."""
        try:
            return build(symbol, *args)
        except Exception as e:
            return self._recover(symbol, e)

    def _recover(self, symbol: str, error: Exception) -> NormalizedQuote:
        if isinstance(error, ExchangeHTTPError):
            self.log.http_error(self.name, error.url, str(error))
            if self.classify_http_error(error) is QuoteStatus.NO_DATA:
                self.log.warning(self.name, f"{symbol}: not listed (HTTP {error.status})")
                return self.no_data_quote(symbol)
        elif isinstance(error, ExchangeProtocolError):
            self.log.error(self.name, f"{symbol}: malformed response: {error}")
        elif isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError)):
            self.log.error(self.name, f"{symbol}: transport error: {error!r}")
        else:
            self.log.error(self.name, f"Error processing {symbol}: {error!r}")
        return self.error_quote(symbol)

    async def _fetch_symbol(self, symbol: str) -> NormalizedQuote:
        """Fetch a single symbol. Required unless ``_fetch_all`` is overridden."""
        raise NotImplementedError(f"{self.name} does not fetch per symbol")

    def classify_http_error(self, error: ExchangeHTTPError) -> QuoteStatus:
        """Map an HTTP error to NO_DATA or ERROR. Default: 404 means not listed."""
        if error.status == 404:
            return QuoteStatus.NO_DATA
        return QuoteStatus.ERROR

    def to_instrument(self, symbol: str) -> str:
        return self.symbol_map.to_instrument(symbol)

    def no_data_quote(self, symbol: str) -> NormalizedQuote:
        return NormalizedQuote.no_data(symbol, self.name, display_name(symbol))

    def error_quote(self, symbol: str) -> NormalizedQuote:
        return NormalizedQuote.error(symbol, self.name, display_name(symbol))

    def build_quote(
        self,
        symbol: str,
        price_raw: Any,
        *,
        open: Any = None,
        change: Any = None,
        percent: Decimal | None = None,
        **values: Any,
    ) -> NormalizedQuote:
        """Build an OK row, or a NoData row when the price is missing or not positive.

        ``open``/``change`` are raw wire values; ``percent`` must already be
        scaled to percent. Remaining keyword values (high, low, bid, ask,
        volume_base, volume_quote, market_cap) are parsed leniently (0 when
        absent); ``observed_at`` and ``display_name`` pass through.
        """
        price = parse_decimal(price_raw)
        if price is None or price <= 0:
            self.log.warning(self.name, f"{symbol}: invalid price data {price_raw!r}")
            return self.no_data_quote(symbol)

        figures = derive_change(
            price,
            open=parse_decimal(open),
            change=parse_decimal(change),
            percent=percent,
        )

        extras: dict[str, Any] = {}
        for key, value in values.items():
            if key in ("observed_at", "display_name"):
                if value is not None:
                    extras[key] = value
            else:
                extras[key] = decimal_or_zero(value)
        extras.setdefault("display_name", display_name(symbol))

        quote = NormalizedQuote.ok(
            symbol,
            self.name,
            price=price,
            open=figures.open,
            change_absolute=figures.change,
            change_percent=figures.percent,
            **extras,
        )
        self.log.info(
            self.name,
            f"{symbol}: Price=${price:.2f}, Change%={figures.percent:.2f}%, "
            f"High=${quote.high:.2f}, Low=${quote.low:.2f}, Vol={quote.volume_base:.0f}",
        )
        return quote

    def _log_summary(self, quotes: Sequence[NormalizedQuote]) -> None:
        ok = sum(1 for q in quotes if q.is_ok)
        errors = sum(1 for q in quotes if q.is_error)
        no_data = sum(1 for q in quotes if q.is_no_data)
        self.log.info(
            self.name,
            f"Data fetch completed: {ok} successful, {errors} errors, {no_data} no data",
        )

    async def close(self) -> None:
        """Close connections."""
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def _with_query(url: str, params: dict[str, Any] | None) -> str:
    if not params:
        return url
    query = "&".join(f"{k}={v}" for k, v in params.items())
    return f"{url}?{query}"


def scaled_percent(value: Any, *, fraction: bool) -> Decimal | None:
    """Parse a percent change; multiply by 100 when the exchange sends a fraction."""
    parsed = parse_decimal(value)
    if parsed is None:
        return None
    return parsed * 100 if fraction else parsed


__all__ = ["BaseExchangeClient", "USER_AGENT", "scaled_percent"]

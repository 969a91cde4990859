"""Protocol definition for exchange clients."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, Sequence

ZERO = Decimal(0)

NUMERIC_FIELDS = (
    "price",
    "change_absolute",
    "change_percent",
    "open",
    "high",
    "low",
    "bid",
    "ask",
    "volume_base",
    "volume_quote",
    "market_cap",
)


def local_now() -> datetime:
    return datetime.now().astimezone()


class QuoteStatus(str, Enum):
    """Outcome of one symbol in one polling cycle."""

    OK = "ok"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class NormalizedQuote:
    """One exchange's view of one symbol at one point in time.

    Numeric fields are only meaningful when ``status`` is ``QuoteStatus.OK``;
    for NoData and Error rows they are all zero.
    """

    symbol: str
    exchange_name: str
    status: QuoteStatus = QuoteStatus.OK
    display_name: str = ""
    price: Decimal = ZERO
    change_absolute: Decimal = ZERO
    change_percent: Decimal = ZERO
    open: Decimal = ZERO
    high: Decimal = ZERO
    low: Decimal = ZERO
    bid: Decimal = ZERO
    ask: Decimal = ZERO
    volume_base: Decimal = ZERO
    volume_quote: Decimal = ZERO
    market_cap: Decimal = ZERO
    observed_at: datetime = field(default_factory=local_now)

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("quote symbol must not be empty")
        if not self.exchange_name:
            raise ValueError("quote exchange_name must not be empty")
        if self.status is not QuoteStatus.OK:
            nonzero = [name for name in NUMERIC_FIELDS if getattr(self, name) != ZERO]
            if nonzero:
                raise ValueError(
                    f"{self.status.value} quote for {self.symbol} carries numeric data: {', '.join(nonzero)}"
                )

    @classmethod
    def ok(cls, symbol: str, exchange_name: str, **values: Any) -> "NormalizedQuote":
        return cls(symbol=symbol, exchange_name=exchange_name, status=QuoteStatus.OK, **values)

    @classmethod
    def no_data(cls, symbol: str, exchange_name: str, display_name: str = "") -> "NormalizedQuote":
        return cls(
            symbol=symbol,
            exchange_name=exchange_name,
            status=QuoteStatus.NO_DATA,
            display_name=display_name or symbol,
        )

    @classmethod
    def error(cls, symbol: str, exchange_name: str, display_name: str = "") -> "NormalizedQuote":
        return cls(
            symbol=symbol,
            exchange_name=exchange_name,
            status=QuoteStatus.ERROR,
            display_name=display_name or symbol,
        )

    @property
    def is_ok(self) -> bool:
        return self.status is QuoteStatus.OK

    @property
    def is_no_data(self) -> bool:
        return self.status is QuoteStatus.NO_DATA

    @property
    def is_error(self) -> bool:
        return self.status is QuoteStatus.ERROR

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly mapping (decimals as strings)."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                data[f.name] = str(value)
            elif isinstance(value, datetime):
                data[f.name] = value.isoformat()
            elif isinstance(value, QuoteStatus):
                data[f.name] = value.value
            else:
                data[f.name] = value
        return data


class ExchangeClient(Protocol):
    """Protocol for public market-data clients."""

    name: str
    requires_api_key: bool

    async def fetch_quotes(self, symbols: Sequence[str]) -> list[NormalizedQuote]:
        """Fetch one quote per requested symbol.

        Never raises: every input symbol yields exactly one row, in input
        order, with status OK, NO_DATA or ERROR.

        Args:
            symbols: Canonical tickers (e.g. 'BTC', 'ETH')

        Returns:
            List of NormalizedQuote, same length and order as ``symbols``
        """
        ...

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        ...

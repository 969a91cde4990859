"""Symbol mapping and numeric normalization shared by exchange adapters."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)

_FRACTION_RE = re.compile(r"\.(\d+)")

CRYPTO_NAMES: dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "BNB": "BNB",
    "XRP": "XRP",
    "SOL": "Solana",
    "ADA": "Cardano",
    "AVAX": "Avalanche",
    "DOGE": "Dogecoin",
    "TRX": "TRON",
    "DOT": "Polkadot",
}


def canonical_symbol(symbol: str) -> str:
    """Normalize a configured ticker for lookups ('  btc ' -> 'BTC')."""
    return symbol.strip().upper() if symbol else ""


def display_name(symbol: str) -> str:
    """Human readable name for a ticker, falling back to the ticker itself."""
    return CRYPTO_NAMES.get(canonical_symbol(symbol), symbol)


@dataclass(frozen=True)
class SymbolMap:
    """Maps canonical tickers to an exchange's instrument identifiers.

    Explicit ``overrides`` win; anything else is rendered through
    ``pattern``, a format string receiving ``base`` (upper case) and
    ``lower`` (lower case).

    Example:
        >>> SymbolMap("{base}-USDT").to_instrument("btc")
        'BTC-USDT'
    """

    pattern: str
    overrides: Mapping[str, str] = field(default_factory=dict)

    def to_instrument(self, symbol: str) -> str:
        base = canonical_symbol(symbol)
        if base in self.overrides:
            return self.overrides[base]
        return self.pattern.format(base=base, lower=base.lower())


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a wire value into a finite Decimal.

    Accepts strings (culture-invariant, '.' as separator), ints and floats.
    Returns None for missing, empty, non-numeric or non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not result.is_finite():
        return None
    return result


def decimal_or_zero(value: Any) -> Decimal:
    parsed = parse_decimal(value)
    return parsed if parsed is not None else ZERO


def first_item(value: Any) -> Any:
    """First element of a list-like wire field (Kraken/Huobi style), else None."""
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    return None


def timestamp_to_local(value: Any, *, unit: str = "ms") -> datetime | None:
    """Convert an exchange epoch timestamp to a local aware datetime.

    Args:
        value: Epoch value as int, float or numeric string
        unit: 'ms' for milliseconds, 's' for seconds

    Returns:
        Local datetime, or None when the value is missing or out of range
    """
    number = parse_decimal(value)
    if number is None or number <= 0:
        return None
    seconds = number / 1000 if unit == "ms" else number
    try:
        return datetime.fromtimestamp(float(seconds), tz=timezone.utc).astimezone()
    except (OverflowError, OSError, ValueError):
        logger.debug("timestamp out of range: %r", value)
        return None


def isoformat_to_local(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp ('2024-01-01T00:00:00.123Z') to local time."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat takes at most microseconds
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6], text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone()


@dataclass(frozen=True, slots=True)
class ChangeFigures:
    open: Decimal
    change: Decimal
    percent: Decimal


def derive_change(
    price: Decimal,
    *,
    open: Decimal | None = None,
    change: Decimal | None = None,
    percent: Decimal | None = None,
) -> ChangeFigures:
    """Derive open, absolute change and percent change from what an exchange reports.

    Precedence: a positive ``open`` wins, then absolute ``change``, then
    ``percent`` (already scaled to percent, i.e. 1.5 for +1.5%). The result is
    always internally consistent: ``price - change == open`` and
    ``percent == change / open * 100``.

    Args:
        price: Last traded price (positive)
        open: 24h opening price
        change: Absolute 24h change
        percent: 24h change in percent

    Returns:
        ChangeFigures; all zero apart from ``open`` when nothing is derivable
    """
    if open is not None and open > 0:
        delta = price - open
        return ChangeFigures(open, delta, delta / open * HUNDRED)

    if change is not None:
        derived_open = price - change
        if derived_open > 0:
            return ChangeFigures(derived_open, change, change / derived_open * HUNDRED)

    if percent is not None:
        factor = 1 + percent / HUNDRED
        if factor > 0:
            derived_open = price / factor
            return ChangeFigures(derived_open, price - derived_open, percent)

    return ChangeFigures(open if open is not None else ZERO, ZERO, ZERO)

"""Exchange adapters and connectivity layer."""

from .protocol import ExchangeClient, NormalizedQuote, QuoteStatus
from .normalization import canonical_symbol, derive_change, parse_decimal
from .registry import (
    DEFAULT_EXCHANGE,
    EXCHANGES,
    ExchangeDescriptor,
    exchange_ids,
    get_descriptor,
    is_supported,
    resolve_exchange_id,
)
from .factory import create_exchange_client, EXCHANGE_CLIENTS
from .base import BaseExchangeClient

__all__ = [
    "ExchangeClient",
    "NormalizedQuote",
    "QuoteStatus",
    "canonical_symbol",
    "derive_change",
    "parse_decimal",
    "DEFAULT_EXCHANGE",
    "EXCHANGES",
    "ExchangeDescriptor",
    "exchange_ids",
    "get_descriptor",
    "is_supported",
    "resolve_exchange_id",
    "create_exchange_client",
    "EXCHANGE_CLIENTS",
    "BaseExchangeClient",
]

"""Static catalog of supported exchanges."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class ExchangeDescriptor:
    id: str
    display_name: str
    base_url: str
    requires_api_key: bool = False


# Display order: CoinMarketCap first, then alphabetical.
EXCHANGES: tuple[ExchangeDescriptor, ...] = (
    ExchangeDescriptor("coinmarketcap", "CoinMarketCap", "https://pro-api.coinmarketcap.com", requires_api_key=True),
    ExchangeDescriptor("binance", "Binance", "https://api.binance.com"),
    ExchangeDescriptor("bitfinex", "Bitfinex", "https://api-pub.bitfinex.com"),
    ExchangeDescriptor("bitstamp", "Bitstamp", "https://www.bitstamp.net"),
    ExchangeDescriptor("bybit", "ByBit", "https://api.bybit.com"),
    ExchangeDescriptor("coinbase", "Coinbase", "https://api.exchange.coinbase.com"),
    ExchangeDescriptor("cryptocom", "Crypto.com", "https://api.crypto.com"),
    ExchangeDescriptor("gate", "Gate.io", "https://api.gateio.ws"),
    ExchangeDescriptor("huobi", "Huobi", "https://api.huobi.pro"),
    ExchangeDescriptor("kraken", "Kraken", "https://api.kraken.com"),
    ExchangeDescriptor("kucoin", "KuCoin", "https://api.kucoin.com"),
    ExchangeDescriptor("okx", "OKX", "https://www.okx.com"),
)

DEFAULT_EXCHANGE = "binance"

_INDEX = MappingProxyType({d.id: i for i, d in enumerate(EXCHANGES)})
# Display names ("Gate.io", "Crypto.com") are accepted as aliases of the id.
_ALIASES = MappingProxyType({d.display_name.lower(): d.id for d in EXCHANGES})


def resolve_exchange_id(name: str | None) -> str | None:
    """Return the canonical id for an id or display name (case-insensitive), else None."""
    if not name:
        return None
    key = name.strip().lower()
    if key in _INDEX:
        return key
    return _ALIASES.get(key)


def get_descriptor(name: str) -> ExchangeDescriptor:
    """Look up a descriptor by id or display name.

    Raises:
        KeyError: If the exchange is not supported
    """
    exchange_id = resolve_exchange_id(name)
    if exchange_id is None:
        raise KeyError(name)
    return EXCHANGES[_INDEX[exchange_id]]


def exchange_ids() -> list[str]:
    return [d.id for d in EXCHANGES]


def is_supported(name: str | None) -> bool:
    return resolve_exchange_id(name) is not None

"""bitticker: multi-exchange crypto price ticker."""

from .settings import TickerSettings
from .exchanges import ExchangeClient, NormalizedQuote, QuoteStatus, create_exchange_client
from .orchestrator import PollingOrchestrator, ReloadOutcome, clamp_interval

__all__ = [
    "TickerSettings",
    "ExchangeClient",
    "NormalizedQuote",
    "QuoteStatus",
    "create_exchange_client",
    "PollingOrchestrator",
    "ReloadOutcome",
    "clamp_interval",
]

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .logging import TickerLogger
from .orchestrator import ClientFactory, PollingOrchestrator
from .exchanges.factory import create_exchange_client

if TYPE_CHECKING:
    from .config import ConfigStore
    from .settings import TickerSettings


@dataclass(slots=True)
class AppContainer:
    config: "ConfigStore"
    settings: "TickerSettings"
    log: TickerLogger
    orchestrator: PollingOrchestrator
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)


def build_container(
    config: "ConfigStore",
    settings: "TickerSettings | None" = None,
    *,
    log: TickerLogger | None = None,
    client_factory: ClientFactory = create_exchange_client,
) -> AppContainer:
    """Build application container with a poller wired to the shared logger."""
    log = log if log is not None else TickerLogger()
    return AppContainer(
        config=config,
        settings=settings if settings is not None else config.load(),
        log=log,
        orchestrator=PollingOrchestrator(client_factory=client_factory, log=log),
    )

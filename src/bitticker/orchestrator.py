"""Polling orchestrator: owns the active exchange client and the refresh timer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .exchanges.factory import create_exchange_client
from .exchanges.normalization import display_name
from .exchanges.protocol import ExchangeClient, NormalizedQuote
from .logging import TickerLogger
from .settings import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES, TickerSettings
from .timer import RecurringTimer, TickCallback

logger = logging.getLogger(__name__)

TAG = "Poller"

ClientFactory = Callable[..., ExchangeClient]
TimerFactory = Callable[[float, TickCallback], RecurringTimer]
DataUpdated = Callable[[], None]


def clamp_interval(minutes: Any) -> int:
    """Clamp a refresh interval to 1..1440 minutes; unusable values become the minimum."""
    try:
        value = int(minutes)
    except (TypeError, ValueError):
        return MIN_INTERVAL_MINUTES
    return max(MIN_INTERVAL_MINUTES, min(MAX_INTERVAL_MINUTES, value))


@dataclass(frozen=True, slots=True)
class ReloadOutcome:
    client_rebuilt: bool = False
    timer_restarted: bool = False
    fetch_triggered: bool = False

    @property
    def changed(self) -> bool:
        return self.client_rebuilt or self.timer_restarted or self.fetch_triggered


@dataclass(frozen=True, slots=True)
class _ActiveState:
    client: ExchangeClient
    settings: TickerSettings
    api_key: str | None


class PollingOrchestrator:
    """Drives polling cycles against the configured exchange.

    All mutable state lives in one cell (``_state``) that is replaced, never
    mutated. A cycle snapshots the cell when it starts and holds a lease on
    its client; a client replaced by ``reload`` is closed once the last
    cycle using it has finished. Published quotes are swapped as a whole
    tuple, so readers see either the previous or the new cycle's rows.
    """

    def __init__(
        self,
        *,
        client_factory: ClientFactory = create_exchange_client,
        log: TickerLogger | None = None,
        timer_factory: TimerFactory = RecurringTimer,
        seconds_per_minute: float = 60.0,
        client_options: dict[str, Any] | None = None,
    ):
        self._client_factory = client_factory
        self._timer_factory = timer_factory
        self._seconds_per_minute = seconds_per_minute
        self._client_options = dict(client_options or {})
        self.log = log if log is not None else TickerLogger()

        self._state: _ActiveState | None = None
        self._timer: RecurringTimer | None = None
        self._timer_minutes: int | None = None
        self._reload_lock = asyncio.Lock()

        self._quotes: tuple[NormalizedQuote, ...] = ()
        self._problematic = False
        self._subscribers: list[DataUpdated] = []

        self._leases: dict[int, int] = {}
        self._retired: dict[int, ExchangeClient] = {}

    @property
    def quotes(self) -> tuple[NormalizedQuote, ...]:
        return self._quotes

    @property
    def last_cycle_problematic(self) -> bool:
        return self._problematic

    @property
    def settings(self) -> TickerSettings | None:
        state = self._state
        return state.settings if state is not None else None

    @property
    def active_client(self) -> ExchangeClient | None:
        state = self._state
        return state.client if state is not None else None

    @property
    def interval_minutes(self) -> int | None:
        return self._timer_minutes

    def subscribe(self, callback: DataUpdated) -> Callable[[], None]:
        """Register a "data updated" callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def reload(self, settings: TickerSettings) -> ReloadOutcome:
        """Apply a (possibly unchanged) configuration.

        Rebuilds the client when the exchange or its credential changed, there
        is no client yet, or the active client reports the wrong name.
        Restarts the timer when the clamped interval changed. Runs one cycle
        right away when the client was rebuilt or the symbol list changed.
        """
        async with self._reload_lock:
            previous = self._state
            exchange_id = settings.selected_exchange.strip().lower()
            api_key = settings.api_key_for(exchange_id)

            exchange_changed = previous is None or previous.settings.selected_exchange.lower() != exchange_id
            credential_changed = previous is not None and previous.api_key != api_key
            name_mismatch = previous is not None and previous.client.name != exchange_id
            symbols_changed = previous is None or list(previous.settings.symbols) != list(settings.symbols)

            rebuild = exchange_changed or credential_changed or name_mismatch
            if previous is not None and not rebuild:
                self._state = _ActiveState(previous.client, settings, previous.api_key)
            else:
                client = await self._build_client(exchange_id, api_key)
                self._state = _ActiveState(client, settings, api_key)
                self.log.info(client.name, f"Exchange client ready ({type(client).__name__})")
                if previous is not None:
                    await self._retire(previous.client)

            minutes = clamp_interval(settings.refresh_interval_minutes)
            restart = self._timer is None or minutes != self._timer_minutes
            if restart:
                self._restart_timer(minutes)

            fetch = rebuild or symbols_changed

        if fetch:
            await self.fetch_cycle()

        return ReloadOutcome(client_rebuilt=rebuild, timer_restarted=restart, fetch_triggered=fetch)

    async def _build_client(self, exchange_id: str, api_key: str | None) -> ExchangeClient:
        client = self._client_factory(exchange_id, api_key, log=self.log, **self._client_options)
        if client.name == exchange_id:
            return client

        self.log.error(TAG, f"Factory returned '{client.name}' for '{exchange_id}'; retrying once")
        await self._close_client(client)
        client = self._client_factory(exchange_id, api_key, log=self.log, **self._client_options)
        if client.name != exchange_id:
            self.log.error(TAG, f"Factory returned '{client.name}' again; using it")
        return client

    def _restart_timer(self, minutes: int) -> None:
        if self._timer is not None:
            self._timer.stop()
        self._timer = self._timer_factory(minutes * self._seconds_per_minute, self._on_tick)
        self._timer.start()
        self._timer_minutes = minutes
        self.log.info(TAG, f"Refresh timer set to {minutes} min")

    async def _on_tick(self) -> None:
        await self.fetch_cycle()

    async def refresh_now(self) -> tuple[NormalizedQuote, ...]:
        """Manual refresh; not coalesced with a cycle that is already running."""
        return await self.fetch_cycle()

    async def fetch_cycle(self) -> tuple[NormalizedQuote, ...]:
        """Run one polling cycle and publish its rows. Never raises."""
        state = self._state
        if state is None:
            self.log.debug(TAG, "Fetch cycle skipped: no configuration loaded")
            return self._quotes

        client = state.client
        symbols = list(state.settings.symbols)
        self._acquire(client)
        try:
            rows = await self._fetch(client, symbols)
        finally:
            await self._release(client)

        self._publish(client.name, rows)
        return rows

    async def _fetch(self, client: ExchangeClient, symbols: Sequence[str]) -> tuple[NormalizedQuote, ...]:
        try:
            rows = tuple(await client.fetch_quotes(symbols))
        except Exception as e:
            self.log.error(client.name, f"Service exception: {e!r}")
            logger.debug("fetch_quotes raised", exc_info=True)
            return self._error_rows(client.name, symbols)

        if len(rows) != len(symbols):
            self.log.error(client.name, f"Client returned {len(rows)} rows for {len(symbols)} symbols")
            return self._error_rows(client.name, symbols)
        return rows

    @staticmethod
    def _error_rows(exchange: str, symbols: Sequence[str]) -> tuple[NormalizedQuote, ...]:
        return tuple(NormalizedQuote.error(s, exchange, display_name(s)) for s in symbols)

    def _publish(self, exchange: str, rows: tuple[NormalizedQuote, ...]) -> None:
        problematic = any(not row.is_ok for row in rows)
        self._quotes = rows

        if problematic and not self._problematic:
            self.log.warning(exchange, "API Error: displaying error indicators")
        elif not problematic and self._problematic:
            self.log.info(exchange, "API Recovered: displaying real data")
        self._problematic = problematic

        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("data-updated subscriber %r failed", callback)

    def _acquire(self, client: ExchangeClient) -> None:
        key = id(client)
        self._leases[key] = self._leases.get(key, 0) + 1

    async def _release(self, client: ExchangeClient) -> None:
        key = id(client)
        remaining = self._leases.get(key, 0) - 1
        if remaining > 0:
            self._leases[key] = remaining
            return
        self._leases.pop(key, None)
        retired = self._retired.pop(key, None)
        if retired is not None:
            await self._close_client(retired)

    async def _retire(self, client: ExchangeClient) -> None:
        if self._leases.get(id(client)):
            # closed by the last cycle that still uses it
            self._retired[id(client)] = client
            return
        await self._close_client(client)

    async def _close_client(self, client: ExchangeClient) -> None:
        try:
            await client.close()
        except Exception as e:
            self.log.warning(client.name, f"Error closing client: {e!r}")

    async def dispose(self) -> None:
        """Stop the timer, cancel timer-started cycles and close clients."""
        async with self._reload_lock:
            timer, self._timer, self._timer_minutes = self._timer, None, None
            if timer is not None:
                timer.stop(cancel_pending=True)
                await timer.wait_pending()

            state, self._state = self._state, None
            if state is not None:
                await self._retire(state.client)
        self.log.info(TAG, "Poller stopped")

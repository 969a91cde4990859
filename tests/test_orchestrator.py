"""Tests for the polling orchestrator."""

import asyncio
from decimal import Decimal

import pytest

from bitticker.exchanges.protocol import NormalizedQuote
from bitticker.logging import LogLevel
from bitticker.orchestrator import PollingOrchestrator, ReloadOutcome, clamp_interval
from bitticker.settings import TickerSettings


class FakeClient:
    """Exchange client double: OK for listed symbols, NoData for FAKE*."""

    requires_api_key = False

    def __init__(self, name, api_key=None):
        self.name = name
        self.api_key = api_key
        self.calls = []
        self.closed = False
        self.gate = None
        self.error = None
        self.failing = False
        self.truncate = False

    async def fetch_quotes(self, symbols):
        self.calls.append(list(symbols))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        rows = [self._row(s) for s in symbols]
        return rows[:-1] if self.truncate else rows

    def _row(self, symbol):
        if self.failing:
            return NormalizedQuote.error(symbol, self.name)
        if symbol.startswith("FAKE"):
            return NormalizedQuote.no_data(symbol, self.name)
        return NormalizedQuote.ok(symbol, self.name, price=Decimal("100"))

    async def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self):
        self.clients = []
        self.calls = []
        self.names = []

    def __call__(self, exchange_id, api_key=None, log=None, **options):
        self.calls.append((exchange_id, api_key))
        name = self.names.pop(0) if self.names else exchange_id
        client = FakeClient(name, api_key)
        self.clients.append(client)
        return client


class FakeTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.stopped = False
        self.cancelled_pending = False

    @property
    def running(self):
        return self.started and not self.stopped

    def start(self):
        self.started = True

    def stop(self, *, cancel_pending=False):
        self.stopped = True
        self.cancelled_pending = cancel_pending

    async def wait_pending(self):
        return None


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def timers():
    return []


@pytest.fixture
def orchestrator(factory, timers, ticker_log):
    def timer_factory(interval, callback):
        timer = FakeTimer(interval, callback)
        timers.append(timer)
        return timer

    return PollingOrchestrator(client_factory=factory, log=ticker_log, timer_factory=timer_factory)


def settings(**values):
    values.setdefault("selected_exchange", "binance")
    values.setdefault("symbols", ["BTC", "ETH"])
    return TickerSettings(**values)


def messages(log, level=None):
    return [e.message for e in log.entries if level is None or e.level is level]


class TestClampInterval:
    @pytest.mark.parametrize("value,expected", [(0, 1), (-3, 1), (1, 1), (15, 15), (1440, 1440), (5000, 1440), ("x", 1), (None, 1)])
    def test_clamp(self, value, expected):
        assert clamp_interval(value) == expected


class TestReload:
    """Tests for reload change detection."""

    @pytest.mark.asyncio
    async def test_initial_reload(self, orchestrator, factory, timers):
        outcome = await orchestrator.reload(settings())

        assert outcome == ReloadOutcome(client_rebuilt=True, timer_restarted=True, fetch_triggered=True)
        assert factory.calls == [("binance", None)]
        assert timers[0].interval == 300
        assert timers[0].started
        assert [q.symbol for q in orchestrator.quotes] == ["BTC", "ETH"]
        assert orchestrator.interval_minutes == 5

    @pytest.mark.asyncio
    async def test_reload_idempotent(self, orchestrator, factory, timers):
        """A second reload with equal settings neither rebuilds nor restarts anything."""
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings())

        assert outcome == ReloadOutcome()
        assert not outcome.changed
        assert len(factory.clients) == 1
        assert len(timers) == 1
        assert factory.clients[0].calls == [["BTC", "ETH"]]

    @pytest.mark.asyncio
    async def test_symbols_only(self, orchestrator, factory, timers):
        """Changed symbols: no rebuild, no timer restart, one immediate fetch."""
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings(symbols=["BTC", "SOL"]))

        assert outcome == ReloadOutcome(fetch_triggered=True)
        assert len(factory.clients) == 1
        assert len(timers) == 1
        assert factory.clients[0].calls == [["BTC", "ETH"], ["BTC", "SOL"]]
        assert [q.symbol for q in orchestrator.quotes] == ["BTC", "SOL"]

    @pytest.mark.asyncio
    async def test_symbol_order_matters(self, orchestrator):
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings(symbols=["ETH", "BTC"]))
        assert outcome.fetch_triggered

    @pytest.mark.asyncio
    async def test_interval_only(self, orchestrator, factory, timers):
        """Interval 5 -> 15: timer restarted with the new period, no forced fetch."""
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings(refresh_interval_minutes=15))

        assert outcome == ReloadOutcome(timer_restarted=True)
        assert timers[0].stopped
        assert timers[1].interval == 900
        assert timers[1].started
        assert len(factory.clients[0].calls) == 1

    @pytest.mark.asyncio
    async def test_exchange_change(self, orchestrator, factory):
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings(selected_exchange="kraken"))

        assert outcome.client_rebuilt and outcome.fetch_triggered
        assert not outcome.timer_restarted
        old, new = factory.clients
        assert old.closed
        assert not new.closed
        assert orchestrator.active_client is new
        assert all(q.exchange_name == "kraken" for q in orchestrator.quotes)

    @pytest.mark.asyncio
    async def test_credential_change(self, orchestrator, factory):
        base = settings(selected_exchange="coinmarketcap", api_keys={"coinmarketcap": "old"})
        await orchestrator.reload(base)
        outcome = await orchestrator.reload(base.with_changes(api_keys={"coinmarketcap": "new"}))

        assert outcome.client_rebuilt
        assert factory.calls[-1] == ("coinmarketcap", "new")
        assert factory.clients[0].closed

    @pytest.mark.asyncio
    async def test_other_exchange_key_ignored(self, orchestrator, factory):
        await orchestrator.reload(settings())
        outcome = await orchestrator.reload(settings(api_keys={"coinmarketcap": "k"}))

        assert not outcome.client_rebuilt
        assert len(factory.clients) == 1

    @pytest.mark.asyncio
    async def test_name_mismatch_retried_once(self, orchestrator, factory, ticker_log):
        factory.names = ["okx"]

        await orchestrator.reload(settings())

        assert len(factory.calls) == 2
        assert factory.clients[0].closed
        assert orchestrator.active_client.name == "binance"
        assert len(messages(ticker_log, LogLevel.ERROR)) == 1

    @pytest.mark.asyncio
    async def test_persistent_mismatch_accepted(self, orchestrator, factory, ticker_log):
        factory.names = ["okx", "okx"]

        await orchestrator.reload(settings())

        assert len(factory.calls) == 2
        assert orchestrator.active_client.name == "okx"
        assert len(messages(ticker_log, LogLevel.ERROR)) == 2

    @pytest.mark.asyncio
    async def test_timer_tick_runs_cycle(self, orchestrator, factory, timers):
        await orchestrator.reload(settings())

        await timers[0].callback()

        assert len(factory.clients[0].calls) == 2


class TestFetchCycle:
    """Tests for fetch cycles, publishing and transition logging."""

    @pytest.mark.asyncio
    async def test_no_configuration(self, orchestrator):
        assert await orchestrator.fetch_cycle() == ()

    @pytest.mark.asyncio
    async def test_ok_and_no_data_scenario(self, orchestrator, ticker_log):
        """BTC Ok, FAKE123 NoData: two rows, problematic logged once."""
        await orchestrator.reload(settings(symbols=["BTC", "FAKE123"]))
        await orchestrator.fetch_cycle()

        btc, fake = orchestrator.quotes
        assert btc.is_ok and fake.is_no_data
        assert orchestrator.last_cycle_problematic
        assert messages(ticker_log).count("API Error: displaying error indicators") == 1

    @pytest.mark.asyncio
    async def test_unreachable_then_recovered(self, orchestrator, factory, ticker_log):
        """Error rows published while failing; recovery logged exactly once."""
        await orchestrator.reload(settings())
        client = factory.clients[0]

        client.failing = True
        await orchestrator.fetch_cycle()
        assert all(q.is_error for q in orchestrator.quotes)
        assert len(orchestrator.quotes) == 2

        client.failing = False
        await orchestrator.fetch_cycle()
        await orchestrator.fetch_cycle()

        assert not orchestrator.last_cycle_problematic
        log = messages(ticker_log)
        assert log.count("API Error: displaying error indicators") == 1
        assert log.count("API Recovered: displaying real data") == 1

    @pytest.mark.asyncio
    async def test_healthy_start_logs_no_transition(self, orchestrator, ticker_log):
        await orchestrator.reload(settings())
        await orchestrator.fetch_cycle()

        assert "API Recovered: displaying real data" not in messages(ticker_log)

    @pytest.mark.asyncio
    async def test_client_exception_synthesizes_error_rows(self, orchestrator, factory):
        await orchestrator.reload(settings(symbols=["BTC", "ETH", "SOL"]))
        factory.clients[0].error = RuntimeError("contract violation")

        rows = await orchestrator.fetch_cycle()

        assert [q.symbol for q in rows] == ["BTC", "ETH", "SOL"]
        assert all(q.is_error for q in rows)
        assert orchestrator.quotes == rows
        assert orchestrator.last_cycle_problematic

    @pytest.mark.asyncio
    async def test_short_result_synthesizes_error_rows(self, orchestrator, factory):
        await orchestrator.reload(settings())
        factory.clients[0].truncate = True

        rows = await orchestrator.fetch_cycle()

        assert len(rows) == 2
        assert all(q.is_error for q in rows)

    @pytest.mark.asyncio
    async def test_published_collection_replaced_whole(self, orchestrator):
        await orchestrator.reload(settings())
        before = orchestrator.quotes

        await orchestrator.reload(settings(selected_exchange="okx"))

        assert isinstance(orchestrator.quotes, tuple)
        assert all(q.exchange_name == "binance" for q in before)
        assert all(q.exchange_name == "okx" for q in orchestrator.quotes)

    @pytest.mark.asyncio
    async def test_refresh_now(self, orchestrator, factory):
        await orchestrator.reload(settings())
        await orchestrator.refresh_now()
        assert len(factory.clients[0].calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_cycles_both_publish(self, orchestrator, factory):
        await orchestrator.reload(settings())
        results = await asyncio.gather(orchestrator.refresh_now(), orchestrator.fetch_cycle())
        assert all(len(r) == 2 for r in results)
        assert len(factory.clients[0].calls) == 3


class TestSubscribers:
    @pytest.mark.asyncio
    async def test_data_updated_callbacks(self, orchestrator):
        seen = []
        unsubscribe = orchestrator.subscribe(lambda: seen.append(len(orchestrator.quotes)))

        await orchestrator.reload(settings())
        await orchestrator.fetch_cycle()
        unsubscribe()
        await orchestrator.fetch_cycle()

        assert seen == [2, 2]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_cycle(self, orchestrator):
        seen = []

        def broken():
            raise RuntimeError("ui gone")

        orchestrator.subscribe(broken)
        orchestrator.subscribe(lambda: seen.append(1))

        rows = await orchestrator.reload(settings())

        assert rows.fetch_triggered
        assert seen == [1]


class TestClientLifetime:
    """Tests for lease-based client retirement and dispose."""

    @pytest.mark.asyncio
    async def test_retired_client_closed_after_inflight_cycle(self, orchestrator, factory):
        await orchestrator.reload(settings())
        old = factory.clients[0]
        old.gate = asyncio.Event()

        inflight = asyncio.create_task(orchestrator.fetch_cycle())
        await asyncio.sleep(0)
        await orchestrator.reload(settings(selected_exchange="kraken"))

        assert not old.closed
        old.gate.set()
        rows = await inflight

        assert old.closed
        assert all(q.exchange_name == "binance" for q in rows)
        # last writer wins
        assert all(q.exchange_name == "binance" for q in orchestrator.quotes)

    @pytest.mark.asyncio
    async def test_dispose(self, orchestrator, factory, timers):
        await orchestrator.reload(settings())

        await orchestrator.dispose()

        assert timers[0].stopped
        assert timers[0].cancelled_pending
        assert factory.clients[0].closed
        assert orchestrator.active_client is None
        assert await orchestrator.fetch_cycle() == orchestrator.quotes
        assert len(factory.clients[0].calls) == 1

    @pytest.mark.asyncio
    async def test_dispose_without_reload(self, orchestrator):
        await orchestrator.dispose()
        assert orchestrator.active_client is None

    @pytest.mark.asyncio
    async def test_real_timer_drives_cycles(self, factory, ticker_log):
        orchestrator = PollingOrchestrator(client_factory=factory, log=ticker_log, seconds_per_minute=0.01)

        await orchestrator.reload(settings(refresh_interval_minutes=1))
        await asyncio.sleep(0.035)
        await orchestrator.dispose()

        assert len(factory.clients[0].calls) >= 2
        assert factory.clients[0].closed

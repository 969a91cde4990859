"""Tests for the exchange-tagged logger and logging setup."""

import logging

import pytest

from bitticker.logging import LogEntry, LogLevel, TickerLogger, configure_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestTickerLogger:
    """Tests for TickerLogger."""

    def test_entries_are_tagged(self, ticker_log):
        ticker_log.info("binance", "Starting data fetch for 2 symbols")
        ticker_log.error("kraken", "boom")

        first, second = ticker_log.entries
        assert (first.level, first.exchange) == (LogLevel.INFO, "binance")
        assert (second.level, second.exchange, second.message) == (LogLevel.ERROR, "kraken", "boom")

    def test_forwards_to_stdlib(self, ticker_log, caplog):
        with caplog.at_level(logging.WARNING, logger="bitticker.test"):
            ticker_log.warning("okx", "slow response")

        assert "[okx] slow response" in caplog.text

    def test_history_is_bounded(self):
        log = TickerLogger("bitticker.test", history_size=3)
        for i in range(5):
            log.debug("gate", f"line {i}")

        assert [e.message for e in log.entries] == ["line 2", "line 3", "line 4"]

    def test_tail_and_clear(self, ticker_log):
        for i in range(4):
            ticker_log.info("bybit", str(i))

        assert [e.message for e in ticker_log.tail(2)] == ["2", "3"]
        assert ticker_log.tail(0) == []
        ticker_log.clear()
        assert ticker_log.entries == []

    def test_listeners(self, ticker_log):
        seen = []
        remove = ticker_log.add_listener(seen.append)

        ticker_log.info("huobi", "one")
        remove()
        ticker_log.info("huobi", "two")

        assert [e.message for e in seen] == ["one"]

    def test_failing_listener_is_isolated(self, ticker_log):
        seen = []

        def broken(entry):
            raise RuntimeError("viewer closed")

        ticker_log.add_listener(broken)
        ticker_log.add_listener(seen.append)
        ticker_log.info("kucoin", "still delivered")

        assert len(seen) == 1
        assert ticker_log.entries[-1].message == "still delivered"

    @pytest.mark.parametrize("status,level", [(200, LogLevel.DEBUG), (204, LogLevel.DEBUG), (404, LogLevel.WARNING), (500, LogLevel.WARNING)])
    def test_http_response_level(self, ticker_log, status, level):
        ticker_log.http_response("bitstamp", status, "12 bytes")

        entry = ticker_log.entries[-1]
        assert entry.level is level
        assert entry.message == f"HTTP Response: {status} (12 bytes)"

    def test_http_helpers(self, ticker_log):
        ticker_log.http_request("okx", "GET", "https://www.okx.com/api/v5/market/ticker")
        ticker_log.http_error("okx", "https://www.okx.com", "timeout")

        request, error = ticker_log.entries
        assert request.level is LogLevel.DEBUG
        assert request.message.startswith("HTTP GET -> ")
        assert error.level is LogLevel.ERROR
        assert error.message == "HTTP Error for https://www.okx.com: timeout"


class TestLogEntry:
    def test_formatted(self):
        from datetime import datetime

        entry = LogEntry(LogLevel.WARNING, "coinbase", "HTTP Response: 404", datetime(2024, 1, 2, 3, 4, 5))
        assert entry.formatted == "[03:04:05] [Warning] [coinbase] HTTP Response: 404"


class TestConfigureLogging:
    def test_creates_log_file(self, tmp_path, restore_root_logging):
        configure_logging(tmp_path / "logs")
        logging.getLogger("bitticker.test").warning("written to file")

        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "written to file" in (tmp_path / "logs" / "bitticker.log").read_text()

    def test_level_from_env(self, monkeypatch, restore_root_logging):
        monkeypatch.setenv("BITTICKER_LOG_LEVEL", "debug")
        configure_logging()
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_defaults_to_info(self, monkeypatch, restore_root_logging):
        monkeypatch.setenv("BITTICKER_LOG_LEVEL", "chatty")
        configure_logging()
        assert logging.getLogger().level == logging.INFO

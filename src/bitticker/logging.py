from __future__ import annotations

import logging
import logging.handlers
import os
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable


def configure_logging(log_dir: Path | None = None) -> None:
    """Configure structured logging with console and rotating file handlers."""
    level_name = os.environ.get("BITTICKER_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler with rotation (10MB per file, 5 backup files)
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "bitticker.log",
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


class LogLevel(str, Enum):
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"

    @property
    def stdlib_level(self) -> int:
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One exchange-tagged log line kept for the log viewer."""

    level: LogLevel
    exchange: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def formatted(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] [{self.level.value}] [{self.exchange}] {self.message}"


LogListener = Callable[[LogEntry], None]


class TickerLogger:
    """Leveled, exchange-tagged logger injected into clients and the orchestrator.

    Every line goes to the stdlib logger ``bitticker.feed`` and into a
    bounded history that a log viewer can read. Listeners registered with
    ``add_listener`` are called for each new entry.
    """

    def __init__(self, name: str = "bitticker.feed", *, history_size: int = 1000):
        self._logger = logging.getLogger(name)
        self._history: deque[LogEntry] = deque(maxlen=history_size)
        self._listeners: list[LogListener] = []

    def log(self, level: LogLevel, exchange: str, message: str) -> None:
        entry = LogEntry(level, exchange, message)
        self._history.append(entry)
        self._logger.log(level.stdlib_level, "[%s] %s", exchange, message)
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                self._logger.exception("log listener %r failed", listener)

    def debug(self, exchange: str, message: str) -> None:
        self.log(LogLevel.DEBUG, exchange, message)

    def info(self, exchange: str, message: str) -> None:
        self.log(LogLevel.INFO, exchange, message)

    def warning(self, exchange: str, message: str) -> None:
        self.log(LogLevel.WARNING, exchange, message)

    def error(self, exchange: str, message: str) -> None:
        self.log(LogLevel.ERROR, exchange, message)

    def http_request(self, exchange: str, method: str, url: str) -> None:
        self.debug(exchange, f"HTTP {method} -> {url}")

    def http_response(self, exchange: str, status: int, size: str) -> None:
        if 200 <= status < 300:
            self.debug(exchange, f"HTTP Response: {status} ({size})")
        else:
            self.warning(exchange, f"HTTP Response: {status} ({size})")

    def http_error(self, exchange: str, url: str, error: str) -> None:
        self.error(exchange, f"HTTP Error for {url}: {error}")

    def add_listener(self, listener: LogListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._history)

    def tail(self, count: int) -> list[LogEntry]:
        if count <= 0:
            return []
        return list(self._history)[-count:]

    def clear(self) -> None:
        self._history.clear()

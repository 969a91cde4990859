from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .di import AppContainer

logger = logging.getLogger(__name__)


class ConfigWatcher:
    """Detects changes of the config file by modification time."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._stamp = self._read_stamp()

    def _read_stamp(self) -> int | None:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    def changed(self) -> bool:
        stamp = self._read_stamp()
        if stamp == self._stamp:
            return False
        self._stamp = stamp
        return True


async def run(container: AppContainer, *, watch_seconds: float = 2.0) -> None:
    logger.info("runtime starting")
    logger.debug("settings=%s", container.settings.redacted())

    orchestrator = container.orchestrator
    watcher = ConfigWatcher(container.config.path)

    try:
        await orchestrator.reload(container.settings)

        while not container.shutdown.is_set():
            try:
                await asyncio.wait_for(container.shutdown.wait(), timeout=watch_seconds)
            except asyncio.TimeoutError:
                pass

            if container.shutdown.is_set() or not watcher.changed():
                continue

            container.settings = container.config.load()
            outcome = await orchestrator.reload(container.settings)
            logger.info(
                "configuration reloaded: rebuilt=%s timer_restarted=%s fetched=%s",
                outcome.client_rebuilt,
                outcome.timer_restarted,
                outcome.fetch_triggered,
            )
    finally:
        await orchestrator.dispose()

    logger.info("runtime stopped")

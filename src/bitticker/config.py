from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .exchanges.registry import resolve_exchange_id
from .settings import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES, TickerSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "BITTICKER_"


def _deep_set(obj: dict[str, Any], path: list[str], value: Any) -> None:
    cur: dict[str, Any] = obj
    for key in path[:-1]:
        nxt = cur.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[key] = nxt
        cur = nxt
    cur[path[-1]] = value


def _parse_env_value(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _apply_env_overrides(data: dict[str, Any], *, prefix: str = ENV_PREFIX) -> dict[str, Any]:
    merged: dict[str, Any] = dict(data)

    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        if remainder in {"CONFIG", "LOG_LEVEL"}:
            continue

        path = [p.lower() for p in remainder.split("__") if p]
        if not path:
            continue

        _deep_set(merged, path, _parse_env_value(raw_value))

    return merged


def default_config_path() -> Path:
    return Path(os.environ.get(f"{ENV_PREFIX}CONFIG", "config.yml"))


class ConfigStore:
    """YAML-backed configuration store.

    ``load`` never fails: a missing file yields defaults, and a corrupt or
    invalid file is logged and replaced by defaults. ``save`` is the one
    operation allowed to raise (``OSError``) to the user.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else default_config_path()

    def load(self, *, apply_env: bool = True) -> TickerSettings:
        data = self._read_document()
        if apply_env:
            data = _apply_env_overrides(data)

        try:
            settings = TickerSettings.model_validate(data)
        except ValidationError as exc:
            logger.warning("invalid configuration in %s, using defaults: %s", self.path, exc)
            return TickerSettings()

        logger.debug(
            "configuration loaded: %d symbols, %dmin refresh, exchange %s",
            len(settings.symbols),
            settings.refresh_interval_minutes,
            settings.selected_exchange,
        )
        return settings

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.info("no configuration at %s, using defaults", self.path)
            return {}

        try:
            loaded = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            logger.warning("cannot read configuration %s, using defaults: %s", self.path, exc)
            return {}

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            logger.warning("config root must be a mapping, got %s; using defaults", type(loaded).__name__)
            return {}
        return loaded

    def save(self, settings: TickerSettings) -> None:
        """Write ``settings`` atomically (temp file + replace).

        Raises:
            OSError: The directory or file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(settings.to_document(), sort_keys=False, allow_unicode=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            "configuration saved: %d symbols, %dmin refresh, exchange %s, keys: %s",
            len(settings.symbols),
            settings.refresh_interval_minutes,
            settings.selected_exchange,
            ", ".join(sorted(settings.api_keys)) or "none",
        )

    def _update(self, **changes: Any) -> TickerSettings:
        settings = self.load(apply_env=False).with_changes(**changes)
        self.save(settings)
        return settings

    def set_exchange(self, exchange: str) -> TickerSettings:
        """Select an exchange by id or display name.

        Raises:
            ValueError: If the exchange is not supported
        """
        exchange_id = resolve_exchange_id(exchange)
        if exchange_id is None:
            raise ValueError(f"Unsupported exchange: {exchange}")
        return self._update(selected_exchange=exchange_id)

    def set_api_key(self, exchange: str, api_key: str | None) -> TickerSettings:
        """Store (or with a blank key, remove) the API key for an exchange."""
        exchange_id = resolve_exchange_id(exchange)
        if exchange_id is None:
            raise ValueError(f"Unsupported exchange: {exchange}")
        keys = self.load(apply_env=False).to_document()["api_keys"]
        if api_key and api_key.strip():
            keys[exchange_id] = api_key.strip()
        else:
            keys.pop(exchange_id, None)
        return self._update(api_keys=keys)

    def set_symbols(self, symbols: Iterable[str]) -> TickerSettings:
        return self._update(symbols=[s.strip().upper() for s in symbols if s.strip()])

    def set_interval(self, minutes: int) -> TickerSettings:
        """Set the refresh interval.

        Raises:
            ValueError: If ``minutes`` is outside 1..1440
        """
        if not MIN_INTERVAL_MINUTES <= minutes <= MAX_INTERVAL_MINUTES:
            raise ValueError(
                f"Refresh interval must be between {MIN_INTERVAL_MINUTES} and {MAX_INTERVAL_MINUTES} minutes"
            )
        return self._update(refresh_interval_minutes=minutes)

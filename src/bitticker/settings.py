from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from .exchanges.registry import DEFAULT_EXCHANGE, resolve_exchange_id

logger = logging.getLogger(__name__)

DEFAULT_SYMBOLS = ("BTC", "ETH", "BNB", "XRP", "SOL", "ADA", "AVAX", "DOGE", "TRX", "DOT")
DEFAULT_INTERVAL_MINUTES = 5
MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 1440

_SYMBOL_SPLIT_RE = re.compile(r"[\s,;]+")


class WindowSettings(BaseModel):
    """Window geometry, stored for the display frontend and otherwise untouched."""

    left: float = 100
    top: float = 100
    width: float = 800
    display_mode: str = "All"

    model_config = {"extra": "forbid"}


class TickerSettings(BaseModel):
    selected_exchange: str = DEFAULT_EXCHANGE
    api_keys: dict[str, SecretStr] = Field(default_factory=dict)
    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    refresh_interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    window: WindowSettings = Field(default_factory=WindowSettings)

    model_config = {"extra": "forbid"}

    @field_validator("selected_exchange", mode="before")
    @classmethod
    def _correct_exchange(cls, value: Any) -> str:
        exchange_id = resolve_exchange_id(value) if isinstance(value, str) else None
        if exchange_id is None:
            logger.warning("unknown exchange %r in configuration, using %s", value, DEFAULT_EXCHANGE)
            return DEFAULT_EXCHANGE
        return exchange_id

    @field_validator("refresh_interval_minutes", mode="before")
    @classmethod
    def _correct_interval(cls, value: Any) -> int:
        minutes = _as_int(value)
        if minutes is None or not MIN_INTERVAL_MINUTES <= minutes <= MAX_INTERVAL_MINUTES:
            logger.warning(
                "invalid refresh interval %r in configuration, using %d minutes",
                value,
                DEFAULT_INTERVAL_MINUTES,
            )
            return DEFAULT_INTERVAL_MINUTES
        return minutes

    @field_validator("api_keys", mode="before")
    @classmethod
    def _normalize_api_keys(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        keys: dict[str, Any] = {}
        for name, key in value.items():
            exchange_id = resolve_exchange_id(str(name)) or str(name).strip().lower()
            if isinstance(key, SecretStr):
                key = key.get_secret_value()
            if key is None or not str(key).strip():
                continue
            keys[exchange_id] = str(key).strip()
        return keys

    @field_validator("symbols", mode="before")
    @classmethod
    def _split_symbols(cls, value: Any) -> Any:
        if value is None:
            return list(DEFAULT_SYMBOLS)
        if isinstance(value, str):
            return [s for s in _SYMBOL_SPLIT_RE.split(value) if s]
        if isinstance(value, (list, tuple)):
            return [str(s).strip() for s in value if s is not None and str(s).strip()]
        return value

    def api_key_for(self, exchange_id: str) -> str | None:
        """Return the configured key for an exchange, or None when absent or blank."""
        key = resolve_exchange_id(exchange_id) or exchange_id.strip().lower()
        secret = self.api_keys.get(key)
        if secret is None:
            return None
        return secret.get_secret_value().strip() or None

    def with_changes(self, **changes: Any) -> "TickerSettings":
        """Return a validated copy with ``changes`` applied."""
        data = self.to_document()
        data.update(changes)
        return type(self).model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Plain mapping with secrets revealed, as written to the config file."""
        data = self.model_dump(mode="json")
        data["api_keys"] = {k: v.get_secret_value() for k, v in self.api_keys.items()}
        return data

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["api_keys"] = {k: "***" for k in self.api_keys}
        return data


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None

"""Errors raised inside exchange adapters.

They never leave a client: ``BaseExchangeClient`` turns them into NoData or
Error rows.
"""

from __future__ import annotations

from typing import Any


class ExchangeHTTPError(Exception):
    """Non-2xx HTTP response from an exchange."""

    def __init__(self, status: int, url: str, payload: Any = None):
        self.status = status
        self.url = url
        self.payload = payload
        super().__init__(f"HTTP {status} for {url}")


class ExchangeProtocolError(Exception):
    """Response body that could not be decoded or has an unexpected shape."""

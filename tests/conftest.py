"""Pytest configuration and fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from bitticker.logging import TickerLogger


def create_async_response(status=200, json_data=None, text=None):
    """Create a mock aiohttp response usable as ``async with session.get(...)``."""
    resp = AsyncMock()
    resp.status = status
    body = text if text is not None else json.dumps(json_data if json_data is not None else {})
    resp.text = AsyncMock(return_value=body)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


@pytest.fixture
def make_response():
    """Factory for mock responses: make_response(status, json_data) or text=..."""
    return create_async_response


@pytest.fixture
def mock_http():
    """Install a mocked session on a client.

    ``routes`` is either a list of responses/exceptions returned in call order,
    or a callable ``(url, params) -> response`` (raise from it to simulate
    transport errors).
    """

    def _install(client, routes):
        session = MagicMock()
        session.closed = False
        if callable(routes):
            session.get = MagicMock(
                side_effect=lambda url, params=None, headers=None: routes(url, params or {})
            )
        else:
            session.get = MagicMock(side_effect=list(routes))
        client._ensure_session = AsyncMock(return_value=session)
        return session

    return _install


@pytest.fixture
def ticker_log():
    """Isolated exchange-tagged logger."""
    return TickerLogger("bitticker.test")


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def binance_ticker():
    """Binance /api/v3/ticker/24hr payload for BTCUSDT."""
    return {
        "symbol": "BTCUSDT",
        "priceChange": "1000.00000000",
        "priceChangePercent": "2.273",
        "lastPrice": "45000.00000000",
        "bidPrice": "44999.50000000",
        "askPrice": "45000.50000000",
        "openPrice": "44000.00000000",
        "highPrice": "45500.00000000",
        "lowPrice": "43800.00000000",
        "volume": "12345.67800000",
        "quoteVolume": "550000000.12000000",
        "closeTime": 1700000000000,
    }

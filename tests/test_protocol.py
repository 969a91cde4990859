"""Tests for the normalized quote model."""

from decimal import Decimal

import pytest

from bitticker.exchanges.protocol import NUMERIC_FIELDS, NormalizedQuote, QuoteStatus


class TestNormalizedQuote:
    """Tests for NormalizedQuote invariants."""

    def test_ok_row(self):
        quote = NormalizedQuote.ok("BTC", "binance", price=Decimal("45000"), display_name="Bitcoin")
        assert quote.status is QuoteStatus.OK
        assert quote.is_ok and not quote.is_error and not quote.is_no_data
        assert quote.observed_at.tzinfo is not None

    @pytest.mark.parametrize("factory", [NormalizedQuote.no_data, NormalizedQuote.error])
    def test_placeholder_rows_are_zeroed(self, factory):
        quote = factory("FAKE123", "kraken")
        assert quote.symbol == "FAKE123"
        assert quote.exchange_name == "kraken"
        assert quote.display_name == "FAKE123"
        assert all(getattr(quote, name) == 0 for name in NUMERIC_FIELDS)

    def test_exactly_one_status(self):
        quote = NormalizedQuote.no_data("BTC", "okx")
        flags = [quote.is_ok, quote.is_no_data, quote.is_error]
        assert flags.count(True) == 1

    def test_numeric_data_rejected_when_not_ok(self):
        with pytest.raises(ValueError, match="carries numeric data"):
            NormalizedQuote("BTC", "okx", status=QuoteStatus.ERROR, price=Decimal("1"))

    @pytest.mark.parametrize("symbol,exchange", [("", "okx"), ("BTC", "")])
    def test_identity_required(self, symbol, exchange):
        with pytest.raises(ValueError):
            NormalizedQuote.error(symbol, exchange)

    def test_immutable(self):
        quote = NormalizedQuote.error("BTC", "okx")
        with pytest.raises(AttributeError):
            quote.price = Decimal("1")

    def test_as_dict(self):
        quote = NormalizedQuote.ok("BTC", "okx", price=Decimal("45000.10"))
        data = quote.as_dict()
        assert data["price"] == "45000.10"
        assert data["status"] == "ok"
        assert isinstance(data["observed_at"], str)

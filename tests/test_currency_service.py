"""Tests for currency conversion through the dive center's base currency."""

from decimal import Decimal

import pytest

from diveops.models import DiveCenter
from diveops.services.currency_service import CurrencyConversionService, convert_price, get_rate
from diveops.services.exceptions import MissingExchangeRateError

RATES = {"EUR": 0.92, "MVR": {"rate": 15.42, "source": "manual"}}


class TestGetRate:
    """Tests for get_rate."""

    def test_plain_number(self):
        assert get_rate(RATES, "EUR") == Decimal("0.92")

    def test_dict_format(self):
        """{"rate": ...} entries are read too."""
        assert get_rate(RATES, "MVR") == Decimal("15.42")

    def test_missing_or_invalid(self):
        """Missing, zero, negative and malformed rates are all missing."""
        rates = {"ZER": 0, "NEG": -1, "BAD": "abc", "EMP": {"source": "manual"}}

        for code in ("XXX", "ZER", "NEG", "BAD", "EMP"):
            assert get_rate(rates, code) is None


class TestConvertPrice:
    """Tests for convert_price."""

    def test_same_currency_passthrough(self):
        """No rate is needed to convert into the same currency."""
        assert convert_price("100", "THB", "thb", "USD", {}) == Decimal("100.00")

    def test_base_to_target(self):
        """100 USD x 0.92 = 92.00 EUR."""
        assert convert_price("100", "USD", "EUR", "USD", RATES) == Decimal("92.00")

    def test_target_to_base(self):
        """92 EUR / 0.92 = 100.00 USD."""
        assert convert_price("92", "EUR", "USD", "USD", RATES) == Decimal("100.00")

    def test_cross_currency(self):
        """EUR -> MVR goes through the base currency."""
        assert convert_price("92", "EUR", "MVR", "USD", RATES) == Decimal("1542.00")

    def test_codes_are_case_insensitive(self):
        assert convert_price("100", "usd", "eur", "usd", RATES) == Decimal("92.00")

    def test_missing_rate_raises(self):
        """A conversion without a rate raises MissingExchangeRateError."""
        with pytest.raises(MissingExchangeRateError) as exc_info:
            convert_price("100", "USD", "THB", "USD", RATES)

        assert exc_info.value.from_currency == "USD"
        assert exc_info.value.to_currency == "THB"
        assert "from USD to THB" in exc_info.value.message

    def test_cross_currency_needs_both_rates(self):
        with pytest.raises(MissingExchangeRateError):
            convert_price("100", "EUR", "THB", "USD", RATES)

    def test_round_trip_within_a_cent(self):
        """Converting there and back loses at most one cent."""
        for amount in ("0.01", "19.99", "123.45", "1000.00"):
            there = convert_price(amount, "USD", "MVR", "USD", RATES)
            back = convert_price(there, "MVR", "USD", "USD", RATES)

            assert abs(back - Decimal(amount)) <= Decimal("0.01")


class TestCurrencyConversionService:
    """Tests for the dive center wrapper."""

    def test_uses_dive_center_rates(self):
        center = DiveCenter(name="Reef", currency="USD", settings={"currency_rates": RATES})

        assert CurrencyConversionService.convert_price("50", "USD", "EUR", center) == Decimal("46.00")

    def test_available_currencies_base_first(self):
        center = DiveCenter(name="Reef", currency="USD", settings={"currency_rates": RATES})

        assert CurrencyConversionService.get_available_currencies(center) == ["USD", "EUR", "MVR"]

    def test_dive_center_without_rates(self):
        center = DiveCenter(name="Reef", currency="USD", settings=None)

        assert CurrencyConversionService.get_available_currencies(center) == ["USD"]
        with pytest.raises(MissingExchangeRateError):
            CurrencyConversionService.convert_price("50", "USD", "EUR", center)

"""Tests for advisory quotes and pricing input loading."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from homestay.domain.errors import BookingError, ErrorKind, PricingDataError
from homestay.domain.pricing import PropertyConfig, RateCalculation
from homestay.domain.quote import load_pricing_inputs, quote_rate

from .helpers import PROPERTY_ID, fake_txn, make_property, property_row

MONDAY = date(2024, 1, 15)
WEDNESDAY = date(2024, 1, 17)


class TestLoadPricingInputs:
    def test_unknown_property(self):
        with patch("homestay.domain.quote.get_property", return_value=None), \
             patch("homestay.domain.quote.effective_rates") as mock_rates:
            assert load_pricing_inputs(MagicMock(), PROPERTY_ID, MONDAY, WEDNESDAY) is None
        mock_rates.assert_not_called()

    def test_reads_without_lock_by_default(self):
        cur = MagicMock()
        with patch("homestay.domain.quote.get_property", return_value=property_row()) as mock_get, \
             patch("homestay.domain.quote.lock_property") as mock_lock, \
             patch("homestay.domain.quote.effective_rates", return_value={}) as mock_rates:
            prop, seasonal = load_pricing_inputs(cur, PROPERTY_ID, MONDAY, WEDNESDAY)

        mock_get.assert_called_once_with(cur, PROPERTY_ID)
        mock_lock.assert_not_called()
        mock_rates.assert_called_once_with(cur, PROPERTY_ID, MONDAY, WEDNESDAY)
        assert isinstance(prop, PropertyConfig)
        assert prop.base_rate == Decimal("500000")
        assert seasonal == {}

    def test_lock_takes_property_row_lock(self):
        cur = MagicMock()
        with patch("homestay.domain.quote.get_property") as mock_get, \
             patch("homestay.domain.quote.lock_property", return_value=property_row()) as mock_lock, \
             patch("homestay.domain.quote.effective_rates", return_value={}):
            assert load_pricing_inputs(cur, PROPERTY_ID, MONDAY, WEDNESDAY, lock=True) is not None

        mock_lock.assert_called_once_with(cur, PROPERTY_ID)
        mock_get.assert_not_called()

    def test_malformed_property_row(self):
        row = property_row()
        row["base_rate"] = "not-a-number"
        with patch("homestay.domain.quote.get_property", return_value=row), \
             patch("homestay.domain.quote.effective_rates", return_value={}):
            with pytest.raises(PricingDataError):
                load_pricing_inputs(MagicMock(), PROPERTY_ID, MONDAY, WEDNESDAY)


class TestQuoteRate:
    def _patched(self, inputs):
        return (
            patch("homestay.domain.quote.txn", fake_txn()),
            patch("homestay.domain.quote.load_pricing_inputs", return_value=inputs),
        )

    def test_quote_for_weekday_stay(self):
        txn_patch, load_patch = self._patched((make_property(), {}))
        with txn_patch, load_patch:
            result = quote_rate(PROPERTY_ID, "2024-01-15", "2024-01-17", 2)

        assert isinstance(result, RateCalculation)
        assert result.nights == 2
        assert result.total_base_amount == Decimal("1000000.00")

    def test_invalid_date_format(self):
        with patch("homestay.domain.quote.load_pricing_inputs") as mock_load:
            result = quote_rate(PROPERTY_ID, "15/01/2024", "2024-01-17", 2)

        assert isinstance(result, BookingError)
        assert result.kind is ErrorKind.INVALID_RANGE
        mock_load.assert_not_called()

    def test_checkout_not_after_checkin(self):
        result = quote_rate(PROPERTY_ID, MONDAY, MONDAY, 2)

        assert isinstance(result, BookingError)
        assert result.kind is ErrorKind.INVALID_RANGE

    def test_unknown_property(self):
        txn_patch, load_patch = self._patched(None)
        with txn_patch, load_patch:
            result = quote_rate(PROPERTY_ID, MONDAY, WEDNESDAY, 2)

        assert result.kind is ErrorKind.PROPERTY_NOT_FOUND

    @pytest.mark.parametrize("guest_count", [0, 7])
    def test_guest_count_outside_capacity(self, guest_count):
        txn_patch, load_patch = self._patched((make_property(capacity_max=6), {}))
        with txn_patch, load_patch:
            result = quote_rate(PROPERTY_ID, MONDAY, WEDNESDAY, guest_count)

        assert result.kind is ErrorKind.CAPACITY_EXCEEDED
        assert result.meta == {"capacity_max": 6}

    def test_extra_guests_priced_as_extra_beds(self):
        prop = make_property(capacity=4, capacity_max=6, extra_bed_rate=Decimal("100000"))
        txn_patch, load_patch = self._patched((prop, {}))
        with txn_patch, load_patch:
            result = quote_rate(PROPERTY_ID, MONDAY, WEDNESDAY, 6)

        assert result.extra_bed_amount == Decimal("400000.00")

"""Tests for seasonal rate resolution and write-time overlap enforcement."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

import homestay.domain.seasonal_rates as seasonal_module
from homestay.domain.errors import BookingError, ErrorKind, PricingDataError
from homestay.domain.seasonal_rates import (
    RateType,
    SeasonalRate,
    create_seasonal_rate,
    ranges_overlap_inclusive,
    rate_calendar,
    resolve_effective_rates,
    update_seasonal_rate,
    validate_no_overlap,
)

from .helpers import PROPERTY_ID, fake_txn, make_rate, property_row


def _row(**overrides):
    row = {
        "id": "rate-1",
        "property_id": PROPERTY_ID,
        "name": "High season",
        "start_date": date(2024, 7, 1),
        "end_date": date(2024, 8, 31),
        "rate_type": "percentage",
        "rate_value": Decimal("25.00"),
        "priority": 0,
        "min_stay_nights": None,
        "applies_to_weekends_only": False,
        "is_active": True,
        "description": None,
    }
    row.update(overrides)
    return row


def _payload(**overrides):
    data = {
        "name": "High season",
        "start_date": date(2024, 7, 1),
        "end_date": date(2024, 8, 31),
        "rate_type": "percentage",
        "rate_value": Decimal("25"),
        "priority": 0,
        "min_stay_nights": None,
        "applies_to_weekends_only": False,
        "is_active": True,
        "description": None,
    }
    data.update(overrides)
    return data


class TestFromRow:
    def test_builds_rate(self):
        rate = SeasonalRate.from_row(_row())

        assert rate.rate_type is RateType.PERCENTAGE
        assert rate.rate_value == Decimal("25.00")

    def test_unknown_rate_type_is_fatal(self):
        with pytest.raises(PricingDataError):
            SeasonalRate.from_row(_row(rate_type="tiered"))

    def test_non_numeric_value_is_fatal(self):
        with pytest.raises(PricingDataError):
            SeasonalRate.from_row(_row(rate_value="abc"))

    def test_inverted_range_is_fatal(self):
        with pytest.raises(PricingDataError):
            SeasonalRate.from_row(_row(start_date=date(2024, 9, 1)))


class TestAppliesOn:
    def test_range_is_inclusive(self):
        rate = make_rate(start=date(2024, 1, 10), end=date(2024, 1, 12))

        assert rate.applies_on(date(2024, 1, 10))
        assert rate.applies_on(date(2024, 1, 12))
        assert not rate.applies_on(date(2024, 1, 13))

    def test_weekends_only(self):
        rate = make_rate(applies_to_weekends_only=True)

        assert rate.applies_on(date(2024, 1, 12))  # Friday
        assert rate.applies_on(date(2024, 1, 13))  # Saturday
        assert not rate.applies_on(date(2024, 1, 14))  # Sunday

    def test_nightly_rate(self):
        assert make_rate(rate_type=RateType.FIXED, value="700000").nightly_rate(
            Decimal("500000")
        ) == Decimal("700000")
        assert make_rate(rate_type=RateType.PERCENTAGE, value="10").nightly_rate(
            Decimal("500000")
        ) == Decimal("550000")


class TestResolveEffectiveRates:
    def test_maps_each_night(self):
        rate = make_rate(start=date(2024, 1, 11), end=date(2024, 1, 11))

        resolved = resolve_effective_rates([rate], date(2024, 1, 10), date(2024, 1, 13))

        assert resolved == {
            date(2024, 1, 10): None,
            date(2024, 1, 11): rate,
            date(2024, 1, 12): None,
        }

    def test_inactive_rates_ignored(self):
        rate = make_rate(is_active=False)

        resolved = resolve_effective_rates([rate], date(2024, 1, 10), date(2024, 1, 11))

        assert resolved[date(2024, 1, 10)] is None

    def test_tie_break_priority_then_start_date(self):
        low = make_rate("low", start=date(2024, 1, 1), priority=1)
        high = make_rate("high", start=date(2024, 1, 5), priority=5)
        high_later = make_rate("high-later", start=date(2024, 1, 8), priority=5)

        with patch.object(seasonal_module.logger, "warning") as warning:
            resolved = resolve_effective_rates(
                [low, high_later, high], date(2024, 1, 10), date(2024, 1, 11)
            )

        assert resolved[date(2024, 1, 10)].id == "high"
        warning.assert_called_once()
        fields = warning.call_args.kwargs["extra"]["extra_fields"]
        assert fields["chosen_id"] == "high"

    def test_single_candidate_does_not_warn(self):
        with patch.object(seasonal_module.logger, "warning") as warning:
            resolve_effective_rates([make_rate()], date(2024, 1, 10), date(2024, 1, 12))

        warning.assert_not_called()


class TestValidateNoOverlap:
    def test_inclusive_overlap_formula(self):
        assert ranges_overlap_inclusive(
            date(2024, 1, 1), date(2024, 1, 10), date(2024, 1, 10), date(2024, 1, 20)
        )
        assert not ranges_overlap_inclusive(
            date(2024, 1, 1), date(2024, 1, 9), date(2024, 1, 10), date(2024, 1, 20)
        )

    def test_no_existing_rate(self):
        cur = MagicMock()
        cur.fetchone.return_value = None

        assert validate_no_overlap(cur, PROPERTY_ID, date(2024, 7, 1), date(2024, 7, 31)) is None

        params = cur.execute.call_args[0][1]
        assert params == [PROPERTY_ID, date(2024, 7, 31), date(2024, 7, 1)]

    def test_existing_rate_rejects(self):
        cur = MagicMock()
        existing = _row()
        cur.fetchone.return_value = tuple(existing.values())

        result = validate_no_overlap(cur, PROPERTY_ID, date(2024, 8, 15), date(2024, 9, 15))

        assert isinstance(result, BookingError)
        assert result.kind is ErrorKind.SEASONAL_RATE_OVERLAP
        assert result.meta == {"existing_id": "rate-1"}

    def test_exclude_id_passed(self):
        cur = MagicMock()
        cur.fetchone.return_value = None

        validate_no_overlap(
            cur, PROPERTY_ID, date(2024, 7, 1), date(2024, 7, 31), exclude_id="rate-9"
        )

        sql, params = cur.execute.call_args[0]
        assert "id != %s" in sql
        assert params[-1] == "rate-9"


class TestCreateSeasonalRate:
    def test_overlapping_create_rejected(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=property_row()), \
             patch.object(seasonal_module, "find_first_overlapping_active", return_value=_row()), \
             patch.object(seasonal_module, "insert_rate") as insert:
            result = create_seasonal_rate(PROPERTY_ID, _payload(start_date=date(2024, 8, 1)))

        assert result.kind is ErrorKind.SEASONAL_RATE_OVERLAP
        insert.assert_not_called()

    def test_create_locks_property_and_inserts(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=property_row()) as lock, \
             patch.object(seasonal_module, "find_first_overlapping_active", return_value=None), \
             patch.object(seasonal_module, "insert_rate", return_value="rate-1") as insert, \
             patch.object(seasonal_module, "get_rate", return_value=_row()):
            result = create_seasonal_rate(PROPERTY_ID, _payload())

        assert isinstance(result, SeasonalRate)
        assert result.id == "rate-1"
        lock.assert_called_once()
        insert.assert_called_once()

    def test_inactive_rate_skips_overlap_check(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=property_row()), \
             patch.object(seasonal_module, "find_first_overlapping_active") as find, \
             patch.object(seasonal_module, "insert_rate", return_value="rate-2"), \
             patch.object(seasonal_module, "get_rate", return_value=_row(id="rate-2", is_active=False)):
            result = create_seasonal_rate(PROPERTY_ID, _payload(is_active=False))

        assert result.is_active is False
        find.assert_not_called()

    def test_unknown_property(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=None):
            result = create_seasonal_rate(PROPERTY_ID, _payload())

        assert result.kind is ErrorKind.PROPERTY_NOT_FOUND

    @pytest.mark.parametrize(
        "overrides, kind",
        [
            ({"end_date": date(2024, 6, 1)}, ErrorKind.INVALID_RANGE),
            ({"rate_type": "tiered"}, ErrorKind.INVALID_RATE),
            ({"rate_value": Decimal("-1")}, ErrorKind.INVALID_RATE),
            ({"min_stay_nights": 0}, ErrorKind.INVALID_RATE),
        ],
    )
    def test_payload_validation_before_txn(self, overrides, kind):
        with patch.object(seasonal_module, "txn") as txn:
            result = create_seasonal_rate(PROPERTY_ID, _payload(**overrides))

        assert result.kind is kind
        txn.assert_not_called()


class TestUpdateSeasonalRate:
    def test_missing_rate_returns_none(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=property_row()), \
             patch.object(seasonal_module, "get_rate", return_value=None):
            assert update_seasonal_rate(PROPERTY_ID, "rate-x", _payload()) is None

    def test_update_excludes_itself(self):
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "lock_property", return_value=property_row()), \
             patch.object(seasonal_module, "get_rate", return_value=_row()), \
             patch.object(seasonal_module, "find_first_overlapping_active", return_value=None) as find, \
             patch.object(seasonal_module, "update_rate") as update:
            result = update_seasonal_rate(PROPERTY_ID, "rate-1", _payload())

        assert isinstance(result, SeasonalRate)
        assert find.call_args.kwargs["exclude_id"] == "rate-1"
        update.assert_called_once()


class TestRateCalendar:
    def test_days_with_seasonal_rate(self):
        rate_row = _row(start_date=date(2024, 7, 2), end_date=date(2024, 7, 2))
        with patch.object(seasonal_module, "txn", fake_txn()), \
             patch.object(seasonal_module, "get_property", return_value=property_row()), \
             patch.object(seasonal_module, "fetch_active_in_range", return_value=[rate_row]):
            days = rate_calendar(PROPERTY_ID, date(2024, 7, 1), date(2024, 7, 4))

        assert [d["date"] for d in days] == ["2024-07-01", "2024-07-02", "2024-07-03"]
        assert days[0]["seasonal_rate"] is None
        assert days[1]["seasonal_rate"]["calculated_rate"] == Decimal("625000")

    def test_range_limit(self):
        result = rate_calendar(PROPERTY_ID, date(2024, 1, 1), date(2025, 6, 1))

        assert result.kind is ErrorKind.INVALID_RANGE

"""Shared test helper functions for homestay booking tests.

These are NOT fixtures - they are regular functions imported by test modules.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from homestay.domain.pricing import PropertyConfig
from homestay.domain.seasonal_rates import RateType, SeasonalRate

PROPERTY_ID = "11111111-1111-1111-1111-111111111111"


def make_property(**overrides) -> PropertyConfig:
    """Property with a 500000 base rate, 20% weekend premium, no fees."""
    values = {
        "id": PROPERTY_ID,
        "base_rate": Decimal("500000"),
        "weekend_premium_percent": Decimal("20"),
        "cleaning_fee": Decimal("0"),
        "extra_bed_rate": Decimal("0"),
        "capacity": 4,
        "capacity_max": 6,
        "min_stay_weekday": 1,
        "min_stay_weekend": 1,
        "min_stay_peak": 1,
    }
    values.update(overrides)
    return PropertyConfig(**values)


def property_row(**overrides) -> dict:
    """Repository-shaped property row (what get_property returns)."""
    prop = make_property(**overrides)
    return {
        "id": prop.id,
        "base_rate": prop.base_rate,
        "weekend_premium_percent": prop.weekend_premium_percent,
        "cleaning_fee": prop.cleaning_fee,
        "extra_bed_rate": prop.extra_bed_rate,
        "capacity": prop.capacity,
        "capacity_max": prop.capacity_max,
        "min_stay_weekday": prop.min_stay_weekday,
        "min_stay_weekend": prop.min_stay_weekend,
        "min_stay_peak": prop.min_stay_peak,
    }


def make_rate(
    rate_id: str = "rate-1",
    start: date = date(2024, 1, 1),
    end: date = date(2024, 1, 31),
    rate_type: RateType = RateType.PERCENTAGE,
    value: str = "50",
    **overrides,
) -> SeasonalRate:
    values = {
        "id": rate_id,
        "property_id": PROPERTY_ID,
        "name": f"Season {rate_id}",
        "start_date": start,
        "end_date": end,
        "rate_type": rate_type,
        "rate_value": Decimal(value),
    }
    values.update(overrides)
    return SeasonalRate(**values)


def fake_txn(cur: MagicMock | None = None):
    """Build a txn() replacement yielding the given mocked cursor."""
    cur = cur if cur is not None else MagicMock()

    @contextmanager
    def _txn(conn=None):
        yield cur

    return _txn

"""Rate calculator - pure, deterministic nightly pricing.

No DB access here; the caller fetches the property row and resolves
seasonal rates. Calling calculate() twice with the same inputs yields equal
RateCalculation objects, which admission relies on (advisory quote, then
authoritative price under the lock).

Per night d in [check_in, check_out), in order:
1. day_rate = base_rate
2. seasonal rate applying on d: fixed -> day_rate = value;
   percentage -> day_rate += base_rate * value / 100
3. weekend premium (Fri/Sat), unless a seasonal rate that is not
   weekends-only applies on d
4. holiday premium: flat 15% of base_rate, always stacks
5. accumulate day_rate into total_base_amount

Then: extra beds, long-stay discount on total_base_amount only, 11% VAT.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from homestay.domain.dates import is_weekend_night, iter_nights, nights_between
from homestay.domain.errors import BookingError, ErrorKind, PricingDataError
from homestay.domain.holidays import DEFAULT_HOLIDAYS, HolidayCalendar
from homestay.domain.seasonal_rates import RateType, SeasonalRate

HOLIDAY_PREMIUM_PERCENT = Decimal("15")
TAX_RATE = Decimal("0.11")
WEEKLY_STAY_NIGHTS = 7
WEEKLY_STAY_DISCOUNT = Decimal("0.10")
SHORT_STAY_NIGHTS = 3
SHORT_STAY_DISCOUNT = Decimal("0.05")

_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if value is None:
        raise PricingDataError(f"property field {field_name} is missing")
    try:
        return Decimal(str(value))
    except ArithmeticError:
        raise PricingDataError(f"property field {field_name} is not numeric") from None


def format_rupiah(amount: Decimal) -> str:
    """Rp 1.234.567 (no decimals, dot thousands separator)."""
    whole = int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return "Rp " + f"{whole:,}".replace(",", ".")


@dataclass(frozen=True)
class PropertyConfig:
    """Pricing and stay configuration read from the property row."""

    id: str
    base_rate: Decimal
    weekend_premium_percent: Decimal = Decimal(20)
    cleaning_fee: Decimal = Decimal(0)
    extra_bed_rate: Decimal = Decimal(0)
    capacity: int = 2
    capacity_max: int = 2
    min_stay_weekday: int = 1
    min_stay_weekend: int = 2
    min_stay_peak: int = 3

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PropertyConfig:
        base_rate = _to_decimal(row.get("base_rate"), "base_rate")
        if base_rate < 0:
            raise PricingDataError(f"property {row.get('id')} has negative base_rate")
        return cls(
            id=str(row["id"]),
            base_rate=base_rate,
            weekend_premium_percent=_to_decimal(
                row.get("weekend_premium_percent", 0), "weekend_premium_percent"
            ),
            cleaning_fee=_to_decimal(row.get("cleaning_fee", 0), "cleaning_fee"),
            extra_bed_rate=_to_decimal(row.get("extra_bed_rate", 0), "extra_bed_rate"),
            capacity=int(row["capacity"]),
            capacity_max=int(row["capacity_max"]),
            min_stay_weekday=int(row.get("min_stay_weekday") or 1),
            min_stay_weekend=int(row.get("min_stay_weekend") or 1),
            min_stay_peak=int(row.get("min_stay_peak") or 1),
        )


@dataclass(frozen=True)
class DayBreakdown:
    """How one night was priced."""

    date: date
    is_weekend: bool
    is_holiday: bool
    day_rate: Decimal
    seasonal_premium: Decimal = Decimal(0)
    weekend_premium: Decimal = Decimal(0)
    holiday_premium: Decimal = Decimal(0)
    seasonal_rate_id: str | None = None
    seasonal_rate_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "is_weekend": self.is_weekend,
            "is_holiday": self.is_holiday,
            "day_rate": self.day_rate,
            "seasonal_premium": self.seasonal_premium,
            "weekend_premium": self.weekend_premium,
            "holiday_premium": self.holiday_premium,
            "seasonal_rate_id": self.seasonal_rate_id,
            "seasonal_rate_name": self.seasonal_rate_name,
        }


@dataclass(frozen=True)
class RateCalculation:
    """Itemized price of a stay. Immutable; re-derivable from the same state."""

    nights: int
    base_amount: Decimal
    total_base_amount: Decimal
    weekend_premium: Decimal
    seasonal_premium: Decimal
    holiday_premium: Decimal
    extra_beds: int
    extra_bed_amount: Decimal
    cleaning_fee: Decimal
    minimum_stay_discount: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    weekday_nights: int
    weekend_nights: int
    breakdown: tuple[DayBreakdown, ...] = field(default_factory=tuple)
    seasonal_rates_applied: tuple[str, ...] = field(default_factory=tuple)

    @property
    def per_night(self) -> Decimal:
        return _money(self.total_amount / self.nights)

    def summary(self) -> str:
        parts = [f"{self.nights} night(s)"]
        if self.weekend_nights:
            parts.append(f"{self.weekend_nights} weekend")
        if self.seasonal_rates_applied:
            parts.append(f"{len(self.seasonal_rates_applied)} seasonal rate(s)")
        if self.extra_beds:
            parts.append(f"{self.extra_beds} extra bed(s)")
        if self.minimum_stay_discount:
            parts.append("long-stay discount")
        return ", ".join(parts) + f": {format_rupiah(self.total_amount)}"

    def amounts(self) -> dict[str, Decimal]:
        """Money columns persisted on the reservation row."""
        return {
            "base_amount": self.total_base_amount,
            "weekend_premium": self.weekend_premium,
            "seasonal_premium": self.seasonal_premium,
            "holiday_premium": self.holiday_premium,
            "extra_bed_amount": self.extra_bed_amount,
            "cleaning_fee": self.cleaning_fee,
            "minimum_stay_discount": self.minimum_stay_discount,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "nights": self.nights,
            "weekday_nights": self.weekday_nights,
            "weekend_nights": self.weekend_nights,
            "base_amount": self.base_amount,
            "total_base_amount": self.total_base_amount,
            "weekend_premium": self.weekend_premium,
            "seasonal_premium": self.seasonal_premium,
            "holiday_premium": self.holiday_premium,
            "extra_beds": self.extra_beds,
            "extra_bed_amount": self.extra_bed_amount,
            "cleaning_fee": self.cleaning_fee,
            "minimum_stay_discount": self.minimum_stay_discount,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "breakdown": [d.to_dict() for d in self.breakdown],
            "seasonal_rates_applied": list(self.seasonal_rates_applied),
            "summary": self.summary(),
            "formatted": {
                "total_amount": format_rupiah(self.total_amount),
                "per_night": format_rupiah(self.per_night),
            },
        }


def minimum_stay_discount(total_base_amount: Decimal, nights: int) -> Decimal:
    if nights >= WEEKLY_STAY_NIGHTS:
        return total_base_amount * WEEKLY_STAY_DISCOUNT
    if nights >= SHORT_STAY_NIGHTS:
        return total_base_amount * SHORT_STAY_DISCOUNT
    return Decimal(0)


def calculate(
    prop: PropertyConfig,
    check_in: date,
    check_out: date,
    guest_count: int,
    seasonal: Mapping[date, SeasonalRate | None] | None = None,
    holidays: HolidayCalendar = DEFAULT_HOLIDAYS,
) -> RateCalculation | BookingError:
    """Price a stay.

    Args:
        prop: Property pricing configuration.
        check_in: First night (inclusive).
        check_out: Departure day (exclusive).
        guest_count: Total guests; guests above capacity need extra beds.
        seasonal: Night -> resolved seasonal rate (or None).
        holidays: Holiday calendar for the flat holiday premium.

    Returns:
        RateCalculation, or BookingError(INVALID_RANGE) if check_out <= check_in.

    Raises:
        PricingDataError: If a seasonal rate carries an unknown rate_type.
    """
    if check_out <= check_in:
        return BookingError(
            kind=ErrorKind.INVALID_RANGE,
            message="Check-out must be after check-in",
        )

    seasonal = seasonal or {}
    base_rate = prop.base_rate
    weekend_step = base_rate * prop.weekend_premium_percent / _HUNDRED
    holiday_step = base_rate * HOLIDAY_PREMIUM_PERCENT / _HUNDRED

    total_base = Decimal(0)
    weekend_total = Decimal(0)
    seasonal_total = Decimal(0)
    holiday_total = Decimal(0)
    weekend_nights = 0
    applied_ids: list[str] = []
    days: list[DayBreakdown] = []

    for day in iter_nights(check_in, check_out):
        day_rate = base_rate
        is_weekend = is_weekend_night(day)
        if is_weekend:
            weekend_nights += 1

        rate = seasonal.get(day)
        if rate is not None and not rate.applies_on(day):
            rate = None

        seasonal_delta = Decimal(0)
        if rate is not None:
            if rate.rate_type is RateType.FIXED:
                day_rate = rate.rate_value
            elif rate.rate_type is RateType.PERCENTAGE:
                day_rate = day_rate + base_rate * rate.rate_value / _HUNDRED
            else:
                raise PricingDataError(
                    f"seasonal rate {rate.id} has unsupported rate_type {rate.rate_type!r}"
                )
            seasonal_delta = day_rate - base_rate
            seasonal_total += seasonal_delta
            if rate.id not in applied_ids:
                applied_ids.append(rate.id)

        weekend_delta = Decimal(0)
        suppressed = rate is not None and not rate.applies_to_weekends_only
        if is_weekend and not suppressed:
            weekend_delta = weekend_step
            day_rate += weekend_delta
            weekend_total += weekend_delta

        holiday_delta = Decimal(0)
        is_holiday = holidays.is_holiday(day)
        if is_holiday:
            holiday_delta = holiday_step
            day_rate += holiday_delta
            holiday_total += holiday_delta

        total_base += day_rate
        days.append(
            DayBreakdown(
                date=day,
                is_weekend=is_weekend,
                is_holiday=is_holiday,
                day_rate=_money(day_rate),
                seasonal_premium=_money(seasonal_delta),
                weekend_premium=_money(weekend_delta),
                holiday_premium=_money(holiday_delta),
                seasonal_rate_id=rate.id if rate is not None else None,
                seasonal_rate_name=rate.name if rate is not None else None,
            )
        )

    nights = nights_between(check_in, check_out)
    extra_beds = max(0, guest_count - prop.capacity)
    extra_bed_amount = extra_beds * prop.extra_bed_rate * nights
    discount = minimum_stay_discount(total_base, nights)

    subtotal = _money(total_base + extra_bed_amount + prop.cleaning_fee - discount)
    tax_amount = _money(subtotal * TAX_RATE)
    total_amount = subtotal + tax_amount

    return RateCalculation(
        nights=nights,
        base_amount=_money(base_rate * nights),
        total_base_amount=_money(total_base),
        weekend_premium=_money(weekend_total),
        seasonal_premium=_money(seasonal_total),
        holiday_premium=_money(holiday_total),
        extra_beds=extra_beds,
        extra_bed_amount=_money(extra_bed_amount),
        cleaning_fee=_money(prop.cleaning_fee),
        minimum_stay_discount=_money(discount),
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=total_amount,
        weekday_nights=nights - weekend_nights,
        weekend_nights=weekend_nights,
        breakdown=tuple(days),
        seasonal_rates_applied=tuple(applied_ids),
    )

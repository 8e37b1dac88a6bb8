from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import AbstractSet

from .date_range import expand_dates
from .entities import PricingResult, ReservationType
from .errors import IncompleteRequestError, InvalidDiscountError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def hours_per_day(time_in: time, time_out: time) -> int:
    """Billable hours for one day. Whole hours only; minutes are not billed."""
    return max(1, time_out.hour - time_in.hour)


def compute(
    *,
    date_from: date,
    date_to: date,
    time_in: time | None,
    time_out: time | None,
    reservation_type: ReservationType,
    hourly_rate: Decimal,
    whole_day_rate: Decimal,
    unavailable_dates: AbstractSet[date],
    discount_eligible: bool,
    discount_percentage: Decimal,
) -> PricingResult:
    """
    Price the bookable subset of [date_from, date_to].
    Totals are exact Decimals; nothing is rounded here, rounding belongs to the response layer.
    """
    if not ZERO <= discount_percentage <= HUNDRED:
        raise InvalidDiscountError("discount percentage must be between 0 and 100")

    billed = tuple(day for day in expand_dates(date_from, date_to) if day not in unavailable_dates)
    days = len(billed)

    hours: int | None = None
    if reservation_type == ReservationType.HOURLY:
        if time_in is None or time_out is None:
            raise IncompleteRequestError("time_in and time_out are required for hourly pricing")
        hours = hours_per_day(time_in, time_out)

    if days == 0:
        return PricingResult(
            original_total=ZERO,
            discount_amount=ZERO,
            final_total=ZERO,
            available_days_count=0,
            hours_per_day=hours,
            billed_dates=billed,
        )

    if reservation_type == ReservationType.WHOLE_DAY:
        original = Decimal(days) * whole_day_rate
    else:
        original = Decimal(days) * Decimal(hours) * hourly_rate

    discount = original * discount_percentage / HUNDRED if discount_eligible else ZERO
    return PricingResult(
        original_total=original,
        discount_amount=discount,
        final_total=original - discount,
        available_days_count=days,
        hours_per_day=hours,
        billed_dates=billed,
    )

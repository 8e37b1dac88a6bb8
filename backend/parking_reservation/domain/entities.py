from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import StrEnum

WHOLE_DAY_START = time(0, 0)
WHOLE_DAY_END = time(23, 59)


class AvailabilityStatus(StrEnum):
    OPEN = "open"
    CLOSED = "closed"


class ReservationType(StrEnum):
    HOURLY = "hourly"
    WHOLE_DAY = "whole_day"


class QuoteState(StrEnum):
    DRAFT = "draft"
    VALIDATED = "validated"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Facility:
    id: int
    total_spaces: int
    available_spaces: int
    hourly_rate: Decimal
    whole_day_rate: Decimal
    availability_status: AvailabilityStatus = AvailabilityStatus.OPEN


@dataclass(frozen=True)
class ReservedSlotCount:
    date: date
    reserved_count: int

    def __post_init__(self) -> None:
        if self.reserved_count < 0:
            raise ValueError("reserved_count must be >= 0")


@dataclass(frozen=True)
class ReservationRequest:
    """Form state for a booking. Never mutated; edits go through the normalizer."""

    facility_id: int
    date_from: date | None = None
    date_to: date | None = None
    time_in: time | None = time(16, 0)
    time_out: time | None = time(20, 0)
    reservation_type: ReservationType | None = ReservationType.HOURLY
    discount_eligible: bool = False
    discount_percentage: Decimal = Decimal("0")
    vehicle_id: int | None = None

    @property
    def effective_hours(self) -> tuple[time | None, time | None]:
        if self.reservation_type == ReservationType.WHOLE_DAY:
            return WHOLE_DAY_START, WHOLE_DAY_END
        return self.time_in, self.time_out

    @property
    def booking_identity(self) -> tuple:
        """What a committed reservation must match for an idempotent replay."""
        time_in, time_out = self.effective_hours
        return (
            self.facility_id,
            self.vehicle_id,
            self.reservation_type,
            self.date_from,
            self.date_to,
            time_in,
            time_out,
        )


@dataclass(frozen=True)
class PricingResult:
    original_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    available_days_count: int
    hours_per_day: int | None = None
    billed_dates: tuple[date, ...] = field(default_factory=tuple)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Iterable, Protocol, TypeVar

from .availability import SlotAvailabilityIndex
from .date_range import MAX_RANGE_DAYS, expand_dates
from .entities import AvailabilityStatus, Facility, PricingResult, QuoteState, ReservationRequest, ReservationType, ReservedSlotCount
from .errors import (
    FacilityClosedError,
    FullyBookedRangeError,
    IdempotencyKeyReusedError,
    IncompleteRequestError,
    InvalidRangeError,
    InvalidTimeOrderError,
    PastDateError,
    PastTimeError,
    QuoteStateError,
    ReservationError,
)
from .pricing import compute


class _CommittedBooking(Protocol):
    @property
    def booking_identity(self) -> tuple: ...


CommittedT = TypeVar("CommittedT", bound=_CommittedBooking)


@dataclass(frozen=True)
class ConfirmedReservation:
    """A request the user explicitly accepted. Handed to the commit collaborator as-is."""

    request: ReservationRequest
    pricing: PricingResult
    idempotency_key: str
    state: QuoteState = QuoteState.CONFIRMED


@dataclass(frozen=True)
class ValidationResult:
    state: QuoteState
    request: ReservationRequest
    pricing: PricingResult | None = None
    unavailable_dates: frozenset[date] = field(default_factory=frozenset)
    error: ReservationError | None = None

    @property
    def is_valid(self) -> bool:
        return self.state == QuoteState.VALIDATED

    def confirm(self, idempotency_key: str) -> ConfirmedReservation:
        if self.state != QuoteState.VALIDATED or self.pricing is None:
            raise QuoteStateError(f"cannot confirm a {self.state} quote")
        if not idempotency_key:
            raise IncompleteRequestError("idempotency key is required to confirm")
        return ConfirmedReservation(request=self.request, pricing=self.pricing, idempotency_key=idempotency_key)


def ensure_replay_matches(existing: CommittedT, request: ReservationRequest) -> CommittedT:
    """An idempotency key replays only the booking it was first used for."""
    if existing.booking_identity != request.booking_identity:
        raise IdempotencyKeyReusedError("idempotency key was already used for a different reservation")
    return existing


class ReservationRequestValidator:
    """
    Runs the DRAFT -> VALIDATED checks against one facility snapshot.

    The snapshot is taken as given: callers fetch fresh counts before validating,
    and again before confirming, since other requesters may book in between.
    """

    def __init__(self, facility: Facility, slot_counts: Iterable[ReservedSlotCount], timezone: tzinfo) -> None:
        self.facility = facility
        self.index = SlotAvailabilityIndex(facility.available_spaces, slot_counts)
        self.timezone = timezone

    def validate(self, request: ReservationRequest, *, now: datetime | None = None) -> ValidationResult:
        try:
            pricing, unavailable = self._check(request, now or datetime.now(self.timezone))
        except ReservationError as exc:
            return ValidationResult(state=QuoteState.REJECTED, request=request, error=exc)
        return ValidationResult(
            state=QuoteState.VALIDATED,
            request=request,
            pricing=pricing,
            unavailable_dates=unavailable,
        )

    def _check(self, request: ReservationRequest, now: datetime) -> tuple[PricingResult, frozenset[date]]:
        if self.facility.availability_status != AvailabilityStatus.OPEN:
            raise FacilityClosedError("facility is not accepting reservations")

        if request.date_from is None or request.date_to is None:
            raise IncompleteRequestError("both start and end dates are required")
        if request.date_from > request.date_to:
            raise InvalidRangeError("end date must be on or after the start date")
        if (request.date_to - request.date_from).days + 1 > MAX_RANGE_DAYS:
            raise InvalidRangeError(f"a reservation can span at most {MAX_RANGE_DAYS} days")

        days = expand_dates(request.date_from, request.date_to)
        unavailable = self.index.unavailable_dates(days)
        if len(unavailable) == len(days):
            raise FullyBookedRangeError("all dates in the selected range are fully booked")

        local_now = now.astimezone(self.timezone)
        today = local_now.date()
        if request.date_from < today:
            raise PastDateError("select today or a future date")
        if (
            request.reservation_type == ReservationType.HOURLY
            and request.date_from == today
            and request.time_in is not None
            and request.time_in <= local_now.time().replace(tzinfo=None)
        ):
            raise PastTimeError("select a future time for today's reservation")

        if request.vehicle_id is None or request.reservation_type is None:
            raise IncompleteRequestError("vehicle and reservation type are required")
        if request.reservation_type == ReservationType.HOURLY:
            if request.time_in is None or request.time_out is None:
                raise IncompleteRequestError("time in and time out are required for hourly reservations")
            if request.time_out <= request.time_in:
                raise InvalidTimeOrderError("time out must be after time in")

        time_in, time_out = request.effective_hours
        pricing = compute(
            date_from=request.date_from,
            date_to=request.date_to,
            time_in=time_in,
            time_out=time_out,
            reservation_type=request.reservation_type,
            hourly_rate=self.facility.hourly_rate,
            whole_day_rate=self.facility.whole_day_rate,
            unavailable_dates=unavailable,
            discount_eligible=request.discount_eligible,
            discount_percentage=request.discount_percentage,
        )
        return pricing, unavailable

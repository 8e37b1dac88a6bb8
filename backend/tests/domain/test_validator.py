from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from parking_reservation.domain.entities import (
    AvailabilityStatus,
    Facility,
    QuoteState,
    ReservationRequest,
    ReservationType,
    ReservedSlotCount,
)
from parking_reservation.domain.errors import (
    FacilityClosedError,
    FullyBookedRangeError,
    IncompleteRequestError,
    IdempotencyKeyReusedError,
    InvalidDiscountError,
    InvalidRangeError,
    InvalidTimeOrderError,
    PastDateError,
    PastTimeError,
    QuoteStateError,
)
from parking_reservation.domain.validator import ReservationRequestValidator, ensure_replay_matches

MANILA = ZoneInfo("Asia/Manila")
BEFORE_JUNE = datetime(2025, 5, 30, 9, 0, tzinfo=MANILA)


def _facility(status: AvailabilityStatus = AvailabilityStatus.OPEN) -> Facility:
    return Facility(
        id=1,
        total_spaces=10,
        available_spaces=5,
        hourly_rate=Decimal("100"),
        whole_day_rate=Decimal("600"),
        availability_status=status,
    )


def _validator(counts: list[ReservedSlotCount] | None = None, **facility: object) -> ReservationRequestValidator:
    if counts is None:
        counts = [ReservedSlotCount(date(2025, 6, 2), 5)]
    return ReservationRequestValidator(_facility(**facility), counts, MANILA)  # type: ignore[arg-type]


def _request(**overrides: object) -> ReservationRequest:
    values: dict[str, object] = dict(
        facility_id=1,
        date_from=date(2025, 6, 1),
        date_to=date(2025, 6, 3),
        time_in=time(16, 0),
        time_out=time(20, 0),
        reservation_type=ReservationType.HOURLY,
        vehicle_id=9,
    )
    values.update(overrides)
    return ReservationRequest(**values)  # type: ignore[arg-type]


def test_validated_quote_skips_fully_booked_day() -> None:
    result = _validator().validate(_request(), now=BEFORE_JUNE)
    assert result.state == QuoteState.VALIDATED
    assert result.pricing is not None
    assert result.pricing.available_days_count == 2
    assert result.pricing.hours_per_day == 4
    assert result.pricing.original_total == Decimal("800")
    assert result.unavailable_dates == frozenset({date(2025, 6, 2)})


def test_validated_quote_with_discount() -> None:
    request = _request(discount_eligible=True, discount_percentage=Decimal("20"))
    result = _validator().validate(request, now=BEFORE_JUNE)
    assert result.pricing is not None
    assert result.pricing.discount_amount == Decimal("160")
    assert result.pricing.final_total == Decimal("640")


def test_whole_day_quote() -> None:
    request = _request(
        date_from=date(2025, 6, 5),
        date_to=date(2025, 6, 5),
        reservation_type=ReservationType.WHOLE_DAY,
        time_in=None,
        time_out=None,
    )
    result = _validator().validate(request, now=BEFORE_JUNE)
    assert result.state == QuoteState.VALIDATED
    assert result.pricing is not None
    assert result.pricing.original_total == Decimal("600")
    assert result.pricing.final_total == Decimal("600")


def test_reversed_range_rejected() -> None:
    result = _validator().validate(_request(date_from=date(2025, 6, 4)), now=BEFORE_JUNE)
    assert result.state == QuoteState.REJECTED
    assert isinstance(result.error, InvalidRangeError)
    assert result.pricing is None


def test_missing_dates_rejected_as_incomplete() -> None:
    result = _validator().validate(_request(date_to=None), now=BEFORE_JUNE)
    assert isinstance(result.error, IncompleteRequestError)


def test_fully_booked_range_rejected() -> None:
    counts = [ReservedSlotCount(date(2025, 6, d), 5) for d in (1, 2, 3)]
    result = _validator(counts).validate(_request(), now=BEFORE_JUNE)
    assert isinstance(result.error, FullyBookedRangeError)


def test_fully_booked_is_reported_before_past_date() -> None:
    counts = [ReservedSlotCount(date(2025, 6, 1), 5)]
    request = _request(date_from=date(2025, 6, 1), date_to=date(2025, 6, 1))
    result = _validator(counts).validate(request, now=datetime(2025, 6, 10, 8, 0, tzinfo=MANILA))
    assert isinstance(result.error, FullyBookedRangeError)


def test_past_date_rejected() -> None:
    result = _validator().validate(_request(), now=datetime(2025, 6, 10, 8, 0, tzinfo=MANILA))
    assert result.state == QuoteState.REJECTED
    assert isinstance(result.error, PastDateError)


def test_today_uses_facility_local_calendar() -> None:
    # 17:00 UTC on the 9th is already the 10th in Manila
    now = datetime(2025, 6, 9, 17, 0, tzinfo=timezone.utc)
    request = _request(date_from=date(2025, 6, 9), date_to=date(2025, 6, 11))
    result = _validator([]).validate(request, now=now)
    assert isinstance(result.error, PastDateError)


def test_hourly_today_requires_future_time_in() -> None:
    now = datetime(2025, 6, 10, 17, 0, tzinfo=MANILA)
    request = _request(date_from=date(2025, 6, 10), date_to=date(2025, 6, 10))
    result = _validator([]).validate(request, now=now)
    assert isinstance(result.error, PastTimeError)

    later = _request(date_from=date(2025, 6, 10), date_to=date(2025, 6, 10), time_in=time(18, 0), time_out=time(20, 0))
    assert _validator([]).validate(later, now=now).state == QuoteState.VALIDATED


def test_time_in_equal_to_now_is_past() -> None:
    now = datetime(2025, 6, 10, 16, 0, tzinfo=MANILA)
    request = _request(date_from=date(2025, 6, 10), date_to=date(2025, 6, 10))
    assert isinstance(_validator([]).validate(request, now=now).error, PastTimeError)


def test_whole_day_today_ignores_time() -> None:
    now = datetime(2025, 6, 10, 22, 0, tzinfo=MANILA)
    request = _request(
        date_from=date(2025, 6, 10),
        date_to=date(2025, 6, 10),
        reservation_type=ReservationType.WHOLE_DAY,
    )
    assert _validator([]).validate(request, now=now).state == QuoteState.VALIDATED


def test_missing_vehicle_rejected() -> None:
    result = _validator().validate(_request(vehicle_id=None), now=BEFORE_JUNE)
    assert isinstance(result.error, IncompleteRequestError)


def test_missing_reservation_type_rejected() -> None:
    result = _validator().validate(_request(reservation_type=None), now=BEFORE_JUNE)
    assert isinstance(result.error, IncompleteRequestError)


def test_hourly_missing_time_out_rejected() -> None:
    result = _validator().validate(_request(time_out=None), now=BEFORE_JUNE)
    assert isinstance(result.error, IncompleteRequestError)


def test_hourly_time_out_must_be_after_time_in() -> None:
    result = _validator().validate(_request(time_in=time(20, 0), time_out=time(20, 0)), now=BEFORE_JUNE)
    assert isinstance(result.error, InvalidTimeOrderError)


def test_closed_facility_rejected() -> None:
    result = _validator(status=AvailabilityStatus.CLOSED).validate(_request(), now=BEFORE_JUNE)
    assert isinstance(result.error, FacilityClosedError)


def test_confirm_validated_quote() -> None:
    result = _validator().validate(_request(), now=BEFORE_JUNE)
    confirmed = result.confirm("key-1")
    assert confirmed.state == QuoteState.CONFIRMED
    assert confirmed.pricing == result.pricing
    assert confirmed.request is result.request
    assert confirmed.idempotency_key == "key-1"


def test_confirm_rejected_quote_raises() -> None:
    result = _validator().validate(_request(vehicle_id=None), now=BEFORE_JUNE)
    with pytest.raises(QuoteStateError):
        result.confirm("key-1")


def test_confirm_requires_idempotency_key() -> None:
    result = _validator().validate(_request(), now=BEFORE_JUNE)
    with pytest.raises(IncompleteRequestError):
        result.confirm("")


def test_range_longer_than_cap_rejected() -> None:
    result = _validator().validate(_request(date_to=date(2025, 8, 2)), now=BEFORE_JUNE)
    assert result.state == QuoteState.REJECTED
    assert isinstance(result.error, InvalidRangeError)


def test_range_at_cap_accepted() -> None:
    result = _validator().validate(_request(date_to=date(2025, 8, 1)), now=BEFORE_JUNE)
    assert result.state == QuoteState.VALIDATED
    assert result.pricing is not None
    assert result.pricing.available_days_count == 61


def test_out_of_range_discount_rejected() -> None:
    request = _request(discount_eligible=True, discount_percentage=Decimal("120"))
    result = _validator().validate(request, now=BEFORE_JUNE)
    assert result.state == QuoteState.REJECTED
    assert isinstance(result.error, InvalidDiscountError)


class _Committed:
    def __init__(self, request: ReservationRequest) -> None:
        self.booking_identity = request.booking_identity


def test_replay_must_describe_same_booking() -> None:
    committed = _Committed(_request())
    assert ensure_replay_matches(committed, _request()) is committed
    with pytest.raises(IdempotencyKeyReusedError):
        ensure_replay_matches(committed, _request(vehicle_id=10))
    with pytest.raises(IdempotencyKeyReusedError):
        ensure_replay_matches(committed, _request(facility_id=2))

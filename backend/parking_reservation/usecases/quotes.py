from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Any, Dict, List

from ..domain.availability import SlotAvailabilityIndex
from ..domain.date_range import MAX_RANGE_DAYS, expand_dates
from ..domain.entities import Facility, ReservationRequest
from ..domain.errors import CommitConflictError, FacilityNotFoundError
from ..domain.normalizer import EditableField, FieldEdit, NormalizationResult, normalize
from ..domain.repositories import FacilityRepository, ReservationCommitter, SlotCountRepository
from ..domain.validator import ReservationRequestValidator, ValidationResult, ensure_replay_matches
from ..models import Reservation
from ..utils.money import to_display


async def _get_facility(facility_repo: FacilityRepository, facility_id: int) -> Facility:
    facility = await facility_repo.get_snapshot(facility_id)
    if facility is None:
        raise FacilityNotFoundError("facility not found")
    return facility


async def _load_index(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    *,
    facility_id: int,
    start: date,
    end: date,
) -> tuple[Facility, SlotAvailabilityIndex]:
    facility = await _get_facility(facility_repo, facility_id)
    counts = await count_repo.list_reserved_counts(facility_id, start, end)
    return facility, SlotAvailabilityIndex(facility.available_spaces, counts)


async def list_availability(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    *,
    facility_id: int,
    start: date,
    end: date,
) -> List[Dict[str, Any]]:
    days = expand_dates(start, end)
    _, index = await _load_index(facility_repo, count_repo, facility_id=facility_id, start=start, end=end)
    return [
        {
            "day": day,
            "reserved": index.reserved_count(day),
            "remaining": index.remaining(day),
            "fully_booked": index.is_fully_booked(day),
        }
        for day in days
    ]


async def list_unavailable_dates(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    *,
    facility_id: int,
    start: date,
    end: date,
) -> frozenset[date]:
    days = expand_dates(start, end)
    _, index = await _load_index(facility_repo, count_repo, facility_id=facility_id, start=start, end=end)
    return index.unavailable_dates(days)


async def normalize_edit(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    *,
    request: ReservationRequest,
    edit: FieldEdit,
) -> NormalizationResult:
    unavailable: frozenset[date] = frozenset()
    if edit.field in (EditableField.DATE_FROM, EditableField.DATE_TO):
        unavailable = await list_unavailable_dates(
            facility_repo,
            count_repo,
            facility_id=request.facility_id,
            start=edit.value,
            end=edit.value,
        )
    return normalize(request, edit, unavailable)


async def validate_quote(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    *,
    request: ReservationRequest,
    timezone: tzinfo,
    now: datetime | None = None,
) -> ValidationResult:
    facility = await _get_facility(facility_repo, request.facility_id)
    counts: list = []
    if (
        request.date_from is not None
        and request.date_to is not None
        and 0 <= (request.date_to - request.date_from).days < MAX_RANGE_DAYS
    ):
        counts = list(await count_repo.list_reserved_counts(facility.id, request.date_from, request.date_to))
    validator = ReservationRequestValidator(facility, counts, timezone)
    return validator.validate(request, now=now)


@dataclass(frozen=True)
class ConfirmOutcome:
    reservation: Reservation
    replayed: bool = False


async def confirm_quote(
    facility_repo: FacilityRepository,
    count_repo: SlotCountRepository,
    committer: ReservationCommitter,
    *,
    request: ReservationRequest,
    user_id: int,
    idempotency_key: str,
    timezone: tzinfo,
    expected_final_total: Decimal | None = None,
    now: datetime | None = None,
) -> ConfirmOutcome:
    """
    Re-validate against a fresh snapshot, confirm, and hand over to the committer.
    A key this user already committed replays that reservation, provided the request
    describes the same booking; otherwise IdempotencyKeyReusedError is raised.
    """
    existing = await committer.get_by_idempotency_key(idempotency_key, user_id=user_id)
    if existing is not None:
        return ConfirmOutcome(reservation=ensure_replay_matches(existing, request), replayed=True)

    result = await validate_quote(facility_repo, count_repo, request=request, timezone=timezone, now=now)
    if result.error is not None:
        raise result.error
    if (
        expected_final_total is not None
        and result.pricing is not None
        and to_display(result.pricing.final_total) != to_display(expected_final_total)
    ):
        raise CommitConflictError("the quote changed since it was shown; request a new quote")

    confirmed = result.confirm(idempotency_key)
    return ConfirmOutcome(reservation=await committer.commit(confirmed, user_id=user_id))

from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_current_user_id, get_idempotency_key, get_session
from ..domain.date_range import MAX_RANGE_DAYS
from ..domain.entities import QuoteState
from ..domain.errors import CommitConflictError, ReservationError
from ..domain.normalizer import FieldEdit
from ..infrastructure.repositories import (
    SqlAlchemyFacilityRepository,
    SqlAlchemyReservationCommitter,
    SqlAlchemySlotCountRepository,
)
from ..schemas import (
    AvailabilityDay,
    FieldEditRequest,
    NormalizeRead,
    NoticeRead,
    PricingRead,
    QuoteRead,
    ReservationConfirm,
    ReservationForm,
    ReservationRead,
)
from ..usecases import quotes as quote_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.time import facility_today, facility_zone
from .errors import to_http_exception

router = APIRouter(prefix="/facilities", tags=["quotes"])


@router.get("/{facility_id}/availability", response_model=List[AvailabilityDay])
async def list_availability(
    facility_id: int,
    start: Optional[date] = Query(default=None, description="first day, facility local calendar"),
    end: Optional[date] = Query(default=None, description="last day, inclusive"),
    session: AsyncSession = Depends(get_session),
) -> list[AvailabilityDay]:
    start = start or facility_today()
    end = end or start + timedelta(days=30)
    if end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end must be on or after start")
    if (end - start).days + 1 > MAX_RANGE_DAYS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="range too long")
    try:
        rows = await quote_usecase.list_availability(
            SqlAlchemyFacilityRepository(session),
            SqlAlchemySlotCountRepository(session),
            facility_id=facility_id,
            start=start,
            end=end,
        )
    except ReservationError as exc:
        raise to_http_exception(exc)
    return [AvailabilityDay(**row) for row in rows]


@router.post("/{facility_id}/quotes/normalize", response_model=NormalizeRead)
async def normalize_form(
    facility_id: int,
    payload: FieldEditRequest,
    session: AsyncSession = Depends(get_session),
) -> NormalizeRead:
    settings = get_settings()
    request = payload.form.to_domain(
        facility_id=facility_id,
        default_discount_percentage=settings.discount_percentage,
    )
    try:
        result = await quote_usecase.normalize_edit(
            SqlAlchemyFacilityRepository(session),
            SqlAlchemySlotCountRepository(session),
            request=request,
            edit=FieldEdit(field=payload.field, value=payload.value),
        )
    except ReservationError as exc:
        raise to_http_exception(exc)
    return NormalizeRead(
        form=ReservationForm.from_domain(result.request),
        notices=[NoticeRead.from_domain(notice) for notice in result.notices],
    )


@router.post("/{facility_id}/quotes", response_model=QuoteRead)
async def create_quote(
    facility_id: int,
    payload: ReservationForm,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> QuoteRead:
    settings = get_settings()
    request = payload.to_domain(facility_id=facility_id, default_discount_percentage=settings.discount_percentage)
    try:
        result = await quote_usecase.validate_quote(
            SqlAlchemyFacilityRepository(session),
            SqlAlchemySlotCountRepository(session),
            request=request,
            timezone=facility_zone(),
        )
    except ReservationError as exc:
        raise to_http_exception(exc)

    try:
        if result.error is not None:
            emit_audit_log(
                action="quote.rejected",
                facility_id=facility_id,
                user_id=user_id,
                state_from=QuoteState.DRAFT,
                state_to=result.state,
                error_kind=result.error.kind,
                message=str(result.error),
            )
        else:
            emit_audit_log(
                action="quote.validated",
                facility_id=facility_id,
                user_id=user_id,
                state_from=QuoteState.DRAFT,
                state_to=result.state,
                final_total=result.pricing.final_total if result.pricing else None,
                extra={"unavailable_dates": result.unavailable_dates},
            )
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    if result.error is not None:
        raise to_http_exception(result.error)
    if result.pricing is None:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="validated quote has no pricing")
    return QuoteRead(
        state=result.state,
        form=ReservationForm.from_domain(result.request),
        pricing=PricingRead.from_domain(result.pricing),
        unavailable_dates=sorted(result.unavailable_dates),
    )


@router.post("/{facility_id}/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def confirm_reservation(
    facility_id: int,
    payload: ReservationConfirm,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    idempotency_key: str = Depends(get_idempotency_key),
) -> ReservationRead:
    settings = get_settings()
    request = payload.form.to_domain(facility_id=facility_id, default_discount_percentage=settings.discount_percentage)
    facility_repo = SqlAlchemyFacilityRepository(session)
    count_repo = SqlAlchemySlotCountRepository(session)
    committer = SqlAlchemyReservationCommitter(session)
    try:
        async with session.begin():
            outcome = await quote_usecase.confirm_quote(
                facility_repo,
                count_repo,
                committer,
                request=request,
                user_id=user_id,
                idempotency_key=idempotency_key,
                timezone=facility_zone(),
                expected_final_total=payload.expected_final_total,
            )
    except CommitConflictError as exc:
        _audit_conflict(facility_id, user_id, exc)
        raise to_http_exception(exc)
    except IntegrityError:
        exc = CommitConflictError("reservation conflicted with a concurrent booking")
        _audit_conflict(facility_id, user_id, exc)
        raise to_http_exception(exc)
    except ReservationError as exc:
        raise to_http_exception(exc)

    reservation = outcome.reservation
    try:
        emit_audit_log(
            action="reservation.replayed" if outcome.replayed else "reservation.committed",
            facility_id=facility_id,
            user_id=user_id,
            reservation_id=reservation.id,
            state_from=QuoteState.CONFIRMED if outcome.replayed else QuoteState.VALIDATED,
            state_to=QuoteState.CONFIRMED,
            final_total=reservation.final_total,
            extra={"idempotency_key": idempotency_key},
        )
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return ReservationRead.from_db(reservation=reservation)


def _audit_conflict(facility_id: int, user_id: int, exc: CommitConflictError) -> None:
    try:
        emit_audit_log(
            action="reservation.commit_conflict",
            facility_id=facility_id,
            user_id=user_id,
            state_from=QuoteState.VALIDATED,
            state_to=QuoteState.REJECTED,
            error_kind=exc.kind,
            message=str(exc),
            extra={"conflicting_dates": exc.conflicting_dates},
        )
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

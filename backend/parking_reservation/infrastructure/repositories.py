from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import Facility as FacilitySnapshot
from ..domain.entities import ReservedSlotCount
from ..domain.errors import CommitConflictError, FacilityNotFoundError
from ..domain.repositories import FacilityRepository, ReservationCommitter, SlotCountRepository
from ..domain.validator import ConfirmedReservation, ensure_replay_matches
from ..models import DailySlotCount, Facility, Reservation, ReservationStatus


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_snapshot(facility: Facility) -> FacilitySnapshot:
    return FacilitySnapshot(
        id=facility.id,
        total_spaces=facility.total_spaces,
        available_spaces=facility.available_spaces,
        hourly_rate=facility.hourly_rate,
        whole_day_rate=facility.whole_day_rate,
        availability_status=facility.availability_status,
    )


class SqlAlchemyFacilityRepository(FacilityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_snapshot(self, facility_id: int) -> FacilitySnapshot | None:
        facility = await self.session.scalar(select(Facility).where(Facility.id == facility_id))
        return to_snapshot(facility) if isinstance(facility, Facility) else None


class SqlAlchemySlotCountRepository(SlotCountRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_reserved_counts(self, facility_id: int, start: date, end: date) -> List[ReservedSlotCount]:
        stmt = select(DailySlotCount.day, DailySlotCount.reserved_count).where(
            DailySlotCount.facility_id == facility_id,
            DailySlotCount.day >= start,
            DailySlotCount.day <= end,
        )
        rows = await self.session.execute(stmt)
        return [ReservedSlotCount(date=day, reserved_count=int(count)) for day, count in rows.all()]


class SqlAlchemyReservationCommitter(ReservationCommitter):
    """
    Commits confirmed reservations with an atomic check-and-increment of per-day counts.
    Must run inside a transaction; the facility row lock serializes concurrent commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_idempotency_key(self, idempotency_key: str, *, user_id: int) -> Reservation | None:
        result = await self.session.scalar(
            select(Reservation).where(
                Reservation.user_id == user_id,
                Reservation.idempotency_key == idempotency_key,
            )
        )
        return result if isinstance(result, Reservation) else None

    async def commit(self, confirmed: ConfirmedReservation, *, user_id: int) -> Reservation:
        existing = await self.get_by_idempotency_key(confirmed.idempotency_key, user_id=user_id)
        if existing is not None:
            return ensure_replay_matches(existing, confirmed.request)

        request = confirmed.request
        pricing = confirmed.pricing
        facility = await self.session.scalar(
            select(Facility).where(Facility.id == request.facility_id).with_for_update()
        )
        if not isinstance(facility, Facility):
            raise FacilityNotFoundError("facility not found")

        days = pricing.billed_dates
        rows = await self.session.scalars(
            select(DailySlotCount)
            .where(DailySlotCount.facility_id == facility.id, DailySlotCount.day.in_(days))
            .with_for_update()
        )
        by_day = {row.day: row for row in rows.all()}
        conflicts = tuple(
            day for day in days if day in by_day and by_day[day].reserved_count >= facility.available_spaces
        )
        if conflicts:
            raise CommitConflictError("some dates became fully booked since the quote", conflicts)

        for day in days:
            row = by_day.get(day)
            if row is None:
                self.session.add(DailySlotCount(facility_id=facility.id, day=day, reserved_count=1))
            else:
                row.reserved_count += 1

        time_in, time_out = request.effective_hours
        now = _utc_now_naive()
        reservation = Reservation(
            facility_id=facility.id,
            user_id=user_id,
            vehicle_id=request.vehicle_id,
            reservation_type=request.reservation_type,
            date_from=request.date_from,
            date_to=request.date_to,
            time_in=time_in,
            time_out=time_out,
            available_days_count=pricing.available_days_count,
            original_total=pricing.original_total,
            discount_amount=pricing.discount_amount,
            final_total=pricing.final_total,
            status=ReservationStatus.PENDING_PAYMENT,
            idempotency_key=confirmed.idempotency_key,
            discount_note=_discount_note(confirmed),
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation


def _discount_note(confirmed: ConfirmedReservation) -> str | None:
    request = confirmed.request
    if not request.discount_eligible or not confirmed.pricing.discount_amount:
        return None
    return f"Discount ({request.discount_percentage.normalize():f}%)"

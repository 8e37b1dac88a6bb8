from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol

from ..models import Reservation
from .entities import Facility, ReservedSlotCount
from .validator import ConfirmedReservation


class FacilityRepository(Protocol):
    async def get_snapshot(self, facility_id: int) -> Facility | None: ...


class SlotCountRepository(Protocol):
    async def list_reserved_counts(
        self,
        facility_id: int,
        start: date,
        end: date,
    ) -> Iterable[ReservedSlotCount]: ...


class ReservationCommitter(Protocol):
    async def get_by_idempotency_key(self, idempotency_key: str, *, user_id: int) -> Reservation | None: ...

    async def commit(self, confirmed: ConfirmedReservation, *, user_id: int) -> Reservation: ...

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable

from .entities import ReservedSlotCount


class SlotAvailabilityIndex:
    """
    Pure lookup over one snapshot of per-day reservation counts.
    Build a new index from a freshly fetched snapshot before anything that must be correct;
    this class never refreshes itself.
    """

    def __init__(self, available_spaces: int, counts: Iterable[ReservedSlotCount]) -> None:
        self.available_spaces = available_spaces
        reserved: dict[date, int] = defaultdict(int)
        for entry in counts:
            reserved[entry.date] += entry.reserved_count
        self._reserved = dict(reserved)

    def reserved_count(self, day: date) -> int:
        return self._reserved.get(day, 0)

    def remaining(self, day: date) -> int:
        return max(self.available_spaces - self.reserved_count(day), 0)

    def is_fully_booked(self, day: date) -> bool:
        return self.reserved_count(day) >= self.available_spaces

    def unavailable_dates(self, days: Iterable[date]) -> frozenset[date]:
        return frozenset(day for day in days if self.is_fully_booked(day))

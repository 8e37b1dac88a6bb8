from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from .errors import InvalidRangeError

# Longest range a single quote or availability lookup may span.
MAX_RANGE_DAYS = 62


@dataclass(frozen=True)
class DateRange:
    """Inclusive run of calendar days. Iterating it always starts again from `start`."""

    start: date
    end: date

    def __iter__(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


def expand_dates(date_from: date, date_to: date) -> DateRange:
    if date_to < date_from:
        raise InvalidRangeError("date_to must be on or after date_from")
    return DateRange(start=date_from, end=date_to)

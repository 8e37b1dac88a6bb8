from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from enum import StrEnum
from typing import AbstractSet, Any

from .entities import ReservationRequest, ReservationType
from .errors import DateUnavailableError, InvalidDateOrderError, InvalidTimeOrderError


class EditableField(StrEnum):
    DATE_FROM = "date_from"
    DATE_TO = "date_to"
    TIME_IN = "time_in"
    TIME_OUT = "time_out"
    RESERVATION_TYPE = "reservation_type"
    VEHICLE_ID = "vehicle_id"


@dataclass(frozen=True)
class FieldEdit:
    field: EditableField
    value: Any


@dataclass(frozen=True)
class AdjustmentNotice:
    """Advisory attached to a successful edit that also changed another field."""

    field: EditableField
    previous: Any
    adjusted_to: Any
    message: str


@dataclass(frozen=True)
class NormalizationResult:
    request: ReservationRequest
    notices: tuple[AdjustmentNotice, ...] = field(default_factory=tuple)


def advance_one_hour(value: time) -> time:
    return value.replace(hour=min(23, value.hour + 1))


def normalize(
    request: ReservationRequest,
    edit: FieldEdit,
    unavailable_dates: AbstractSet[date] = frozenset(),
) -> NormalizationResult:
    """
    Apply one field edit and keep dates and times consistent.
    Raises the specific ReservationError on rejection; `request` itself is never touched.
    """
    if edit.field == EditableField.DATE_FROM:
        return _edit_date_from(request, edit.value, unavailable_dates)
    if edit.field == EditableField.DATE_TO:
        return _edit_date_to(request, edit.value, unavailable_dates)
    if edit.field == EditableField.TIME_IN:
        return _edit_time_in(request, edit.value)
    if edit.field == EditableField.TIME_OUT:
        return _edit_time_out(request, edit.value)
    if edit.field == EditableField.RESERVATION_TYPE:
        return NormalizationResult(request=replace(request, reservation_type=edit.value))
    return NormalizationResult(request=replace(request, vehicle_id=edit.value))


def _edit_date_from(
    request: ReservationRequest,
    new_from: date,
    unavailable_dates: AbstractSet[date],
) -> NormalizationResult:
    if new_from in unavailable_dates:
        raise DateUnavailableError("this date is fully booked")

    updated = replace(request, date_from=new_from)
    if request.date_to is not None and request.date_to < new_from:
        notice = AdjustmentNotice(
            field=EditableField.DATE_TO,
            previous=request.date_to,
            adjusted_to=new_from,
            message="end date has been adjusted to match the start date",
        )
        return NormalizationResult(request=replace(updated, date_to=new_from), notices=(notice,))
    return NormalizationResult(request=updated)


def _edit_date_to(
    request: ReservationRequest,
    new_to: date,
    unavailable_dates: AbstractSet[date],
) -> NormalizationResult:
    if new_to in unavailable_dates:
        raise DateUnavailableError("this date is fully booked")
    # Unlike date_from, an out-of-order date_to is rejected rather than pulling date_from back.
    if request.date_from is not None and new_to < request.date_from:
        raise InvalidDateOrderError("end date cannot be before start date")
    return NormalizationResult(request=replace(request, date_to=new_to))


def _edit_time_in(request: ReservationRequest, new_in: time) -> NormalizationResult:
    updated = replace(request, time_in=new_in)
    if request.reservation_type != ReservationType.HOURLY:
        return NormalizationResult(request=updated)

    if request.time_out is not None and new_in > request.time_out:
        new_out = advance_one_hour(new_in)
        notice = AdjustmentNotice(
            field=EditableField.TIME_OUT,
            previous=request.time_out,
            adjusted_to=new_out,
            message="time out has been automatically adjusted to be after time in",
        )
        return NormalizationResult(request=replace(updated, time_out=new_out), notices=(notice,))
    return NormalizationResult(request=updated)


def _edit_time_out(request: ReservationRequest, new_out: time) -> NormalizationResult:
    if (
        request.reservation_type == ReservationType.HOURLY
        and request.time_in is not None
        and new_out < request.time_in
    ):
        raise InvalidTimeOrderError("time out cannot be before time in")
    return NormalizationResult(request=replace(request, time_out=new_out))

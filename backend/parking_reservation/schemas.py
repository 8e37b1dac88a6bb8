from datetime import date, time
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, field_serializer, model_validator

from .domain.entities import PricingResult, QuoteState, ReservationRequest, ReservationType
from .domain.normalizer import AdjustmentNotice, EditableField
from .models import Reservation, ReservationStatus
from .utils.money import to_display

_EDIT_VALUE_TYPES: dict[EditableField, Any] = {
    EditableField.DATE_FROM: date,
    EditableField.DATE_TO: date,
    EditableField.TIME_IN: time,
    EditableField.TIME_OUT: time,
    EditableField.RESERVATION_TYPE: ReservationType,
    EditableField.VEHICLE_ID: int,
}


class ReservationForm(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    time_in: Optional[time] = time(16, 0)
    time_out: Optional[time] = time(20, 0)
    reservation_type: Optional[ReservationType] = ReservationType.HOURLY
    vehicle_id: Optional[int] = None
    discount_eligible: bool = False
    discount_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)

    def to_domain(self, *, facility_id: int, default_discount_percentage: Decimal) -> ReservationRequest:
        percentage = self.discount_percentage
        if percentage is None:
            percentage = default_discount_percentage if self.discount_eligible else Decimal("0")
        return ReservationRequest(
            facility_id=facility_id,
            date_from=self.date_from,
            date_to=self.date_to,
            time_in=self.time_in,
            time_out=self.time_out,
            reservation_type=self.reservation_type,
            discount_eligible=self.discount_eligible,
            discount_percentage=percentage,
            vehicle_id=self.vehicle_id,
        )

    @classmethod
    def from_domain(cls, request: ReservationRequest) -> "ReservationForm":
        return cls(
            date_from=request.date_from,
            date_to=request.date_to,
            time_in=request.time_in,
            time_out=request.time_out,
            reservation_type=request.reservation_type,
            vehicle_id=request.vehicle_id,
            discount_eligible=request.discount_eligible,
            discount_percentage=request.discount_percentage,
        )


class FieldEditRequest(BaseModel):
    form: ReservationForm
    field: EditableField
    value: Any

    @model_validator(mode="after")
    def _coerce_value(self) -> "FieldEditRequest":
        self.value = TypeAdapter(_EDIT_VALUE_TYPES[self.field]).validate_python(self.value)
        return self


class NoticeRead(BaseModel):
    field: EditableField
    previous: Any
    adjusted_to: Any
    message: str

    @classmethod
    def from_domain(cls, notice: AdjustmentNotice) -> "NoticeRead":
        return cls(
            field=notice.field,
            previous=notice.previous,
            adjusted_to=notice.adjusted_to,
            message=notice.message,
        )


class NormalizeRead(BaseModel):
    form: ReservationForm
    notices: List[NoticeRead]


class PricingRead(BaseModel):
    original_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    available_days_count: int
    hours_per_day: Optional[int]
    billed_dates: List[date]

    @field_serializer("original_total", "discount_amount", "final_total")
    def _ser_money(self, amount: Decimal) -> str:
        return str(to_display(amount))

    @classmethod
    def from_domain(cls, pricing: PricingResult) -> "PricingRead":
        return cls(
            original_total=pricing.original_total,
            discount_amount=pricing.discount_amount,
            final_total=pricing.final_total,
            available_days_count=pricing.available_days_count,
            hours_per_day=pricing.hours_per_day,
            billed_dates=list(pricing.billed_dates),
        )


class QuoteRead(BaseModel):
    state: QuoteState
    form: ReservationForm
    pricing: PricingRead
    unavailable_dates: List[date]


class ReservationConfirm(BaseModel):
    form: ReservationForm
    expected_final_total: Optional[Decimal] = Field(default=None, ge=0)


class AvailabilityDay(BaseModel):
    day: date
    reserved: int
    remaining: int
    fully_booked: bool


class ReservationRead(BaseModel):
    reservation_id: int
    facility_id: int
    user_id: int
    vehicle_id: int
    reservation_type: ReservationType
    date_from: date
    date_to: date
    time_in: time
    time_out: time
    available_days_count: int
    original_total: Decimal
    discount_amount: Decimal
    final_total: Decimal
    discount_note: Optional[str]
    status: ReservationStatus

    @field_serializer("original_total", "discount_amount", "final_total")
    def _ser_money(self, amount: Decimal) -> str:
        return str(to_display(amount))

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            facility_id=reservation.facility_id,
            user_id=reservation.user_id,
            vehicle_id=reservation.vehicle_id,
            reservation_type=reservation.reservation_type,
            date_from=reservation.date_from,
            date_to=reservation.date_to,
            time_in=reservation.time_in,
            time_out=reservation.time_out,
            available_days_count=reservation.available_days_count,
            original_total=reservation.original_total,
            discount_amount=reservation.discount_amount,
            final_total=reservation.final_total,
            discount_note=reservation.discount_note,
            status=reservation.status,
        )

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, Date, DateTime, Integer, Numeric, String, Time

from .domain.entities import AvailabilityStatus, ReservationType


class Base(DeclarativeBase):
    pass


class ReservationStatus(StrEnum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Facility(Base):
    __tablename__ = "facilities"
    __table_args__ = (
        CheckConstraint("available_spaces >= 0", name="chk_facilities_available"),
        CheckConstraint("available_spaces <= total_spaces", name="chk_facilities_total"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    total_spaces: Mapped[int] = mapped_column(Integer, nullable=False)
    available_spaces: Mapped[int] = mapped_column(Integer, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    whole_day_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    availability_status: Mapped[AvailabilityStatus] = mapped_column(
        _enum_column(AvailabilityStatus),
        nullable=False,
        default=AvailabilityStatus.OPEN,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    slot_counts: Mapped[list["DailySlotCount"]] = relationship(back_populates="facility")
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="facility")


class DailySlotCount(Base):
    __tablename__ = "daily_slot_counts"
    __table_args__ = (
        CheckConstraint("reserved_count >= 0", name="chk_slot_counts_reserved"),
        UniqueConstraint("facility_id", "day", name="uq_slot_counts_facility_day"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    reserved_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    facility: Mapped["Facility"] = relationship(back_populates="slot_counts")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("date_from <= date_to", name="chk_res_dates"),
        CheckConstraint("final_total >= 0", name="chk_res_final_total"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_res_user_idempotency_key"),
        Index("idx_res_facility", "facility_id"),
        Index("idx_res_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    vehicle_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reservation_type: Mapped[ReservationType] = mapped_column(_enum_column(ReservationType), nullable=False)
    date_from: Mapped[date] = mapped_column(Date, nullable=False)
    date_to: Mapped[date] = mapped_column(Date, nullable=False)
    time_in: Mapped[time] = mapped_column(Time, nullable=False)
    time_out: Mapped[time] = mapped_column(Time, nullable=False)
    available_days_count: Mapped[int] = mapped_column(Integer, nullable=False)
    original_total: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    final_total: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        _enum_column(ReservationStatus),
        nullable=False,
        default=ReservationStatus.PENDING_PAYMENT,
    )
    idempotency_key: Mapped[str] = mapped_column(String(128), nullable=False)
    discount_note: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    facility: Mapped["Facility"] = relationship(back_populates="reservations")

    @property
    def booking_identity(self) -> tuple:
        return (
            self.facility_id,
            self.vehicle_id,
            self.reservation_type,
            self.date_from,
            self.date_to,
            self.time_in,
            self.time_out,
        )

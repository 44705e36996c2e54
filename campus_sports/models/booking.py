from typing import Optional
import datetime as dt
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Column, Index, Text
from sqlmodel import SQLModel, Field

from campus_sports.core.errors import ValidationError
from campus_sports.core.pricing import calculate_price
from campus_sports.core.timeutils import duration as window_duration


class Booking(SQLModel, table=True):
    __table_args__ = (Index("ix_booking_facility_date_status", "facility_id", "date", "status"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    booking_code: str = Field(index=True, unique=True, max_length=8)

    user_id: int = Field(foreign_key="user.id", index=True)
    facility_id: int = Field(foreign_key="facility.id", index=True)
    university_id: int = Field(foreign_key="university.id", index=True)

    # "HH:MM" on the booking's day; duration in minutes
    start_time: str
    end_time: str
    duration: int

    # price snapshot, copied from the facility at creation
    total_price: Decimal = Field(max_digits=14, decimal_places=6)
    currency: str = "USD"

    # BOOKING STATUS
    status: str = Field(default="pending", index=True)
    # pending | confirmed | cancelled | completed

    # PAYMENT STATUS
    payment_status: str = Field(default="unpaid", index=True)
    # unpaid | paid | refunded | failed

    payment_id: Optional[int] = None

    qr_code: Optional[str] = Field(default=None, sa_column=Column(Text))
    notes: Optional[str] = None

    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[int] = None

    cancelled_at: Optional[datetime] = Field(default=None, index=True)
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = None

    date: dt.date = Field(index=True)


class BookingCreate(SQLModel):
    facility_id: int
    date: dt.date
    start_time: str
    end_time: str
    notes: Optional[str] = None


class BookingStatusUpdate(SQLModel):
    status: str
    reason: Optional[str] = None


class BookingCancel(SQLModel):
    reason: Optional[str] = None


def new_booking(
    *,
    user_id: Optional[int],
    facility,
    day: date,
    start_time: str,
    end_time: str,
    booking_code: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """Build a pending, unpaid booking with derived duration and price."""
    if user_id is None:
        raise ValidationError("User is required")
    if facility is None or facility.id is None or facility.university_id is None:
        raise ValidationError("Facility and university are required")

    minutes = window_duration(start_time, end_time)

    return Booking(
        booking_code=booking_code,
        user_id=user_id,
        facility_id=facility.id,
        university_id=facility.university_id,
        date=day,
        start_time=start_time,
        end_time=end_time,
        duration=minutes,
        total_price=calculate_price(facility.price_per_hour, minutes),
        currency=facility.currency,
        status="pending",
        payment_status="unpaid",
        notes=notes,
        created_at=now or datetime.utcnow(),
    )

from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from campus_sports.core.errors import ValidationError


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    booking_id: int = Field(foreign_key="booking.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    amount: Decimal = Field(max_digits=14, decimal_places=6)
    currency: str = "USD"
    method: str = "credit_card"  # credit_card | debit_card | bank_transfer | cash | other

    status: str = Field(default="pending", index=True)
    # pending | completed | failed | refunded

    # processor's id for the attempt, one payment row per transaction
    transaction_id: Optional[str] = Field(default=None, index=True, unique=True)
    processor_response: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    refund_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=6)
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    refund_transaction_id: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


class PaymentIntentCreate(SQLModel):
    booking_id: int


class PaymentConfirm(SQLModel):
    booking_id: int
    transaction_id: str
    method: str = "credit_card"


class RefundCreate(SQLModel):
    amount: Optional[Decimal] = None
    reason: Optional[str] = None


def new_payment(
    *,
    booking,
    status: str,
    transaction_id: Optional[str],
    method: str = "credit_card",
    processor_response: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Payment:
    if booking is None or booking.id is None:
        raise ValidationError("Booking is required")
    if booking.total_price is None or booking.total_price <= 0:
        raise ValidationError("Payment amount must be positive")

    return Payment(
        booking_id=booking.id,
        user_id=booking.user_id,
        amount=booking.total_price,
        currency=booking.currency,
        method=method,
        status=status,
        transaction_id=transaction_id,
        processor_response=processor_response,
        created_at=now or datetime.utcnow(),
    )

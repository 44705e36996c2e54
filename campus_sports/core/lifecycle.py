"""
Booking lifecycle.

A booking carries two independently tracked fields, ``status`` and
``payment_status``. The functions below are the only code that changes
them. Each one checks its precondition first and raises
``InvalidStateTransition`` before touching anything, so a rejected event
never leaves a half-applied booking behind.

``cancelled`` and ``completed`` are terminal: no status change leaves them.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from campus_sports.core.enums import (
    TERMINAL_STATUSES,
    BookingPaymentStatus,
    BookingStatus,
    PaymentStatus,
)
from campus_sports.core.errors import CheckInRejected, InvalidStateTransition, ValidationError

logger = logging.getLogger(__name__)

ADMIN_CANCEL_REASON = "Cancelled by administrator"
REFUND_CANCEL_REASON = "Cancelled due to refund"


def _touch(booking, now: datetime) -> None:
    booking.updated_at = now


def mark_paid(booking, now: datetime) -> None:
    if booking.status == BookingStatus.CANCELLED:
        raise InvalidStateTransition("Cannot pay for a cancelled booking")

    booking.payment_status = BookingPaymentStatus.PAID.value
    # a completed booking stays completed
    if booking.status != BookingStatus.COMPLETED:
        booking.status = BookingStatus.CONFIRMED.value
    _touch(booking, now)


def mark_payment_failed(booking, now: datetime) -> None:
    if booking.status == BookingStatus.CANCELLED:
        raise InvalidStateTransition("Cannot record a payment for a cancelled booking")

    # a later failed attempt does not undo an earlier successful one
    if booking.payment_status == BookingPaymentStatus.PAID:
        logger.info("booking %s already paid, ignoring failed attempt", booking.id)
        return

    booking.payment_status = BookingPaymentStatus.FAILED.value
    _touch(booking, now)


def cancel(booking, actor_id: Optional[int], reason: Optional[str], now: datetime) -> None:
    if booking.status == BookingStatus.CANCELLED:
        raise InvalidStateTransition("This booking is already cancelled")
    if booking.status == BookingStatus.COMPLETED:
        raise InvalidStateTransition("A completed booking cannot be cancelled")

    booking.status = BookingStatus.CANCELLED.value
    booking.cancelled_at = now
    booking.cancelled_by = actor_id
    booking.cancellation_reason = reason or "Cancelled by user"
    _touch(booking, now)


def set_status(booking, new_status: str, actor_id: Optional[int], now: datetime, reason: Optional[str] = None) -> None:
    """Admin status change."""
    try:
        target = BookingStatus(new_status)
    except ValueError:
        raise ValidationError(f"Invalid status '{new_status}'")

    if target == BookingStatus.CANCELLED:
        cancel(booking, actor_id, reason or ADMIN_CANCEL_REASON, now)
        return

    if booking.status in TERMINAL_STATUSES:
        raise InvalidStateTransition(f"Cannot change status of a {booking.status} booking")

    booking.status = target.value
    if target == BookingStatus.COMPLETED and not booking.checked_in:
        booking.checked_in = True
        booking.checked_in_at = now
        booking.checked_in_by = actor_id
    _touch(booking, now)


def check_in(booking, actor_id: Optional[int], now: datetime, today: date) -> None:
    if booking.status != BookingStatus.CONFIRMED:
        raise CheckInRejected(
            CheckInRejected.WRONG_STATUS,
            f"Cannot check in a booking with status '{booking.status}'",
        )
    if booking.payment_status != BookingPaymentStatus.PAID:
        raise CheckInRejected(CheckInRejected.UNPAID, "Booking has not been paid")
    if booking.checked_in:
        raise CheckInRejected(CheckInRejected.ALREADY_CHECKED_IN, "Booking is already checked in")
    if booking.date < today:
        raise CheckInRejected(CheckInRejected.DATE_PASSED, "Booking date has passed")

    booking.checked_in = True
    booking.checked_in_at = now
    booking.checked_in_by = actor_id
    _touch(booking, now)


def apply_refund(
    booking,
    payment,
    refund_id: str,
    amount: Decimal,
    reason: Optional[str],
    actor_id: Optional[int],
    now: datetime,
) -> None:
    if payment.status != PaymentStatus.COMPLETED:
        raise InvalidStateTransition(f"Only completed payments can be refunded (status '{payment.status}')")
    if amount <= 0 or amount > payment.amount:
        raise ValidationError("Refund amount must be positive and not exceed the payment amount")

    payment.status = PaymentStatus.REFUNDED.value
    payment.refund_amount = amount
    payment.refund_reason = reason or "Refunded by administrator"
    payment.refunded_at = now
    payment.refund_transaction_id = refund_id

    booking.payment_status = BookingPaymentStatus.REFUNDED.value
    if booking.status not in TERMINAL_STATUSES:
        booking.status = BookingStatus.CANCELLED.value
        booking.cancelled_at = now
        booking.cancelled_by = actor_id
        booking.cancellation_reason = REFUND_CANCEL_REASON
    _touch(booking, now)

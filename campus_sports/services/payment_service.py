"""
Payment recording.

Client confirmation and processor webhooks can both report the outcome of
the same transaction. Both go through ``record_outcome``, which writes at
most one Payment per ``transaction_id`` (backed by a unique constraint) and
commits it together with the booking transition. Whichever caller commits
first is the writer; the other gets the stored payment back unchanged.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from campus_sports.core import lifecycle
from campus_sports.core.enums import BookingPaymentStatus, BookingStatus, PaymentMethod, PaymentStatus
from campus_sports.core.errors import (
    DependencyFailure,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    PaymentMismatch,
    ValidationError,
)
from campus_sports.core.pricing import to_minor_units
from campus_sports.core.security import can_manage_university
from campus_sports.models.booking import Booking
from campus_sports.models.payment import Payment, new_payment
from campus_sports.models.user import User
from campus_sports.repositories.base import unit_of_work
from campus_sports.repositories.bookings import BookingRepository
from campus_sports.repositories.payments import PaymentRepository
from campus_sports.services import events
from campus_sports.services.events import EventBus, booking_payload
from campus_sports.services.gateways import PaymentGateway

logger = logging.getLogger(__name__)


def payment_payload(payment: Payment) -> Dict[str, Any]:
    return {
        "payment_id": payment.id,
        "booking_id": payment.booking_id,
        "amount": str(payment.amount),
        "currency": payment.currency,
        "status": payment.status,
        "transaction_id": payment.transaction_id,
    }


class PaymentService:
    def __init__(
        self,
        session: Session,
        gateway: PaymentGateway,
        event_bus: EventBus,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session = session
        self.gateway = gateway
        self.events = event_bus
        self.clock = clock
        self.bookings = BookingRepository(session)
        self.payments = PaymentRepository(session)

    def _booking(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if not booking:
            raise NotFound(f"No booking found with id {booking_id}")
        return booking

    def _ensure_owner(self, user: User, booking: Booking) -> None:
        if booking.user_id != user.id and not can_manage_university(user, booking.university_id):
            raise Forbidden(f"User {user.id} is not authorized to pay for this booking")

    # =========================
    # INTENT
    # =========================

    def create_intent(self, user: User, booking_id: int) -> Dict[str, Any]:
        booking = self._booking(booking_id)
        self._ensure_owner(user, booking)

        if booking.status == BookingStatus.CANCELLED:
            raise InvalidStateTransition("Cannot pay for a cancelled booking")
        if booking.payment_status == BookingPaymentStatus.PAID:
            raise InvalidStateTransition("This booking is already paid")

        txn = self.gateway.authorize(
            booking.total_price,
            booking.currency,
            str(booking.id),
            metadata={"booking_code": booking.booking_code},
        )
        logger.info("payment intent %s created for booking %s", txn.transaction_id, booking.id)
        return {
            "client_secret": txn.client_secret,
            "transaction_id": txn.transaction_id,
            "amount": txn.amount_minor,
            "currency": txn.currency,
        }

    # =========================
    # OUTCOME
    # =========================

    def record_outcome(
        self,
        booking: Booking,
        transaction_id: str,
        succeeded: bool,
        method: str = PaymentMethod.CREDIT_CARD.value,
        processor_response: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Payment, bool]:
        """Store the outcome of one processor transaction.

        Returns the payment and whether this call changed it. A transaction
        that was already recorded is returned as is, except that a success
        replaces an earlier failure: processors retry a declined intent under
        the same transaction id.
        """
        existing = self.payments.find_by_transaction(transaction_id)
        retried = existing is not None and succeeded and existing.status == PaymentStatus.FAILED
        if existing and not retried:
            logger.info("transaction %s already recorded as payment %s", transaction_id, existing.id)
            return existing, False

        now = self.clock()
        try:
            with unit_of_work(self.session):
                if succeeded:
                    lifecycle.mark_paid(booking, now)
                else:
                    lifecycle.mark_payment_failed(booking, now)

                if retried:
                    existing.status = PaymentStatus.COMPLETED.value
                    existing.method = method
                    existing.processor_response = processor_response
                    payment = self.payments.update(existing)
                else:
                    payment = self.payments.insert(
                        new_payment(
                            booking=booking,
                            status=PaymentStatus.COMPLETED.value if succeeded else PaymentStatus.FAILED.value,
                            transaction_id=transaction_id,
                            method=method,
                            processor_response=processor_response,
                            now=now,
                        )
                    )
                if succeeded:
                    booking.payment_id = payment.id
                self.bookings.update(booking)
        except IntegrityError:
            existing = self.payments.find_by_transaction(transaction_id)
            if existing is None:
                raise
            logger.info("transaction %s recorded concurrently as payment %s", transaction_id, existing.id)
            return existing, False

        self.session.refresh(payment)
        self.session.refresh(booking)
        logger.info(
            "payment %s (%s) recorded for booking %s: %s",
            payment.id, transaction_id, booking.id, payment.status,
        )
        if succeeded:
            self.events.publish(events.BOOKING_PAID, booking_payload(booking))
        else:
            self.events.publish(events.PAYMENT_FAILED, payment_payload(payment))
        return payment, True

    def confirm_payment(self, user: User, booking_id: int, transaction_id: str, method: str = "credit_card") -> Payment:
        booking = self._booking(booking_id)
        self._ensure_owner(user, booking)

        try:
            PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Invalid payment method '{method}'")

        txn = self.gateway.retrieve(transaction_id)

        if txn.idempotency_ref != str(booking.id):
            raise PaymentMismatch(
                "Transaction does not belong to this booking",
                details={"transaction_id": transaction_id, "booking_id": booking.id},
            )
        expected = to_minor_units(booking.total_price, booking.currency)
        if txn.amount_minor != expected or txn.currency.upper() != booking.currency.upper():
            raise PaymentMismatch(
                "Transaction amount does not match the booking",
                details={
                    "expected": expected,
                    "expected_currency": booking.currency,
                    "received": txn.amount_minor,
                    "received_currency": txn.currency,
                },
            )
        if txn.status == PaymentStatus.PENDING:
            raise ValidationError("Payment has not been completed by the processor yet")

        payment, _ = self.record_outcome(booking, txn.transaction_id, txn.succeeded, method, txn.raw)
        return payment

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        event = self.gateway.parse_webhook(payload, signature)
        if event is None:
            return {"received": True, "handled": False}

        try:
            booking_id = int(event.idempotency_ref)
        except (TypeError, ValueError):
            raise ValidationError("Webhook event without a booking reference")
        booking = self._booking(booking_id)

        try:
            payment, created = self.record_outcome(
                booking, event.transaction_id, event.event_type == "succeeded", processor_response=event.raw
            )
        except InvalidStateTransition as exc:
            # acknowledged so the processor stops redelivering; staff refund by hand
            logger.warning("webhook for transaction %s not applied: %s", event.transaction_id, exc.message)
            return {"received": True, "handled": False, "reason": exc.message}

        return {"received": True, "handled": created, "payment_id": payment.id}

    # =========================
    # REFUND
    # =========================

    def refund(self, admin: User, payment_id: int, amount: Optional[Decimal] = None, reason: Optional[str] = None) -> Payment:
        payment = self.get_payment(admin, payment_id)
        booking = self._booking(payment.booking_id)
        if not can_manage_university(admin, booking.university_id):
            raise Forbidden(f"User {admin.id} cannot refund payments of this university")

        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidStateTransition(f"Only completed payments can be refunded (status '{payment.status}')")
        amount = payment.amount if amount is None else Decimal(amount)
        if amount <= 0 or amount > payment.amount:
            raise ValidationError("Refund amount must be positive and not exceed the payment amount")
        if not payment.transaction_id:
            raise ValidationError("Payment has no processor transaction to refund")

        result = self.gateway.refund(payment.transaction_id, amount, payment.currency)
        if not result.success:
            raise DependencyFailure("Refund was declined by the payment processor", details=result.raw)

        with unit_of_work(self.session):
            lifecycle.apply_refund(booking, payment, result.refund_id, amount, reason, admin.id, self.clock())
            self.payments.update(payment)
            self.bookings.update(booking)

        self.session.refresh(payment)
        self.session.refresh(booking)
        logger.info("payment %s refunded (%s %s) by %s", payment.id, amount, payment.currency, admin.id)
        self.events.publish(events.PAYMENT_REFUNDED, payment_payload(payment))
        if booking.status == BookingStatus.CANCELLED:
            self.events.publish(events.BOOKING_CANCELLED, booking_payload(booking))
        return payment

    # =========================
    # LOOKUPS
    # =========================

    def get_payment(self, user: User, payment_id: int) -> Payment:
        payment = self.payments.get(payment_id)
        if not payment:
            raise NotFound(f"No payment found with id {payment_id}")
        if payment.user_id != user.id:
            booking = self._booking(payment.booking_id)
            if not can_manage_university(user, booking.university_id):
                raise Forbidden(f"User {user.id} is not authorized to view this payment")
        return payment

    def list_for_user(self, user: User) -> List[Payment]:
        return self.payments.find_for_user(user.id)

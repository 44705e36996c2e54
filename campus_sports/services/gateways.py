"""
Payment processor integrations.

Stripe is used in test and production mode; the mock gateway keeps
everything in memory for local development and tests. All amounts cross
this boundary in minor units (see ``core.pricing.to_minor_units``).
"""

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional

import stripe

from campus_sports.core.config import Settings, get_settings
from campus_sports.core.errors import DependencyFailure, NotFound, ValidationError
from campus_sports.core.pricing import to_minor_units

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    TEST = "test"
    PRODUCTION = "production"
    MOCK = "mock"


# processor status -> Payment.status
TRANSACTION_STATUS = {
    "succeeded": "completed",
    "canceled": "failed",
    "failed": "failed",
}


@dataclass
class Transaction:
    transaction_id: str
    status: str  # pending | completed | failed
    amount_minor: int
    currency: str
    idempotency_ref: Optional[str]
    client_secret: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


@dataclass
class RefundResult:
    success: bool
    refund_id: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookEvent:
    event_type: str  # succeeded | failed
    transaction_id: str
    idempotency_ref: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway:
    """Base class for payment processors."""

    def __init__(self, environment: Environment = Environment.MOCK):
        self.environment = environment

    def authorize(self, amount: Decimal, currency: str, idempotency_ref: str, metadata: Optional[Dict[str, str]] = None) -> Transaction:
        raise NotImplementedError

    def retrieve(self, transaction_id: str) -> Transaction:
        raise NotImplementedError

    def refund(self, transaction_id: str, amount: Decimal, currency: str) -> RefundResult:
        raise NotImplementedError

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Optional[WebhookEvent]:
        """Verified webhook -> event, or None for event types we do not handle."""
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str, webhook_secret: Optional[str], environment: Environment = Environment.TEST):
        super().__init__(environment)
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    @staticmethod
    def _to_transaction(intent) -> Transaction:
        metadata = getattr(intent, "metadata", None)
        return Transaction(
            transaction_id=intent.id,
            status=TRANSACTION_STATUS.get(intent.status, "pending"),
            amount_minor=int(intent.amount),
            currency=str(intent.currency).upper(),
            idempotency_ref=getattr(metadata, "booking_id", None) if metadata else None,
            client_secret=getattr(intent, "client_secret", None),
            raw={"id": intent.id, "status": intent.status, "amount": intent.amount, "currency": intent.currency},
        )

    def authorize(self, amount, currency, idempotency_ref, metadata=None):
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount, currency),
                currency=currency.lower(),
                metadata={**(metadata or {}), "booking_id": idempotency_ref},
                idempotency_key=f"booking-{idempotency_ref}-{to_minor_units(amount, currency)}",
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            logger.error("stripe authorize failed for booking %s: %s", idempotency_ref, exc)
            raise DependencyFailure("Payment processor unavailable") from exc
        return self._to_transaction(intent)

    def retrieve(self, transaction_id):
        try:
            intent = stripe.PaymentIntent.retrieve(transaction_id, api_key=self.api_key)
        except stripe.InvalidRequestError as exc:
            raise NotFound(f"Unknown transaction {transaction_id}") from exc
        except stripe.StripeError as exc:
            logger.error("stripe retrieve failed for %s: %s", transaction_id, exc)
            raise DependencyFailure("Payment processor unavailable") from exc
        return self._to_transaction(intent)

    def refund(self, transaction_id, amount, currency):
        try:
            refund = stripe.Refund.create(
                payment_intent=transaction_id,
                amount=to_minor_units(amount, currency),
                idempotency_key=f"refund-{transaction_id}",
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            logger.error("stripe refund failed for %s: %s", transaction_id, exc)
            raise DependencyFailure("Payment processor unavailable") from exc
        return RefundResult(
            success=refund.status in ("succeeded", "pending"),
            refund_id=refund.id,
            raw={"id": refund.id, "status": refund.status},
        )

    def parse_webhook(self, payload, signature):
        if not self.webhook_secret:
            raise DependencyFailure("Webhook secret not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise ValidationError("Invalid webhook signature") from exc
        except ValueError as exc:
            raise ValidationError("Invalid webhook payload") from exc

        kinds = {
            "payment_intent.succeeded": "succeeded",
            "payment_intent.payment_failed": "failed",
        }
        kind = kinds.get(event.type)
        if kind is None:
            return None

        intent = event.data.object
        return WebhookEvent(
            event_type=kind,
            transaction_id=intent.id,
            idempotency_ref=getattr(getattr(intent, "metadata", None), "booking_id", None),
            raw={"id": intent.id, "status": intent.status},
        )


class MockGateway(PaymentGateway):
    """In-memory processor. Authorizations start pending until ``settle`` is called."""

    def __init__(self):
        super().__init__(Environment.MOCK)
        self._transactions: Dict[str, Transaction] = {}
        self._by_key: Dict[str, str] = {}
        self._lock = threading.Lock()

    def authorize(self, amount, currency, idempotency_ref, metadata=None):
        amount_minor = to_minor_units(amount, currency)
        key = f"{idempotency_ref}:{amount_minor}:{currency.upper()}"
        with self._lock:
            existing = self._by_key.get(key)
            if existing:
                return self._transactions[existing]

            transaction_id = f"mock_pi_{uuid.uuid4().hex[:16]}"
            txn = Transaction(
                transaction_id=transaction_id,
                status="pending",
                amount_minor=amount_minor,
                currency=currency.upper(),
                idempotency_ref=str(idempotency_ref),
                client_secret=f"{transaction_id}_secret",
            )
            self._transactions[transaction_id] = txn
            self._by_key[key] = transaction_id
            return txn

    def settle(self, transaction_id: str, succeeded: bool = True) -> Transaction:
        with self._lock:
            txn = self._transactions.get(transaction_id)
            if txn is None:
                raise NotFound(f"Unknown transaction {transaction_id}")
            txn.status = "completed" if succeeded else "failed"
            return txn

    def retrieve(self, transaction_id):
        txn = self._transactions.get(transaction_id)
        if txn is None:
            raise NotFound(f"Unknown transaction {transaction_id}")
        return txn

    def refund(self, transaction_id, amount, currency):
        if transaction_id not in self._transactions:
            raise NotFound(f"Unknown transaction {transaction_id}")
        return RefundResult(success=True, refund_id=f"mock_re_{uuid.uuid4().hex[:16]}")

    def parse_webhook(self, payload, signature):
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise ValidationError("Invalid webhook payload") from exc

        if data.get("event_type") not in ("succeeded", "failed"):
            return None
        if not data.get("transaction_id"):
            raise ValidationError("Webhook without transaction_id")

        return WebhookEvent(
            event_type=data["event_type"],
            transaction_id=data["transaction_id"],
            idempotency_ref=data.get("idempotency_ref"),
            raw=data,
        )


def build_gateway(settings: Settings) -> PaymentGateway:
    environment = Environment(settings.payment_env)
    if environment == Environment.MOCK:
        return MockGateway()

    if settings.stripe_secret_key is None:
        raise DependencyFailure("Stripe secret key not configured")
    webhook_secret = settings.stripe_webhook_secret.get_secret_value() if settings.stripe_webhook_secret else None
    return StripeGateway(settings.stripe_secret_key.get_secret_value(), webhook_secret, environment)


@lru_cache
def get_gateway() -> PaymentGateway:
    return build_gateway(get_settings())

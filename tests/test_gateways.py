import json
from decimal import Decimal

import pytest

from campus_sports.core.config import Settings
from campus_sports.core.errors import DependencyFailure, NotFound, ValidationError
from campus_sports.services.gateways import MockGateway, StripeGateway, build_gateway


def test_mock_authorize_is_idempotent_per_reference():
    gateway = MockGateway()
    first = gateway.authorize(Decimal("30"), "USD", "12")
    again = gateway.authorize(Decimal("30"), "usd", "12")
    other = gateway.authorize(Decimal("30"), "USD", "13")

    assert first.transaction_id == again.transaction_id
    assert other.transaction_id != first.transaction_id
    assert first.status == "pending"
    assert first.amount_minor == 3000
    assert first.idempotency_ref == "12"
    assert first.client_secret


def test_mock_settle_and_retrieve():
    gateway = MockGateway()
    txn = gateway.authorize(Decimal("30"), "USD", "12")

    gateway.settle(txn.transaction_id)
    assert gateway.retrieve(txn.transaction_id).succeeded

    with pytest.raises(NotFound):
        gateway.retrieve("mock_pi_missing")


def test_mock_refund():
    gateway = MockGateway()
    txn = gateway.authorize(Decimal("30"), "USD", "12")
    result = gateway.refund(txn.transaction_id, Decimal("30"), "USD")
    assert result.success
    assert result.refund_id.startswith("mock_re_")


def test_mock_webhook_parsing():
    gateway = MockGateway()
    event = gateway.parse_webhook(
        json.dumps({"event_type": "succeeded", "transaction_id": "t1", "idempotency_ref": "5"}).encode(), None
    )
    assert (event.event_type, event.transaction_id, event.idempotency_ref) == ("succeeded", "t1", "5")

    assert gateway.parse_webhook(json.dumps({"event_type": "charge.dispute"}).encode(), None) is None
    with pytest.raises(ValidationError):
        gateway.parse_webhook(b"{not json", None)
    with pytest.raises(ValidationError):
        gateway.parse_webhook(json.dumps({"event_type": "failed"}).encode(), None)


def test_build_gateway_by_environment():
    assert isinstance(build_gateway(Settings(payment_env="mock")), MockGateway)

    stripe_gateway = build_gateway(Settings(payment_env="test", stripe_secret_key="sk_test_123"))
    assert isinstance(stripe_gateway, StripeGateway)
    assert stripe_gateway.api_key == "sk_test_123"

    with pytest.raises(DependencyFailure):
        build_gateway(Settings(payment_env="production", stripe_secret_key=None))

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from campus_sports.dependencies import get_payment_service
from campus_sports.models.payment import PaymentConfirm, PaymentIntentCreate, RefundCreate
from campus_sports.models.user import User
from campus_sports.core.security import get_current_admin, get_current_user
from campus_sports.services.payment_service import PaymentService


router = APIRouter(prefix="/payments", tags=["payments"])


# =========================
# PAYMENT INTENT
# =========================
@router.post("/create-payment-intent")
def create_payment_intent(
    payload: PaymentIntentCreate,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_user),
):
    return service.create_intent(current_user, payload.booking_id)


# =========================
# CONFIRM (CLIENT)
# =========================
@router.post("/confirm")
def confirm_payment(
    payload: PaymentConfirm,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_user),
):
    return service.confirm_payment(current_user, payload.booking_id, payload.transaction_id, payload.method)


# =========================
# WEBHOOK (PROCESSOR)
# =========================
@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    service: PaymentService = Depends(get_payment_service),
):
    # signature is computed over the raw body
    payload = await request.body()
    return service.handle_webhook(payload, stripe_signature)


# =========================
# QUERIES
# =========================
@router.get("/user")
def list_my_payments(
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_user),
):
    return service.list_for_user(current_user)


@router.get("/{payment_id}")
def get_payment(
    payment_id: int,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_payment(current_user, payment_id)


# =========================
# REFUND (ADMIN)
# =========================
@router.post("/{payment_id}/refund")
def refund_payment(
    payment_id: int,
    payload: Optional[RefundCreate] = None,
    service: PaymentService = Depends(get_payment_service),
    current_admin: User = Depends(get_current_admin),
):
    amount = payload.amount if payload else None
    reason = payload.reason if payload else None
    return service.refund(current_admin, payment_id, amount, reason)

from fastapi import Depends
from sqlmodel import Session

from campus_sports.core.config import get_settings
from campus_sports.database import get_session
from campus_sports.services.availability_service import AvailabilityService
from campus_sports.services.booking_service import BookingService
from campus_sports.services.events import EventBus, get_event_bus
from campus_sports.services.gateways import PaymentGateway, get_gateway
from campus_sports.services.payment_service import PaymentService
from campus_sports.services.qr import QrEncoder
from campus_sports.services.statistics_service import StatisticsService
from campus_sports.services.user_service import UserService


# =========================
# COLLABORATORS
# =========================

def get_event_publisher() -> EventBus:
    return get_event_bus()


def get_qr_encoder() -> QrEncoder:
    return QrEncoder(get_settings().qr_secret.get_secret_value())


def get_payment_gateway() -> PaymentGateway:
    return get_gateway()


# =========================
# SERVICES
# =========================

def get_availability_service(session: Session = Depends(get_session)) -> AvailabilityService:
    return AvailabilityService(session)


def get_booking_service(
    session: Session = Depends(get_session),
    event_bus: EventBus = Depends(get_event_publisher),
    qr_encoder: QrEncoder = Depends(get_qr_encoder),
) -> BookingService:
    return BookingService(session, event_bus, qr_encoder)


def get_payment_service(
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    event_bus: EventBus = Depends(get_event_publisher),
) -> PaymentService:
    return PaymentService(session, gateway, event_bus)


def get_statistics_service(session: Session = Depends(get_session)) -> StatisticsService:
    return StatisticsService(session)


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from campus_sports.core.security import create_access_token, get_password_hash
from campus_sports.database import get_session
from campus_sports.dependencies import get_event_publisher, get_payment_gateway, get_qr_encoder
from campus_sports.main import app
from campus_sports.models import booking, payment, schedule  # noqa: F401
from campus_sports.models.facility import Facility
from campus_sports.models.university import University
from campus_sports.models.user import User
from campus_sports.services.availability_service import AvailabilityService
from campus_sports.services.booking_service import BookingService
from campus_sports.services.events import EventBus
from campus_sports.services.gateways import MockGateway
from campus_sports.services.payment_service import PaymentService
from campus_sports.services.qr import QrEncoder
from campus_sports.services.statistics_service import StatisticsService


QR_SECRET = "test-qr-secret"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def tomorrow():
    return datetime.utcnow().date() + timedelta(days=1)


# =========================
# COLLABORATORS
# =========================

@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def published(event_bus):
    """Every (topic, payload) published during the test."""
    received = []
    event_bus.subscribe("*", lambda topic, payload: received.append((topic, payload)))
    return received


@pytest.fixture
def qr_encoder():
    return QrEncoder(QR_SECRET)


@pytest.fixture
def gateway():
    return MockGateway()


# =========================
# DATA
# =========================

def make_user(session, email, role="user", university_id=None, password="secret123"):
    user = User(
        name=email.split("@")[0],
        email=email,
        role=role,
        university_id=university_id,
        password_hash=get_password_hash(password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def university(session):
    university = University(
        name="State University",
        city="Springfield",
        country="US",
        contact_email="sports@state.test",
    )
    session.add(university)
    session.commit()
    session.refresh(university)
    return university


@pytest.fixture
def other_university(session):
    university = University(
        name="Tech Institute",
        city="Shelbyville",
        country="US",
        contact_email="sports@tech.test",
    )
    session.add(university)
    session.commit()
    session.refresh(university)
    return university


@pytest.fixture
def facility(session, university):
    facility = Facility(
        name="Tennis Court 1",
        university_id=university.id,
        type="tennis_court",
        capacity=4,
        price_per_hour=Decimal("20.00"),
        currency="USD",
    )
    session.add(facility)
    session.commit()
    session.refresh(facility)
    return facility


@pytest.fixture
def user(session, university):
    return make_user(session, "student@state.test", university_id=university.id)


@pytest.fixture
def other_user(session, university):
    return make_user(session, "other@state.test", university_id=university.id)


@pytest.fixture
def admin(session, university):
    return make_user(session, "admin@state.test", role="admin", university_id=university.id)


@pytest.fixture
def super_admin(session):
    return make_user(session, "root@campus.test", role="super-admin")


# =========================
# SERVICES
# =========================

@pytest.fixture
def availability_service(session):
    return AvailabilityService(session, slot_minutes=60)


@pytest.fixture
def booking_service(session, event_bus, qr_encoder):
    return BookingService(session, event_bus, qr_encoder)


@pytest.fixture
def payment_service(session, gateway, event_bus):
    return PaymentService(session, gateway, event_bus)


@pytest.fixture
def statistics_service(session):
    return StatisticsService(session)


# =========================
# API
# =========================

@pytest.fixture
def client(session, gateway, event_bus, qr_encoder):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_event_publisher] = lambda: event_bus
    app.dependency_overrides[get_qr_encoder] = lambda: qr_encoder

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def headers_for():
    def _headers(user):
        token = create_access_token(data={"sub": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def user_factory(session):
    def _make(email, role="user", university_id=None, password="secret123"):
        return make_user(session, email, role, university_id, password)

    return _make

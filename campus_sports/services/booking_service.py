"""
Booking creation and lifecycle operations.

Creation is the one place where correctness depends on ordering: the
window check and the insert run under ``facility_day_lock`` inside a single
transaction, so two requests for the same facility and day cannot both
pass the check.
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from campus_sports.core import lifecycle
from campus_sports.core.availability import ensure_window_free
from campus_sports.core.codes import generate_booking_code, normalize_code
from campus_sports.core.enums import BookingStatus, Role
from campus_sports.core.errors import DependencyFailure, Forbidden, NotFound, ValidationError
from campus_sports.core.security import can_manage_university, is_admin
from campus_sports.core.slots import Window
from campus_sports.core.timeutils import duration, parse_time, weekday_name
from campus_sports.models.booking import Booking, BookingCreate, new_booking
from campus_sports.models.facility import Facility
from campus_sports.models.user import User
from campus_sports.repositories.base import storage_errors, unit_of_work
from campus_sports.repositories.bookings import BookingFilter, BookingRepository
from campus_sports.repositories.schedules import ScheduleRepository
from campus_sports.services import events
from campus_sports.services.events import EventBus, booking_payload
from campus_sports.services.locks import facility_day_lock
from campus_sports.services.qr import QrEncoder, booking_qr_payload

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


class BookingService:
    def __init__(
        self,
        session: Session,
        event_bus: EventBus,
        qr_encoder: QrEncoder,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session = session
        self.events = event_bus
        self.qr = qr_encoder
        self.clock = clock
        self.bookings = BookingRepository(session)
        self.schedules = ScheduleRepository(session)

    # =========================
    # LOOKUPS
    # =========================

    def _load(self, booking_id: int) -> Booking:
        booking = self.bookings.get(booking_id)
        if not booking:
            raise NotFound(f"No booking found with id {booking_id}")
        return booking

    def _ensure_access(self, user: User, booking: Booking) -> None:
        if booking.user_id == user.id:
            return
        if can_manage_university(user, booking.university_id):
            return
        raise Forbidden(f"User {user.id} is not authorized to access this booking")

    def _ensure_manager(self, user: User, booking: Booking) -> None:
        if not can_manage_university(user, booking.university_id):
            raise Forbidden(f"User {user.id} cannot manage bookings of this university")

    def get_booking(self, user: User, booking_id: int) -> Booking:
        booking = self._load(booking_id)
        self._ensure_access(user, booking)
        return booking

    def list_bookings(self, user: User, criteria: Optional[BookingFilter] = None) -> List[Booking]:
        criteria = criteria or BookingFilter()
        if not is_admin(user):
            criteria.user_id = user.id
        elif user.role != Role.SUPER_ADMIN:
            if user.university_id is None:
                return []
            criteria.university_id = user.university_id
        return self.bookings.find(criteria)

    def list_user_bookings(self, user: User, statuses: Optional[Sequence[str]] = None) -> List[Booking]:
        return self.bookings.find(BookingFilter(user_id=user.id, statuses=statuses))

    def verify_code(self, user: User, raw_code: str) -> Booking:
        code = normalize_code(raw_code)
        booking = self.bookings.find_one(BookingFilter(booking_code=code))
        if not booking:
            raise NotFound(f"No booking found with code {code}")
        self._ensure_manager(user, booking)
        return booking

    # =========================
    # CREATE
    # =========================

    def _validate_hours(self, facility: Facility, day: date, window: Window) -> None:
        day_hours = (facility.operating_hours or {}).get(weekday_name(day), {})
        if not day_hours.get("is_open", False):
            raise ValidationError(f"Facility is closed on {weekday_name(day)}")

        if window.start < parse_time(day_hours["open"]) or window.end > parse_time(day_hours["close"]):
            raise ValidationError(
                "Booking is outside operating hours",
                details={"open": day_hours["open"], "close": day_hours["close"]},
            )

    def create_booking(self, user: User, data: BookingCreate) -> Booking:
        duration(data.start_time, data.end_time)
        window = Window.from_times(data.start_time, data.end_time)

        with storage_errors("facility lookup"):
            facility = self.session.get(Facility, data.facility_id)
        if not facility or not facility.is_active:
            raise NotFound(f"No facility found with id {data.facility_id}")

        self._validate_hours(facility, data.date, window)

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            try:
                with facility_day_lock(self.session, facility.id, data.date):
                    with unit_of_work(self.session):
                        active = self.bookings.active_for_day(facility.id, data.date)
                        schedule = self.schedules.find_one(facility.id, data.date)
                        blocked = schedule.template_slots() if schedule else []
                        ensure_window_free(window, active, blocked)

                        code = generate_booking_code()
                        while self.bookings.code_exists(code):
                            code = generate_booking_code()

                        booking = self.bookings.insert(
                            new_booking(
                                user_id=user.id,
                                facility=facility,
                                day=data.date,
                                start_time=data.start_time,
                                end_time=data.end_time,
                                booking_code=code,
                                notes=data.notes,
                                now=self.clock(),
                            )
                        )
                        booking.qr_code = self.qr.encode(booking_qr_payload(booking, facility.name), now=self.clock())
                        self.bookings.update(booking)
                break
            except IntegrityError:
                logger.warning("booking code collision, retrying (attempt %d)", attempt)
        else:
            raise DependencyFailure("Could not allocate a unique booking code")

        self.session.refresh(booking)
        logger.info(
            "booking %s (%s) created for facility %s on %s %s-%s",
            booking.id, booking.booking_code, facility.id, booking.date, booking.start_time, booking.end_time,
        )
        self.events.publish(events.BOOKING_CREATED, booking_payload(booking))
        return booking

    # =========================
    # LIFECYCLE
    # =========================

    def cancel_booking(self, user: User, booking_id: int, reason: Optional[str] = None) -> Booking:
        booking = self._load(booking_id)
        self._ensure_access(user, booking)

        with unit_of_work(self.session):
            lifecycle.cancel(booking, user.id, reason, self.clock())
            self.bookings.update(booking)

        self.session.refresh(booking)
        logger.info("booking %s cancelled by user %s", booking.id, user.id)
        self.events.publish(events.BOOKING_CANCELLED, booking_payload(booking))
        return booking

    def update_status(self, admin: User, booking_id: int, new_status: str, reason: Optional[str] = None) -> Booking:
        booking = self._load(booking_id)
        self._ensure_manager(admin, booking)

        with unit_of_work(self.session):
            lifecycle.set_status(booking, new_status, admin.id, self.clock(), reason)
            self.bookings.update(booking)

        self.session.refresh(booking)
        logger.info("booking %s set to %s by admin %s", booking.id, booking.status, admin.id)
        topic = events.BOOKING_CANCELLED if booking.status == BookingStatus.CANCELLED else events.BOOKING_UPDATED
        self.events.publish(topic, booking_payload(booking))
        return booking

    def check_in(self, admin: User, booking_id: int) -> Booking:
        booking = self._load(booking_id)
        self._ensure_manager(admin, booking)

        now = self.clock()
        with unit_of_work(self.session):
            lifecycle.check_in(booking, admin.id, now, now.date())
            self.bookings.update(booking)

        self.session.refresh(booking)
        logger.info("booking %s checked in by %s", booking.id, admin.id)
        self.events.publish(events.BOOKING_CHECKED_IN, booking_payload(booking))
        return booking

    def check_in_by_qr(self, admin: User, content: str) -> Booking:
        """Check in from scanned QR text; the payload must carry a valid signature."""
        data = self.qr.parse(content)
        if data is None:
            raise ValidationError("Invalid QR code")

        booking = self.verify_code(admin, data.get("booking_code", ""))
        if booking.id != data.get("booking_id"):
            raise ValidationError("QR code does not match booking")
        return self.check_in(admin, booking.id)

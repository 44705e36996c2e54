from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from sqlmodel import Session, select

from campus_sports.core.availability import ACTIVE_STATUSES
from campus_sports.models.booking import Booking
from campus_sports.repositories.base import storage_errors


@dataclass
class BookingFilter:
    """Each field set maps to one predicate; unset fields are ignored."""

    facility_id: Optional[int] = None
    user_id: Optional[int] = None
    university_id: Optional[int] = None
    day: Optional[date] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    statuses: Optional[Sequence[str]] = None
    booking_code: Optional[str] = None


class BookingRepository:
    def __init__(self, session: Session):
        self.session = session

    def _select(self, criteria: BookingFilter):
        query = select(Booking)
        if criteria.facility_id is not None:
            query = query.where(Booking.facility_id == criteria.facility_id)
        if criteria.user_id is not None:
            query = query.where(Booking.user_id == criteria.user_id)
        if criteria.university_id is not None:
            query = query.where(Booking.university_id == criteria.university_id)
        if criteria.day is not None:
            query = query.where(Booking.date == criteria.day)
        if criteria.date_from is not None:
            query = query.where(Booking.date >= criteria.date_from)
        if criteria.date_to is not None:
            query = query.where(Booking.date <= criteria.date_to)
        if criteria.statuses is not None:
            query = query.where(Booking.status.in_(list(criteria.statuses)))
        if criteria.booking_code is not None:
            query = query.where(Booking.booking_code == criteria.booking_code)
        return query

    def find(self, criteria: BookingFilter) -> List[Booking]:
        with storage_errors("booking lookup"):
            query = self._select(criteria).order_by(Booking.date, Booking.start_time)
            return list(self.session.exec(query).all())

    def find_one(self, criteria: BookingFilter) -> Optional[Booking]:
        with storage_errors("booking lookup"):
            return self.session.exec(self._select(criteria)).first()

    def get(self, booking_id: int) -> Optional[Booking]:
        with storage_errors("booking lookup"):
            return self.session.get(Booking, booking_id)

    def active_for_day(self, facility_id: int, day: date) -> List[Booking]:
        return self.find(BookingFilter(facility_id=facility_id, day=day, statuses=ACTIVE_STATUSES))

    def code_exists(self, code: str) -> bool:
        return self.find_one(BookingFilter(booking_code=code)) is not None

    def insert(self, booking: Booking) -> Booking:
        with storage_errors("booking insert"):
            self.session.add(booking)
            self.session.flush()
            return booking

    def update(self, booking: Booking) -> Booking:
        with storage_errors("booking update"):
            self.session.add(booking)
            self.session.flush()
            return booking

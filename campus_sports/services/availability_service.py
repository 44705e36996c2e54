import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from campus_sports.core.availability import overlaps, resolve_availability
from campus_sports.core.config import get_settings
from campus_sports.core.enums import UnavailableReason
from campus_sports.core.errors import NotFound, ValidationError
from campus_sports.core.slots import Slot, Window, generate_slots
from campus_sports.core.timeutils import duration, weekday_name
from campus_sports.models.facility import Facility
from campus_sports.models.schedule import Schedule
from campus_sports.repositories.base import storage_errors, unit_of_work
from campus_sports.repositories.bookings import BookingRepository
from campus_sports.repositories.schedules import ScheduleRepository

logger = logging.getLogger(__name__)


class AvailabilityService:
    def __init__(self, session: Session, slot_minutes: Optional[int] = None):
        self.session = session
        self.slot_minutes = slot_minutes or get_settings().slot_minutes
        self.bookings = BookingRepository(session)
        self.schedules = ScheduleRepository(session)

    def _facility(self, facility_id: int) -> Facility:
        with storage_errors("facility lookup"):
            facility = self.session.get(Facility, facility_id)
        if not facility or not facility.is_active:
            raise NotFound(f"No facility found with id {facility_id}")
        return facility

    def get_or_create_schedule(self, facility: Facility, day: date) -> Schedule:
        """The day's slot template, generated from operating hours on first use."""
        schedule = self.schedules.find_one(facility.id, day)
        if schedule:
            return schedule

        day_hours = (facility.operating_hours or {}).get(weekday_name(day), {"is_open": False})
        template = generate_slots(day_hours, self.slot_minutes)
        schedule = Schedule(facility_id=facility.id, date=day, slots=[s.to_dict() for s in template])

        try:
            with unit_of_work(self.session):
                self.schedules.insert(schedule)
        except IntegrityError:
            # another request created it first
            logger.info("schedule for facility %s on %s created concurrently", facility.id, day)
            schedule = self.schedules.find_one(facility.id, day)
            if schedule is None:
                raise
            return schedule

        logger.info("created schedule for facility %s on %s with %d slots", facility.id, day, len(template))
        return schedule

    def get_availability(self, facility_id: int, day: date) -> Dict[str, Any]:
        facility = self._facility(facility_id)
        schedule = self.get_or_create_schedule(facility, day)

        active = self.bookings.active_for_day(facility.id, day)
        slots = resolve_availability(schedule.template_slots(), active)

        day_hours = (facility.operating_hours or {}).get(weekday_name(day), {})
        return {
            "facility_id": facility.id,
            "date": day.isoformat(),
            "is_open": bool(day_hours.get("is_open", False)),
            "slot_minutes": self.slot_minutes,
            "slots": [s.to_dict() for s in slots],
        }

    def _set_slots(self, facility_id: int, day: date, start_time: str, end_time: str, reason: Optional[str]) -> List[Slot]:
        duration(start_time, end_time)
        window = Window.from_times(start_time, end_time)

        facility = self._facility(facility_id)
        schedule = self.get_or_create_schedule(facility, day)

        updated: List[Dict[str, Any]] = []
        for slot in schedule.template_slots():
            if overlaps(window, slot.window):
                slot = Slot(slot.start_time, slot.end_time, is_available=reason is None, unavailable_reason=reason)
            updated.append(slot.to_dict())

        with unit_of_work(self.session):
            # new list so the JSON column is flagged dirty
            schedule.slots = updated
            self.schedules.update(schedule)

        return schedule.template_slots()

    def block_slots(self, facility_id: int, day: date, start_time: str, end_time: str, reason: str) -> List[Slot]:
        """Mark template slots in the window unavailable (maintenance, holiday, ...)."""
        try:
            UnavailableReason(reason)
        except ValueError:
            raise ValidationError(f"Invalid unavailable reason '{reason}'")

        slots = self._set_slots(facility_id, day, start_time, end_time, reason)
        logger.info("blocked %s-%s on %s for facility %s (%s)", start_time, end_time, day, facility_id, reason)
        return slots

    def release_slots(self, facility_id: int, day: date, start_time: str, end_time: str) -> List[Slot]:
        slots = self._set_slots(facility_id, day, start_time, end_time, None)
        logger.info("released %s-%s on %s for facility %s", start_time, end_time, day, facility_id)
        return slots

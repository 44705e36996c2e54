from datetime import date
from typing import Optional

from sqlmodel import Session, select

from campus_sports.models.schedule import Schedule
from campus_sports.repositories.base import storage_errors


class ScheduleRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_one(self, facility_id: int, day: date) -> Optional[Schedule]:
        with storage_errors("schedule lookup"):
            return self.session.exec(
                select(Schedule).where(
                    Schedule.facility_id == facility_id,
                    Schedule.date == day,
                )
            ).first()

    def insert(self, schedule: Schedule) -> Schedule:
        with storage_errors("schedule insert"):
            self.session.add(schedule)
            self.session.flush()
            return schedule

    def update(self, schedule: Schedule) -> Schedule:
        with storage_errors("schedule update"):
            self.session.add(schedule)
            self.session.flush()
            return schedule

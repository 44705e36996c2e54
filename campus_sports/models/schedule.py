from typing import Any, Dict, List, Optional
import datetime as dt
from datetime import datetime

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field

from campus_sports.core.slots import Slot


class Schedule(SQLModel, table=True):
    """Slot template for one facility and day, generated once from operating hours."""

    __table_args__ = (UniqueConstraint("facility_id", "date", name="uq_schedule_facility_date"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    facility_id: int = Field(foreign_key="facility.id", index=True)
    date: dt.date = Field(index=True)

    # [{"start_time", "end_time", "is_available", "unavailable_reason"}]
    slots: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def template_slots(self) -> List[Slot]:
        return [Slot.from_dict(s) for s in self.slots or []]


class SlotBlock(SQLModel):
    start_time: str
    end_time: str
    reason: str = "maintenance"  # maintenance | holiday | special_event | closure

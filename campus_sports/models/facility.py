from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from campus_sports.core.timeutils import WEEKDAYS


DEFAULT_OPEN = "08:00"
DEFAULT_CLOSE = "22:00"


def default_operating_hours() -> Dict[str, Dict[str, Any]]:
    return {day: {"is_open": True, "open": DEFAULT_OPEN, "close": DEFAULT_CLOSE} for day in WEEKDAYS}


class DayHours(SQLModel):
    is_open: bool = True
    open: str = DEFAULT_OPEN
    close: str = DEFAULT_CLOSE


class FacilityBase(SQLModel):
    name: str
    university_id: int = Field(foreign_key="university.id", index=True)
    type: str = Field(default="other", index=True)
    description: Optional[str] = None
    capacity: int
    price_per_hour: Decimal = Field(max_digits=10, decimal_places=2)
    currency: str = "USD"  # USD | EUR | GBP | RUB | JPY | CNY | AUD


class Facility(FacilityBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # weekday -> {"is_open", "open", "close"}
    operating_hours: Dict[str, Dict[str, Any]] = Field(
        default_factory=default_operating_hours, sa_column=Column(JSON)
    )

    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FacilityCreate(FacilityBase):
    operating_hours: Optional[Dict[str, DayHours]] = None


class FacilityUpdate(SQLModel):
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    price_per_hour: Optional[Decimal] = None
    currency: Optional[str] = None
    is_active: Optional[bool] = None

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from campus_sports.core.errors import ValidationError
from campus_sports.core.timeutils import format_time, parse_time


DEFAULT_SLOT_MINUTES = 60


class Window(NamedTuple):
    """Half-open [start, end) range in minutes since midnight."""

    start: int
    end: int

    @classmethod
    def from_times(cls, start_time: str, end_time: str) -> "Window":
        return cls(parse_time(start_time), parse_time(end_time))


@dataclass(frozen=True)
class Slot:
    start_time: str
    end_time: str
    is_available: bool = True
    unavailable_reason: Optional[str] = None

    @property
    def window(self) -> Window:
        return Window.from_times(self.start_time, self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Slot":
        return cls(
            start_time=data["start_time"],
            end_time=data["end_time"],
            is_available=data.get("is_available", True),
            unavailable_reason=data.get("unavailable_reason"),
        )


def generate_slots(day_hours: Mapping[str, Any], slot_minutes: int = DEFAULT_SLOT_MINUTES) -> List[Slot]:
    """Fixed-length slots for one weekday's operating hours.

    ``day_hours`` is ``{"is_open": bool, "open": "HH:MM", "close": "HH:MM"}``.
    A closed day yields nothing and its open/close values are not read. The
    trailing partial slot is dropped, so a window shorter than one slot
    yields nothing either.
    """
    if slot_minutes <= 0:
        raise ValidationError("Slot length must be positive")

    if not day_hours.get("is_open", False):
        return []

    open_at = parse_time(day_hours["open"])
    close_at = parse_time(day_hours["close"])

    slots: List[Slot] = []
    cursor = open_at
    while cursor + slot_minutes <= close_at:
        slots.append(Slot(format_time(cursor), format_time(cursor + slot_minutes)))
        cursor += slot_minutes

    return slots

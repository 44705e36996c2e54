from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence

from campus_sports.core.enums import BookingStatus
from campus_sports.core.errors import SlotUnavailable
from campus_sports.core.slots import Slot, Window


# only these statuses hold a window
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


def overlaps(a: Window, b: Window) -> bool:
    """True if [a.start, a.end) shares any time with [b.start, b.end). Touching ends do not overlap."""
    return a.start < b.end and b.start < a.end


def _window_of(booking) -> Window:
    return Window.from_times(booking.start_time, booking.end_time)


def resolve_availability(slots: Sequence[Slot], active_bookings: Iterable) -> List[Slot]:
    """Overlay live bookings on template slots.

    Returns new slots; the template is never modified. Callers pass only
    active (pending/confirmed) bookings for the facility and date.
    """
    busy = [_window_of(b) for b in active_bookings]

    resolved: List[Slot] = []
    for slot in slots:
        window = slot.window
        taken = any(overlaps(window, b) for b in busy)
        resolved.append(replace(slot, is_available=slot.is_available and not taken))
    return resolved


def _first_conflict(window: Window, active_bookings: Iterable) -> Optional[Any]:
    return next((b for b in active_bookings if overlaps(window, _window_of(b))), None)


def is_window_free(window: Window, active_bookings: Iterable) -> bool:
    return _first_conflict(window, active_bookings) is None


def ensure_window_free(window: Window, active_bookings: Iterable, blocked_slots: Iterable[Slot] = ()) -> None:
    """Raise SlotUnavailable if the window hits an active booking or a blocked template slot."""
    booking = _first_conflict(window, active_bookings)
    if booking is not None:
        raise SlotUnavailable(
            "The requested time overlaps an existing booking",
            details={"start_time": booking.start_time, "end_time": booking.end_time},
        )

    for slot in blocked_slots:
        if not slot.is_available and overlaps(window, slot.window):
            raise SlotUnavailable(
                "The requested time overlaps an unavailable slot",
                details={
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "reason": slot.unavailable_reason,
                },
            )

import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Tuple

from sqlmodel import Session, select

from campus_sports.models.facility import Facility
from campus_sports.repositories.base import storage_errors


_registry_lock = threading.Lock()
# key -> [lock, holders and waiters]; dropped when the count reaches zero
_day_locks: Dict[Tuple[int, date], List] = {}


def _acquire_entry(key: Tuple[int, date]) -> threading.Lock:
    with _registry_lock:
        entry = _day_locks.get(key)
        if entry is None:
            entry = _day_locks[key] = [threading.Lock(), 0]
        entry[1] += 1
        return entry[0]


def _release_entry(key: Tuple[int, date]) -> None:
    with _registry_lock:
        entry = _day_locks[key]
        entry[1] -= 1
        if entry[1] == 0:
            del _day_locks[key]


@contextmanager
def facility_day_lock(session: Session, facility_id: int, day: date) -> Iterator[Facility]:
    """Serialize check-and-insert for one facility and day.

    The in-process lock covers threads of this worker; the row lock on the
    facility covers other workers on databases that support
    SELECT ... FOR UPDATE (SQLite ignores it and relies on its single writer).
    The row lock is released when the caller's transaction ends, so callers
    commit inside the block.
    """
    key = (facility_id, day)
    lock = _acquire_entry(key)
    try:
        with lock:
            with storage_errors("facility lock"):
                facility = session.exec(
                    select(Facility).where(Facility.id == facility_id).with_for_update()
                ).first()
            yield facility
    finally:
        _release_entry(key)

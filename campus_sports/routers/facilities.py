import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from campus_sports.database import get_session
from campus_sports.models.facility import DayHours, Facility, FacilityCreate, FacilityUpdate, default_operating_hours
from campus_sports.models.university import University
from campus_sports.models.user import User
from campus_sports.core.enums import Currency, FacilityType
from campus_sports.core.security import can_manage_university, get_current_admin
from campus_sports.core.timeutils import WEEKDAYS, parse_time

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/facilities", tags=["facilities"])


def _get_or_404(session: Session, facility_id: int) -> Facility:
    facility = session.get(Facility, facility_id)
    if not facility:
        raise HTTPException(status_code=404, detail="Facility not found")
    return facility


def _ensure_manager(admin: User, university_id: int) -> None:
    if not can_manage_university(admin, university_id):
        raise HTTPException(status_code=403, detail="Not allowed to manage facilities of this university")


def _validate_day(hours: DayHours) -> Dict[str, Any]:
    # closed days keep their times but nothing reads them
    if hours.is_open and parse_time(hours.close) <= parse_time(hours.open):
        raise HTTPException(status_code=400, detail="close must be later than open")
    return hours.model_dump()


def _validate_fields(type_: Optional[str], currency: Optional[str], capacity: Optional[int], price) -> None:
    if type_ is not None and type_ not in [t.value for t in FacilityType]:
        raise HTTPException(status_code=400, detail=f"Invalid facility type '{type_}'")
    if currency is not None and currency not in [c.value for c in Currency]:
        raise HTTPException(status_code=400, detail=f"Unsupported currency '{currency}'")
    if capacity is not None and capacity <= 0:
        raise HTTPException(status_code=400, detail="capacity must be positive")
    if price is not None and price < 0:
        raise HTTPException(status_code=400, detail="price_per_hour cannot be negative")


# =========================
# QUERIES
# =========================

@router.get("/")
def list_facilities(
    type: Optional[str] = None,
    university_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    query = select(Facility).where(Facility.is_active == True)  # noqa: E712
    if type:
        query = query.where(Facility.type == type)
    if university_id is not None:
        query = query.where(Facility.university_id == university_id)
    return session.exec(query.order_by(Facility.name)).all()


@router.get("/university/{university_id}")
def list_university_facilities(university_id: int, session: Session = Depends(get_session)):
    if not session.get(University, university_id):
        raise HTTPException(status_code=404, detail="University not found")

    return session.exec(
        select(Facility)
        .where(Facility.university_id == university_id, Facility.is_active == True)  # noqa: E712
        .order_by(Facility.name)
    ).all()


@router.get("/{facility_id}")
def get_facility(facility_id: int, session: Session = Depends(get_session)):
    return _get_or_404(session, facility_id)


# =========================
# ADMIN
# =========================

@router.post("/", status_code=status.HTTP_201_CREATED)
def create_facility(
    payload: FacilityCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    _ensure_manager(current_admin, payload.university_id)
    _validate_fields(payload.type, payload.currency, payload.capacity, payload.price_per_hour)

    university = session.get(University, payload.university_id)
    if not university or not university.is_active:
        raise HTTPException(status_code=404, detail="University not found")

    operating_hours = default_operating_hours()
    for day, hours in (payload.operating_hours or {}).items():
        if day not in WEEKDAYS:
            raise HTTPException(status_code=400, detail=f"Invalid weekday '{day}'")
        operating_hours[day] = _validate_day(hours)

    facility = Facility.model_validate(
        payload.model_dump(exclude={"operating_hours"}),
        update={"operating_hours": operating_hours},
    )
    session.add(facility)
    session.commit()
    session.refresh(facility)

    logger.info("facility %s created for university %s", facility.id, facility.university_id)
    return facility


@router.put("/{facility_id}")
def update_facility(
    facility_id: int,
    payload: FacilityUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    facility = _get_or_404(session, facility_id)
    _ensure_manager(current_admin, facility.university_id)
    _validate_fields(payload.type, payload.currency, payload.capacity, payload.price_per_hour)

    # existing bookings keep their price snapshot
    facility.sqlmodel_update(payload.model_dump(exclude_unset=True))
    session.add(facility)
    session.commit()
    session.refresh(facility)
    return facility


@router.put("/{facility_id}/operating-hours/{weekday}")
def upsert_operating_hours(
    facility_id: int,
    weekday: str,
    payload: DayHours,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    """
    weekday: monday ... sunday
    Schedules already generated for a date are not regenerated.
    """
    weekday = weekday.lower()
    if weekday not in WEEKDAYS:
        raise HTTPException(status_code=400, detail="weekday must be monday..sunday")

    facility = _get_or_404(session, facility_id)
    _ensure_manager(current_admin, facility.university_id)

    # new dict so the JSON column is flagged dirty
    hours = dict(facility.operating_hours or default_operating_hours())
    hours[weekday] = _validate_day(payload)
    facility.operating_hours = hours

    session.add(facility)
    session.commit()
    session.refresh(facility)
    return facility.operating_hours


@router.delete("/{facility_id}")
def deactivate_facility(
    facility_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    facility = _get_or_404(session, facility_id)
    _ensure_manager(current_admin, facility.university_id)

    facility.is_active = False
    session.add(facility)
    session.commit()

    logger.info("facility %s deactivated by %s", facility.id, current_admin.id)
    return {"message": "Facility deactivated"}

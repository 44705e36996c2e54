from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from campus_sports.database import get_session
from campus_sports.dependencies import get_availability_service
from campus_sports.models.facility import Facility
from campus_sports.models.schedule import SlotBlock
from campus_sports.models.user import User
from campus_sports.core.security import can_manage_university, get_current_admin
from campus_sports.services.availability_service import AvailabilityService

router = APIRouter(prefix="/schedules", tags=["schedules"])


def _ensure_manager(session: Session, admin: User, facility_id: int) -> None:
    facility = session.get(Facility, facility_id)
    if not facility:
        raise HTTPException(status_code=404, detail="Facility not found")
    if not can_manage_university(admin, facility.university_id):
        raise HTTPException(status_code=403, detail="Not allowed to manage this facility")


@router.get("/{facility_id}/{day}")
def get_schedule(
    facility_id: int,
    day: date,
    service: AvailabilityService = Depends(get_availability_service),
    current_admin: User = Depends(get_current_admin),
):
    """Stored slot template, without live bookings overlaid."""
    _ensure_manager(service.session, current_admin, facility_id)
    facility = service.session.get(Facility, facility_id)
    schedule = service.get_or_create_schedule(facility, day)
    return schedule


@router.post("/{facility_id}/{day}/block")
def block_slots(
    facility_id: int,
    day: date,
    payload: SlotBlock,
    service: AvailabilityService = Depends(get_availability_service),
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    _ensure_manager(session, current_admin, facility_id)
    slots = service.block_slots(facility_id, day, payload.start_time, payload.end_time, payload.reason)
    return [s.to_dict() for s in slots]


@router.delete("/{facility_id}/{day}/block")
def release_slots(
    facility_id: int,
    day: date,
    payload: SlotBlock,
    service: AvailabilityService = Depends(get_availability_service),
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    _ensure_manager(session, current_admin, facility_id)
    slots = service.release_slots(facility_id, day, payload.start_time, payload.end_time)
    return [s.to_dict() for s in slots]

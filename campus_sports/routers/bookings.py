from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import SQLModel

from campus_sports.dependencies import get_availability_service, get_booking_service
from campus_sports.models.booking import BookingCancel, BookingCreate, BookingStatusUpdate
from campus_sports.models.user import User
from campus_sports.core.security import get_current_admin, get_current_user
from campus_sports.repositories.bookings import BookingFilter
from campus_sports.services.availability_service import AvailabilityService
from campus_sports.services.booking_service import BookingService


router = APIRouter(prefix="/bookings", tags=["bookings"])


class QrCheckIn(SQLModel):
    content: str


# =========================
# AVAILABILITY (PUBLIC)
# =========================
@router.get("/availability/{facility_id}/{day}")
def get_availability(
    facility_id: int,
    day: date,
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_availability(facility_id, day)


# =========================
# CREATE BOOKING
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_user),
):
    return service.create_booking(current_user, payload)


# =========================
# LISTINGS
# =========================
@router.get("/user")
def list_my_bookings(
    statuses: Optional[List[str]] = Query(default=None, alias="status"),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_user),
):
    return service.list_user_bookings(current_user, statuses)


@router.get("/")
def list_bookings(
    facility_id: Optional[int] = None,
    university_id: Optional[int] = None,
    day: Optional[date] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    statuses: Optional[List[str]] = Query(default=None, alias="status"),
    service: BookingService = Depends(get_booking_service),
    current_admin: User = Depends(get_current_admin),
):
    criteria = BookingFilter(
        facility_id=facility_id,
        university_id=university_id,
        day=day,
        date_from=date_from,
        date_to=date_to,
        statuses=statuses,
    )
    return service.list_bookings(current_admin, criteria)


# =========================
# VERIFICATION / CHECK-IN (ADMIN)
# =========================
@router.get("/verify/{code}")
def verify_booking(
    code: str,
    service: BookingService = Depends(get_booking_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.verify_code(current_admin, code)


@router.post("/check-in/qr")
def check_in_by_qr(
    payload: QrCheckIn,
    service: BookingService = Depends(get_booking_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.check_in_by_qr(current_admin, payload.content)


@router.put("/{booking_id}/check-in")
def check_in(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.check_in(current_admin, booking_id)


# =========================
# STATUS CHANGES
# =========================
@router.put("/{booking_id}/status")
def update_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    service: BookingService = Depends(get_booking_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.update_status(current_admin, booking_id, payload.status, payload.reason)


@router.put("/{booking_id}/cancel")
def cancel_booking(
    booking_id: int,
    payload: Optional[BookingCancel] = None,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_user),
):
    reason = payload.reason if payload else None
    return service.cancel_booking(current_user, booking_id, reason)


@router.get("/{booking_id}")
def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_booking(current_user, booking_id)

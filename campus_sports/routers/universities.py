import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from campus_sports.database import get_session
from campus_sports.dependencies import get_user_service
from campus_sports.models.university import University, UniversityCreate, UniversityUpdate
from campus_sports.models.user import AdministratorAssign, User, UserRead
from campus_sports.core.security import can_manage_university, get_current_admin, get_current_super_admin
from campus_sports.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/universities", tags=["universities"])


def _get_or_404(session: Session, university_id: int) -> University:
    university = session.get(University, university_id)
    if not university:
        raise HTTPException(status_code=404, detail="University not found")
    return university


@router.get("/")
def list_universities(session: Session = Depends(get_session)):
    return session.exec(
        select(University).where(University.is_active == True).order_by(University.name)  # noqa: E712
    ).all()


@router.get("/{university_id}")
def get_university(university_id: int, session: Session = Depends(get_session)):
    return _get_or_404(session, university_id)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_university(
    payload: UniversityCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_super_admin),
):
    existing = session.exec(
        select(University).where(University.name == payload.name)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="University already registered")

    university = University.model_validate(payload)
    session.add(university)
    session.commit()
    session.refresh(university)

    logger.info("university %s created by %s", university.id, current_admin.id)
    return university


@router.put("/{university_id}")
def update_university(
    university_id: int,
    payload: UniversityUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    university = _get_or_404(session, university_id)
    if not can_manage_university(current_admin, university.id):
        raise HTTPException(status_code=403, detail="Not allowed to manage this university")

    university.sqlmodel_update(payload.model_dump(exclude_unset=True))
    session.add(university)
    session.commit()
    session.refresh(university)
    return university


@router.delete("/{university_id}")
def deactivate_university(
    university_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    university = _get_or_404(session, university_id)
    if not can_manage_university(current_admin, university.id):
        raise HTTPException(status_code=403, detail="Not allowed to manage this university")

    # bookings keep referencing it, so it is only deactivated
    university.is_active = False
    session.add(university)
    session.commit()

    logger.info("university %s deactivated by %s", university.id, current_admin.id)
    return {"message": "University deactivated"}


# =========================
# ADMINISTRATORS (SUPER ADMIN)
# =========================
@router.post("/{university_id}/administrators", response_model=UserRead)
def add_administrator(
    university_id: int,
    payload: AdministratorAssign,
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_super_admin),
):
    return service.assign_administrator(current_admin, university_id, payload.user_id)


@router.delete("/{university_id}/administrators/{user_id}", response_model=UserRead)
def remove_administrator(
    university_id: int,
    user_id: int,
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_super_admin),
):
    return service.remove_administrator(current_admin, university_id, user_id)

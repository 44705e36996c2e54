from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from campus_sports.database import get_session
from campus_sports.dependencies import get_user_service
from campus_sports.models.university import University
from campus_sports.models.user import PasswordChange, PasswordReset, User, UserCreate, UserRead, UserUpdate
from campus_sports.core.security import get_current_admin, get_current_user, get_password_hash
from campus_sports.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserRead)
def create_user(user: UserCreate, session: Session = Depends(get_session)):

    existing_user = session.exec(
        select(User).where(User.email == user.email)
    ).first()

    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    if user.university_id is not None and not session.get(University, user.university_id):
        raise HTTPException(status_code=404, detail="University not found")

    # self-registration always creates a regular user
    db_user = User(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
        university_id=user.university_id,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    return db_user


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


# =========================
# ADMIN
# =========================
@router.get("/", response_model=List[UserRead])
def list_users(
    role: Optional[str] = None,
    university_id: Optional[int] = None,
    search: Optional[str] = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.list_users(current_admin, role, university_id, search, offset, limit)


@router.get("/administrators/{university_id}", response_model=List[UserRead])
def list_university_admins(
    university_id: int,
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.list_university_admins(current_admin, university_id)


@router.put("/{user_id}/reset-password")
def reset_password(
    user_id: int,
    payload: PasswordReset,
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_admin),
):
    service.reset_password(current_admin, user_id, payload.new_password)
    return {"message": "Password reset"}


@router.delete("/{user_id}")
def deactivate_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
    current_admin: User = Depends(get_current_admin),
):
    service.deactivate_user(current_admin, user_id)
    return {"message": "User deactivated"}


# =========================
# SELF OR ADMIN
# =========================
@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_user(current_user, user_id)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    return service.update_user(current_user, user_id, payload)


@router.put("/{user_id}/password")
def change_password(
    user_id: int,
    payload: PasswordChange,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    service.change_password(current_user, user_id, payload.current_password, payload.new_password)
    return {"message": "Password updated"}

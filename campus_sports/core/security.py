from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlmodel import Session, select

from campus_sports.core.config import get_settings
from campus_sports.core.enums import Role
from campus_sports.database import get_session
from campus_sports.models.user import User


# =========================
# PASSWORD HASHING
# =========================

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =========================
# JWT TOKEN
# =========================

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.secret_key.get_secret_value(), algorithm=settings.algorithm)


# =========================
# AUTHENTICATED USER
# =========================

def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    settings = get_settings()

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.secret_key.get_secret_value(), algorithms=[settings.algorithm])
        email: str = payload.get("sub")

        if email is None:
            raise credentials_exception

    except JWTError:
        raise credentials_exception

    user = session.exec(
        select(User).where(User.email == email)
    ).first()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


# =========================
# ADMINS ONLY
# =========================

def is_admin(user: User) -> bool:
    return user.role in (Role.ADMIN.value, Role.SUPER_ADMIN.value)


def can_manage_university(user: User, university_id: Optional[int]) -> bool:
    """Super admins manage everything; admins only the university they are assigned to."""
    if user.role == Role.SUPER_ADMIN:
        return True
    if user.role == Role.ADMIN:
        return user.university_id is not None and user.university_id == university_id
    return False


def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:

    if not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can access this route"
        )

    return current_user


def get_current_super_admin(
    current_user: User = Depends(get_current_user),
) -> User:

    if current_user.role != Role.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only super administrators can access this route"
        )

    return current_user

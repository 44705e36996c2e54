from typing import Optional
from sqlmodel import SQLModel, Field


MIN_PASSWORD_LENGTH = 6


class UserBase(SQLModel):
    name: str
    email: str = Field(index=True, unique=True)


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    role: str = Field(default="user")  # user | admin | super-admin
    # admins are scoped to one university
    university_id: Optional[int] = Field(default=None, foreign_key="university.id")
    password_hash: str
    # deleted accounts are deactivated and can no longer log in
    is_active: bool = True


class UserCreate(UserBase):
    password: str
    university_id: Optional[int] = None


class UserRead(UserBase):
    id: int
    role: str
    university_id: Optional[int] = None
    is_active: bool


class UserUpdate(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    university_id: Optional[int] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


class PasswordChange(SQLModel):
    current_password: str
    new_password: str


class PasswordReset(SQLModel):
    new_password: str


class AdministratorAssign(SQLModel):
    user_id: int

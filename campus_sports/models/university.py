from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field


class UniversityBase(SQLModel):
    name: str = Field(index=True, unique=True)
    city: str
    country: str
    contact_email: str
    website: Optional[str] = None


class University(UniversityBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class UniversityCreate(UniversityBase):
    pass


class UniversityUpdate(SQLModel):
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    contact_email: Optional[str] = None
    website: Optional[str] = None
    is_active: Optional[bool] = None

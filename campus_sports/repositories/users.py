from dataclasses import dataclass
from typing import List, Optional

from sqlmodel import Session, or_, select

from campus_sports.models.user import User
from campus_sports.repositories.base import storage_errors


@dataclass
class UserFilter:
    """Only active accounts unless ``include_inactive`` is set."""

    role: Optional[str] = None
    university_id: Optional[int] = None
    search: Optional[str] = None
    include_inactive: bool = False
    offset: int = 0
    limit: Optional[int] = None


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def find(self, criteria: UserFilter) -> List[User]:
        query = select(User)
        if not criteria.include_inactive:
            query = query.where(User.is_active == True)  # noqa: E712
        if criteria.role is not None:
            query = query.where(User.role == criteria.role)
        if criteria.university_id is not None:
            query = query.where(User.university_id == criteria.university_id)
        if criteria.search:
            pattern = f"%{criteria.search}%"
            query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        query = query.order_by(User.id).offset(criteria.offset)
        if criteria.limit is not None:
            query = query.limit(criteria.limit)

        with storage_errors("user lookup"):
            return list(self.session.exec(query).all())

    def get(self, user_id: int) -> Optional[User]:
        with storage_errors("user lookup"):
            return self.session.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        with storage_errors("user lookup"):
            return self.session.exec(select(User).where(User.email == email)).first()

    def update(self, user: User) -> User:
        with storage_errors("user update"):
            self.session.add(user)
            self.session.flush()
            return user

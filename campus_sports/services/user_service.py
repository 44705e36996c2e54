"""
Account administration.

Users may read and edit their own profile and change their own password.
Admins manage the accounts of the university they are assigned to; only a
super admin changes roles, moves users between universities, or assigns
university administrators. Deleting an account only deactivates it, since
bookings and payments keep referencing the user.
"""

import logging
from typing import List, Optional

from sqlmodel import Session

from campus_sports.core.enums import Role
from campus_sports.core.errors import Forbidden, NotFound, ValidationError
from campus_sports.core.security import can_manage_university, get_password_hash, verify_password
from campus_sports.models.university import University
from campus_sports.models.user import MIN_PASSWORD_LENGTH, User, UserUpdate
from campus_sports.repositories.base import storage_errors, unit_of_work
from campus_sports.repositories.users import UserFilter, UserRepository

logger = logging.getLogger(__name__)


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


class UserService:
    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)

    # =========================
    # LOOKUPS
    # =========================

    def _load(self, user_id: int) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFound(f"No user found with id {user_id}")
        return user

    def _university(self, university_id: int) -> University:
        with storage_errors("university lookup"):
            university = self.session.get(University, university_id)
        if not university or not university.is_active:
            raise NotFound(f"No university found with id {university_id}")
        return university

    def _can_manage(self, actor: User, target: User) -> bool:
        if target.role == Role.SUPER_ADMIN and actor.role != Role.SUPER_ADMIN:
            return False
        return can_manage_university(actor, target.university_id)

    def _ensure_manager(self, actor: User, target: User) -> None:
        if not self._can_manage(actor, target):
            raise Forbidden(f"User {actor.id} cannot manage user {target.id}")

    def get_user(self, actor: User, user_id: int) -> User:
        target = self._load(user_id)
        if actor.id != target.id:
            self._ensure_manager(actor, target)
        return target

    def list_users(
        self,
        actor: User,
        role: Optional[str] = None,
        university_id: Optional[int] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> List[User]:
        if actor.role != Role.SUPER_ADMIN:
            if actor.university_id is None:
                raise Forbidden("Admin is not assigned to a university")
            if university_id is not None and university_id != actor.university_id:
                raise Forbidden("Admins can only list users of their own university")
            university_id = actor.university_id

        return self.users.find(
            UserFilter(role=role, university_id=university_id, search=search, offset=offset, limit=limit)
        )

    def list_university_admins(self, actor: User, university_id: int) -> List[User]:
        if not can_manage_university(actor, university_id):
            raise Forbidden("Not allowed to view administrators of this university")
        self._university(university_id)
        return self.users.find(UserFilter(role=Role.ADMIN.value, university_id=university_id))

    # =========================
    # PROFILE
    # =========================

    def update_user(self, actor: User, user_id: int, data: UserUpdate) -> User:
        target = self._load(user_id)
        if actor.id != target.id:
            self._ensure_manager(actor, target)

        changes = data.model_dump(exclude_unset=True)
        if actor.role != Role.SUPER_ADMIN and ({"role", "university_id"} & changes.keys()):
            raise Forbidden("Only super administrators can change roles or universities")
        if actor.id == target.id and actor.role == Role.USER and "is_active" in changes:
            raise Forbidden("Users cannot change their own account state")

        if "role" in changes:
            try:
                Role(changes["role"])
            except ValueError:
                raise ValidationError(f"Invalid role '{changes['role']}'")
        if changes.get("university_id") is not None:
            self._university(changes["university_id"])
        if "email" in changes and changes["email"] != target.email:
            if self.users.find_by_email(changes["email"]):
                raise ValidationError("Email already registered")

        with unit_of_work(self.session):
            target.sqlmodel_update(changes)
            self.users.update(target)

        self.session.refresh(target)
        logger.info("user %s updated by %s: %s", target.id, actor.id, sorted(changes))
        return target

    def deactivate_user(self, actor: User, user_id: int) -> User:
        target = self._load(user_id)
        self._ensure_manager(actor, target)
        if actor.id == target.id:
            raise ValidationError("You cannot deactivate your own account")

        with unit_of_work(self.session):
            target.is_active = False
            self.users.update(target)

        self.session.refresh(target)
        logger.info("user %s deactivated by %s", target.id, actor.id)
        return target

    # =========================
    # PASSWORDS
    # =========================

    def change_password(self, actor: User, user_id: int, current_password: str, new_password: str) -> None:
        if actor.id != user_id:
            raise Forbidden("Users can only change their own password")
        target = self._load(user_id)
        if not verify_password(current_password, target.password_hash):
            raise ValidationError("Current password is incorrect")
        _check_password(new_password)

        with unit_of_work(self.session):
            target.password_hash = get_password_hash(new_password)
            self.users.update(target)
        logger.info("user %s changed their password", target.id)

    def reset_password(self, actor: User, user_id: int, new_password: str) -> None:
        target = self._load(user_id)
        self._ensure_manager(actor, target)
        _check_password(new_password)

        with unit_of_work(self.session):
            target.password_hash = get_password_hash(new_password)
            self.users.update(target)
        logger.info("password of user %s reset by %s", target.id, actor.id)

    # =========================
    # UNIVERSITY ADMINISTRATORS
    # =========================

    def assign_administrator(self, actor: User, university_id: int, user_id: int) -> User:
        if actor.role != Role.SUPER_ADMIN:
            raise Forbidden("Only super administrators can assign university administrators")
        self._university(university_id)
        target = self._load(user_id)
        if not target.is_active:
            raise ValidationError("Inactive users cannot become administrators")
        if target.role == Role.SUPER_ADMIN:
            raise ValidationError("Super administrators already manage every university")
        if target.role == Role.ADMIN and target.university_id == university_id:
            raise ValidationError("User is already an administrator of this university")

        with unit_of_work(self.session):
            target.role = Role.ADMIN.value
            target.university_id = university_id
            self.users.update(target)

        self.session.refresh(target)
        logger.info("user %s made administrator of university %s by %s", target.id, university_id, actor.id)
        return target

    def remove_administrator(self, actor: User, university_id: int, user_id: int) -> User:
        if actor.role != Role.SUPER_ADMIN:
            raise Forbidden("Only super administrators can remove university administrators")
        self._university(university_id)
        target = self._load(user_id)
        if target.role != Role.ADMIN or target.university_id != university_id:
            raise NotFound(f"User {user_id} is not an administrator of university {university_id}")

        # the account stays a member of the university
        with unit_of_work(self.session):
            target.role = Role.USER.value
            self.users.update(target)

        self.session.refresh(target)
        logger.info("user %s removed as administrator of university %s by %s", target.id, university_id, actor.id)
        return target

import pytest

from campus_sports.core.errors import Forbidden, NotFound, ValidationError
from campus_sports.core.security import verify_password
from campus_sports.models.user import UserUpdate
from campus_sports.services.user_service import UserService


@pytest.fixture
def user_service(session):
    return UserService(session)


@pytest.fixture
def outsider(user_factory, other_university):
    return user_factory("outsider@tech.test", university_id=other_university.id)


# =========================
# LISTINGS
# =========================

def test_admin_lists_own_university(user_service, admin, user, other_user, outsider):
    emails = {u.email for u in user_service.list_users(admin)}
    assert emails == {admin.email, user.email, other_user.email}

    with pytest.raises(Forbidden):
        user_service.list_users(admin, university_id=outsider.university_id)


def test_list_filters(user_service, super_admin, admin, user, outsider):
    assert [u.id for u in user_service.list_users(super_admin, role="admin")] == [admin.id]
    assert [u.id for u in user_service.list_users(super_admin, search="OUTSIDER")] == [outsider.id]
    assert len(user_service.list_users(super_admin, limit=2)) == 2


def test_deactivated_users_are_not_listed(user_service, admin, user):
    user_service.deactivate_user(admin, user.id)
    assert user.id not in [u.id for u in user_service.list_users(admin)]


def test_unassigned_admin_cannot_list(user_service, user_factory, user):
    drifter = user_factory("drifter@campus.test", role="admin")
    with pytest.raises(Forbidden):
        user_service.list_users(drifter)


def test_list_university_admins(user_service, admin, super_admin, university, other_university, user):
    assert [u.id for u in user_service.list_university_admins(admin, university.id)] == [admin.id]
    assert user_service.list_university_admins(super_admin, other_university.id) == []

    with pytest.raises(Forbidden):
        user_service.list_university_admins(admin, other_university.id)
    with pytest.raises(Forbidden):
        user_service.list_university_admins(user, university.id)


def test_get_user_access(user_service, user, other_user, admin, outsider, super_admin):
    assert user_service.get_user(user, user.id).id == user.id
    assert user_service.get_user(admin, user.id).id == user.id

    with pytest.raises(Forbidden):
        user_service.get_user(user, other_user.id)
    with pytest.raises(Forbidden):
        user_service.get_user(admin, outsider.id)
    with pytest.raises(Forbidden):
        user_service.get_user(admin, super_admin.id)
    with pytest.raises(NotFound):
        user_service.get_user(admin, 999)


# =========================
# PROFILE
# =========================

def test_user_updates_own_profile(user_service, user):
    updated = user_service.update_user(user, user.id, UserUpdate(name="Sam"))
    assert updated.name == "Sam"


def test_user_cannot_escalate(user_service, user, university):
    with pytest.raises(Forbidden):
        user_service.update_user(user, user.id, UserUpdate(role="admin"))
    with pytest.raises(Forbidden):
        user_service.update_user(user, user.id, UserUpdate(is_active=False))


def test_admin_cannot_move_users(user_service, admin, user, other_university):
    with pytest.raises(Forbidden):
        user_service.update_user(admin, user.id, UserUpdate(university_id=other_university.id))
    assert user_service.update_user(admin, user.id, UserUpdate(name="Renamed")).name == "Renamed"


def test_super_admin_changes_role_and_university(user_service, super_admin, user, other_university):
    updated = user_service.update_user(
        super_admin, user.id, UserUpdate(role="admin", university_id=other_university.id)
    )
    assert updated.role == "admin"
    assert updated.university_id == other_university.id

    with pytest.raises(ValidationError):
        user_service.update_user(super_admin, user.id, UserUpdate(role="owner"))
    with pytest.raises(NotFound):
        user_service.update_user(super_admin, user.id, UserUpdate(university_id=999))


def test_email_must_stay_unique(user_service, user, other_user):
    with pytest.raises(ValidationError):
        user_service.update_user(user, user.id, UserUpdate(email=other_user.email))


def test_deactivate_user(user_service, admin, user, super_admin):
    assert user_service.deactivate_user(admin, user.id).is_active is False

    with pytest.raises(Forbidden):
        user_service.deactivate_user(admin, super_admin.id)
    with pytest.raises(ValidationError):
        user_service.deactivate_user(admin, admin.id)


# =========================
# PASSWORDS
# =========================

def test_change_password(user_service, user, other_user):
    user_service.change_password(user, user.id, "secret123", "fresh-pass")
    assert verify_password("fresh-pass", user.password_hash)

    with pytest.raises(ValidationError):
        user_service.change_password(user, user.id, "wrong", "another-pass")
    with pytest.raises(ValidationError):
        user_service.change_password(user, user.id, "fresh-pass", "short")
    with pytest.raises(Forbidden):
        user_service.change_password(other_user, user.id, "fresh-pass", "another-pass")


def test_reset_password(user_service, admin, user, outsider, super_admin):
    user_service.reset_password(admin, user.id, "reset-pass")
    assert verify_password("reset-pass", user.password_hash)

    with pytest.raises(Forbidden):
        user_service.reset_password(admin, outsider.id, "reset-pass")
    with pytest.raises(Forbidden):
        user_service.reset_password(admin, super_admin.id, "reset-pass")
    with pytest.raises(ValidationError):
        user_service.reset_password(admin, user.id, "tiny")


# =========================
# UNIVERSITY ADMINISTRATORS
# =========================

def test_assign_and_remove_administrator(user_service, super_admin, outsider, university):
    promoted = user_service.assign_administrator(super_admin, university.id, outsider.id)
    assert promoted.role == "admin"
    assert promoted.university_id == university.id
    assert outsider.id in [u.id for u in user_service.list_university_admins(super_admin, university.id)]

    with pytest.raises(ValidationError):
        user_service.assign_administrator(super_admin, university.id, outsider.id)

    demoted = user_service.remove_administrator(super_admin, university.id, outsider.id)
    assert demoted.role == "user"
    assert demoted.university_id == university.id

    with pytest.raises(NotFound):
        user_service.remove_administrator(super_admin, university.id, outsider.id)


def test_only_super_admin_assigns_administrators(user_service, admin, super_admin, user, university):
    with pytest.raises(Forbidden):
        user_service.assign_administrator(admin, university.id, user.id)
    with pytest.raises(Forbidden):
        user_service.remove_administrator(admin, university.id, admin.id)
    with pytest.raises(ValidationError):
        user_service.assign_administrator(super_admin, university.id, super_admin.id)
    with pytest.raises(NotFound):
        user_service.assign_administrator(super_admin, 999, user.id)

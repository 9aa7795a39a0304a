from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from src.music_school.music_school.common.logging_setup import mask_email
from src.music_school.music_school.core.enums import Role
from src.music_school.music_school.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from src.music_school.music_school.users.model import User
from src.music_school.music_school.users.service import AuthService, UserService
from tests.fakes import ADMIN, INSTRUCTOR, FakeUserRepo


def _repo():
    return FakeUserRepo(
        [
            User(
                user_id=2,
                full_name="Maria",
                email="maria@school.ph",
                password_hash=generate_password_hash("secret1"),
                role=Role.INSTRUCTOR,
                instructor_id=10,
            ),
            User(user_id=5, full_name="Legacy", email="legacy@school.ph", password_hash="CHANGE_ME", role=Role.ADMIN),
        ]
    )


def test_login_returns_session_user():
    repo = _repo()

    user = AuthService(repo).authenticate(" Maria@School.ph ", "secret1")

    assert (user.user_id, user.role, user.instructor_id) == (2, Role.INSTRUCTOR, 10)
    assert repo.last_login == 2


@pytest.mark.parametrize(
    "email, password",
    [("maria@school.ph", "wrong"), ("nobody@school.ph", "secret1"), ("legacy@school.ph", "CHANGE_ME")],
)
def test_login_failures_share_one_message(email, password):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        AuthService(_repo()).authenticate(email, password)


def test_instructor_accounts_need_a_profile():
    svc = UserService(_repo())

    with pytest.raises(ValidationError, match="linked to an instructor profile"):
        svc.create_account(actor=ADMIN, full_name="New", email="new@school.ph", password="secret1", role=Role.INSTRUCTOR)
    with pytest.raises(ValidationError, match="already registered"):
        svc.create_account(actor=ADMIN, full_name="Dup", email="maria@school.ph", password="secret1", role=Role.ADMIN)
    with pytest.raises(AuthorizationError):
        svc.create_account(actor=INSTRUCTOR, full_name="X", email="x@school.ph", password="secret1", role=Role.ADMIN)


def test_create_account_hashes_password():
    repo = _repo()
    uid = UserService(repo).create_account(
        actor=ADMIN, full_name="Paolo", email="paolo@school.ph", password="secret1", role=Role.INSTRUCTOR, instructor_id=11
    )

    assert repo.rows[uid].password_hash != "secret1"
    assert AuthService(repo).authenticate("paolo@school.ph", "secret1").instructor_id == 11


def test_admin_cannot_deactivate_self():
    svc = UserService(_repo())
    with pytest.raises(ValidationError):
        svc.set_active(actor=ADMIN, user_id=ADMIN.user_id, is_active=False)


def test_mask_email():
    assert mask_email("maria@school.ph") == "m***@school.ph"
    assert mask_email("") == "***"

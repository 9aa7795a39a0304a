from __future__ import annotations

import logging
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.logging_setup import mask_email
from ..common.validators import require_min_length, require_non_empty, validate_email
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import SessionUser, User
from .repository import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = (email or "").strip().lower()
        user = self._users.get_by_email(email)
        if not user or not user.is_active:
            logger.warning("Rejected login for %s", mask_email(email))
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except (TypeError, ValueError):
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            logger.warning("Rejected login for %s", mask_email(email))
            raise AuthenticationError("Invalid email or password")

        self._users.touch_last_login(user.user_id)
        logger.info("User %s logged in as %s", user.user_id, user.role.value)
        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            role=user.role,
            instructor_id=user.instructor_id,
        )


class UserService:
    """Use case: manage login accounts (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(
        self,
        *,
        actor: SessionUser,
        full_name: str,
        email: str,
        password: str,
        role: Role,
        instructor_id: Optional[int] = None,
    ) -> int:
        if not actor.is_admin:
            raise AuthorizationError("You do not have permission to manage accounts")

        full_name = require_non_empty(full_name, "Full name")
        email = validate_email(require_non_empty(email, "Email"))
        require_min_length(password, "Password", 6)

        if self._users.get_by_email(email):
            raise ValidationError("Email is already registered")
        if role == Role.INSTRUCTOR and not instructor_id:
            raise ValidationError("Instructor accounts must be linked to an instructor profile")

        user_id = self._users.create_user(
            full_name=full_name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            instructor_id=int(instructor_id) if instructor_id else None,
        )
        logger.info("Created %s account %s", role.value, user_id)
        return user_id

    def list_accounts(self) -> list[User]:
        return list(self._users.list_all())

    def set_active(self, *, actor: SessionUser, user_id: int, is_active: bool) -> None:
        if not actor.is_admin:
            raise AuthorizationError("You do not have permission to manage accounts")
        if int(user_id) == actor.user_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")

        if not self._users.get_by_id(user_id):
            raise NotFoundError("Account not found")
        self._users.set_active(user_id, is_active=is_active)

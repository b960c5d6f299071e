"""
Account service: registration, profile patches, credential checks.

Balances are not touched here; see ``novel_server.services.ledger``.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from novel_server.api.permissions import (
    Permission,
    Role,
    can_assign_role,
    user_has_permission,
)
from novel_server.db import users_repo
from novel_server.db.types import DUPLICATE, USER_NOT_FOUND
from novel_server.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from novel_server.services.common import check_page, load_actor, require_permission

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8

# Fields only an admin may change on someone's account, including their own.
ADMIN_ONLY_FIELDS = frozenset({"role", "is_active"})


def _validate_username(username: str) -> str:
    username = username.strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise InvalidInputError(
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
        )
    return username


def _validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInputError("Email address is not valid")
    return email


def _validate_role(role: str) -> str:
    try:
        return Role(role).value
    except ValueError:
        raise InvalidInputError(f"Unknown role: {role!r}") from None


def register_user(
    username: str,
    email: str,
    password: str,
    *,
    role: str = "reader",
    actor_id: int | None = None,
) -> dict[str, Any]:
    """
    Create a new account.

    Args:
        username: 3-50 characters, unique.
        email: Unique email address.
        password: At least 8 characters; stored as a bcrypt hash.
        role: Requested role (default reader).
        actor_id: Caller creating the account, or ``None`` for self sign-up.

    Raises:
        InvalidInputError: Field validation failed.
        PermissionDeniedError: Caller may not grant ``role``.
        ConflictError: Username or email already registered.
    """
    username = _validate_username(username)
    email = _validate_email(email)
    role = _validate_role(role)
    if len(password) < PASSWORD_MIN_LENGTH:
        raise InvalidInputError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

    actor_role = None
    if actor_id is not None:
        actor = load_actor(actor_id)
        actor_role = actor["role"] if actor["is_active"] else None
    if not can_assign_role(actor_role, role):
        raise PermissionDeniedError(f"Only admins can create '{role}' accounts")

    outcome = users_repo.create_user(username, email, password, role=role)
    if outcome.status == DUPLICATE:
        raise ConflictError("Username or email already registered")

    logger.info("Registered user %s (id=%s, role=%s)", username, outcome.row["id"], role)
    return outcome.row


def get_user(user_id: int) -> dict[str, Any]:
    """Return one account or raise ``NotFoundError``."""
    user = users_repo.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users(
    actor_id: int,
    *,
    role: str | None = None,
    is_active: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Admin listing of accounts with optional role/activity filters."""
    actor = load_actor(actor_id)
    require_permission(actor, Permission.MANAGE_USERS, "list users")
    if role is not None:
        role = _validate_role(role)
    limit, offset = check_page(limit, offset)
    return users_repo.list_users(role=role, is_active=is_active, limit=limit, offset=offset)


def update_user(actor_id: int, user_id: int, **fields: Any) -> dict[str, Any]:
    """
    Patch an account profile.

    Users may edit their own profile; admins may edit anyone's. Role and
    activation changes are admin-only. Only supplied fields change and
    ``updated_at`` is always refreshed.
    """
    actor = load_actor(actor_id)
    is_manager = user_has_permission(actor, Permission.MANAGE_USERS)

    if actor_id != user_id and not is_manager:
        raise PermissionDeniedError("Users can only edit their own profile")
    if not actor["is_active"]:
        raise PermissionDeniedError("Account is inactive and cannot edit profiles")
    if ADMIN_ONLY_FIELDS & fields.keys() and not is_manager:
        raise PermissionDeniedError("Only admins can change role or activation")

    if "username" in fields:
        fields["username"] = _validate_username(fields["username"])
    if "email" in fields:
        fields["email"] = _validate_email(fields["email"])
    if "role" in fields:
        fields["role"] = _validate_role(fields["role"])

    if not fields:
        return get_user(user_id)

    outcome = users_repo.update_user(user_id, fields)
    if outcome.status == USER_NOT_FOUND:
        raise NotFoundError(f"User {user_id} not found")
    if outcome.status == DUPLICATE:
        raise ConflictError("Username or email already registered")

    logger.info("User %s updated by %s: %s", user_id, actor_id, sorted(fields))
    return outcome.row


def verify_credentials(username: str, password: str) -> dict[str, Any]:
    """Check a username/password pair for the authenticating gateway."""
    user = users_repo.verify_credentials(username, password)
    if user is None:
        logger.warning("Credential check failed for %s", username)
        raise PermissionDeniedError("Invalid username or password")
    return user

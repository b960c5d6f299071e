"""Helpers shared by service modules: caller resolution, permission gates, paging."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from novel_server.api.permissions import Permission, user_has_permission
from novel_server.db import users_repo
from novel_server.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from novel_server.money import is_storable, quantize


def load_actor(actor_id: int) -> dict[str, Any]:
    """Resolve the calling user or raise ``NotFoundError``."""
    actor = users_repo.get_user(actor_id)
    if actor is None:
        raise NotFoundError(f"User {actor_id} not found")
    return actor


def require_permission(actor: dict[str, Any], permission: Permission, action: str) -> None:
    """Raise ``PermissionDeniedError`` unless ``actor`` may perform ``action``."""
    if user_has_permission(actor, permission):
        return
    if not actor.get("is_active", False):
        raise PermissionDeniedError(f"Account is inactive and cannot {action}")
    raise PermissionDeniedError(f"Role '{actor.get('role')}' cannot {action}")


def is_admin(actor: dict[str, Any]) -> bool:
    return user_has_permission(actor, Permission.FULL_ACCESS)


def check_page(limit: int, offset: int) -> tuple[int, int]:
    """Validate pagination bounds and clamp ``limit`` to the configured maximum."""
    from novel_server.config import config

    if limit <= 0:
        raise InvalidInputError("limit must be positive")
    if offset < 0:
        raise InvalidInputError("offset must not be negative")
    return min(limit, config.pagination.max_page_size), offset


def parse_coins(amount: Decimal | int | float | str, label: str = "Amount") -> Decimal:
    """Round ``amount`` to 0.01, rejecting non-numbers and values too large to store."""
    try:
        value = quantize(amount)
    except ArithmeticError as exc:
        raise InvalidInputError(f"{label} is not a valid coin amount") from exc
    # Quiet NaN survives quantize.
    if not value.is_finite():
        raise InvalidInputError(f"{label} is not a valid coin amount")
    if not is_storable(value):
        raise InvalidInputError(f"{label} is too large")
    return value

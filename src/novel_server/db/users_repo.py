"""User account repository operations for the SQLite backend.

Balances are never written here; ``ledger_repo`` owns every change to
``coins_balance_minor``.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from novel_server.db.connection import connection_scope
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.rows import USER_COLUMNS, user_from_row
from novel_server.db.types import DUPLICATE, OK, USER_NOT_FOUND, WriteOutcome

# Columns a profile patch may touch. Order is irrelevant; membership is the
# allow-list that keeps dynamic SET clauses safe.
UPDATABLE_USER_FIELDS = frozenset(
    {"username", "email", "avatar_url", "bio", "role", "is_active", "two_factor_enabled"}
)


def create_user(
    username: str,
    email: str,
    password: str,
    *,
    role: str = "reader",
    is_email_verified: bool = False,
) -> WriteOutcome:
    """Create an account row.

    Args:
        username: Unique account username.
        email: Unique email address.
        password: Plain text password (hashed before persistence).
        role: Role label for authorization policy.
        is_email_verified: Initial verification flag.

    Returns:
        ``WriteOutcome`` with the new user row, or status ``DUPLICATE`` when
        the username or email is already taken.
    """
    from novel_server.api.password import hash_password

    try:
        password_hash = hash_password(password)
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO users (username, email, password_hash, role, is_email_verified)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (username, email, password_hash, role, int(is_email_verified)),
                )
            except sqlite3.IntegrityError:
                return WriteOutcome(DUPLICATE)
            user_id = cursor.lastrowid
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
            return WriteOutcome(OK, user_from_row(cursor.fetchone()))
    except Exception as exc:
        raise_write_error("users.create_user", exc, details=f"username={username!r}")


def get_user(user_id: int) -> dict[str, Any] | None:
    """Return one user row (without the password hash) or ``None``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return user_from_row(row)
    except Exception as exc:
        raise_read_error("users.get_user", exc, details=f"user_id={user_id}")


def get_user_by_username(username: str) -> dict[str, Any] | None:
    """Return one user row looked up by username, or ``None``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE username = ?", (username,)
            ).fetchone()
        return user_from_row(row)
    except Exception as exc:
        raise_read_error("users.get_user_by_username", exc, details=f"username={username!r}")


def user_exists(user_id: int) -> bool:
    """Return True when a user row exists for ``user_id``."""
    try:
        with connection_scope() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        return row is not None
    except Exception as exc:
        raise_read_error("users.user_exists", exc, details=f"user_id={user_id}")


def verify_credentials(username: str, password: str) -> dict[str, Any] | None:
    """Return the user row when ``password`` matches the stored bcrypt hash.

    Inactive accounts never verify.
    """
    from novel_server.api.password import verify_password

    try:
        with connection_scope() as conn:
            row = conn.execute(
                "SELECT id, password_hash, is_active FROM users WHERE username = ?",
                (username,),
            ).fetchone()
    except Exception as exc:
        raise_read_error("users.verify_credentials", exc, details=f"username={username!r}")

    if row is None or not row["is_active"]:
        return None
    if not verify_password(password, row["password_hash"]):
        return None
    return get_user(int(row["id"]))


def list_users(
    *,
    role: str | None = None,
    is_active: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Return users matching optional role/activity filters, newest first."""
    clauses: list[str] = []
    params: list[Any] = []
    if role is not None:
        clauses.append("role = ?")
        params.append(role)
    if is_active is not None:
        clauses.append("is_active = ?")
        params.append(int(is_active))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {USER_COLUMNS} FROM users
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,  # nosec B608 - clauses are fixed strings
                (*params, limit, offset),
            ).fetchall()
        return [user_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("users.list_users", exc, details=f"role={role!r}")


def update_user(user_id: int, fields: dict[str, Any]) -> WriteOutcome:
    """Apply a partial profile patch.

    Only keys in ``UPDATABLE_USER_FIELDS`` are written and ``updated_at`` is
    always refreshed.

    Returns:
        ``WriteOutcome`` with the updated row, ``USER_NOT_FOUND`` when the
        row is absent, or ``DUPLICATE`` on a username/email collision.
    """
    unknown = set(fields) - UPDATABLE_USER_FIELDS
    if unknown:
        raise ValueError(f"Unsupported user fields: {sorted(unknown)}")

    assignments = [f"{name} = ?" for name in fields]
    assignments.append("updated_at = CURRENT_TIMESTAMP")
    values = [int(v) if isinstance(v, bool) else v for v in fields.values()]

    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    f"UPDATE users SET {', '.join(assignments)} WHERE id = ?",  # nosec B608
                    (*values, user_id),
                )
            except sqlite3.IntegrityError:
                return WriteOutcome(DUPLICATE)
            if cursor.rowcount == 0:
                return WriteOutcome(USER_NOT_FOUND)
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
            return WriteOutcome(OK, user_from_row(cursor.fetchone()))
    except Exception as exc:
        raise_write_error("users.update_user", exc, details=f"user_id={user_id}")

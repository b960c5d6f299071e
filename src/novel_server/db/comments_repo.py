"""Comment repository operations for the SQLite backend.

Each comment stores its thread ``depth`` (1 for top-level comments) so the
service layer can cap nesting without walking parent chains.
"""

from __future__ import annotations

from typing import Any

from novel_server.db.connection import connection_scope
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.rows import comment_from_row

COMMENT_COLUMNS = (
    "id, chapter_id, user_id, content, parent_id, depth, is_moderated, "
    "moderated_by, moderated_at, created_at, updated_at"
)


def get_comment(comment_id: int) -> dict[str, Any] | None:
    """Return one comment or ``None``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {COMMENT_COLUMNS} FROM comments WHERE id = ?", (comment_id,)
            ).fetchone()
        return comment_from_row(row)
    except Exception as exc:
        raise_read_error("comments.get_comment", exc, details=f"comment_id={comment_id}")


def create_comment(
    *,
    chapter_id: int,
    user_id: int,
    content: str,
    parent_id: int | None = None,
    depth: int = 1,
) -> dict[str, Any]:
    """Insert a comment and return the stored row."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO comments (chapter_id, user_id, content, parent_id, depth)
                VALUES (?, ?, ?, ?, ?)
                """,
                (chapter_id, user_id, content, parent_id, depth),
            )
            cursor.execute(
                f"SELECT {COMMENT_COLUMNS} FROM comments WHERE id = ?", (cursor.lastrowid,)
            )
            return comment_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error("comments.create_comment", exc, details=f"chapter_id={chapter_id}")


def list_comments(chapter_id: int) -> list[dict[str, Any]]:
    """Return a chapter's comments, oldest first."""
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {COMMENT_COLUMNS} FROM comments
                WHERE chapter_id = ?
                ORDER BY created_at ASC, id ASC
                """,  # nosec B608
                (chapter_id,),
            ).fetchall()
        return [comment_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("comments.list_comments", exc, details=f"chapter_id={chapter_id}")


def set_moderation(comment_id: int, *, is_moderated: bool, moderator_id: int) -> dict | None:
    """Set the moderation flag and record who changed it and when."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE comments
                SET is_moderated = ?,
                    moderated_by = ?,
                    moderated_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (int(is_moderated), moderator_id, comment_id),
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(f"SELECT {COMMENT_COLUMNS} FROM comments WHERE id = ?", (comment_id,))
            return comment_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error("comments.set_moderation", exc, details=f"comment_id={comment_id}")

"""Reading progress and favorites repository operations."""

from __future__ import annotations

from typing import Any

from novel_server.db.connection import connection_scope
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.rows import progress_from_row

PROGRESS_COLUMNS = (
    "id, user_id, novel_id, last_chapter_id, last_read_at, is_favorite, created_at, updated_at"
)

# Millisecond resolution; list_progress orders by last_read_at.
NOW_MS = "strftime('%Y-%m-%d %H:%M:%f', 'now')"


def upsert_progress(*, user_id: int, novel_id: int, chapter_id: int) -> dict[str, Any]:
    """Create or move the (user, novel) bookmark in a single statement."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO reading_progress (user_id, novel_id, last_chapter_id, last_read_at)
                VALUES (?, ?, ?, {NOW_MS})
                ON CONFLICT(user_id, novel_id) DO UPDATE SET
                    last_chapter_id = excluded.last_chapter_id,
                    last_read_at = excluded.last_read_at,
                    updated_at = CURRENT_TIMESTAMP
                """,  # nosec B608
                (user_id, novel_id, chapter_id),
            )
            cursor.execute(
                f"""
                SELECT {PROGRESS_COLUMNS} FROM reading_progress
                WHERE user_id = ? AND novel_id = ?
                """,  # nosec B608
                (user_id, novel_id),
            )
            return progress_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error(
            "progress.upsert_progress",
            exc,
            details=f"user_id={user_id}, novel_id={novel_id}",
        )


def list_progress(user_id: int) -> list[dict[str, Any]]:
    """Return a user's bookmarks, most recently read first."""
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {PROGRESS_COLUMNS} FROM reading_progress
                WHERE user_id = ?
                ORDER BY last_read_at DESC, id DESC
                """,  # nosec B608
                (user_id,),
            ).fetchall()
        return [progress_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("progress.list_progress", exc, details=f"user_id={user_id}")


def toggle_favorite(*, user_id: int, novel_id: int) -> dict[str, Any] | None:
    """Flip ``is_favorite`` on an existing bookmark; ``None`` when there is none."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE reading_progress
                SET is_favorite = 1 - is_favorite, updated_at = CURRENT_TIMESTAMP
                WHERE user_id = ? AND novel_id = ?
                """,
                (user_id, novel_id),
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(
                f"""
                SELECT {PROGRESS_COLUMNS} FROM reading_progress
                WHERE user_id = ? AND novel_id = ?
                """,  # nosec B608
                (user_id, novel_id),
            )
            return progress_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error(
            "progress.toggle_favorite",
            exc,
            details=f"user_id={user_id}, novel_id={novel_id}",
        )

"""Review repository operations for the SQLite backend."""

from __future__ import annotations

from typing import Any

from novel_server.db.connection import connection_scope, immediate_transaction
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.types import NOVEL_NOT_FOUND, OK, WriteOutcome

REVIEW_COLUMNS = "id, novel_id, user_id, rating, review_text, created_at, updated_at"


def create_review(
    *,
    novel_id: int,
    user_id: int,
    rating: int,
    review_text: str | None = None,
) -> WriteOutcome:
    """Append a review and write back the novel's ``average_rating``.

    The insert and the ``AVG(rating)`` recompute share one transaction, so
    the stored average always matches the committed review set. The average
    is rounded to two decimals.
    """
    try:
        with immediate_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM novels WHERE id = ?", (novel_id,))
            if cursor.fetchone() is None:
                return WriteOutcome(NOVEL_NOT_FOUND)

            cursor.execute(
                """
                INSERT INTO reviews (novel_id, user_id, rating, review_text)
                VALUES (?, ?, ?, ?)
                """,
                (novel_id, user_id, rating, review_text),
            )
            review_id = cursor.lastrowid

            cursor.execute(
                """
                UPDATE novels
                SET average_rating = (
                        SELECT ROUND(AVG(rating), 2) FROM reviews WHERE novel_id = ?
                    ),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (novel_id, novel_id),
            )

            cursor.execute(f"SELECT {REVIEW_COLUMNS} FROM reviews WHERE id = ?", (review_id,))
            return WriteOutcome(OK, dict(cursor.fetchone()))
    except Exception as exc:
        raise_write_error(
            "reviews.create_review",
            exc,
            details=f"novel_id={novel_id}, user_id={user_id}",
        )


def list_reviews(novel_id: int) -> list[dict[str, Any]]:
    """Return a novel's reviews, oldest first."""
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {REVIEW_COLUMNS} FROM reviews
                WHERE novel_id = ?
                ORDER BY created_at ASC, id ASC
                """,  # nosec B608
                (novel_id,),
            ).fetchall()
        return [dict(row) for row in rows]
    except Exception as exc:
        raise_read_error("reviews.list_reviews", exc, details=f"novel_id={novel_id}")

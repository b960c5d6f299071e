"""Novel and chapter repository operations for the SQLite backend.

Derived catalog fields (``chapter_number``, ``total_chapters``, view counters)
are maintained here inside single transactions so concurrent writers cannot
observe or produce half-applied state.
"""

from __future__ import annotations

import json
from typing import Any

from novel_server.db.connection import connection_scope, immediate_transaction
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.rows import (
    CHAPTER_COLUMNS,
    CHAPTER_SUMMARY_COLUMNS,
    NOVEL_COLUMNS,
    chapter_from_row,
    novel_from_row,
)
from novel_server.db.types import NOVEL_NOT_FOUND, OK, WriteOutcome
from novel_server.money import to_minor

NOVEL_SORT_COLUMNS = ("created_at", "updated_at", "total_views", "average_rating")
SORT_ORDERS = ("asc", "desc")

UPDATABLE_NOVEL_FIELDS = frozenset(
    {"title", "description", "cover_url", "status", "genre", "tags", "is_featured"}
)
UPDATABLE_CHAPTER_FIELDS = frozenset(
    {"title", "content", "word_count", "status", "coin_cost", "is_free"}
)


def _column_value(name: str, value: Any) -> tuple[str, Any]:
    """Map a public field name/value onto its storage column."""
    if name == "tags":
        return "tags_json", json.dumps(list(value))
    if name == "coin_cost":
        return "coin_cost_minor", to_minor(value)
    if isinstance(value, bool):
        return name, int(value)
    return name, value


# ============================================================================
# NOVELS
# ============================================================================


def create_novel(
    *,
    author_id: int,
    title: str,
    description: str,
    genre: str,
    cover_url: str | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    """Insert a novel in ``draft`` status and return the stored row."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO novels (title, description, cover_url, author_id, genre, tags_json)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (title, description, cover_url, author_id, genre, json.dumps(tags or [])),
            )
            cursor.execute(
                f"SELECT {NOVEL_COLUMNS} FROM novels WHERE id = ?", (cursor.lastrowid,)
            )
            return novel_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error("catalog.create_novel", exc, details=f"author_id={author_id}")


def get_novel(novel_id: int) -> dict[str, Any] | None:
    """Return one novel row or ``None``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {NOVEL_COLUMNS} FROM novels WHERE id = ?", (novel_id,)
            ).fetchone()
        return novel_from_row(row)
    except Exception as exc:
        raise_read_error("catalog.get_novel", exc, details=f"novel_id={novel_id}")


def list_novels(
    *,
    genre: str | None = None,
    status: str | None = None,
    featured: bool | None = None,
    author_id: int | None = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Return a filtered, sorted page of novels.

    ``sort_by`` and ``sort_order`` are checked against fixed allow-lists
    before being interpolated into the ORDER BY clause.
    """
    if sort_by not in NOVEL_SORT_COLUMNS:
        raise ValueError(f"Unsupported sort column: {sort_by!r}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order: {sort_order!r}")

    clauses: list[str] = []
    params: list[Any] = []
    if genre is not None:
        clauses.append("genre = ?")
        params.append(genre)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if featured is not None:
        clauses.append("is_featured = ?")
        params.append(int(featured))
    if author_id is not None:
        clauses.append("author_id = ?")
        params.append(author_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {NOVEL_COLUMNS} FROM novels
                {where}
                ORDER BY {sort_by} {sort_order.upper()}, id {sort_order.upper()}
                LIMIT ? OFFSET ?
                """,  # nosec B608 - identifiers come from allow-lists
                (*params, limit, offset),
            ).fetchall()
        return [novel_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("catalog.list_novels", exc, details=f"sort_by={sort_by!r}")


def update_novel(novel_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Apply a partial patch to a novel; ``None`` when the novel is absent."""
    unknown = set(fields) - UPDATABLE_NOVEL_FIELDS
    if unknown:
        raise ValueError(f"Unsupported novel fields: {sorted(unknown)}")

    columns = [_column_value(name, value) for name, value in fields.items()]
    assignments = [f"{column} = ?" for column, _ in columns]
    assignments.append("updated_at = CURRENT_TIMESTAMP")

    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE novels SET {', '.join(assignments)} WHERE id = ?",  # nosec B608
                (*[value for _, value in columns], novel_id),
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(f"SELECT {NOVEL_COLUMNS} FROM novels WHERE id = ?", (novel_id,))
            return novel_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error("catalog.update_novel", exc, details=f"novel_id={novel_id}")


# ============================================================================
# CHAPTERS
# ============================================================================


def create_chapter(
    *,
    novel_id: int,
    title: str,
    content: str,
    word_count: int,
    coin_cost: Any = 0,
    is_free: bool = True,
) -> WriteOutcome:
    """Append a chapter with the next free ``chapter_number``.

    The number lookup, insert and ``total_chapters`` refresh share one
    ``BEGIN IMMEDIATE`` transaction, so two concurrent creates on the same
    novel receive consecutive numbers.
    """
    try:
        with immediate_transaction() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM novels WHERE id = ?", (novel_id,))
            if cursor.fetchone() is None:
                return WriteOutcome(NOVEL_NOT_FOUND)

            cursor.execute(
                "SELECT COALESCE(MAX(chapter_number), 0) + 1 FROM chapters WHERE novel_id = ?",
                (novel_id,),
            )
            chapter_number = int(cursor.fetchone()[0])

            cursor.execute(
                """
                INSERT INTO chapters (
                    novel_id, chapter_number, title, content, coin_cost_minor, word_count, is_free
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    novel_id,
                    chapter_number,
                    title,
                    content,
                    to_minor(coin_cost),
                    word_count,
                    int(is_free),
                ),
            )
            chapter_id = cursor.lastrowid

            cursor.execute(
                """
                UPDATE novels
                SET total_chapters = (SELECT COUNT(*) FROM chapters WHERE novel_id = ?),
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (novel_id, novel_id),
            )

            cursor.execute(f"SELECT {CHAPTER_COLUMNS} FROM chapters WHERE id = ?", (chapter_id,))
            return WriteOutcome(OK, chapter_from_row(cursor.fetchone()))
    except Exception as exc:
        raise_write_error("catalog.create_chapter", exc, details=f"novel_id={novel_id}")


def get_chapter(chapter_id: int) -> dict[str, Any] | None:
    """Return one chapter (with content) plus its novel's ``author_id``."""
    columns = ", ".join(f"c.{name.strip()}" for name in CHAPTER_COLUMNS.split(","))
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"""
                SELECT {columns}, n.author_id AS author_id
                FROM chapters c
                JOIN novels n ON n.id = c.novel_id
                WHERE c.id = ?
                """,  # nosec B608
                (chapter_id,),
            ).fetchone()
        return chapter_from_row(row)
    except Exception as exc:
        raise_read_error("catalog.get_chapter", exc, details=f"chapter_id={chapter_id}")


def list_chapters(novel_id: int, *, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
    """Return chapter summaries (no content) ordered by ``chapter_number``."""
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {CHAPTER_SUMMARY_COLUMNS} FROM chapters
                WHERE novel_id = ?
                ORDER BY chapter_number ASC
                LIMIT ? OFFSET ?
                """,  # nosec B608
                (novel_id, limit, offset),
            ).fetchall()
        return [chapter_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("catalog.list_chapters", exc, details=f"novel_id={novel_id}")


def update_chapter(chapter_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
    """Apply a partial patch to a chapter; ``None`` when the chapter is absent.

    Callers recompute ``word_count`` and pass it alongside ``content``.
    """
    unknown = set(fields) - UPDATABLE_CHAPTER_FIELDS
    if unknown:
        raise ValueError(f"Unsupported chapter fields: {sorted(unknown)}")

    columns = [_column_value(name, value) for name, value in fields.items()]
    assignments = [f"{column} = ?" for column, _ in columns]
    assignments.append("updated_at = CURRENT_TIMESTAMP")

    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE chapters SET {', '.join(assignments)} WHERE id = ?",  # nosec B608
                (*[value for _, value in columns], chapter_id),
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(f"SELECT {CHAPTER_COLUMNS} FROM chapters WHERE id = ?", (chapter_id,))
            return chapter_from_row(cursor.fetchone())
    except Exception as exc:
        raise_write_error("catalog.update_chapter", exc, details=f"chapter_id={chapter_id}")


def record_chapter_view(chapter_id: int) -> None:
    """Increment the chapter's ``views`` and its novel's ``total_views``."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute("UPDATE chapters SET views = views + 1 WHERE id = ?", (chapter_id,))
            cursor.execute(
                """
                UPDATE novels SET total_views = total_views + 1
                WHERE id = (SELECT novel_id FROM chapters WHERE id = ?)
                """,
                (chapter_id,),
            )
    except Exception as exc:
        raise_write_error("catalog.record_chapter_view", exc, details=f"chapter_id={chapter_id}")

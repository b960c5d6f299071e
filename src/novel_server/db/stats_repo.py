"""Read-only aggregate queries for admin and author dashboards.

Everything is recomputed per call; there is no cache.
"""

from __future__ import annotations

from typing import Any

from novel_server.db.connection import connection_scope
from novel_server.db.errors import raise_read_error
from novel_server.db.rows import (
    NOVEL_COLUMNS,
    TRANSACTION_COLUMNS,
    novel_from_row,
    transaction_from_row,
)
from novel_server.money import from_minor


def _scalar(conn, sql: str, params: tuple = ()) -> int:
    row = conn.execute(sql, params).fetchone()
    return int(row[0] or 0)


def get_dashboard_stats(*, since: str, top_n: int = 10) -> dict[str, Any]:
    """Return platform-wide totals and top-N projections.

    Args:
        since: UTC timestamp (``YYYY-MM-DD HH:MM:SS``) marking the start of
            "today" for the activity counters.
        top_n: Cap for the popular-novel and recent-transaction lists.
    """
    try:
        with connection_scope() as conn:
            total_users = _scalar(conn, "SELECT COUNT(*) FROM users")
            total_novels = _scalar(conn, "SELECT COUNT(*) FROM novels")
            total_chapters = _scalar(conn, "SELECT COUNT(*) FROM chapters")
            revenue_minor = _scalar(
                conn,
                "SELECT COALESCE(SUM(amount_minor), 0) FROM transactions "
                "WHERE type = 'purchase_coins'",
            )
            active_users_today = _scalar(
                conn,
                "SELECT COUNT(DISTINCT user_id) FROM transactions WHERE created_at >= ?",
                (since,),
            )
            new_users_today = _scalar(
                conn, "SELECT COUNT(*) FROM users WHERE created_at >= ?", (since,)
            )
            popular = conn.execute(
                f"""
                SELECT {NOVEL_COLUMNS} FROM novels
                ORDER BY total_views DESC, id ASC
                LIMIT ?
                """,  # nosec B608
                (top_n,),
            ).fetchall()
            recent = conn.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS} FROM transactions
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,  # nosec B608
                (top_n,),
            ).fetchall()
    except Exception as exc:
        raise_read_error("stats.get_dashboard_stats", exc, details=f"since={since!r}")

    return {
        "total_users": total_users,
        "total_novels": total_novels,
        "total_chapters": total_chapters,
        "total_revenue": from_minor(revenue_minor),
        "active_users_today": active_users_today,
        "new_users_today": new_users_today,
        "popular_novels": [novel_from_row(row) for row in popular],
        "recent_transactions": [transaction_from_row(row) for row in recent],
    }


def get_author_stats(author_id: int, *, top_n: int = 10) -> dict[str, Any]:
    """Return an author's novels, view total and earnings."""
    try:
        with connection_scope() as conn:
            novels = conn.execute(
                f"""
                SELECT {NOVEL_COLUMNS} FROM novels
                WHERE author_id = ?
                ORDER BY created_at DESC, id DESC
                """,  # nosec B608
                (author_id,),
            ).fetchall()
            total_views = _scalar(
                conn,
                "SELECT COALESCE(SUM(total_views), 0) FROM novels WHERE author_id = ?",
                (author_id,),
            )
            earnings_minor = _scalar(
                conn,
                "SELECT COALESCE(SUM(amount_minor), 0) FROM transactions "
                "WHERE user_id = ? AND type = 'author_earning'",
                (author_id,),
            )
            recent = conn.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS} FROM transactions
                WHERE user_id = ? AND type = 'author_earning'
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,  # nosec B608
                (author_id, top_n),
            ).fetchall()
    except Exception as exc:
        raise_read_error("stats.get_author_stats", exc, details=f"author_id={author_id}")

    return {
        "novels": [novel_from_row(row) for row in novels],
        "total_views": total_views,
        "total_earnings": from_minor(earnings_minor),
        "recent_earnings": [transaction_from_row(row) for row in recent],
    }

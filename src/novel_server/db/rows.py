"""Row-to-dict conversion shared by repository modules.

Repositories return plain dicts. Integer flag columns become ``bool``,
``*_minor`` money columns become ``Decimal`` under their public name and
JSON columns are decoded.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from novel_server.money import from_minor

USER_COLUMNS = (
    "id, username, email, role, avatar_url, bio, coins_balance_minor, is_active, "
    "is_email_verified, two_factor_enabled, created_at, updated_at"
)
NOVEL_COLUMNS = (
    "id, title, description, cover_url, author_id, status, genre, tags_json, "
    "total_chapters, total_views, total_likes, average_rating, is_featured, "
    "created_at, updated_at"
)
CHAPTER_COLUMNS = (
    "id, novel_id, chapter_number, title, content, status, coin_cost_minor, "
    "word_count, views, is_free, created_at, updated_at"
)
CHAPTER_SUMMARY_COLUMNS = (
    "id, novel_id, chapter_number, title, status, coin_cost_minor, "
    "word_count, views, is_free, created_at, updated_at"
)
TRANSACTION_COLUMNS = (
    "id, user_id, type, amount_minor, description, novel_id, chapter_id, created_at"
)


def _flags(data: dict[str, Any], *names: str) -> None:
    for name in names:
        if name in data:
            data[name] = bool(data[name])


def user_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    data["coins_balance"] = from_minor(data.pop("coins_balance_minor"))
    _flags(data, "is_active", "is_email_verified", "two_factor_enabled")
    return data


def novel_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    data["tags"] = json.loads(data.pop("tags_json") or "[]")
    data["average_rating"] = float(data["average_rating"] or 0)
    _flags(data, "is_featured")
    return data


def chapter_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    data["coin_cost"] = from_minor(data.pop("coin_cost_minor"))
    _flags(data, "is_free")
    return data


def transaction_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    data["amount"] = from_minor(data.pop("amount_minor"))
    return data


def progress_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    _flags(data, "is_favorite")
    return data


def comment_from_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    data = dict(row)
    _flags(data, "is_moderated")
    return data

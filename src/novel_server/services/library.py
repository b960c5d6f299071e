"""Reading progress (one bookmark per user and novel) and favorites."""

from __future__ import annotations

from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import progress_repo
from novel_server.errors import InvalidInputError
from novel_server.services.catalog import get_chapter, get_novel
from novel_server.services.common import load_actor, require_permission


def update_reading_progress(actor_id: int, novel_id: int, chapter_id: int) -> dict[str, Any]:
    """Create or move the caller's bookmark for a novel."""
    actor = load_actor(actor_id)
    require_permission(actor, Permission.TRACK_PROGRESS, "track reading progress")
    get_novel(novel_id)
    chapter = get_chapter(chapter_id)
    if chapter["novel_id"] != novel_id:
        raise InvalidInputError(f"Chapter {chapter_id} does not belong to novel {novel_id}")
    return progress_repo.upsert_progress(user_id=actor_id, novel_id=novel_id, chapter_id=chapter_id)


def get_reading_progress(actor_id: int) -> list[dict[str, Any]]:
    load_actor(actor_id)
    return progress_repo.list_progress(actor_id)


def toggle_favorite(actor_id: int, novel_id: int) -> dict[str, Any] | None:
    """
    Flip ``is_favorite`` on the caller's bookmark for a novel.

    Returns ``None`` when the caller has no bookmark for the novel yet;
    favorites piggyback on reading progress.
    """
    actor = load_actor(actor_id)
    require_permission(actor, Permission.TRACK_PROGRESS, "manage favorites")
    get_novel(novel_id)
    return progress_repo.toggle_favorite(user_id=actor_id, novel_id=novel_id)

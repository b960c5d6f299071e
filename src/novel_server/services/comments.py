"""
Comment service: threaded chapter comments and admin moderation.

Threading:
    A reply's parent must exist and belong to the same chapter. Each comment
    records its depth (1 for top-level) and replies deeper than
    ``community.max_thread_depth`` are rejected. The default depth of 2
    allows top-level comments plus one level of replies.
"""

from __future__ import annotations

import logging
from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import comments_repo
from novel_server.errors import InvalidInputError, NotFoundError
from novel_server.services.catalog import get_chapter
from novel_server.services.common import load_actor, require_permission

logger = logging.getLogger(__name__)


def create_comment(
    actor_id: int,
    chapter_id: int,
    content: str,
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Post a comment or a reply on a chapter."""
    from novel_server.config import config

    if not content.strip():
        raise InvalidInputError("Comment content must not be empty")

    actor = load_actor(actor_id)
    require_permission(actor, Permission.WRITE_COMMENTS, "post comments")
    get_chapter(chapter_id)

    depth = 1
    if parent_id is not None:
        parent = comments_repo.get_comment(parent_id)
        if parent is None:
            raise NotFoundError(f"Parent comment {parent_id} not found")
        if parent["chapter_id"] != chapter_id:
            raise InvalidInputError("Parent comment belongs to a different chapter")
        depth = parent["depth"] + 1
        if depth > config.community.max_thread_depth:
            raise InvalidInputError(
                f"Replies can nest at most {config.community.max_thread_depth} levels"
            )

    return comments_repo.create_comment(
        chapter_id=chapter_id,
        user_id=actor_id,
        content=content,
        parent_id=parent_id,
        depth=depth,
    )


def list_comments(chapter_id: int) -> list[dict[str, Any]]:
    get_chapter(chapter_id)
    return comments_repo.list_comments(chapter_id)


def moderate_comment(actor_id: int, comment_id: int, is_approved: bool) -> dict[str, Any]:
    """Set a comment's ``is_moderated`` flag, recording moderator and time."""
    actor = load_actor(actor_id)
    require_permission(actor, Permission.MODERATE_COMMENTS, "moderate comments")

    comment = comments_repo.set_moderation(
        comment_id, is_moderated=is_approved, moderator_id=actor_id
    )
    if comment is None:
        raise NotFoundError(f"Comment {comment_id} not found")

    logger.info("Comment %s moderated by %s (approved=%s)", comment_id, actor_id, is_approved)
    return comment

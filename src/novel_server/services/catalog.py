"""
Catalog service: novels and chapters.

Word-count contract:
    ``word_count`` is the number of whitespace-separated tokens in the
    chapter content. Empty or whitespace-only content counts 0, and runs of
    whitespace count as one separator. Creation and content updates use the
    same rule.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import catalog_repo
from novel_server.db.catalog_repo import NOVEL_SORT_COLUMNS, SORT_ORDERS
from novel_server.db.schema import CHAPTER_STATUSES, NOVEL_STATUSES
from novel_server.db.types import NOVEL_NOT_FOUND
from novel_server.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from novel_server.services.common import (
    check_page,
    is_admin,
    load_actor,
    parse_coins,
    require_permission,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10


def count_words(content: str) -> int:
    """Count whitespace-separated tokens; blank content counts 0."""
    return len(content.split())


def _validate_title(title: str) -> str:
    title = title.strip()
    if not 1 <= len(title) <= TITLE_MAX_LENGTH:
        raise InvalidInputError(f"Title must be 1-{TITLE_MAX_LENGTH} characters")
    return title


def _validate_description(description: str) -> str:
    if len(description) < DESCRIPTION_MIN_LENGTH:
        raise InvalidInputError(
            f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters"
        )
    return description


def _validate_coin_cost(coin_cost: Decimal | int | float | str) -> Decimal:
    cost = parse_coins(coin_cost, "Coin cost")
    if cost < 0:
        raise InvalidInputError("Coin cost must not be negative")
    return cost


def _require_owner(actor: dict[str, Any], novel: dict[str, Any], action: str) -> None:
    require_permission(actor, Permission.PUBLISH, action)
    if novel["author_id"] != actor["id"] and not is_admin(actor):
        raise PermissionDeniedError(f"Only the novel's author can {action}")


# ============================================================================
# NOVELS
# ============================================================================


def create_novel(
    actor_id: int,
    *,
    title: str,
    description: str,
    genre: str,
    cover_url: str | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    """Create a novel owned by the caller, starting in ``draft`` status."""
    actor = load_actor(actor_id)
    require_permission(actor, Permission.PUBLISH, "create novels")

    novel = catalog_repo.create_novel(
        author_id=actor_id,
        title=_validate_title(title),
        description=_validate_description(description),
        genre=genre,
        cover_url=cover_url,
        tags=list(tags or []),
    )
    logger.info("Novel %s created by author %s", novel["id"], actor_id)
    return novel


def get_novel(novel_id: int) -> dict[str, Any]:
    novel = catalog_repo.get_novel(novel_id)
    if novel is None:
        raise NotFoundError(f"Novel {novel_id} not found")
    return novel


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
    """Filtered, sorted, paginated novel listing.

    ``sort_by`` must be one of created_at, updated_at, total_views or
    average_rating.
    """
    if sort_by not in NOVEL_SORT_COLUMNS:
        raise InvalidInputError(
            f"sort_by must be one of: {', '.join(NOVEL_SORT_COLUMNS)}"
        )
    if sort_order not in SORT_ORDERS:
        raise InvalidInputError("sort_order must be 'asc' or 'desc'")
    if status is not None and status not in NOVEL_STATUSES:
        raise InvalidInputError(f"Unknown novel status: {status!r}")
    limit, offset = check_page(limit, offset)

    return catalog_repo.list_novels(
        genre=genre,
        status=status,
        featured=featured,
        author_id=author_id,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


def update_novel(actor_id: int, novel_id: int, **fields: Any) -> dict[str, Any]:
    """
    Patch a novel. Only supplied fields change; ``updated_at`` is refreshed.

    Any status may be set at any time. ``is_featured`` is an editorial flag
    reserved for admins.
    """
    actor = load_actor(actor_id)
    novel = get_novel(novel_id)
    _require_owner(actor, novel, "edit this novel")

    if "is_featured" in fields and not is_admin(actor):
        raise PermissionDeniedError("Only admins can feature novels")
    if "title" in fields:
        fields["title"] = _validate_title(fields["title"])
    if "description" in fields:
        fields["description"] = _validate_description(fields["description"])
    if "status" in fields and fields["status"] not in NOVEL_STATUSES:
        raise InvalidInputError(f"Unknown novel status: {fields['status']!r}")
    if "tags" in fields:
        fields["tags"] = list(fields["tags"] or [])

    updated = catalog_repo.update_novel(novel_id, fields)
    if updated is None:
        raise NotFoundError(f"Novel {novel_id} not found")
    return updated


# ============================================================================
# CHAPTERS
# ============================================================================


def create_chapter(
    actor_id: int,
    novel_id: int,
    *,
    title: str,
    content: str,
    coin_cost: Decimal | int | float | str = 0,
    is_free: bool = True,
) -> dict[str, Any]:
    """
    Append a chapter to a novel.

    ``chapter_number`` is assigned as max(existing) + 1 atomically and
    ``word_count`` follows the module's word-count contract.
    """
    actor = load_actor(actor_id)
    novel = get_novel(novel_id)
    _require_owner(actor, novel, "add chapters to this novel")

    outcome = catalog_repo.create_chapter(
        novel_id=novel_id,
        title=_validate_title(title),
        content=content,
        word_count=count_words(content),
        coin_cost=_validate_coin_cost(coin_cost),
        is_free=is_free,
    )
    if outcome.status == NOVEL_NOT_FOUND:
        raise NotFoundError(f"Novel {novel_id} not found")

    chapter = outcome.row
    logger.info(
        "Chapter %s created as #%s of novel %s",
        chapter["id"],
        chapter["chapter_number"],
        novel_id,
    )
    return chapter


def get_chapter(chapter_id: int) -> dict[str, Any]:
    chapter = catalog_repo.get_chapter(chapter_id)
    if chapter is None:
        raise NotFoundError(f"Chapter {chapter_id} not found")
    return chapter


def list_chapters(novel_id: int, *, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
    """Chapter summaries for a novel ordered by chapter number."""
    get_novel(novel_id)
    limit, offset = check_page(limit, offset)
    return catalog_repo.list_chapters(novel_id, limit=limit, offset=offset)


def update_chapter(actor_id: int, chapter_id: int, **fields: Any) -> dict[str, Any]:
    """Patch a chapter; content changes recompute ``word_count``."""
    actor = load_actor(actor_id)
    chapter = get_chapter(chapter_id)
    _require_owner(actor, chapter, "edit this chapter")

    if "title" in fields:
        fields["title"] = _validate_title(fields["title"])
    if "status" in fields and fields["status"] not in CHAPTER_STATUSES:
        raise InvalidInputError(f"Unknown chapter status: {fields['status']!r}")
    if "coin_cost" in fields:
        fields["coin_cost"] = _validate_coin_cost(fields["coin_cost"])
    if "content" in fields:
        fields["word_count"] = count_words(fields["content"])

    if not fields:
        return chapter

    updated = catalog_repo.update_chapter(chapter_id, fields)
    if updated is None:
        raise NotFoundError(f"Chapter {chapter_id} not found")
    return updated

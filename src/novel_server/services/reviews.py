"""Review service: append reviews and keep ``average_rating`` current.

A user may review the same novel more than once; each review counts toward
the average.
"""

from __future__ import annotations

import logging
from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import reviews_repo
from novel_server.db.types import NOVEL_NOT_FOUND
from novel_server.errors import InvalidInputError, NotFoundError
from novel_server.services.catalog import get_novel
from novel_server.services.common import load_actor, require_permission

logger = logging.getLogger(__name__)


def create_review(
    actor_id: int, novel_id: int, rating: int, review_text: str | None = None
) -> dict[str, Any]:
    """Add a 1-5 star review and recompute the novel's average rating."""
    if not 1 <= rating <= 5:
        raise InvalidInputError("Rating must be between 1 and 5")

    actor = load_actor(actor_id)
    require_permission(actor, Permission.WRITE_REVIEWS, "write reviews")

    outcome = reviews_repo.create_review(
        novel_id=novel_id,
        user_id=actor_id,
        rating=rating,
        review_text=review_text,
    )
    if outcome.status == NOVEL_NOT_FOUND:
        raise NotFoundError(f"Novel {novel_id} not found")

    logger.info("User %s rated novel %s with %s", actor_id, novel_id, rating)
    return outcome.row


def list_reviews(novel_id: int) -> list[dict[str, Any]]:
    get_novel(novel_id)
    return reviews_repo.list_reviews(novel_id)

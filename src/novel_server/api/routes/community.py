"""Review and comment endpoints, including admin comment moderation."""

from fastapi import APIRouter, Depends

from novel_server.api.auth import get_current_user_id
from novel_server.api.models import (
    CommentResponse,
    CreateCommentRequest,
    CreateReviewRequest,
    ModerateCommentRequest,
    ReviewResponse,
)
from novel_server.api.routes.utils import to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import comments, reviews

router = APIRouter(tags=["community"])


@router.post("/novels/{novel_id}/reviews", response_model=ReviewResponse, status_code=201)
async def create_review(
    novel_id: int,
    request: CreateReviewRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Add a review and recompute the novel's average rating."""
    try:
        return reviews.create_review(actor_id, novel_id, request.rating, request.review_text)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/novels/{novel_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(novel_id: int):
    try:
        return reviews.list_reviews(novel_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post("/chapters/{chapter_id}/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    chapter_id: int,
    request: CreateCommentRequest,
    actor_id: int = Depends(get_current_user_id),
):
    try:
        return comments.create_comment(
            actor_id, chapter_id, request.content, parent_id=request.parent_id
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/chapters/{chapter_id}/comments", response_model=list[CommentResponse])
async def list_comments(chapter_id: int):
    try:
        return comments.list_comments(chapter_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post("/comments/{comment_id}/moderate", response_model=CommentResponse)
async def moderate_comment(
    comment_id: int,
    request: ModerateCommentRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Admin-only: set a comment's moderation flag."""
    try:
        return comments.moderate_comment(actor_id, comment_id, request.is_approved)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc

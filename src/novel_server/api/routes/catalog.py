"""Catalog endpoints for novels and chapters.

Catalog reads are public. Writes require the ``X-User-Id`` of the novel's
author or an admin. Reading chapter content goes through the entitlement
check in ``novel_server.services.ledger``.
"""

from fastapi import APIRouter, Depends, Query

from novel_server.api.auth import get_current_user_id, get_optional_user_id
from novel_server.api.models import (
    ChapterResponse,
    ChapterSummaryResponse,
    CreateChapterRequest,
    CreateNovelRequest,
    NovelResponse,
    UpdateChapterRequest,
    UpdateNovelRequest,
)
from novel_server.api.routes.utils import patch_fields, to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import catalog, ledger

router = APIRouter(tags=["catalog"])


# ============================================================================
# NOVELS
# ============================================================================


@router.post("/novels", response_model=NovelResponse, status_code=201)
async def create_novel(
    request: CreateNovelRequest,
    actor_id: int = Depends(get_current_user_id),
):
    try:
        return catalog.create_novel(
            actor_id,
            title=request.title,
            description=request.description,
            genre=request.genre,
            cover_url=request.cover_url,
            tags=request.tags,
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/novels", response_model=list[NovelResponse])
async def list_novels(
    genre: str | None = None,
    status: str | None = None,
    featured: bool | None = None,
    author_id: int | None = None,
    sort_by: str = "updated_at",
    sort_order: str = "desc",
    limit: int = Query(default=20, gt=0),
    offset: int = Query(default=0, ge=0),
):
    """Filtered, sorted, paginated catalog listing."""
    try:
        return catalog.list_novels(
            genre=genre,
            status=status,
            featured=featured,
            author_id=author_id,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/novels/{novel_id}", response_model=NovelResponse)
async def get_novel(novel_id: int):
    try:
        return catalog.get_novel(novel_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/novels/{novel_id}", response_model=NovelResponse)
async def update_novel(
    novel_id: int,
    request: UpdateNovelRequest,
    actor_id: int = Depends(get_current_user_id),
):
    fields = patch_fields(request, nullable=frozenset({"cover_url"}))
    try:
        return catalog.update_novel(actor_id, novel_id, **fields)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


# ============================================================================
# CHAPTERS
# ============================================================================


@router.post("/novels/{novel_id}/chapters", response_model=ChapterResponse, status_code=201)
async def create_chapter(
    novel_id: int,
    request: CreateChapterRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Append a chapter; number and word count are assigned server-side."""
    try:
        return catalog.create_chapter(
            actor_id,
            novel_id,
            title=request.title,
            content=request.content,
            coin_cost=request.coin_cost,
            is_free=request.is_free,
        )
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/novels/{novel_id}/chapters", response_model=list[ChapterSummaryResponse])
async def list_chapters(
    novel_id: int,
    limit: int = Query(default=50, gt=0),
    offset: int = Query(default=0, ge=0),
):
    try:
        return catalog.list_chapters(novel_id, limit=limit, offset=offset)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/chapters/{chapter_id}", response_model=ChapterResponse)
async def read_chapter(
    chapter_id: int,
    actor_id: int | None = Depends(get_optional_user_id),
):
    """Return chapter content when the caller is entitled to read it."""
    try:
        return ledger.read_chapter(actor_id, chapter_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.patch("/chapters/{chapter_id}", response_model=ChapterResponse)
async def update_chapter(
    chapter_id: int,
    request: UpdateChapterRequest,
    actor_id: int = Depends(get_current_user_id),
):
    try:
        return catalog.update_chapter(actor_id, chapter_id, **patch_fields(request))
    except PlatformError as exc:
        raise to_http_exception(exc) from exc

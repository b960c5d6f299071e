"""Reading progress and favorites endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from novel_server.api.auth import get_current_user_id
from novel_server.api.models import ReadingProgressRequest, ReadingProgressResponse
from novel_server.api.routes.utils import to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import library

router = APIRouter(prefix="/library", tags=["library"])


@router.put("/progress", response_model=ReadingProgressResponse)
async def update_reading_progress(
    request: ReadingProgressRequest,
    actor_id: int = Depends(get_current_user_id),
):
    """Create or move the caller's bookmark for a novel."""
    try:
        return library.update_reading_progress(actor_id, request.novel_id, request.chapter_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/progress", response_model=list[ReadingProgressResponse])
async def get_reading_progress(actor_id: int = Depends(get_current_user_id)):
    try:
        return library.get_reading_progress(actor_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.post("/favorites/{novel_id}", response_model=ReadingProgressResponse)
async def toggle_favorite(novel_id: int, actor_id: int = Depends(get_current_user_id)):
    """Flip the favorite flag; 404 until the caller has reading progress for the novel."""
    try:
        progress = library.toggle_favorite(actor_id, novel_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc
    if progress is None:
        raise HTTPException(
            status_code=404, detail="No reading progress for this novel; start reading first"
        )
    return progress

"""Dashboard statistics endpoints."""

from fastapi import APIRouter, Depends

from novel_server.api.auth import get_current_user_id
from novel_server.api.models import AuthorStatsResponse, DashboardStatsResponse
from novel_server.api.routes.utils import to_http_exception
from novel_server.errors import PlatformError
from novel_server.services import stats

router = APIRouter(tags=["stats"])


@router.get("/admin/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(actor_id: int = Depends(get_current_user_id)):
    try:
        return stats.get_dashboard_stats(actor_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc


@router.get("/authors/{author_id}/stats", response_model=AuthorStatsResponse)
async def get_author_stats(author_id: int, actor_id: int = Depends(get_current_user_id)):
    try:
        return stats.get_author_stats(actor_id, author_id)
    except PlatformError as exc:
        raise to_http_exception(exc) from exc

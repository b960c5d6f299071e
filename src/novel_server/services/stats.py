"""Dashboard statistics for admins and authors, recomputed per request."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import stats_repo
from novel_server.errors import PermissionDeniedError
from novel_server.services.common import is_admin, load_actor, require_permission

TOP_N = 10


def start_of_local_day(now: datetime | None = None) -> str:
    """Return local midnight as a UTC ``YYYY-MM-DD HH:MM:SS`` string.

    Stored timestamps are UTC (``CURRENT_TIMESTAMP``) while "today" follows
    the server's local calendar day.
    """
    local_now = (now or datetime.now()).astimezone()
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def get_dashboard_stats(actor_id: int) -> dict[str, Any]:
    actor = load_actor(actor_id)
    require_permission(actor, Permission.VIEW_STATS, "view platform statistics")
    return stats_repo.get_dashboard_stats(since=start_of_local_day(), top_n=TOP_N)


def get_author_stats(actor_id: int, author_id: int) -> dict[str, Any]:
    """Author dashboard; visible to the author themself and to admins."""
    actor = load_actor(actor_id)
    if actor_id != author_id and not is_admin(actor):
        raise PermissionDeniedError("Authors can only view their own statistics")
    load_actor(author_id)
    return stats_repo.get_author_stats(author_id, top_n=TOP_N)

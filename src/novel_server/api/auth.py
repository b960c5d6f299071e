"""
Caller identity for API routes.

Authentication happens upstream: the gateway in front of this service
verifies the user and forwards their numeric id in the ``X-User-Id`` header.
Routes receive that id through these dependencies and pass it explicitly to
the service layer.
"""

import logging

from fastapi import Header, HTTPException

from novel_server.db import users_repo

logger = logging.getLogger(__name__)


def get_current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """
    Resolve the required caller id.

    Raises:
        HTTPException(401): Header missing or the id matches no account.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    if not users_repo.user_exists(x_user_id):
        logger.warning("Rejected request for unknown user id %s", x_user_id)
        raise HTTPException(status_code=401, detail="Unknown user")
    return x_user_id


def get_optional_user_id(x_user_id: int | None = Header(default=None)) -> int | None:
    """Resolve the caller id for routes that also serve anonymous visitors."""
    if x_user_id is None:
        return None
    return get_current_user_id(x_user_id)

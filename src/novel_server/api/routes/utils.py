"""Shared helpers for API route modules."""

import logging
from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel

from novel_server.errors import (
    ConflictError,
    InsufficientFundsError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    PlatformError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[PlatformError], int] = {
    NotFoundError: 404,
    InvalidInputError: 400,
    PermissionDeniedError: 403,
    InsufficientFundsError: 402,
    ConflictError: 409,
}


def to_http_exception(exc: PlatformError) -> HTTPException:
    """Map a domain error to an ``HTTPException`` carrying its message."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)


def patch_fields(request: BaseModel, *, nullable: frozenset[str] = frozenset()) -> dict[str, Any]:
    """
    Extract the fields a client actually sent in a PATCH body.

    Explicit ``null`` is kept only for columns in ``nullable``; for every
    other field it is treated as "not supplied".
    """
    data = request.model_dump(exclude_unset=True)
    return {key: value for key, value in data.items() if value is not None or key in nullable}

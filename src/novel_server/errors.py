"""Domain exceptions raised by the service layer.

Service functions raise these when a business rule rejects an operation. API
routes translate them into HTTP responses; the CLI prints their message.
Infrastructure failures use the separate hierarchy in
``novel_server.db.errors``.
"""

from __future__ import annotations


class PlatformError(Exception):
    """Base class for business-rule failures."""

    code = "platform_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PlatformError):
    """A referenced user, novel, chapter or comment does not exist."""

    code = "not_found"


class InvalidInputError(PlatformError):
    """Input passed schema validation but violates a business rule."""

    code = "invalid_input"


class PermissionDeniedError(PlatformError):
    """The caller's role, ownership or account state forbids the action."""

    code = "permission_denied"


class InsufficientFundsError(PlatformError):
    """The caller's coin balance is below the required cost."""

    code = "insufficient_funds"


class ConflictError(PlatformError):
    """The write collides with existing state (duplicate username, repeat unlock)."""

    code = "conflict"

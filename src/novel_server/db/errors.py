"""Storage-failure exceptions raised by repository modules.

These cover SQLite faults only (locked database, I/O errors, broken SQL).
Expected outcomes such as a missing row or an insufficient balance are
returned to the service layer as ``None`` or an outcome status instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn


@dataclass(slots=True)
class DatabaseOperationContext:
    """Where a storage failure happened.

    Attributes:
        operation: Dotted repository operation name, e.g.
            ``"ledger.unlock_chapter"``.
        details: Key parameters for the log line, e.g. ``"user_id=3"``.
    """

    operation: str
    details: str | None = None


class DatabaseError(RuntimeError):
    """Root of the storage-failure hierarchy; mapped to HTTP 500."""


class DatabaseOperationError(DatabaseError):
    def __init__(
        self,
        *,
        context: DatabaseOperationContext,
        cause: Exception | None = None,
    ) -> None:
        label = context.operation
        if context.details:
            label = f"{label}: {context.details}"
        super().__init__(label)
        self.context = context
        self.cause = cause


class DatabaseReadError(DatabaseOperationError):
    pass


class DatabaseWriteError(DatabaseOperationError):
    pass


def _wrap(
    error_type: type[DatabaseOperationError],
    operation: str,
    exc: Exception,
    details: str | None,
) -> NoReturn:
    # Already typed further down the stack: keep the innermost operation name.
    if isinstance(exc, DatabaseError):
        raise exc
    context = DatabaseOperationContext(operation=operation, details=details)
    raise error_type(context=context, cause=exc) from exc


def raise_read_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Re-raise ``exc`` as a ``DatabaseReadError`` chained to the original."""
    _wrap(DatabaseReadError, operation, exc, details)


def raise_write_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Re-raise ``exc`` as a ``DatabaseWriteError`` chained to the original."""
    _wrap(DatabaseWriteError, operation, exc, details)

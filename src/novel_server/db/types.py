"""Shared DB-layer dataclasses for repository contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Reason keys reported by repository write outcomes.
OK = "ok"
USER_NOT_FOUND = "user_not_found"
NOVEL_NOT_FOUND = "novel_not_found"
CHAPTER_NOT_FOUND = "chapter_not_found"
COMMENT_NOT_FOUND = "comment_not_found"
PROGRESS_NOT_FOUND = "progress_not_found"
CHAPTER_NOVEL_MISMATCH = "chapter_novel_mismatch"
INSUFFICIENT_FUNDS = "insufficient_funds"
PRICE_BELOW_LIST = "price_below_list"
BALANCE_OVERFLOW = "balance_overflow"
ALREADY_UNLOCKED = "already_unlocked"
DUPLICATE = "duplicate"


@dataclass(slots=True)
class WriteOutcome:
    """
    Result of a repository write whose failure modes are business outcomes.

    Attributes:
        status: Machine-friendly reason key (``OK`` on success).
        row: The written or resolved row when successful.
    """

    status: str
    row: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass(slots=True)
class UnlockOutcome:
    """
    Result of an atomic chapter unlock.

    Attributes:
        status: Machine-friendly reason key (``OK`` on success).
        transaction: The reader's ``unlock_chapter`` ledger row.
        earning: The author's ``author_earning`` ledger row, when one was paid.
        balance_minor: The reader's balance after the debit, in hundredths.
    """

    status: str
    transaction: dict[str, Any] | None = None
    earning: dict[str, Any] | None = None
    balance_minor: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK

"""
Ledger service: coin purchases, chapter unlocks, author earnings, entitlement.

Every balance change goes through ``novel_server.db.ledger_repo``, which
appends a transaction row in the same SQL transaction as the balance update.
For every user, ``coins_balance`` therefore equals the sum of their recorded
amounts.

Revenue split:
    When a reader unlocks a paid chapter, ``author_share_percent`` of the
    price (floored to the hundredth) is credited to the novel's author as an
    ``author_earning`` row. Authors unlocking their own chapters earn nothing.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from novel_server.api.permissions import Permission
from novel_server.db import catalog_repo, ledger_repo
from novel_server.db.schema import TRANSACTION_TYPES
from novel_server.db.types import (
    ALREADY_UNLOCKED,
    BALANCE_OVERFLOW,
    CHAPTER_NOT_FOUND,
    INSUFFICIENT_FUNDS,
    PRICE_BELOW_LIST,
    USER_NOT_FOUND,
)
from novel_server.errors import (
    ConflictError,
    InsufficientFundsError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from novel_server.money import from_minor, to_minor
from novel_server.services.common import (
    check_page,
    is_admin,
    load_actor,
    parse_coins,
    require_permission,
)

logger = logging.getLogger(__name__)


def purchase_coins(
    actor_id: int, amount: Decimal | int | float | str, description: str = "Coin purchase"
) -> dict[str, Any]:
    """
    Credit purchased coins to the caller.

    Raises:
        InvalidInputError: ``amount`` is not positive after rounding to 0.01,
            or the new balance would not fit in storage.
        NotFoundError: The caller does not exist.
        PermissionDeniedError: The caller's role or account state forbids it.
    """
    amount = parse_coins(amount)
    if amount <= 0:
        raise InvalidInputError("Amount must be positive")

    actor = load_actor(actor_id)
    require_permission(actor, Permission.BUY_COINS, "purchase coins")

    outcome = ledger_repo.purchase_coins(actor_id, to_minor(amount), description)
    if outcome.status == USER_NOT_FOUND:
        raise NotFoundError(f"User {actor_id} not found")
    if outcome.status == BALANCE_OVERFLOW:
        raise InvalidInputError("Balance would exceed the storable maximum")

    logger.info("User %s purchased %s coins (txn=%s)", actor_id, amount, outcome.row["id"])
    return outcome.row


def unlock_chapter(
    actor_id: int,
    chapter_id: int,
    coin_cost: Decimal | int | float | str | None = None,
) -> dict[str, Any]:
    """
    Spend coins to unlock a chapter for the caller.

    Args:
        actor_id: Reader unlocking the chapter.
        chapter_id: Target chapter.
        coin_cost: Price to charge. ``None`` charges the chapter's list price
            (zero for free chapters). A higher price is accepted; a lower
            one is rejected.

    Returns:
        The reader's ``unlock_chapter`` transaction (amount = -cost).

    Raises:
        InvalidInputError: ``coin_cost`` is negative, unparseable, or below
            the chapter's list price.
        NotFoundError: Unknown user or chapter.
        InsufficientFundsError: Balance below the cost; nothing is written.
        ConflictError: The caller already unlocked this chapter; nothing is written.
    """
    cost_minor = None
    if coin_cost is not None:
        cost = parse_coins(coin_cost, "Coin cost")
        if cost < 0:
            raise InvalidInputError("Coin cost must not be negative")
        cost_minor = to_minor(cost)

    actor = load_actor(actor_id)
    require_permission(actor, Permission.UNLOCK_CHAPTERS, "unlock chapters")

    from novel_server.config import config

    outcome = ledger_repo.unlock_chapter(
        actor_id,
        chapter_id,
        cost_minor=cost_minor,
        author_share_percent=config.monetization.author_share_percent,
    )

    if outcome.status == USER_NOT_FOUND:
        raise NotFoundError(f"User {actor_id} not found")
    if outcome.status == CHAPTER_NOT_FOUND:
        raise NotFoundError(f"Chapter {chapter_id} not found")
    if outcome.status == PRICE_BELOW_LIST:
        raise InvalidInputError("Coin cost is below the chapter's price")
    if outcome.status == BALANCE_OVERFLOW:
        raise InvalidInputError("Author balance would exceed the storable maximum")
    if outcome.status == INSUFFICIENT_FUNDS:
        logger.warning("User %s has insufficient coins for chapter %s", actor_id, chapter_id)
        raise InsufficientFundsError("Insufficient coins to unlock this chapter")
    if outcome.status == ALREADY_UNLOCKED:
        raise ConflictError(f"Chapter {chapter_id} is already unlocked")

    transaction = outcome.transaction
    logger.info(
        "User %s unlocked chapter %s for %s coins (txn=%s)",
        actor_id,
        chapter_id,
        -transaction["amount"],
        transaction["id"],
    )
    if outcome.earning is not None:
        logger.info(
            "Author %s earned %s coins from chapter %s",
            outcome.earning["user_id"],
            outcome.earning["amount"],
            chapter_id,
        )
    return transaction


def record_author_earning(
    actor_id: int,
    author_id: int,
    amount: Decimal | int | float | str,
    *,
    description: str = "Author payout",
    novel_id: int | None = None,
    chapter_id: int | None = None,
) -> dict[str, Any]:
    """Admin-issued ``author_earning`` credit outside of the unlock flow."""
    actor = load_actor(actor_id)
    require_permission(actor, Permission.MANAGE_USERS, "record author earnings")

    amount = parse_coins(amount)
    if amount <= 0:
        raise InvalidInputError("Amount must be positive")

    outcome = ledger_repo.record_author_earning(
        author_id,
        to_minor(amount),
        description=description,
        novel_id=novel_id,
        chapter_id=chapter_id,
    )
    if outcome.status == USER_NOT_FOUND:
        raise NotFoundError(f"User {author_id} not found")
    if outcome.status == BALANCE_OVERFLOW:
        raise InvalidInputError("Balance would exceed the storable maximum")

    logger.info("Admin %s credited author %s with %s coins", actor_id, author_id, amount)
    return outcome.row


def get_balance(user_id: int) -> Decimal:
    """Return the user's current coin balance."""
    balance_minor = ledger_repo.get_balance_minor(user_id)
    if balance_minor is None:
        raise NotFoundError(f"User {user_id} not found")
    return from_minor(balance_minor)


def audit_balance(user_id: int) -> dict[str, Any]:
    """Compare the stored balance with the sum of the user's ledger rows."""
    balance = get_balance(user_id)
    ledger_total = from_minor(ledger_repo.get_ledger_total_minor(user_id))
    return {
        "user_id": user_id,
        "balance": balance,
        "ledger_total": ledger_total,
        "consistent": balance == ledger_total,
    }


def list_transactions(
    actor_id: int,
    *,
    user_id: int | None = None,
    type_: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """
    Ledger rows newest first.

    Non-admins only ever see their own rows. Admins may pass ``user_id`` to
    inspect one account, or omit it to see every row.
    """
    actor = load_actor(actor_id)
    if not is_admin(actor):
        if user_id is not None and user_id != actor_id:
            raise PermissionDeniedError("Users can only view their own transactions")
        user_id = actor_id
    if type_ is not None and type_ not in TRANSACTION_TYPES:
        raise InvalidInputError(f"Unknown transaction type: {type_!r}")
    limit, offset = check_page(limit, offset)
    return ledger_repo.list_transactions(user_id=user_id, type_=type_, limit=limit, offset=offset)


# ============================================================================
# ENTITLEMENT
# ============================================================================


def can_read_chapter(user: dict[str, Any] | None, chapter: dict[str, Any]) -> bool:
    """
    Decide whether ``user`` may read ``chapter``'s content.

    Access is granted when the chapter is free or costs nothing, when the
    user is the novel's author or an admin, or when the user has an
    ``unlock_chapter`` row for the chapter.
    """
    if chapter["is_free"] or chapter["coin_cost"] == 0:
        return True
    if user is None:
        return False
    if user["id"] == chapter["author_id"] or is_admin(user):
        return True
    return ledger_repo.has_unlocked(user["id"], chapter["id"])


def read_chapter(actor_id: int | None, chapter_id: int) -> dict[str, Any]:
    """
    Return a chapter with its content when the caller is entitled to it.

    Successful reads increment the chapter's ``views`` and the novel's
    ``total_views``.

    Raises:
        NotFoundError: Unknown chapter (or unknown caller id).
        PermissionDeniedError: The chapter is paid and not unlocked.
    """
    user = load_actor(actor_id) if actor_id is not None else None
    chapter = catalog_repo.get_chapter(chapter_id)
    if chapter is None:
        raise NotFoundError(f"Chapter {chapter_id} not found")

    if not can_read_chapter(user, chapter):
        raise PermissionDeniedError("Unlock this chapter to read it")

    catalog_repo.record_chapter_view(chapter_id)
    chapter["views"] += 1
    return chapter

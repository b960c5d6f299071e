"""
Tests for the ledger service (novel_server/services/ledger.py).

Tests cover:
- Coin purchases and input validation
- Chapter unlocks, revenue split and failure atomicity
- Concurrent unlocks against a balance that covers only one chapter
- Entitlement checks and chapter reads
- Transaction history visibility and balance audits
"""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest

from novel_server.config import config
from novel_server.db import catalog_repo, ledger_repo, users_repo
from novel_server.errors import (
    ConflictError,
    InsufficientFundsError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from novel_server.money import MAX_MINOR, from_minor
from novel_server.services import catalog, ledger

# ============================================================================
# PURCHASES
# ============================================================================


@pytest.mark.ledger
def test_purchase_coins_credits_balance(users):
    txn = ledger.purchase_coins(users["reader"], "10.005")

    assert txn["amount"] == Decimal("10.01")
    assert ledger.get_balance(users["reader"]) == Decimal("10.01")


@pytest.mark.ledger
@pytest.mark.parametrize("amount", [0, -5, "0.004"])
def test_purchase_coins_rejects_non_positive(users, amount):
    with pytest.raises(InvalidInputError):
        ledger.purchase_coins(users["reader"], amount)

    assert ledger.get_balance(users["reader"]) == Decimal("0.00")


@pytest.mark.ledger
@pytest.mark.parametrize("amount", [Decimal("1e20"), "1e40", "NaN", "Infinity", "lots"])
def test_purchase_coins_rejects_unstorable_amounts(users, amount):
    with pytest.raises(InvalidInputError):
        ledger.purchase_coins(users["reader"], amount)

    assert ledger.get_balance(users["reader"]) == Decimal("0.00")


@pytest.mark.ledger
def test_purchase_that_would_overflow_balance_is_rejected(users):
    near_max = from_minor(MAX_MINOR - 100)
    ledger.purchase_coins(users["reader"], near_max)

    with pytest.raises(InvalidInputError, match="storable"):
        ledger.purchase_coins(users["reader"], 2)

    assert ledger.get_balance(users["reader"]) == near_max
    assert ledger.audit_balance(users["reader"])["consistent"] is True


@pytest.mark.ledger
def test_record_author_earning_rejects_unstorable_amount(users):
    with pytest.raises(InvalidInputError):
        ledger.record_author_earning(users["admin"], users["author"], Decimal("1e20"))



@pytest.mark.ledger
def test_visitor_cannot_purchase(users):
    with pytest.raises(PermissionDeniedError):
        ledger.purchase_coins(users["visitor"], 5)


@pytest.mark.ledger
def test_inactive_reader_cannot_purchase(users):
    users_repo.update_user(users["reader"], {"is_active": False})

    with pytest.raises(PermissionDeniedError, match="inactive"):
        ledger.purchase_coins(users["reader"], 5)


@pytest.mark.ledger
def test_balance_equals_sum_of_transactions(users, paid_chapter, free_chapter):
    """After any mix of purchases and unlocks the balance matches the ledger."""
    reader = users["reader"]
    ledger.purchase_coins(reader, 7)
    ledger.unlock_chapter(reader, paid_chapter["id"])
    ledger.purchase_coins(reader, "3.25")
    ledger.unlock_chapter(reader, free_chapter["id"])

    rows = ledger.list_transactions(reader, limit=100)
    assert ledger.get_balance(reader) == sum(row["amount"] for row in rows)
    assert ledger.get_balance(reader) == Decimal("5.25")

    audit = ledger.audit_balance(users["author"])
    assert audit["consistent"] is True
    assert audit["balance"] == Decimal("3.50")


# ============================================================================
# UNLOCKS
# ============================================================================


@pytest.mark.ledger
def test_unlock_chapter_splits_revenue(users, paid_chapter):
    ledger.purchase_coins(users["reader"], 5)

    txn = ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    assert txn["type"] == "unlock_chapter"
    assert txn["amount"] == Decimal("-5.00")
    assert ledger.get_balance(users["reader"]) == Decimal("0.00")
    assert ledger.get_balance(users["author"]) == Decimal("3.50")


@pytest.mark.ledger
def test_unlock_uses_configured_author_share(users, paid_chapter, monkeypatch):
    monkeypatch.setattr(config.monetization, "author_share_percent", 0)
    ledger.purchase_coins(users["reader"], 5)

    ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    assert ledger.get_balance(users["author"]) == Decimal("0.00")
    assert ledger_repo.list_transactions(type_="author_earning") == []


@pytest.mark.ledger
def test_unlock_with_insufficient_funds_changes_nothing(users, paid_chapter):
    ledger.purchase_coins(users["reader"], "4.99")

    with pytest.raises(InsufficientFundsError):
        ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    assert ledger.get_balance(users["reader"]) == Decimal("4.99")
    assert ledger.get_balance(users["author"]) == Decimal("0.00")
    rows = ledger.list_transactions(users["admin"], limit=100)
    assert [row["type"] for row in rows] == ["purchase_coins"]


@pytest.mark.ledger
def test_second_unlock_of_same_chapter_conflicts(users, paid_chapter):
    ledger.purchase_coins(users["reader"], 10)
    ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    with pytest.raises(ConflictError):
        ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    assert ledger.get_balance(users["reader"]) == Decimal("5.00")


@pytest.mark.ledger
def test_unlock_unknown_chapter(users):
    with pytest.raises(NotFoundError):
        ledger.unlock_chapter(users["reader"], 999)


@pytest.mark.ledger
def test_unlock_rejects_negative_override(users, paid_chapter):
    with pytest.raises(InvalidInputError):
        ledger.unlock_chapter(users["reader"], paid_chapter["id"], coin_cost=-1)


@pytest.mark.ledger
@pytest.mark.parametrize("coin_cost", [0, "4.99"])
def test_unlock_below_chapter_price_grants_nothing(users, paid_chapter, coin_cost):
    ledger.purchase_coins(users["reader"], 5)

    with pytest.raises(InvalidInputError, match="below"):
        ledger.unlock_chapter(users["reader"], paid_chapter["id"], coin_cost=coin_cost)

    with pytest.raises(PermissionDeniedError):
        ledger.read_chapter(users["reader"], paid_chapter["id"])
    assert ledger.get_balance(users["reader"]) == Decimal("5.00")
    assert ledger.get_balance(users["author"]) == Decimal("0.00")
    assert ledger_repo.list_transactions(type_="unlock_chapter") == []


@pytest.mark.ledger
def test_unlock_above_chapter_price_is_accepted(users, paid_chapter):
    ledger.purchase_coins(users["reader"], 10)

    txn = ledger.unlock_chapter(users["reader"], paid_chapter["id"], coin_cost=10)

    assert txn["amount"] == Decimal("-10.00")
    assert ledger.get_balance(users["author"]) == Decimal("7.00")
    assert ledger.read_chapter(users["reader"], paid_chapter["id"])["content"]



def _race(fn, *argsets) -> list[object]:
    """Run ``fn`` once per argument tuple, all released at the same instant."""
    barrier = threading.Barrier(len(argsets))
    results: list[object] = [None] * len(argsets)

    def worker(index: int, args: tuple) -> None:
        barrier.wait()
        try:
            results[index] = fn(*args)
        except Exception as exc:  # collected for assertions
            results[index] = exc

    threads = [
        threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(argsets)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


@pytest.mark.ledger
@pytest.mark.slow
def test_concurrent_unlocks_never_overdraw_same_chapter(users, paid_chapter):
    """Two racing unlocks with coins for one: one succeeds, one is refused."""
    reader = users["reader"]
    ledger.purchase_coins(reader, 5)

    results = _race(
        ledger.unlock_chapter,
        (reader, paid_chapter["id"]),
        (reader, paid_chapter["id"]),
    )

    successes = [r for r in results if isinstance(r, dict)]
    refusals = [r for r in results if isinstance(r, InsufficientFundsError)]
    assert len(successes) == 1
    assert len(refusals) == 1
    assert ledger.get_balance(reader) == Decimal("0.00")
    assert ledger.audit_balance(reader)["consistent"] is True


@pytest.mark.ledger
@pytest.mark.slow
def test_concurrent_unlocks_never_overdraw_different_chapters(users, novel, paid_chapter):
    reader = users["reader"]
    other = catalog.create_chapter(
        users["author"],
        novel["id"],
        title="High Water",
        content="The river rose.",
        coin_cost=5,
        is_free=False,
    )
    ledger.purchase_coins(reader, 5)

    results = _race(
        ledger.unlock_chapter,
        (reader, paid_chapter["id"]),
        (reader, other["id"]),
    )

    assert sum(isinstance(r, dict) for r in results) == 1
    assert sum(isinstance(r, InsufficientFundsError) for r in results) == 1
    assert ledger.get_balance(reader) == Decimal("0.00")
    assert ledger.get_balance(users["author"]) == Decimal("3.50")


# ============================================================================
# AUTHOR EARNINGS
# ============================================================================


@pytest.mark.ledger
def test_record_author_earning_is_admin_only(users):
    with pytest.raises(PermissionDeniedError):
        ledger.record_author_earning(users["author"], users["author"], 10)

    txn = ledger.record_author_earning(users["admin"], users["author"], 10, description="Bonus")

    assert txn["type"] == "author_earning"
    assert ledger.get_balance(users["author"]) == Decimal("10.00")


@pytest.mark.ledger
def test_record_author_earning_unknown_author(users):
    with pytest.raises(NotFoundError):
        ledger.record_author_earning(users["admin"], 999, 10)


# ============================================================================
# ENTITLEMENT AND READING
# ============================================================================


@pytest.mark.ledger
def test_read_free_chapter_anonymously_counts_view(free_chapter):
    chapter = ledger.read_chapter(None, free_chapter["id"])

    assert chapter["content"] == free_chapter["content"]
    assert chapter["views"] == 1
    assert catalog_repo.get_novel(free_chapter["novel_id"])["total_views"] == 1


@pytest.mark.ledger
def test_paid_chapter_requires_unlock(users, paid_chapter):
    with pytest.raises(PermissionDeniedError):
        ledger.read_chapter(None, paid_chapter["id"])
    with pytest.raises(PermissionDeniedError):
        ledger.read_chapter(users["reader"], paid_chapter["id"])

    ledger.purchase_coins(users["reader"], 5)
    ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    assert ledger.read_chapter(users["reader"], paid_chapter["id"])["id"] == paid_chapter["id"]
    # Views only count successful reads.
    assert catalog_repo.get_chapter(paid_chapter["id"])["views"] == 1


@pytest.mark.ledger
def test_author_and_admin_read_paid_chapter_free(users, paid_chapter):
    assert ledger.read_chapter(users["author"], paid_chapter["id"])
    assert ledger.read_chapter(users["admin"], paid_chapter["id"])
    assert ledger.get_balance(users["admin"]) == Decimal("0.00")


@pytest.mark.ledger
def test_zero_cost_paid_flag_is_readable(users, novel):
    chapter = catalog.create_chapter(
        users["author"], novel["id"], title="Gift", content="free", coin_cost=0, is_free=False
    )
    assert ledger.can_read_chapter(None, catalog_repo.get_chapter(chapter["id"]))


@pytest.mark.ledger
def test_read_unknown_chapter(test_db):
    with pytest.raises(NotFoundError):
        ledger.read_chapter(None, 999)


# ============================================================================
# HISTORY
# ============================================================================


@pytest.mark.ledger
def test_readers_only_see_their_own_transactions(users):
    ledger.purchase_coins(users["reader"], 1)
    ledger.purchase_coins(users["author"], 2)

    own = ledger.list_transactions(users["reader"])
    assert {row["user_id"] for row in own} == {users["reader"]}

    with pytest.raises(PermissionDeniedError):
        ledger.list_transactions(users["reader"], user_id=users["author"])


@pytest.mark.ledger
def test_admin_sees_all_transactions_and_filters_by_type(users):
    ledger.purchase_coins(users["reader"], 1)
    ledger.purchase_coins(users["author"], 2)
    ledger.record_author_earning(users["admin"], users["author"], 3)

    assert len(ledger.list_transactions(users["admin"])) == 3
    earnings = ledger.list_transactions(users["admin"], type_="author_earning")
    assert [row["amount"] for row in earnings] == [Decimal("3.00")]

    with pytest.raises(InvalidInputError):
        ledger.list_transactions(users["admin"], type_="refund")


@pytest.mark.ledger
def test_list_transactions_pagination_bounds(users, monkeypatch):
    monkeypatch.setattr(config.pagination, "max_page_size", 2)
    for _ in range(3):
        ledger.purchase_coins(users["reader"], 1)

    assert len(ledger.list_transactions(users["reader"], limit=50)) == 2
    with pytest.raises(InvalidInputError):
        ledger.list_transactions(users["reader"], limit=0)
    with pytest.raises(InvalidInputError):
        ledger.list_transactions(users["reader"], offset=-1)

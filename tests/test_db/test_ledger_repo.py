"""Focused tests for ``novel_server.db.ledger_repo``.

The ledger contract: every balance change appends exactly one transaction row
for the affected user in the same SQL transaction, so the stored balance
always equals the sum of that user's recorded amounts.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch

import pytest

from novel_server.db import connection as db_connection
from novel_server.db import ledger_repo
from novel_server.db.errors import DatabaseReadError, DatabaseWriteError
from novel_server.db.types import (
    ALREADY_UNLOCKED,
    BALANCE_OVERFLOW,
    CHAPTER_NOT_FOUND,
    INSUFFICIENT_FUNDS,
    PRICE_BELOW_LIST,
    USER_NOT_FOUND,
)
from novel_server.money import MAX_MINOR


def _assert_balanced(user_id: int) -> None:
    assert ledger_repo.get_balance_minor(user_id) == ledger_repo.get_ledger_total_minor(user_id)


@pytest.mark.ledger
def test_ledger_repo_paths_raise_typed_errors_on_connection_failure():
    with patch.object(db_connection, "get_connection", side_effect=Exception("db boom")):
        with pytest.raises(DatabaseWriteError):
            ledger_repo.purchase_coins(1, 100, "Coin purchase")
        with pytest.raises(DatabaseWriteError):
            ledger_repo.unlock_chapter(1, 1)
        with pytest.raises(DatabaseWriteError):
            ledger_repo.record_author_earning(1, 100, description="payout")
        with pytest.raises(DatabaseReadError):
            ledger_repo.get_balance_minor(1)
        with pytest.raises(DatabaseReadError):
            ledger_repo.has_unlocked(1, 1)
        with pytest.raises(DatabaseReadError):
            ledger_repo.list_transactions()


@pytest.mark.ledger
def test_purchase_appends_row_and_credits(users):
    outcome = ledger_repo.purchase_coins(users["reader"], 1250, "Coin purchase")

    assert outcome.ok
    assert outcome.row["type"] == "purchase_coins"
    assert outcome.row["amount"] == Decimal("12.50")
    assert ledger_repo.get_balance_minor(users["reader"]) == 1250
    _assert_balanced(users["reader"])


@pytest.mark.ledger
def test_purchase_rejects_non_positive_and_unknown_user(test_db):
    with pytest.raises(ValueError):
        ledger_repo.purchase_coins(1, 0, "Coin purchase")
    assert ledger_repo.purchase_coins(999, 100, "Coin purchase").status == USER_NOT_FOUND


@pytest.mark.ledger
def test_unlock_debits_reader_and_pays_author(users, paid_chapter):
    ledger_repo.purchase_coins(users["reader"], 1000, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(
        users["reader"], paid_chapter["id"], author_share_percent=70
    )

    assert outcome.ok
    assert outcome.transaction["amount"] == Decimal("-5.00")
    assert outcome.transaction["description"] == f"Unlocked chapter {paid_chapter['id']}"
    assert outcome.transaction["novel_id"] == paid_chapter["novel_id"]
    assert outcome.earning["user_id"] == users["author"]
    assert outcome.earning["amount"] == Decimal("3.50")
    assert outcome.balance_minor == 500

    assert ledger_repo.get_balance_minor(users["author"]) == 350
    assert ledger_repo.has_unlocked(users["reader"], paid_chapter["id"])
    _assert_balanced(users["reader"])
    _assert_balanced(users["author"])


@pytest.mark.ledger
def test_unlock_with_insufficient_funds_writes_nothing(users, paid_chapter):
    ledger_repo.purchase_coins(users["reader"], 499, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(users["reader"], paid_chapter["id"])

    assert outcome.status == INSUFFICIENT_FUNDS
    assert ledger_repo.get_balance_minor(users["reader"]) == 499
    assert ledger_repo.list_transactions(type_="unlock_chapter") == []
    assert ledger_repo.list_transactions(type_="author_earning") == []


@pytest.mark.ledger
def test_repeat_unlock_is_rejected_without_charge(users, paid_chapter):
    ledger_repo.purchase_coins(users["reader"], 1000, "Coin purchase")
    assert ledger_repo.unlock_chapter(users["reader"], paid_chapter["id"]).ok

    outcome = ledger_repo.unlock_chapter(users["reader"], paid_chapter["id"])

    assert outcome.status == ALREADY_UNLOCKED
    assert ledger_repo.get_balance_minor(users["reader"]) == 500
    _assert_balanced(users["reader"])


@pytest.mark.ledger
def test_unlock_missing_rows(users, paid_chapter):
    assert ledger_repo.unlock_chapter(999, paid_chapter["id"]).status == USER_NOT_FOUND
    assert ledger_repo.unlock_chapter(users["reader"], 999).status == CHAPTER_NOT_FOUND


@pytest.mark.ledger
def test_author_unlocking_own_chapter_earns_nothing(users, paid_chapter):
    ledger_repo.purchase_coins(users["author"], 500, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(users["author"], paid_chapter["id"])

    assert outcome.ok
    assert outcome.earning is None
    assert ledger_repo.get_balance_minor(users["author"]) == 0
    _assert_balanced(users["author"])


@pytest.mark.ledger
def test_free_chapter_unlock_costs_nothing(users, free_chapter):
    outcome = ledger_repo.unlock_chapter(users["reader"], free_chapter["id"])

    assert outcome.ok
    assert outcome.transaction["amount"] == Decimal("0.00")
    assert outcome.earning is None


@pytest.mark.ledger
def test_explicit_cost_above_list_price_is_charged(users, paid_chapter):
    ledger_repo.purchase_coins(users["reader"], 700, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(users["reader"], paid_chapter["id"], cost_minor=700)

    assert outcome.ok
    assert outcome.transaction["amount"] == Decimal("-7.00")
    assert outcome.earning["amount"] == Decimal("4.90")


@pytest.mark.ledger
@pytest.mark.parametrize("cost_minor", [0, 499])
def test_explicit_cost_below_list_price_writes_nothing(users, paid_chapter, cost_minor):
    ledger_repo.purchase_coins(users["reader"], 500, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(
        users["reader"], paid_chapter["id"], cost_minor=cost_minor
    )

    assert outcome.status == PRICE_BELOW_LIST
    assert ledger_repo.get_balance_minor(users["reader"]) == 500
    assert ledger_repo.has_unlocked(users["reader"], paid_chapter["id"]) is False
    assert ledger_repo.list_transactions(type_="unlock_chapter") == []


@pytest.mark.ledger
def test_credit_refuses_to_overflow_balance(users):
    ledger_repo.purchase_coins(users["reader"], MAX_MINOR - 10, "Coin purchase")

    outcome = ledger_repo.purchase_coins(users["reader"], 11, "Coin purchase")

    assert outcome.status == BALANCE_OVERFLOW
    assert ledger_repo.get_balance_minor(users["reader"]) == MAX_MINOR - 10
    assert len(ledger_repo.list_transactions(user_id=users["reader"])) == 1
    _assert_balanced(users["reader"])


@pytest.mark.ledger
def test_author_credit_overflow_rolls_back_unlock(users, paid_chapter):
    ledger_repo.record_author_earning(users["author"], MAX_MINOR, description="Cap")
    ledger_repo.purchase_coins(users["reader"], 500, "Coin purchase")

    outcome = ledger_repo.unlock_chapter(users["reader"], paid_chapter["id"])

    assert outcome.status == BALANCE_OVERFLOW
    assert ledger_repo.get_balance_minor(users["reader"]) == 500
    assert ledger_repo.has_unlocked(users["reader"], paid_chapter["id"]) is False


@pytest.mark.ledger
def test_record_author_earning(users):
    outcome = ledger_repo.record_author_earning(users["author"], 420, description="Bonus")

    assert outcome.ok
    assert outcome.row["type"] == "author_earning"
    assert ledger_repo.get_balance_minor(users["author"]) == 420
    assert ledger_repo.record_author_earning(999, 1, description="x").status == USER_NOT_FOUND


@pytest.mark.ledger
def test_list_transactions_newest_first_with_filters(users):
    ledger_repo.purchase_coins(users["reader"], 100, "first")
    ledger_repo.purchase_coins(users["reader"], 200, "second")
    ledger_repo.purchase_coins(users["admin"], 300, "other user")

    rows = ledger_repo.list_transactions(user_id=users["reader"])

    assert [row["description"] for row in rows] == ["second", "first"]
    assert len(ledger_repo.list_transactions()) == 3
    assert len(ledger_repo.list_transactions(limit=1, offset=2)) == 1

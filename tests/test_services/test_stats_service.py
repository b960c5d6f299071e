"""Tests for dashboard statistics (novel_server/services/stats.py)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from novel_server.errors import PermissionDeniedError
from novel_server.services import catalog, ledger, stats


@pytest.mark.unit
def test_start_of_local_day_is_utc_midnight_of_local_day():
    tz = timezone(timedelta(hours=2))
    now = datetime(2024, 5, 10, 1, 30, tzinfo=tz)

    # Local midnight 2024-05-10 00:00 +02:00 is 2024-05-09 22:00 UTC.
    assert stats.start_of_local_day(now) == "2024-05-09 22:00:00"


@pytest.mark.db
def test_dashboard_requires_admin(users):
    with pytest.raises(PermissionDeniedError):
        stats.get_dashboard_stats(users["author"])


@pytest.mark.db
def test_dashboard_totals(users, paid_chapter):
    ledger.purchase_coins(users["reader"], 8)
    ledger.unlock_chapter(users["reader"], paid_chapter["id"])

    data = stats.get_dashboard_stats(users["admin"])

    assert data["total_users"] == 4
    assert data["total_novels"] == 1
    assert data["total_chapters"] == 2
    # Revenue counts purchases only, not unlock debits or earnings.
    assert data["total_revenue"] == Decimal("8.00")
    # Reader (purchase, unlock) and author (earning) moved coins today.
    assert data["active_users_today"] == 2
    assert data["new_users_today"] == 4
    assert [t["type"] for t in data["recent_transactions"]] == [
        "author_earning",
        "unlock_chapter",
        "purchase_coins",
    ]


@pytest.mark.db
def test_dashboard_lists_are_capped_at_ten(users):
    for i in range(12):
        catalog.create_novel(
            users["author"], title=f"Novel {i}", description="Long enough description.", genre="g"
        )
        ledger.purchase_coins(users["reader"], 1)

    data = stats.get_dashboard_stats(users["admin"])

    assert len(data["popular_novels"]) == 10
    assert len(data["recent_transactions"]) == 10


@pytest.mark.db
def test_popular_novels_ordered_by_views(users, free_chapter):
    quiet = catalog.create_novel(
        users["author"], title="Quiet", description="Nobody reads this one.", genre="g"
    )
    ledger.read_chapter(None, free_chapter["id"])

    popular = stats.get_dashboard_stats(users["admin"])["popular_novels"]

    assert [n["id"] for n in popular] == [free_chapter["novel_id"], quiet["id"]]


@pytest.mark.db
def test_author_stats(users, paid_chapter, novel):
    ledger.purchase_coins(users["reader"], 5)
    ledger.unlock_chapter(users["reader"], paid_chapter["id"])
    ledger.read_chapter(users["reader"], paid_chapter["id"])

    data = stats.get_author_stats(users["author"], users["author"])

    assert [n["id"] for n in data["novels"]] == [novel["id"]]
    assert data["total_views"] == 1
    assert data["total_earnings"] == Decimal("3.50")
    assert len(data["recent_earnings"]) == 1


@pytest.mark.db
def test_author_stats_visibility(users):
    with pytest.raises(PermissionDeniedError):
        stats.get_author_stats(users["reader"], users["author"])

    assert stats.get_author_stats(users["admin"], users["author"])["novels"] == []

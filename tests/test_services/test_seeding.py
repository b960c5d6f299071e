"""Tests for YAML seed loading (novel_server/services/seeding.py)."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from novel_server.db import users_repo
from novel_server.services import catalog, ledger
from novel_server.services.seeding import load_seed_file, seed_from_file

EXAMPLE_SEED = Path(__file__).resolve().parents[2] / "config" / "seed.example.yaml"


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "seed.yaml"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.unit
def test_load_seed_file_validation(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_seed_file(tmp_path / "missing.yaml")
    with pytest.raises(ValueError, match="mapping"):
        load_seed_file(_write(tmp_path, "- just\n- a list\n"))
    with pytest.raises(ValueError, match="version"):
        load_seed_file(_write(tmp_path, "version: 7\n"))
    with pytest.raises(ValueError, match="users"):
        load_seed_file(_write(tmp_path, "version: 1\nusers: nope\n"))


@pytest.mark.db
def test_seed_example_file(test_db):
    stats = seed_from_file(EXAMPLE_SEED)

    assert (stats.users_created, stats.novels_created, stats.chapters_created) == (2, 1, 2)

    author = users_repo.get_user_by_username("mira_writes")
    reader = users_repo.get_user_by_username("tomas_reads")
    assert reader["coins_balance"] == Decimal("25.00")
    assert ledger.audit_balance(reader["id"])["consistent"] is True

    novel = catalog.list_novels(author_id=author["id"])[0]
    assert novel["status"] == "ongoing"
    chapters = catalog.list_chapters(novel["id"])
    assert [c["chapter_number"] for c in chapters] == [1, 2]
    assert chapters[1]["coin_cost"] == Decimal("5.00")


@pytest.mark.db
def test_seeding_twice_skips_existing_users(test_db):
    seed_from_file(EXAMPLE_SEED)
    stats = seed_from_file(EXAMPLE_SEED)

    assert stats.users_created == 0
    assert stats.users_skipped == 2
    reader = users_repo.get_user_by_username("tomas_reads")
    # The opening balance is only granted on creation.
    assert reader["coins_balance"] == Decimal("25.00")


@pytest.mark.db
def test_seed_rejects_unknown_author(test_db, tmp_path):
    path = _write(
        tmp_path,
        "version: 1\n"
        "novels:\n"
        "  - author: ghost\n"
        "    title: Haunted\n"
        "    description: Nobody wrote this one.\n",
    )

    with pytest.raises(ValueError, match="ghost"):
        seed_from_file(path)

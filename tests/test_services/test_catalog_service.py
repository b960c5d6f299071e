"""Tests for the catalog service (novel_server/services/catalog.py)."""

from __future__ import annotations

from decimal import Decimal

import pytest

from novel_server.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from novel_server.services import catalog

DESCRIPTION = "Long enough to pass validation."


# ============================================================================
# WORD COUNT
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("This has   multiple    spaces between words", 6),
        ("", 0),
        ("   \n\t ", 0),
        ("one", 1),
        ("line one\nline two", 4),
    ],
)
def test_count_words(content, expected):
    assert catalog.count_words(content) == expected


# ============================================================================
# NOVELS
# ============================================================================


@pytest.mark.db
def test_create_novel_requires_publish_permission(users):
    with pytest.raises(PermissionDeniedError):
        catalog.create_novel(
            users["reader"], title="Nope", description=DESCRIPTION, genre="fantasy"
        )


@pytest.mark.db
@pytest.mark.parametrize(
    ("title", "description"),
    [("", DESCRIPTION), ("x" * 201, DESCRIPTION), ("Title", "too short")],
)
def test_create_novel_validates_fields(users, title, description):
    with pytest.raises(InvalidInputError):
        catalog.create_novel(
            users["author"], title=title, description=description, genre="fantasy"
        )


@pytest.mark.db
def test_create_novel_defaults(novel, users):
    assert novel["author_id"] == users["author"]
    assert novel["status"] == "draft"
    assert novel["tags"] == ["mystery", "slow-burn"]


@pytest.mark.db
def test_get_novel_not_found(test_db):
    with pytest.raises(NotFoundError):
        catalog.get_novel(999)


@pytest.mark.db
def test_update_novel_patches_only_given_fields(novel, users):
    updated = catalog.update_novel(users["author"], novel["id"], status="ongoing")

    assert updated["status"] == "ongoing"
    assert updated["title"] == novel["title"]
    assert updated["description"] == novel["description"]


@pytest.mark.db
def test_any_status_transition_is_allowed(novel, users):
    for status in ("completed", "draft", "hiatus", "ongoing"):
        assert catalog.update_novel(users["author"], novel["id"], status=status)["status"] == status


@pytest.mark.db
def test_update_novel_rejects_unknown_status(novel, users):
    with pytest.raises(InvalidInputError):
        catalog.update_novel(users["author"], novel["id"], status="archived")


@pytest.mark.db
def test_only_owner_or_admin_edits_novel(novel, users):
    from novel_server.db import users_repo

    other = users_repo.create_user(
        "otherauthor", "other@example.com", "password123", role="author"
    ).row
    with pytest.raises(PermissionDeniedError):
        catalog.update_novel(other["id"], novel["id"], title="Stolen")

    assert catalog.update_novel(users["admin"], novel["id"], title="Edited")["title"] == "Edited"


@pytest.mark.db
def test_featuring_is_admin_only(novel, users):
    with pytest.raises(PermissionDeniedError):
        catalog.update_novel(users["author"], novel["id"], is_featured=True)

    assert catalog.update_novel(users["admin"], novel["id"], is_featured=True)["is_featured"]


@pytest.mark.db
def test_list_novels_sort_allow_list(novel):
    assert catalog.list_novels(sort_by="average_rating", sort_order="asc")
    with pytest.raises(InvalidInputError):
        catalog.list_novels(sort_by="title")
    with pytest.raises(InvalidInputError):
        catalog.list_novels(sort_order="random")
    with pytest.raises(InvalidInputError):
        catalog.list_novels(status="archived")


@pytest.mark.db
def test_list_novels_by_author(novel, users):
    assert [n["id"] for n in catalog.list_novels(author_id=users["author"])] == [novel["id"]]
    assert catalog.list_novels(author_id=users["reader"]) == []


# ============================================================================
# CHAPTERS
# ============================================================================


@pytest.mark.db
def test_sequential_chapters_are_numbered_from_one(novel, users):
    numbers = [
        catalog.create_chapter(
            users["author"], novel["id"], title=f"Chapter {i}", content="words here"
        )["chapter_number"]
        for i in range(1, 4)
    ]

    assert numbers == [1, 2, 3]
    assert catalog.get_novel(novel["id"])["total_chapters"] == 3


@pytest.mark.db
def test_new_chapter_follows_existing_count(paid_chapter, novel, users):
    chapter = catalog.create_chapter(users["author"], novel["id"], title="Third", content="")

    assert chapter["chapter_number"] == 3


@pytest.mark.db
def test_create_chapter_word_counts(novel, users):
    spaced = catalog.create_chapter(
        users["author"],
        novel["id"],
        title="Spaced",
        content="This has   multiple    spaces between words",
    )
    empty = catalog.create_chapter(users["author"], novel["id"], title="Empty", content="")

    assert spaced["word_count"] == 6
    assert empty["word_count"] == 0


@pytest.mark.db
def test_create_chapter_price(paid_chapter):
    assert paid_chapter["coin_cost"] == Decimal("5.00")
    assert paid_chapter["is_free"] is False


@pytest.mark.db
def test_create_chapter_permissions_and_validation(novel, users):
    with pytest.raises(PermissionDeniedError):
        catalog.create_chapter(users["reader"], novel["id"], title="Mine", content="")
    with pytest.raises(InvalidInputError):
        catalog.create_chapter(
            users["author"], novel["id"], title="Neg", content="", coin_cost=-1
        )
    with pytest.raises(NotFoundError):
        catalog.create_chapter(users["author"], 999, title="Lost", content="")


@pytest.mark.db
def test_chapter_price_too_large_to_store_is_rejected(novel, free_chapter, users):
    with pytest.raises(InvalidInputError, match="too large"):
        catalog.create_chapter(
            users["author"], novel["id"], title="Dear", content="", coin_cost=Decimal("1e20")
        )
    with pytest.raises(InvalidInputError):
        catalog.update_chapter(users["author"], free_chapter["id"], coin_cost="1e40")

    assert catalog.get_chapter(free_chapter["id"])["coin_cost"] == Decimal("0.00")



@pytest.mark.db
def test_update_chapter_recomputes_word_count(free_chapter, users):
    updated = catalog.update_chapter(
        users["author"], free_chapter["id"], content="Two words", status="published"
    )

    assert updated["word_count"] == 2
    assert updated["status"] == "published"


@pytest.mark.db
def test_update_chapter_without_fields_returns_current(free_chapter, users):
    unchanged = catalog.update_chapter(users["author"], free_chapter["id"])
    assert unchanged["title"] == free_chapter["title"]


@pytest.mark.db
def test_list_chapters_omits_content(paid_chapter, novel):
    chapters = catalog.list_chapters(novel["id"])

    assert [c["chapter_number"] for c in chapters] == [1, 2]
    assert all("content" not in c for c in chapters)

    with pytest.raises(NotFoundError):
        catalog.list_chapters(999)

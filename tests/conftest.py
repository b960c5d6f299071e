"""
Shared pytest fixtures for the novel server test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary test databases
- Test user accounts for every role
- A sample novel with a free and a paid chapter
- FastAPI TestClient instances

Every fixture is function-scoped so each test runs against a fresh database.
"""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from novel_server.config import use_test_database
from novel_server.db import database, users_repo
from novel_server.services import catalog

# Import shared test constant
from tests.constants import TEST_PASSWORD

# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Create a temporary database file for testing.

    Uses the config system's use_test_database context manager so every
    connection opened during the test points at the temporary file.

    Yields:
        Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_novel.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[None, None, None]:
    """
    Initialize a test database with schema but no data.

    Skips the environment-driven admin bootstrap so tests create their own
    accounts.
    """
    database.init_database(skip_superuser=True)

    yield


@pytest.fixture(scope="function")
def users(test_db) -> dict[str, int]:
    """
    Create one active account per role.

    All users have password TEST_PASSWORD.

    Returns:
        Dict mapping role name (visitor, reader, author, admin) to user id
    """
    ids: dict[str, int] = {}
    for role in ("visitor", "reader", "author", "admin"):
        outcome = users_repo.create_user(
            f"test{role}", f"{role}@example.com", TEST_PASSWORD, role=role
        )
        assert outcome.ok
        ids[role] = outcome.row["id"]
    return ids


# ============================================================================
# CATALOG FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def novel(users: dict[str, int]) -> dict:
    """A draft novel owned by the ``author`` fixture user."""
    return catalog.create_novel(
        users["author"],
        title="The Lantern Keeper",
        description="A keeper of lanterns walks the drowned city at night.",
        genre="fantasy",
        tags=["mystery", "slow-burn"],
    )


@pytest.fixture(scope="function")
def free_chapter(novel: dict, users: dict[str, int]) -> dict:
    """Chapter 1 of ``novel``: free to read."""
    return catalog.create_chapter(
        users["author"],
        novel["id"],
        title="The First Lamp",
        content="The lamp was lit before the tide came in.",
    )


@pytest.fixture(scope="function")
def paid_chapter(free_chapter: dict, novel: dict, users: dict[str, int]) -> dict:
    """Chapter 2 of ``novel``: costs 5 coins."""
    return catalog.create_chapter(
        users["author"],
        novel["id"],
        title="Low Water",
        content="Below the bridges the water kept its own time.",
        coin_cost=5,
        is_free=False,
    )


# ============================================================================
# FASTAPI TEST CLIENT FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def test_client(test_db) -> TestClient:
    """
    Create a FastAPI TestClient for API endpoint testing.

    Example:
        def test_health(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from novel_server.api.server import create_app

    return TestClient(create_app())

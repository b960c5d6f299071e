"""Load demo or fixture catalog data from a YAML file.

Expected shape::

    version: 1
    users:
      - username: alice
        email: alice@example.com
        password: correct-horse
        role: author          # optional, default reader
        coins: 25             # optional opening purchase
    novels:
      - author: alice         # username of an author/admin listed above
        title: The Long Road
        description: A ten-plus character description.
        genre: fantasy
        tags: [adventure]
        status: ongoing       # optional, default draft
        chapters:
          - title: Departure
            content: "..."
            coin_cost: 0      # optional
            is_free: true     # optional

Users that already exist (by username) are skipped; their id is still used
to resolve novel authors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from novel_server.db import ledger_repo, users_repo
from novel_server.db.types import DUPLICATE
from novel_server.errors import InvalidInputError
from novel_server.money import quantize, to_minor
from novel_server.services import catalog

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (1,)


@dataclass(slots=True)
class SeedStats:
    """
    Summary of seeding work performed.

    Attributes:
        users_created: New user rows inserted.
        users_skipped: Users already present by username.
        novels_created: Novel rows inserted.
        chapters_created: Chapter rows inserted.
    """

    users_created: int = 0
    users_skipped: int = 0
    novels_created: int = 0
    chapters_created: int = 0


def load_seed_file(path: Path) -> dict[str, Any]:
    """Read and validate the top level of a seed file.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: The document is not a mapping or has an unknown version.
    """
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must be a YAML mapping at the top level.")
    if raw.get("version") not in SUPPORTED_VERSIONS:
        raise ValueError(f"{path.name}: unsupported or missing 'version'.")
    for key in ("users", "novels"):
        if not isinstance(raw.get(key, []), list):
            raise ValueError(f"{path.name}: '{key}' must be a list.")
    return raw


def _seed_user(entry: dict[str, Any], stats: SeedStats) -> int:
    username = str(entry["username"])
    outcome = users_repo.create_user(
        username,
        str(entry["email"]),
        str(entry["password"]),
        role=str(entry.get("role", "reader")),
        is_email_verified=True,
    )
    if outcome.status == DUPLICATE:
        existing = users_repo.get_user_by_username(username)
        if existing is None:
            raise InvalidInputError(f"Email for seed user {username!r} is already taken")
        stats.users_skipped += 1
        return int(existing["id"])

    stats.users_created += 1
    user_id = int(outcome.row["id"])
    coins = entry.get("coins")
    if coins:
        ledger_repo.purchase_coins(user_id, to_minor(quantize(coins)), "Seed balance")
    return user_id


def seed_from_file(path: Path) -> SeedStats:
    """Insert the users, novels and chapters described by ``path``."""
    raw = load_seed_file(path)
    stats = SeedStats()
    user_ids: dict[str, int] = {}

    for entry in raw.get("users", []):
        user_ids[str(entry["username"])] = _seed_user(entry, stats)

    for entry in raw.get("novels", []):
        author = str(entry["author"])
        if author not in user_ids:
            raise ValueError(f"{path.name}: novel author {author!r} is not a seeded user.")
        author_id = user_ids[author]

        novel = catalog.create_novel(
            author_id,
            title=str(entry["title"]),
            description=str(entry["description"]),
            genre=str(entry.get("genre", "general")),
            cover_url=entry.get("cover_url"),
            tags=list(entry.get("tags", [])),
        )
        stats.novels_created += 1
        if entry.get("status"):
            catalog.update_novel(author_id, novel["id"], status=str(entry["status"]))

        for chapter in entry.get("chapters", []):
            catalog.create_chapter(
                author_id,
                novel["id"],
                title=str(chapter["title"]),
                content=str(chapter.get("content", "")),
                coin_cost=chapter.get("coin_cost", 0),
                is_free=bool(chapter.get("is_free", True)),
            )
            stats.chapters_created += 1

    logger.info(
        "Seeded %d users (%d skipped), %d novels, %d chapters from %s",
        stats.users_created,
        stats.users_skipped,
        stats.novels_created,
        stats.chapters_created,
        path,
    )
    return stats

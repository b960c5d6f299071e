"""Per-call SQLite connections and the two transaction shapes repositories use.

``connection_scope`` is for reads and single-statement writes.
``immediate_transaction`` is for read-check-write sequences that must not
interleave with another writer (coin debits, chapter numbering).
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

BUSY_TIMEOUT_MS = 5000


def get_db_path() -> Path:
    from novel_server.config import config

    return config.database.absolute_path


def configure_connection(connection: sqlite3.Connection) -> sqlite3.Connection:
    """Enable FK enforcement, dict-like rows and a lock wait.

    A writer blocked by another ``BEGIN IMMEDIATE`` waits up to
    ``BUSY_TIMEOUT_MS`` before SQLite reports ``database is locked``.
    """
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    connection.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    return connection


def get_connection() -> sqlite3.Connection:
    path = get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return configure_connection(sqlite3.connect(str(path)))


def _rollback_quietly(connection: sqlite3.Connection) -> None:
    try:
        connection.rollback()
    except sqlite3.Error:
        # The original failure is what the caller needs to see.
        pass


@contextmanager
def connection_scope(*, write: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a connection that is always closed afterwards.

    With ``write=True`` the block's statements are committed on success and
    rolled back when it raises.
    """
    connection = get_connection()
    try:
        yield connection
        if write:
            connection.commit()
    except Exception:
        if write:
            _rollback_quietly(connection)
        raise
    finally:
        connection.close()


@contextmanager
def immediate_transaction() -> Iterator[sqlite3.Connection]:
    """Yield a connection holding the database write lock.

    ``BEGIN IMMEDIATE`` takes the lock before the first statement, so checks
    made inside the block stay true until it ends. The block may call
    ``rollback()`` itself to abandon its work; otherwise it is committed on
    success and rolled back on error.
    """
    connection = get_connection()
    try:
        connection.execute("BEGIN IMMEDIATE")
        yield connection
        if connection.in_transaction:
            connection.commit()
    except Exception:
        _rollback_quietly(connection)
        raise
    finally:
        connection.close()

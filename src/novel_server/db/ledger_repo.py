"""Coin ledger repository operations for the SQLite backend.

This module is the only writer of ``users.coins_balance_minor``. Every
balance change appends a ``transactions`` row in the same SQL transaction,
so a user's balance always equals the sum of their recorded amounts.

Debits use a conditional update (``... WHERE coins_balance_minor >= cost``)
inside ``BEGIN IMMEDIATE``; a zero row count means the balance was too low
and nothing is written.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from novel_server.db.connection import connection_scope, immediate_transaction
from novel_server.db.errors import raise_read_error, raise_write_error
from novel_server.db.rows import TRANSACTION_COLUMNS, transaction_from_row
from novel_server.db.types import (
    ALREADY_UNLOCKED,
    BALANCE_OVERFLOW,
    CHAPTER_NOT_FOUND,
    INSUFFICIENT_FUNDS,
    OK,
    PRICE_BELOW_LIST,
    USER_NOT_FOUND,
    UnlockOutcome,
    WriteOutcome,
)
from novel_server.money import MAX_MINOR, author_share_minor


def _append_transaction(
    cursor: sqlite3.Cursor,
    *,
    user_id: int,
    type_: str,
    amount_minor: int,
    description: str,
    novel_id: int | None = None,
    chapter_id: int | None = None,
) -> dict[str, Any]:
    """Insert one ledger row and return it."""
    cursor.execute(
        """
        INSERT INTO transactions (user_id, type, amount_minor, description, novel_id, chapter_id)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (user_id, type_, amount_minor, description, novel_id, chapter_id),
    )
    cursor.execute(
        f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id = ?", (cursor.lastrowid,)
    )
    return transaction_from_row(cursor.fetchone())


def _credit(cursor: sqlite3.Cursor, user_id: int, amount_minor: int) -> str:
    """Add ``amount_minor`` to a balance unless the sum would overflow INTEGER.

    Returns ``OK``, ``USER_NOT_FOUND`` or ``BALANCE_OVERFLOW``.
    """
    cursor.execute(
        """
        UPDATE users
        SET coins_balance_minor = coins_balance_minor + ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND coins_balance_minor <= ?
        """,
        (amount_minor, user_id, MAX_MINOR - amount_minor),
    )
    if cursor.rowcount > 0:
        return OK
    cursor.execute("SELECT 1 FROM users WHERE id = ?", (user_id,))
    return BALANCE_OVERFLOW if cursor.fetchone() is not None else USER_NOT_FOUND


def purchase_coins(user_id: int, amount_minor: int, description: str) -> WriteOutcome:
    """Credit purchased coins and append a ``purchase_coins`` row atomically."""
    if amount_minor <= 0:
        raise ValueError("Purchase amount must be positive.")

    try:
        with immediate_transaction() as conn:
            cursor = conn.cursor()
            status = _credit(cursor, user_id, amount_minor)
            if status != OK:
                return WriteOutcome(status)
            transaction = _append_transaction(
                cursor,
                user_id=user_id,
                type_="purchase_coins",
                amount_minor=amount_minor,
                description=description,
            )
            return WriteOutcome(OK, transaction)
    except Exception as exc:
        raise_write_error("ledger.purchase_coins", exc, details=f"user_id={user_id}")


def unlock_chapter(
    user_id: int,
    chapter_id: int,
    *,
    cost_minor: int | None = None,
    author_share_percent: int = 70,
) -> UnlockOutcome:
    """Debit the reader, record the unlock and pay the author in one transaction.

    Args:
        user_id: Reader unlocking the chapter.
        chapter_id: Chapter being unlocked.
        cost_minor: Price in hundredths. ``None`` uses the chapter's list
            price (zero for free chapters). An explicit price may exceed
            the list price but never undercut it.
        author_share_percent: Part of the price credited to the author.

    Order of checks inside the transaction:
        1. user and chapter exist
        2. price not below the list price (``PRICE_BELOW_LIST``)
        3. conditional debit (``INSUFFICIENT_FUNDS`` when it matches no row)
        4. no earlier unlock of the same chapter (``ALREADY_UNLOCKED``)

    Any outcome other than ``OK`` rolls the transaction back.
    """
    if cost_minor is not None and cost_minor < 0:
        raise ValueError("Coin cost must not be negative.")

    try:
        with immediate_transaction() as conn:
            cursor = conn.cursor()

            cursor.execute("SELECT 1 FROM users WHERE id = ?", (user_id,))
            if cursor.fetchone() is None:
                return UnlockOutcome(USER_NOT_FOUND)

            cursor.execute(
                """
                SELECT c.novel_id, c.coin_cost_minor, c.is_free, n.author_id
                FROM chapters c
                JOIN novels n ON n.id = c.novel_id
                WHERE c.id = ?
                """,
                (chapter_id,),
            )
            chapter = cursor.fetchone()
            if chapter is None:
                return UnlockOutcome(CHAPTER_NOT_FOUND)

            novel_id = int(chapter["novel_id"])
            author_id = int(chapter["author_id"])
            list_minor = 0 if chapter["is_free"] else int(chapter["coin_cost_minor"])
            if cost_minor is None:
                cost_minor = list_minor
            elif cost_minor < list_minor:
                return UnlockOutcome(PRICE_BELOW_LIST)

            cursor.execute(
                """
                UPDATE users
                SET coins_balance_minor = coins_balance_minor - ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND coins_balance_minor >= ?
                """,
                (cost_minor, user_id, cost_minor),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return UnlockOutcome(INSUFFICIENT_FUNDS)

            cursor.execute(
                """
                SELECT 1 FROM transactions
                WHERE user_id = ? AND chapter_id = ? AND type = 'unlock_chapter'
                LIMIT 1
                """,
                (user_id, chapter_id),
            )
            if cursor.fetchone() is not None:
                conn.rollback()
                return UnlockOutcome(ALREADY_UNLOCKED)

            transaction = _append_transaction(
                cursor,
                user_id=user_id,
                type_="unlock_chapter",
                amount_minor=-cost_minor,
                description=f"Unlocked chapter {chapter_id}",
                novel_id=novel_id,
                chapter_id=chapter_id,
            )

            earning = None
            share_minor = author_share_minor(cost_minor, author_share_percent)
            if share_minor > 0 and author_id != user_id:
                if _credit(cursor, author_id, share_minor) != OK:
                    conn.rollback()
                    return UnlockOutcome(BALANCE_OVERFLOW)
                earning = _append_transaction(
                    cursor,
                    user_id=author_id,
                    type_="author_earning",
                    amount_minor=share_minor,
                    description=f"Earning from chapter {chapter_id}",
                    novel_id=novel_id,
                    chapter_id=chapter_id,
                )

            cursor.execute("SELECT coins_balance_minor FROM users WHERE id = ?", (user_id,))
            balance_minor = int(cursor.fetchone()[0])

            return UnlockOutcome(
                OK,
                transaction=transaction,
                earning=earning,
                balance_minor=balance_minor,
            )
    except Exception as exc:
        raise_write_error(
            "ledger.unlock_chapter",
            exc,
            details=f"user_id={user_id}, chapter_id={chapter_id}",
        )


def record_author_earning(
    author_id: int,
    amount_minor: int,
    *,
    description: str,
    novel_id: int | None = None,
    chapter_id: int | None = None,
) -> WriteOutcome:
    """Credit an author and append an ``author_earning`` row atomically."""
    if amount_minor <= 0:
        raise ValueError("Earning amount must be positive.")

    try:
        with immediate_transaction() as conn:
            cursor = conn.cursor()
            status = _credit(cursor, author_id, amount_minor)
            if status != OK:
                return WriteOutcome(status)
            earning = _append_transaction(
                cursor,
                user_id=author_id,
                type_="author_earning",
                amount_minor=amount_minor,
                description=description,
                novel_id=novel_id,
                chapter_id=chapter_id,
            )
            return WriteOutcome(OK, earning)
    except Exception as exc:
        raise_write_error("ledger.record_author_earning", exc, details=f"author_id={author_id}")


def get_balance_minor(user_id: int) -> int | None:
    """Return the stored balance in hundredths, or ``None`` for unknown users."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                "SELECT coins_balance_minor FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return int(row[0]) if row else None
    except Exception as exc:
        raise_read_error("ledger.get_balance", exc, details=f"user_id={user_id}")


def get_ledger_total_minor(user_id: int) -> int:
    """Return the sum of every recorded amount for ``user_id``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(amount_minor), 0) FROM transactions WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        return int(row[0])
    except Exception as exc:
        raise_read_error("ledger.get_ledger_total", exc, details=f"user_id={user_id}")


def has_unlocked(user_id: int, chapter_id: int) -> bool:
    """Return True when ``user_id`` has an unlock row for ``chapter_id``."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM transactions
                WHERE user_id = ? AND chapter_id = ? AND type = 'unlock_chapter'
                LIMIT 1
                """,
                (user_id, chapter_id),
            ).fetchone()
        return row is not None
    except Exception as exc:
        raise_read_error(
            "ledger.has_unlocked",
            exc,
            details=f"user_id={user_id}, chapter_id={chapter_id}",
        )


def list_transactions(
    *,
    user_id: int | None = None,
    type_: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Return ledger rows newest first, optionally filtered by user and type."""
    clauses: list[str] = []
    params: list[Any] = []
    if user_id is not None:
        clauses.append("user_id = ?")
        params.append(user_id)
    if type_ is not None:
        clauses.append("type = ?")
        params.append(type_)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS} FROM transactions
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,  # nosec B608
                (*params, limit, offset),
            ).fetchall()
        return [transaction_from_row(row) for row in rows]
    except Exception as exc:
        raise_read_error("ledger.list_transactions", exc, details=f"user_id={user_id}")

"""Schema creation and invariant trigger wiring for the SQLite backend.

Money columns hold integer hundredths (see ``novel_server.money``). The
ledger table is append-only: triggers abort any UPDATE or DELETE so balance
history can only grow.
"""

from __future__ import annotations

import os
import sqlite3

from novel_server.api.password import hash_password
from novel_server.db.connection import get_connection

USER_ROLES = ("visitor", "reader", "author", "admin")
NOVEL_STATUSES = ("draft", "ongoing", "completed", "hiatus")
CHAPTER_STATUSES = ("draft", "published", "locked")
TRANSACTION_TYPES = ("purchase_coins", "unlock_chapter", "author_earning")

# Hot-path index rationale:
# 1. catalog listings filter by author/genre/status and sort by activity.
# 2. chapter reads are always scoped to a novel and ordered by number.
# 3. entitlement checks look up unlock rows per (user, chapter).
# 4. dashboards scan transactions by type and by recency.
HOT_PATH_INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_novels_author_id ON novels(author_id)",
    "CREATE INDEX IF NOT EXISTS idx_novels_genre_status ON novels(genre, status)",
    "CREATE INDEX IF NOT EXISTS idx_novels_updated_at ON novels(updated_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_novels_total_views ON novels(total_views DESC)",
    (
        "CREATE INDEX IF NOT EXISTS idx_transactions_user_chapter_type "
        "ON transactions(user_id, chapter_id, type)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_transactions_type ON transactions(type)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_created_at ON transactions(created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_reviews_novel_id ON reviews(novel_id)",
    "CREATE INDEX IF NOT EXISTS idx_comments_chapter_id ON comments(chapter_id)",
)


def _in_list(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{value}'" for value in values)


def create_ledger_invariant_triggers(conn: sqlite3.Connection) -> None:
    """Create triggers that make the ``transactions`` table append-only.

    These protect the ledger for both repository paths and direct SQL
    writes, so ``coins_balance`` can always be reconciled with the sum of
    recorded amounts.
    """
    cursor = conn.cursor()
    cursor.execute("DROP TRIGGER IF EXISTS forbid_transaction_update")
    cursor.execute("DROP TRIGGER IF EXISTS forbid_transaction_delete")

    cursor.execute("""
        CREATE TRIGGER forbid_transaction_update
        BEFORE UPDATE ON transactions
        BEGIN
            SELECT RAISE(ABORT, 'ledger invariant violated: transactions are append-only');
        END;
    """)

    cursor.execute("""
        CREATE TRIGGER forbid_transaction_delete
        BEFORE DELETE ON transactions
        BEGIN
            SELECT RAISE(ABORT, 'ledger invariant violated: transactions are append-only');
        END;
    """)


def init_database(*, skip_superuser: bool = False) -> None:
    """Initialize the SQLite database schema and baseline triggers.

    Behavior:
    - Creates required tables and indexes if missing.
    - Installs ledger invariant triggers.
    - Optionally creates a bootstrap admin from environment variables
      (``NOVEL_ADMIN_USER``, ``NOVEL_ADMIN_EMAIL``, ``NOVEL_ADMIN_PASSWORD``).

    Args:
        skip_superuser: When True, skip bootstrap admin creation.
    """
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'reader' CHECK (role IN ({_in_list(USER_ROLES)})),
            avatar_url TEXT,
            bio TEXT,
            coins_balance_minor INTEGER NOT NULL DEFAULT 0 CHECK (coins_balance_minor >= 0),
            is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
            is_email_verified INTEGER NOT NULL DEFAULT 0 CHECK (is_email_verified IN (0, 1)),
            two_factor_enabled INTEGER NOT NULL DEFAULT 0 CHECK (two_factor_enabled IN (0, 1)),
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS novels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            cover_url TEXT,
            author_id INTEGER NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ({_in_list(NOVEL_STATUSES)})),
            genre TEXT NOT NULL,
            tags_json TEXT NOT NULL DEFAULT '[]',
            total_chapters INTEGER NOT NULL DEFAULT 0,
            total_views INTEGER NOT NULL DEFAULT 0,
            total_likes INTEGER NOT NULL DEFAULT 0,
            average_rating REAL NOT NULL DEFAULT 0,
            is_featured INTEGER NOT NULL DEFAULT 0 CHECK (is_featured IN (0, 1)),
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS chapters (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            novel_id INTEGER NOT NULL REFERENCES novels(id) ON DELETE CASCADE,
            chapter_number INTEGER NOT NULL CHECK (chapter_number >= 1),
            title TEXT NOT NULL,
            content TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'draft'
                CHECK (status IN ({_in_list(CHAPTER_STATUSES)})),
            coin_cost_minor INTEGER NOT NULL DEFAULT 0 CHECK (coin_cost_minor >= 0),
            word_count INTEGER NOT NULL DEFAULT 0,
            views INTEGER NOT NULL DEFAULT 0,
            is_free INTEGER NOT NULL DEFAULT 1 CHECK (is_free IN (0, 1)),
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(novel_id, chapter_number)
        )
    """)

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            type TEXT NOT NULL CHECK (type IN ({_in_list(TRANSACTION_TYPES)})),
            amount_minor INTEGER NOT NULL,
            description TEXT,
            novel_id INTEGER REFERENCES novels(id) ON DELETE SET NULL,
            chapter_id INTEGER REFERENCES chapters(id) ON DELETE SET NULL,
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reading_progress (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            novel_id INTEGER NOT NULL REFERENCES novels(id) ON DELETE CASCADE,
            last_chapter_id INTEGER REFERENCES chapters(id) ON DELETE SET NULL,
            last_read_at TIMESTAMP NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
            is_favorite INTEGER NOT NULL DEFAULT 0 CHECK (is_favorite IN (0, 1)),
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, novel_id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            novel_id INTEGER NOT NULL REFERENCES novels(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            review_text TEXT,
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            chapter_id INTEGER NOT NULL REFERENCES chapters(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            parent_id INTEGER REFERENCES comments(id) ON DELETE CASCADE,
            depth INTEGER NOT NULL DEFAULT 1 CHECK (depth >= 1),
            is_moderated INTEGER NOT NULL DEFAULT 0 CHECK (is_moderated IN (0, 1)),
            moderated_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            moderated_at TIMESTAMP,
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """)

    for statement in HOT_PATH_INDEX_STATEMENTS:
        cursor.execute(statement)

    create_ledger_invariant_triggers(conn)
    conn.commit()

    if skip_superuser:
        conn.close()
        return

    cursor.execute("SELECT COUNT(*) FROM users")
    user_count = int(cursor.fetchone()[0])

    if user_count == 0:
        admin_user = os.environ.get("NOVEL_ADMIN_USER")
        admin_email = os.environ.get("NOVEL_ADMIN_EMAIL")
        admin_password = os.environ.get("NOVEL_ADMIN_PASSWORD")

        if admin_user and admin_email and admin_password:
            if len(admin_password) < 8:
                print("Warning: NOVEL_ADMIN_PASSWORD must be at least 8 characters. Skipping.")
            else:
                cursor.execute(
                    """
                    INSERT INTO users (username, email, password_hash, role, is_email_verified)
                    VALUES (?, ?, ?, 'admin', 1)
                    """,
                    (admin_user, admin_email, hash_password(admin_password)),
                )
                conn.commit()

                print("\n" + "=" * 60)
                print("ADMIN CREATED FROM ENVIRONMENT VARIABLES")
                print("=" * 60)
                print(f"Username: {admin_user}")
                print("=" * 60 + "\n")
        else:
            print("\n" + "=" * 60)
            print("DATABASE INITIALIZED (no admin created)")
            print("=" * 60)
            print("To create an admin, either:")
            print("  1. Set NOVEL_ADMIN_USER, NOVEL_ADMIN_EMAIL and NOVEL_ADMIN_PASSWORD")
            print("     and run: novel-server init-db")
            print("  2. Run interactively: novel-server create-admin")
            print("=" * 60 + "\n")

    conn.close()

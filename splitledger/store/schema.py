"""Database schema initialization and migrations."""

import os
import sqlite3
from pathlib import Path


def get_xdg_data_home() -> Path:
    """Get XDG data directory, with fallback to ~/.local/share."""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_db_path() -> Path:
    """Get the default database path (XDG compliant)."""
    return get_xdg_data_home() / "splitledger" / "splitledger.db"


def database_exists(db_path: Path | None = None) -> bool:
    """Check if the database file exists.

    Args:
        db_path: Path to check. If None, uses default location.

    Returns:
        True if database exists, False otherwise.
    """
    if db_path is None:
        db_path = get_db_path()
    return db_path.exists()


def init_database(db_path: Path | None = None) -> None:
    """Initialize the database with the required schema.

    Args:
        db_path: Path to the database file. If None, uses default location.

    Raises:
        sqlite3.Error: If database initialization fails.
    """
    if db_path is None:
        db_path = get_db_path()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS splits (
                id TEXT PRIMARY KEY,
                creator_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                total_amount INTEGER NOT NULL CHECK (total_amount > 0),
                currency TEXT NOT NULL,
                allocation_strategy TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS participants (
                split_id TEXT NOT NULL REFERENCES splits(id),
                user_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                amount_owed INTEGER NOT NULL CHECK (amount_owed >= 0),
                amount_paid INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'pending',
                PRIMARY KEY (split_id, user_id),
                CHECK (amount_paid <= amount_owed)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS participant_payments (
                split_id TEXT NOT NULL REFERENCES splits(id),
                idempotency_key TEXT NOT NULL,
                participant_id TEXT NOT NULL,
                amount INTEGER NOT NULL,
                applied_amount INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (split_id, idempotency_key)
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS web_payments (
                split_id TEXT NOT NULL REFERENCES splits(id),
                idempotency_key TEXT NOT NULL,
                amount INTEGER NOT NULL,
                payer_identity TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                PRIMARY KEY (split_id, idempotency_key)
            )
        """
        )

        # Migrations for older databases (must run before creating indexes on new columns)
        cursor.execute("PRAGMA table_info(participants)")
        columns = [row[1] for row in cursor.fetchall()]

        # Migration: Add 'amount_received' column if missing
        if "amount_received" not in columns:
            cursor.execute("ALTER TABLE participants ADD COLUMN amount_received INTEGER NOT NULL DEFAULT 0")

        # Idempotency keys are unique per split across both payment tables
        cursor.execute(
            """
            CREATE TRIGGER IF NOT EXISTS trg_participant_payment_key_unique
            BEFORE INSERT ON participant_payments
            WHEN EXISTS (
                SELECT 1 FROM web_payments WHERE split_id = NEW.split_id AND idempotency_key = NEW.idempotency_key
            )
            BEGIN
                SELECT RAISE(ABORT, 'idempotency key already used by a web payment');
            END
        """
        )
        cursor.execute(
            """
            CREATE TRIGGER IF NOT EXISTS trg_web_payment_key_unique
            BEFORE INSERT ON web_payments
            WHEN EXISTS (
                SELECT 1 FROM participant_payments
                WHERE split_id = NEW.split_id AND idempotency_key = NEW.idempotency_key
            )
            BEGIN
                SELECT RAISE(ABORT, 'idempotency key already used by a participant payment');
            END
        """
        )

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_splits_creator ON splits(creator_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_participants_user ON participants(user_id)")

        conn.commit()

    except sqlite3.Error:
        conn.rollback()
        raise
    finally:
        conn.close()

"""
SQLite storage for the marketplace.

Each request gets its own connection through the ``get_db``
dependency and hands it to the services, which never connect on their
own.  Multi-statement writes go through ``transaction``.  Timestamps
are stored as UTC ISO-8601 strings with microseconds so that plain
string comparison in SQL orders them correctly.

``init_db`` runs at startup and applies the numbered ``MIGRATIONS``
not yet recorded in the ``migrations`` table.
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .config import settings


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Timestamps are stored and returned as ISO‑8601 strings.  The
    connection may be used from a thread other than the one that
    created it: FastAPI resolves sync dependencies in a worker thread
    while async endpoints run on the event loop.
    """
    conn = sqlite3.connect(get_database_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Foreign key support is off by default in SQLite and must be
    # enabled per connection.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db() -> Iterator[sqlite3.Connection]:
    """FastAPI dependency yielding one connection for the whole request."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Cursor]:
    """Run a group of writes atomically.

    Commits when the block exits normally and rolls back (then
    re‑raises) on any exception, so either every statement in the
    block is persisted or none is.
    """
    cursor = conn.cursor()
    try:
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage (ISO‑8601, UTC).

    The fixed microsecond precision keeps stored values comparable as
    plain strings in SQL (``reserved_until <= ?``).
    """
    return as_utc(value).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp.

    Naive values (e.g. SQLite's ``CURRENT_TIMESTAMP`` defaults) are
    interpreted as UTC.  A trailing ``Z`` is accepted.
    """
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: users, categories and jobs
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            first_name TEXT,
            last_name TEXT,
            password TEXT,
            user_type TEXT NOT NULL DEFAULT 'worker',
            location TEXT,
            disabled INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS microjobs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT,
            budget_min REAL,
            budget_max REAL,
            location TEXT,
            is_remote INTEGER NOT NULL DEFAULT 0,
            workers_needed INTEGER NOT NULL DEFAULT 1,
            category_id INTEGER,
            user_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'open',
            is_reserved INTEGER NOT NULL DEFAULT 0,
            reserved_by INTEGER,
            reserved_until TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(category_id) REFERENCES categories(id),
            FOREIGN KEY(user_id) REFERENCES users(id),
            FOREIGN KEY(reserved_by) REFERENCES users(id)
        );

        CREATE INDEX IF NOT EXISTS idx_microjobs_user_id ON microjobs(user_id);
        CREATE INDEX IF NOT EXISTS idx_microjobs_reserved ON microjobs(is_reserved, reserved_until);
        """,
    ),
    # Migration 2: favorites and referrals
    (
        2,
        """
        CREATE TABLE IF NOT EXISTS user_favorites (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            job_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, job_id),
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(job_id) REFERENCES microjobs(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS referral_codes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL UNIQUE,
            code TEXT NOT NULL UNIQUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS referrals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            referrer_id INTEGER NOT NULL,
            referred_id INTEGER NOT NULL UNIQUE,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(referrer_id) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY(referred_id) REFERENCES users(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_referrals_referrer_id ON referrals(referrer_id);
        """,
    ),
    # Migration 3: reservations and their settings
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS job_reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            job_id INTEGER NOT NULL,
            user_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'active',
            reserved_at TIMESTAMP NOT NULL,
            expires_at TIMESTAMP NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(job_id) REFERENCES microjobs(id) ON DELETE CASCADE,
            FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
        );

        -- At most one active reservation per job.
        CREATE UNIQUE INDEX IF NOT EXISTS idx_job_reservations_active_job
            ON job_reservations(job_id) WHERE status = 'active';
        CREATE INDEX IF NOT EXISTS idx_job_reservations_user_status
            ON job_reservations(user_id, status);

        CREATE TABLE IF NOT EXISTS reservation_settings (
            id TEXT PRIMARY KEY,
            is_enabled INTEGER NOT NULL DEFAULT 0,
            default_reservation_hours INTEGER NOT NULL DEFAULT 1,
            max_concurrent_reservations INTEGER NOT NULL DEFAULT 5,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
    ),
    # Migration 4: admin fee (commission) settings
    (
        4,
        """
        CREATE TABLE IF NOT EXISTS admin_fee_settings (
            fee_type TEXT PRIMARY KEY,
            fee_percentage REAL NOT NULL DEFAULT 0,
            fee_fixed REAL NOT NULL DEFAULT 0,
            minimum_fee REAL NOT NULL DEFAULT 0,
            maximum_fee REAL,
            is_active INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
    ),
]


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any entry of ``MIGRATIONS``
    with a higher version.  To change the schema, append a migration
    with an incremented version number.
    """
    conn = get_connection()
    try:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)")
        row = cursor.execute("SELECT MAX(version) AS version FROM migrations").fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
                current_version = version
        conn.commit()
    finally:
        conn.close()

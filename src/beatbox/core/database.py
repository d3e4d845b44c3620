"""
SQLite connection handling and schema migrations for Beatbox
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

# Database schema version for migrations (stored in PRAGMA user_version)
SCHEMA_VERSION = 2


@contextmanager
def get_db_connection(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support."""
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL mode allows reads during writes
    conn.execute("PRAGMA journal_mode=WAL")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn: sqlite3.Connection, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 1:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                artist TEXT NOT NULL DEFAULT '',
                album TEXT NOT NULL DEFAULT '',
                genre TEXT,
                year INTEGER,
                track_number INTEGER,
                duration REAL NOT NULL DEFAULT 0,
                file_format TEXT NOT NULL DEFAULT '',
                file_size INTEGER,
                file_path TEXT NOT NULL DEFAULT '',
                album_art_url TEXT,
                is_favorite INTEGER NOT NULL DEFAULT 0,
                play_count INTEGER NOT NULL DEFAULT 0,
                last_played TEXT,
                created_date TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS playlists (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                track_ids TEXT NOT NULL DEFAULT '[]', -- JSON array, ordered
                is_smart INTEGER NOT NULL DEFAULT 0,
                smart_criteria TEXT, -- JSON {match_all, rules}
                created_date TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS play_history (
                id TEXT PRIMARY KEY,
                track_id TEXT NOT NULL,
                duration_played REAL NOT NULL,
                was_skipped INTEGER NOT NULL DEFAULT 0,
                created_date TEXT NOT NULL
            )
        """)

    if current_version < 2:
        # Indexes for history aggregation (stats) and smart playlist lookups
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_play_history_track_id ON play_history (track_id)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_play_history_created ON play_history (created_date)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_playlists_is_smart ON playlists (is_smart)"
        )

    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    conn.commit()


def init_database(db_path: Path) -> None:
    """Create the database file if needed and bring the schema up to date."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        current_version = conn.execute("PRAGMA user_version").fetchone()[0]
        if current_version < SCHEMA_VERSION:
            logger.info(
                f"Migrating database {db_path} from v{current_version} to v{SCHEMA_VERSION}"
            )
            migrate_database(conn, current_version)

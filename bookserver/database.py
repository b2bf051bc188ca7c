"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from bookserver.config import DATABASE_PATH


def init_database() -> None:
    """
    Initialize database and create tables if they don't exist.
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                name TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                api_key TEXT UNIQUE,
                book_storage_limit INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                key_updated_at TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                book_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                authors TEXT NOT NULL DEFAULT '',
                creator TEXT NOT NULL DEFAULT '',
                format TEXT NOT NULL DEFAULT '',
                language TEXT NOT NULL DEFAULT '',
                document_size TEXT NOT NULL DEFAULT '',
                pages INTEGER NOT NULL DEFAULT 0,
                current_page INTEGER NOT NULL DEFAULT 0,
                file_hash TEXT NOT NULL DEFAULT '',
                project_gutenberg_id INTEGER NOT NULL DEFAULT 0,
                size_in_bytes INTEGER NOT NULL DEFAULT 0,
                has_cover INTEGER NOT NULL DEFAULT 0,
                cover_size INTEGER NOT NULL DEFAULT 0,
                added_to_library TEXT,
                last_opened TEXT,
                last_modified TEXT,
                cover_last_modified TEXT,
                PRIMARY KEY(user_id, book_id),
                FOREIGN KEY(user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tags (
                tag_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS book_tags (
                user_id TEXT NOT NULL,
                book_id TEXT NOT NULL,
                tag_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY(user_id, book_id, tag_id),
                FOREIGN KEY(user_id, book_id) REFERENCES books(user_id, book_id) ON DELETE CASCADE,
                FOREIGN KEY(tag_id) REFERENCES tags(tag_id) ON DELETE CASCADE
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS orphaned_blobs (
                orphan_id INTEGER PRIMARY KEY AUTOINCREMENT,
                namespace TEXT NOT NULL,
                blob_id TEXT NOT NULL,
                reason TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                UNIQUE(namespace, blob_id)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_tags_user ON tags(user_id)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_book_tags_tag ON book_tags(tag_id)
        """)

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """
    Convert a sqlite3.Row into a plain dict (None stays None).
    """
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}


def get_row_value(row: sqlite3.Row, column: str, default: Any = None) -> Any:
    """
    Read a column from a row, falling back to default when the column is
    missing or NULL.
    """
    if column not in row.keys():
        return default
    value = row[column]
    return default if value is None else value

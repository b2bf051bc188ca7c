"""Configuration settings for the book server."""

import os


DATABASE_PATH = os.environ.get("BOOKSERVER_DATABASE_PATH", "/app/data/metadata.db")

BLOB_STORAGE_PATH = os.environ.get("BOOKSERVER_BLOB_STORAGE_PATH", "/app/data/blobs")

SERVER_HOST = os.environ.get("BOOKSERVER_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("BOOKSERVER_PORT", "8000"))

DEFAULT_BOOK_STORAGE_LIMIT = int(os.environ.get("BOOKSERVER_DEFAULT_BOOK_STORAGE_LIMIT", str(2 * 1024 ** 3)))

MAX_BOOK_SIZE_BYTES = int(os.environ.get("BOOKSERVER_MAX_BOOK_SIZE", str(512 * 1024 ** 2)))

MAX_COVER_SIZE_BYTES = int(os.environ.get("BOOKSERVER_MAX_COVER_SIZE", str(5 * 1024 ** 2)))

ORPHAN_CLEANUP_INTERVAL_SECONDS = int(os.environ.get("BOOKSERVER_ORPHAN_CLEANUP_INTERVAL", str(6 * 3600)))

API_KEY_PREFIX = "lbr_"

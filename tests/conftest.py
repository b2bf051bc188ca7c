"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from bookserver.database import init_database
from bookserver.storage.book_blob_manager import BookBlobStorageManager
from bookserver.storage.local_blob_store import LocalBlobStore
from helpers import make_user


@pytest.fixture
def test_db(monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("bookserver.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("bookserver.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    """Blob deletion retries run without sleeping."""
    monkeypatch.setattr("bookserver.services.compensation.BLOB_DELETE_BASE_DELAY_SECONDS", 0)


@pytest.fixture
def blob_store(tmp_path, monkeypatch) -> LocalBlobStore:
    """
    Blob store rooted in a temporary directory. Stores created with the
    default root during the test use the same directory.
    """
    root = tmp_path / "blobs"
    monkeypatch.setattr("bookserver.storage.local_blob_store.BLOB_STORAGE_PATH", str(root))
    return LocalBlobStore(str(root), piece_size=4)


@pytest.fixture
def blob_manager(blob_store) -> BookBlobStorageManager:
    return BookBlobStorageManager(blob_store, max_book_size=1024, max_cover_size=256)


@pytest.fixture
def user_id(test_db) -> str:
    return make_user()

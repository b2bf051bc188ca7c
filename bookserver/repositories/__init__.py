"""Repository layer for metadata access."""

from bookserver.repositories.data_context import DataContext
from bookserver.repositories.user_repository import UserRepository
from bookserver.repositories.book_repository import BookRepository
from bookserver.repositories.orphaned_blob_repository import OrphanedBlobRepository

__all__ = [
    "DataContext",
    "UserRepository",
    "BookRepository",
    "OrphanedBlobRepository",
]

"""Blob storage for book content and cover images."""

from bookserver.storage.blob_store import BlobNamespace, BlobStore
from bookserver.storage.local_blob_store import LocalBlobStore
from bookserver.storage.book_blob_manager import BookBlobStorageManager

__all__ = [
    "BlobNamespace",
    "BlobStore",
    "LocalBlobStore",
    "BookBlobStorageManager",
]

"""Namespaced facade over the blob store for book content and covers."""

from typing import AsyncIterator, Optional

from common.logging_config import get_logger
from bookserver.config import MAX_BOOK_SIZE_BYTES, MAX_COVER_SIZE_BYTES
from bookserver.storage.blob_store import BlobNamespace, BlobStore
from bookserver.storage.local_blob_store import LocalBlobStore

logger = get_logger(__name__)


class BookBlobStorageManager:
    def __init__(
        self,
        blob_store: Optional[BlobStore] = None,
        max_book_size: int = MAX_BOOK_SIZE_BYTES,
        max_cover_size: int = MAX_COVER_SIZE_BYTES,
    ):
        self.blob_store = blob_store if blob_store is not None else LocalBlobStore()
        self.max_book_size = max_book_size
        self.max_cover_size = max_cover_size

    async def upload_book_blob(self, book_id: str, stream: AsyncIterator[bytes]) -> int:
        return await self.blob_store.upload(BlobNamespace.BOOKS, book_id, stream, max_size=self.max_book_size)

    async def download_book_blob(self, book_id: str) -> AsyncIterator[bytes]:
        return await self.blob_store.download(BlobNamespace.BOOKS, book_id)

    async def delete_book_blob(self, book_id: str) -> bool:
        return await self.blob_store.delete(BlobNamespace.BOOKS, book_id)

    async def change_book_cover(self, book_id: str, stream: AsyncIterator[bytes]) -> int:
        """
        Replace a book's cover image.

        Returns:
            Size of the new cover in bytes
        """
        return await self.blob_store.upload(BlobNamespace.COVERS, book_id, stream, max_size=self.max_cover_size)

    async def download_book_cover(self, book_id: str) -> AsyncIterator[bytes]:
        return await self.blob_store.download(BlobNamespace.COVERS, book_id)

    async def delete_book_cover(self, book_id: str) -> bool:
        return await self.blob_store.delete(BlobNamespace.COVERS, book_id)

    async def delete_blob(self, namespace: BlobNamespace, blob_id: str) -> bool:
        return await self.blob_store.delete(namespace, blob_id)

"""Blob store interface: opaque payloads stored and retrieved by UUID."""

from enum import Enum
from typing import AsyncIterator, Optional, Protocol


class BlobNamespace(str, Enum):
    BOOKS = "books"
    COVERS = "covers"


class BlobStore(Protocol):
    """Capability interface the book service needs from a blob store."""

    async def upload(
        self,
        namespace: BlobNamespace,
        blob_id: str,
        stream: AsyncIterator[bytes],
        max_size: Optional[int] = None,
    ) -> int:
        """
        Store a streamed payload under blob_id, replacing any previous blob.

        Returns:
            Number of bytes written

        Raises:
            BlobTooLargeError: If the payload exceeds max_size
        """
        ...

    async def download(self, namespace: BlobNamespace, blob_id: str) -> AsyncIterator[bytes]:
        """
        Open a blob for streaming.

        Raises:
            BlobNotFoundError: If the blob does not exist (before any bytes are yielded)
        """
        ...

    async def delete(self, namespace: BlobNamespace, blob_id: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if the blob was deleted, False if it did not exist
        """
        ...

    async def exists(self, namespace: BlobNamespace, blob_id: str) -> bool:
        ...

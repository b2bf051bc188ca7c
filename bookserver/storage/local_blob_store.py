"""Filesystem blob store: {root}/{namespace}/{uuid}.blob."""

import os
from pathlib import Path
from typing import AsyncIterator, Optional

from common.constants import BLOB_FILE_SUFFIX, STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from bookserver.config import BLOB_STORAGE_PATH
from bookserver.exceptions import BlobNotFoundError, BlobTooLargeError
from bookserver.storage.blob_store import BlobNamespace
from bookserver.utils import generate_uuid, normalize_uuid

logger = get_logger(__name__)


class LocalBlobStore:
    def __init__(self, root: Optional[str] = None, piece_size: int = STREAM_PIECE_SIZE_BYTES):
        self.root = Path(root if root is not None else BLOB_STORAGE_PATH)
        self.piece_size = piece_size

    def get_blob_path(self, namespace: BlobNamespace, blob_id: str) -> Path:
        """
        Get file path for a blob.

        Raises:
            ValueError: If blob_id is not a UUID
        """
        return self.root / BlobNamespace(namespace).value / f"{normalize_uuid(blob_id)}{BLOB_FILE_SUFFIX}"

    async def upload(
        self,
        namespace: BlobNamespace,
        blob_id: str,
        stream: AsyncIterator[bytes],
        max_size: Optional[int] = None,
    ) -> int:
        """
        Write a streamed payload to disk.

        Pieces go to a temporary file next to the target, which is renamed
        into place only once the whole stream has been written.
        """
        namespace = BlobNamespace(namespace)
        target = self.get_blob_path(namespace, blob_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_name(f".{target.stem}.{generate_uuid()}.part")

        written = 0
        try:
            with open(temp_path, 'wb') as f:
                async for piece in stream:
                    if not piece:
                        continue
                    written += len(piece)
                    if max_size is not None and written > max_size:
                        raise BlobTooLargeError(
                            f"Payload for {namespace.value}/{blob_id} exceeds the limit of {max_size} bytes"
                        )
                    f.write(piece)
            os.replace(temp_path, target)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Stored blob {namespace.value}/{blob_id} ({written} bytes)")
        return written

    async def download(self, namespace: BlobNamespace, blob_id: str) -> AsyncIterator[bytes]:
        namespace = BlobNamespace(namespace)
        filepath = self.get_blob_path(namespace, blob_id)
        if not filepath.exists():
            raise BlobNotFoundError(f"No {namespace.value} blob exists for {blob_id}")

        return self._stream_file(filepath)

    async def _stream_file(self, filepath: Path) -> AsyncIterator[bytes]:
        with open(filepath, 'rb') as f:
            while True:
                piece = f.read(self.piece_size)
                if not piece:
                    break
                yield piece

    async def delete(self, namespace: BlobNamespace, blob_id: str) -> bool:
        namespace = BlobNamespace(namespace)
        filepath = self.get_blob_path(namespace, blob_id)
        if filepath.exists():
            filepath.unlink()
            logger.info(f"Deleted blob {namespace.value}/{blob_id}")
            return True
        logger.debug(f"Blob {namespace.value}/{blob_id} already absent")
        return False

    async def exists(self, namespace: BlobNamespace, blob_id: str) -> bool:
        return self.get_blob_path(namespace, blob_id).exists()

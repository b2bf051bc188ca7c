"""Background task for cleaning up orphaned blobs."""

import asyncio
from typing import Optional

from common.logging_config import get_logger
from bookserver.config import ORPHAN_CLEANUP_INTERVAL_SECONDS
from bookserver.repositories.book_repository import BookRepository
from bookserver.repositories.orphaned_blob_repository import OrphanedBlobRepository
from bookserver.storage.blob_store import BlobNamespace
from bookserver.storage.book_blob_manager import BookBlobStorageManager

logger = get_logger(__name__)


class OrphanedBlobCleaner:
    """
    Background task that periodically retries deletion of orphaned blobs.
    """

    def __init__(
        self,
        interval_seconds: int = ORPHAN_CLEANUP_INTERVAL_SECONDS,
        blob_manager: Optional[BookBlobStorageManager] = None,
    ):
        """
        Initialize cleaner task.

        Args:
            interval_seconds: Time between cleanup attempts (default 6 hours)
            blob_manager: Blob storage to delete from
        """
        self.interval_seconds = interval_seconds
        self.blob_manager = blob_manager if blob_manager is not None else BookBlobStorageManager()
        self._running = False
        self._task = None

    async def start(self) -> None:
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Cleanup task already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started orphaned blob cleanup task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background cleanup task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped orphaned blob cleanup task")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.cleanup_cycle()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup task: {e}", exc_info=True)

    async def cleanup_cycle(self) -> int:
        """
        Execute one cleanup cycle.

        Returns:
            Number of orphaned blobs that were cleaned
        """
        orphans = OrphanedBlobRepository.get_all()
        if not orphans:
            logger.debug("No orphaned blobs to clean")
            return 0

        logger.info(f"Starting cleanup cycle for {len(orphans)} orphaned blobs")

        cleaned_count = 0
        dropped_count = 0
        for orphan in orphans:
            if BookRepository.is_book_id_in_use(orphan.blob_id):
                OrphanedBlobRepository.remove(orphan.orphan_id)
                logger.info(f"Dropped orphan record {orphan.namespace}/{orphan.blob_id}: a book owns this id again")
                dropped_count += 1
                continue

            try:
                await self.blob_manager.delete_blob(BlobNamespace(orphan.namespace), orphan.blob_id)
            except Exception as e:
                logger.warning(f"Error cleaning orphaned blob {orphan.namespace}/{orphan.blob_id}: {e}")
                continue

            OrphanedBlobRepository.remove(orphan.orphan_id)
            logger.info(f"Cleaned orphaned blob {orphan.namespace}/{orphan.blob_id}")
            cleaned_count += 1

        remaining = len(orphans) - cleaned_count - dropped_count
        logger.info(f"Cleanup cycle complete: {cleaned_count} cleaned, {dropped_count} dropped, {remaining} remaining")
        return cleaned_count

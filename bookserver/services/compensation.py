"""Compensating actions for flows that span the metadata and blob stores.

The two stores are never updated atomically. Each flow runs a metadata phase
and a blob phase in a fixed order and knows how to undo or finish the work
when the second phase fails:

    operation       phase order             compensation
    add_book_data   metadata -> blob        rollback_book_record
    delete_books    metadata -> blobs       remove_book_blobs
    delete_user     metadata -> blobs       remove_book_blobs

A metadata record never points at a missing blob; a blob may briefly outlive
its record and is then recorded in orphaned_blobs for the cleanup task.
"""

import asyncio
from typing import Iterable, List, Optional, Tuple

from common.constants import BLOB_DELETE_BASE_DELAY_SECONDS, BLOB_DELETE_MAX_ATTEMPTS
from common.logging_config import get_logger
from bookserver.domain import Book, User
from bookserver.repositories.data_context import DataContext
from bookserver.repositories.orphaned_blob_repository import OrphanedBlobRepository
from bookserver.storage.blob_store import BlobNamespace
from bookserver.storage.book_blob_manager import BookBlobStorageManager

logger = get_logger(__name__)


async def rollback_book_record(
    context: DataContext,
    user: User,
    book: Book,
    blob_manager: Optional[BookBlobStorageManager] = None,
) -> None:
    """
    Delete a book's metadata record after its content upload failed.

    The record is removed and committed first. If a blob manager is given,
    any blobs left behind by earlier uploads for this book are then removed
    on a best-effort basis.
    """
    logger.warning(f"Rolling back metadata for book {book.book_id} [user_id={user.user_id}]")
    context.remove_book(user, book)
    context.save_changes()
    logger.info(f"Removed metadata for book {book.book_id} after failed upload")

    if blob_manager is not None:
        await remove_book_blobs(blob_manager, [book.book_id], reason="upload rollback")


async def delete_blob_with_retry(
    blob_manager: BookBlobStorageManager,
    namespace: BlobNamespace,
    blob_id: str,
    max_attempts: int = BLOB_DELETE_MAX_ATTEMPTS,
    base_delay: Optional[float] = None,
) -> bool:
    """
    Delete one blob, retrying with exponential backoff.

    A blob that is already absent counts as deleted.

    Returns:
        True if the blob is gone, False if every attempt failed
    """
    if base_delay is None:
        base_delay = BLOB_DELETE_BASE_DELAY_SECONDS

    for attempt in range(max_attempts):
        try:
            await blob_manager.delete_blob(namespace, blob_id)
            return True
        except Exception as e:
            if attempt < max_attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"Failed to delete blob {namespace.value}/{blob_id}, retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"Failed to delete blob {namespace.value}/{blob_id} after {max_attempts} attempts: {e}"
                )
    return False


async def remove_book_blobs(
    blob_manager: BookBlobStorageManager,
    book_ids: Iterable[str],
    reason: str = "book deleted",
) -> List[Tuple[BlobNamespace, str]]:
    """
    Best-effort deletion of the content and cover blobs of removed books.

    Both namespaces are always attempted; missing blobs are fine. Blobs that
    cannot be deleted are recorded as orphans.

    Returns:
        (namespace, blob_id) pairs that could not be deleted
    """
    failed: List[Tuple[BlobNamespace, str]] = []

    for book_id in book_ids:
        for namespace in (BlobNamespace.BOOKS, BlobNamespace.COVERS):
            if not await delete_blob_with_retry(blob_manager, namespace, book_id):
                failed.append((namespace, book_id))

    if failed:
        _record_orphans(failed, reason)

    return failed


def _record_orphans(blobs: List[Tuple[BlobNamespace, str]], reason: str) -> None:
    try:
        for namespace, blob_id in blobs:
            OrphanedBlobRepository.add(namespace.value, blob_id, reason)
    except Exception as e:
        logger.error(f"Failed to record {len(blobs)} orphaned blobs: {e}", exc_info=True)

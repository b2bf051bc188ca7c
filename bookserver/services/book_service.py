"""Book service: book lifecycle across the metadata and blob stores."""

import asyncio
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional, Tuple

from common.logging_config import get_logger
from bookserver.domain import Book, BookView, TagSpec, User
from bookserver.exceptions import (
    BlobTooLargeError,
    BookNotFoundError,
    DuplicateBookError,
    QuotaExceededError,
    UploadFailedError,
)
from bookserver.repositories.book_repository import BookRepository
from bookserver.repositories.data_context import DataContext
from bookserver.repositories.orphaned_blob_repository import OrphanedBlobRepository
from bookserver.repositories.user_repository import UserRepository
from bookserver.services.compensation import remove_book_blobs, rollback_book_record
from bookserver.services.field_projector import apply_update, assign_fields, to_tag_specs
from bookserver.services.tag_reconciler import reconcile_tags
from bookserver.storage.book_blob_manager import BookBlobStorageManager
from bookserver.utils import normalize_uuid, utcnow

logger = get_logger(__name__)


class BookService:
    def __init__(
        self,
        context: Optional[DataContext] = None,
        blob_manager: Optional[BookBlobStorageManager] = None,
    ):
        self.context = context if context is not None else DataContext()
        self.user_repo = UserRepository(self.context)
        self.book_repo = BookRepository(self.context)
        self.blob_manager = blob_manager if blob_manager is not None else BookBlobStorageManager()

    def create_book(
        self,
        email: str,
        book_id: str,
        fields: Mapping[str, Any],
        tags: Iterable[TagSpec] = (),
    ) -> Book:
        """
        Register a new book's metadata. The binary content is added later
        through add_book_data.

        Raises:
            UserNotFoundError: If the user does not exist
            DuplicateBookError: If the user already has a book with this id
            QuotaExceededError: If the user's used storage meets their limit
            DuplicateNameError: If two new tags on the book share a name
            UnknownFieldError: If fields names something a book does not have
        """
        user = self.user_repo.get(email, track_changes=True)
        book_id = normalize_uuid(book_id)
        logger.info(f"Creating book {book_id} [user_id={user.user_id}]")

        if self.book_repo.exists(user.user_id, book_id):
            logger.warning(f"Create failed: book {book_id} already exists [user_id={user.user_id}]")
            raise DuplicateBookError("A book with this id already exists")

        if not self._has_storage_available(user):
            logger.warning(f"Create failed: storage limit reached [user_id={user.user_id}]")
            raise QuotaExceededError("Book storage space is insufficient")

        now = utcnow()
        book = Book(book_id=book_id, user_id=user.user_id, added_to_library=now, last_modified=now)
        assign_fields(book, fields)
        reconcile_tags(book, to_tag_specs(tags), user)

        user.books.append(book)
        self.context.save_changes()
        OrphanedBlobRepository.remove_for_blob(book_id)
        logger.info(f"Created book {book_id} with {len(book.tag_ids)} tags [user_id={user.user_id}]")
        return book

    def _has_storage_available(self, user: User) -> bool:
        used_storage = self.book_repo.get_used_book_storage(user.user_id)
        return used_storage < user.book_storage_limit

    def get_books(self, email: str) -> List[BookView]:
        user = self.user_repo.get(email, track_changes=False)
        logger.debug(f"Listing {len(user.books)} books [user_id={user.user_id}]")
        return [BookView(book=book, tags=user.tags_of(book)) for book in user.books]

    async def delete_books(self, email: str, book_ids: Iterable[str]) -> List[str]:
        """
        Delete books: metadata first, then their blobs on a best-effort basis.

        Every id is checked before anything is deleted.

        Raises:
            BookNotFoundError: If any id is not one of the user's books
        """
        user = self.user_repo.get(email, track_changes=True)

        books: Dict[str, Book] = {}
        for book_id in book_ids:
            book = self._get_book(user, book_id)
            books[book.book_id] = book

        for book in books.values():
            self.book_repo.delete_book(user, book)
        self.context.save_changes()
        logger.info(f"Deleted metadata for {len(books)} books [user_id={user.user_id}]")

        failed = await remove_book_blobs(self.blob_manager, list(books))
        if failed:
            logger.warning(f"{len(failed)} blobs left for cleanup after deleting books [user_id={user.user_id}]")

        return list(books)

    def update_book(self, email: str, book_id: str, update_document: Mapping[str, Any]) -> Book:
        """
        Apply a sparse update to a book.

        Raises:
            BookNotFoundError: If the book does not exist
            UnknownFieldError: If the document names a field a book does not have
            DuplicateNameError: If a new tag's name collides on this book
        """
        user = self.user_repo.get(email, track_changes=True)
        book = self._get_book(user, book_id)

        apply_update(book, update_document, user)

        self.context.save_changes()
        logger.info(f"Updated book {book.book_id} fields={sorted(update_document.keys())} [user_id={user.user_id}]")
        return book

    async def add_book_data(self, email: str, book_id: str, stream: AsyncIterator[bytes]) -> int:
        """
        Stream a book's binary content into the blob store.

        If the upload fails for any reason, the book's metadata record is
        deleted so that no book points at missing content.

        Returns:
            Number of bytes stored

        Raises:
            BookNotFoundError: If the book does not exist
            UploadFailedError: If the blob store rejected or aborted the upload
        """
        user = self.user_repo.get(email, track_changes=True)
        book = self._get_book(user, book_id)

        try:
            size = await self.blob_manager.upload_book_blob(book.book_id, stream)
        except asyncio.CancelledError:
            logger.warning(f"Upload of book {book.book_id} was cancelled [user_id={user.user_id}]")
            await rollback_book_record(self.context, user, book)
            raise
        except Exception as e:
            logger.error(f"Upload of book {book.book_id} failed: {e} [user_id={user.user_id}]")
            await rollback_book_record(self.context, user, book, self.blob_manager)
            status_code = BlobTooLargeError.status_code if isinstance(e, BlobTooLargeError) else None
            raise UploadFailedError(f"Uploading the book's data failed: {e}", status_code=status_code) from e

        book.size_in_bytes = size
        self.context.save_changes()
        OrphanedBlobRepository.remove_for_blob(book.book_id)
        logger.info(f"Stored {size} bytes for book {book.book_id} [user_id={user.user_id}]")
        return size

    async def get_book_data(self, email: str, book_id: str) -> Tuple[Book, AsyncIterator[bytes]]:
        user = self.user_repo.get(email, track_changes=False)
        book = self._get_book(user, book_id)
        return book, await self.blob_manager.download_book_blob(book.book_id)

    async def get_book_cover(self, email: str, book_id: str) -> Tuple[Book, AsyncIterator[bytes]]:
        user = self.user_repo.get(email, track_changes=False)
        book = self._get_book(user, book_id)
        return book, await self.blob_manager.download_book_cover(book.book_id)

    async def change_book_cover(self, email: str, book_id: str, stream: AsyncIterator[bytes]) -> int:
        """
        Replace a book's cover and record its size.

        Returns:
            Size of the new cover in bytes
        """
        user = self.user_repo.get(email, track_changes=True)
        book = self._get_book(user, book_id)

        cover_size = await self.blob_manager.change_book_cover(book.book_id, stream)
        book.cover_size = cover_size
        book.has_cover = True
        book.cover_last_modified = utcnow()

        self.context.save_changes()
        OrphanedBlobRepository.remove_for_blob(book.book_id)
        logger.info(f"Changed cover of book {book.book_id} ({cover_size} bytes) [user_id={user.user_id}]")
        return cover_size

    async def delete_book_cover(self, email: str, book_id: str) -> bool:
        """
        Delete a book's cover blob and clear its cover flag and size.

        Returns:
            True if a cover blob existed
        """
        user = self.user_repo.get(email, track_changes=True)
        book = self._get_book(user, book_id)

        deleted = await self.blob_manager.delete_book_cover(book.book_id)
        book.has_cover = False
        book.cover_size = 0
        book.cover_last_modified = utcnow()

        self.context.save_changes()
        logger.info(f"Deleted cover of book {book.book_id} (existed={deleted}) [user_id={user.user_id}]")
        return deleted

    def get_book_format(self, email: str, book_id: str) -> str:
        user = self.user_repo.get(email, track_changes=False)
        return self._get_book(user, book_id).format

    @staticmethod
    def _get_book(user: User, book_id: str) -> Book:
        try:
            book = user.find_book(normalize_uuid(book_id))
        except ValueError:
            book = None

        if book is None:
            raise BookNotFoundError("No book with this id exists")
        return book

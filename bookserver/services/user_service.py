"""User service: account profile and account removal."""

from typing import Optional

from common.logging_config import get_logger
from bookserver.domain import UserProfile
from bookserver.repositories.book_repository import BookRepository
from bookserver.repositories.data_context import DataContext
from bookserver.repositories.user_repository import UserRepository
from bookserver.services.compensation import remove_book_blobs
from bookserver.storage.book_blob_manager import BookBlobStorageManager

logger = get_logger(__name__)


class UserService:
    def __init__(
        self,
        context: Optional[DataContext] = None,
        blob_manager: Optional[BookBlobStorageManager] = None,
    ):
        self.context = context if context is not None else DataContext()
        self.user_repo = UserRepository(self.context)
        self.book_repo = BookRepository(self.context)
        self.blob_manager = blob_manager if blob_manager is not None else BookBlobStorageManager()

    def get_user(self, email: str) -> UserProfile:
        user = self.user_repo.get(email, track_changes=False)
        return UserProfile(
            user_id=user.user_id,
            email=user.email,
            name=user.name,
            book_storage_limit=user.book_storage_limit,
            used_book_storage=self.book_repo.get_used_book_storage(user.user_id),
            created_at=user.created_at,
        )

    async def delete_user(self, email: str) -> int:
        """
        Delete a user's account, books and tags.

        The metadata is removed first; blobs of the removed books are then
        deleted on a best-effort basis.

        Returns:
            Number of books that were removed
        """
        user = self.user_repo.get(email, track_changes=True)
        book_ids = [book.book_id for book in user.books]

        self.user_repo.delete(user)
        self.user_repo.save_changes()
        logger.info(f"Deleted user {email} with {len(book_ids)} books [user_id={user.user_id}]")

        failed = await remove_book_blobs(self.blob_manager, book_ids, reason="user deleted")
        if failed:
            logger.warning(f"{len(failed)} blobs left for cleanup after deleting user [user_id={user.user_id}]")

        return len(book_ids)

"""Book repository for database operations."""

from typing import Optional

from common.logging_config import get_logger
from bookserver.database import get_db_connection
from bookserver.domain import Book, User
from bookserver.repositories.data_context import DataContext

logger = get_logger(__name__)


class BookRepository:
    def __init__(self, context: Optional[DataContext] = None):
        self.context = context if context is not None else DataContext()

    @staticmethod
    def exists(user_id: str, book_id: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM books WHERE user_id = ? AND book_id = ?",
                (user_id, book_id)
            )
            return cursor.fetchone() is not None

    @staticmethod
    def is_book_id_in_use(book_id: str) -> bool:
        """True if any user has a book with this id. Blob ids are book ids."""
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM books WHERE book_id = ? LIMIT 1", (book_id,))
            return cursor.fetchone() is not None

    @staticmethod
    def get_used_book_storage(user_id: str) -> int:
        """
        Sum of the stored sizes (content plus cover) of all of a user's books.
        """
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COALESCE(SUM(size_in_bytes + cover_size), 0) AS used FROM books WHERE user_id = ?",
                (user_id,)
            )
            return cursor.fetchone()["used"]

    def delete_book(self, user: User, book: Book) -> None:
        logger.debug(f"Deleting book [book_id={book.book_id}] [user_id={user.user_id}]")
        self.context.remove_book(user, book)

    def save_changes(self) -> int:
        return self.context.save_changes()

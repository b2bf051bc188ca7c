"""Request-scoped unit of work over the metadata database.

Users loaded with change tracking are registered here together with a
snapshot of their persisted state. save_changes() compares every tracked user
(books, tag links, tag arena) against its snapshot, writes only the
differences in a single transaction and returns the number of rows affected.
Entities that were never tracked are never written.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from common.logging_config import get_logger
from bookserver.database import get_db_connection
from bookserver.domain import Book, User
from bookserver.repositories.rows import BOOK_COLUMNS, USER_MUTABLE_COLUMNS, book_to_row, user_to_row
from bookserver.utils import to_iso

logger = get_logger(__name__)


@dataclass
class _UserSnapshot:
    user_row: Tuple
    tag_names: Dict[str, str] = field(default_factory=dict)
    book_rows: Dict[str, Tuple] = field(default_factory=dict)
    book_tag_ids: Dict[str, Tuple[str, ...]] = field(default_factory=dict)


def _snapshot(user: User) -> _UserSnapshot:
    return _UserSnapshot(
        user_row=user_to_row(user),
        tag_names={tag_id: tag.name for tag_id, tag in user.tags.items()},
        book_rows={book.book_id: book_to_row(book) for book in user.books},
        book_tag_ids={book.book_id: tuple(book.tag_ids) for book in user.books},
    )


class DataContext:
    def __init__(self):
        self._tracked: Dict[str, User] = {}
        self._snapshots: Dict[str, _UserSnapshot] = {}
        self._removed_books: List[Tuple[str, str]] = []
        self._removed_users: List[str] = []

    def track(self, user: User) -> User:
        """
        Start tracking a freshly loaded user.

        If a user with the same id is already tracked, the tracked instance is
        returned so that one request never holds two diverging copies.
        """
        existing = self._tracked.get(user.user_id)
        if existing is not None:
            return existing

        self._tracked[user.user_id] = user
        self._snapshots[user.user_id] = _snapshot(user)
        logger.debug(f"Tracking user [user_id={user.user_id}]")
        return user

    def find_tracked(self, email: str) -> Optional[User]:
        for user in self._tracked.values():
            if user.email == email:
                return user
        return None

    def is_tracked(self, user: User) -> bool:
        return self._tracked.get(user.user_id) is user

    def remove_book(self, user: User, book: Book) -> None:
        if not self.is_tracked(user):
            raise ValueError(f"User {user.user_id} is not tracked; load it with track_changes=True")

        user.books.remove(book)
        if book.book_id in self._snapshots[user.user_id].book_rows:
            self._removed_books.append((user.user_id, book.book_id))

    def remove_user(self, user: User) -> None:
        if not self.is_tracked(user):
            raise ValueError(f"User {user.user_id} is not tracked; load it with track_changes=True")

        self._removed_users.append(user.user_id)

    def save_changes(self) -> int:
        with get_db_connection() as conn:
            try:
                before = conn.total_changes
                cursor = conn.cursor()

                for user_id, book_id in self._removed_books:
                    cursor.execute(
                        "DELETE FROM books WHERE user_id = ? AND book_id = ?",
                        (user_id, book_id)
                    )

                for user_id in self._removed_users:
                    cursor.execute("DELETE FROM users WHERE user_id = ?", (user_id,))

                for user_id, user in self._tracked.items():
                    if user_id in self._removed_users:
                        continue
                    self._write_user(cursor, user, self._snapshots[user_id], set(self._removed_books))

                conn.commit()
                changes = conn.total_changes - before
            except Exception as e:
                conn.rollback()
                logger.error(f"Failed to save changes: {e}", exc_info=True)
                raise

        for user_id in self._removed_users:
            self._tracked.pop(user_id, None)
            self._snapshots.pop(user_id, None)
        for user_id, user in self._tracked.items():
            self._snapshots[user_id] = _snapshot(user)
        self._removed_books.clear()
        self._removed_users.clear()

        logger.debug(f"Saved changes: {changes} rows affected")
        return changes

    def _write_user(self, cursor, user: User, snapshot: _UserSnapshot, removed_books: set) -> None:
        user_row = user_to_row(user)
        if user_row != snapshot.user_row:
            assignments = ", ".join(f"{column} = ?" for column in USER_MUTABLE_COLUMNS)
            cursor.execute(
                f"UPDATE users SET {assignments} WHERE user_id = ?",
                user_row + (user.user_id,)
            )

        for tag_id, tag in user.tags.items():
            previous_name = snapshot.tag_names.get(tag_id)
            if previous_name is None:
                cursor.execute(
                    "INSERT INTO tags (tag_id, user_id, name, created_at) VALUES (?, ?, ?, ?)",
                    (tag.tag_id, user.user_id, tag.name, to_iso(tag.created_at))
                )
            elif previous_name != tag.name:
                cursor.execute(
                    "UPDATE tags SET name = ? WHERE tag_id = ?",
                    (tag.name, tag_id)
                )

        placeholders = ', '.join('?' for _ in BOOK_COLUMNS)
        assignments = ', '.join(f"{column} = ?" for column in BOOK_COLUMNS[2:])

        for book in user.books:
            book_row = book_to_row(book)
            previous_row = snapshot.book_rows.get(book.book_id)
            is_new = previous_row is None or (user.user_id, book.book_id) in removed_books

            if is_new:
                cursor.execute(
                    f"INSERT INTO books ({', '.join(BOOK_COLUMNS)}) VALUES ({placeholders})",
                    book_row
                )
            elif book_row != previous_row:
                cursor.execute(
                    f"UPDATE books SET {assignments} WHERE user_id = ? AND book_id = ?",
                    book_row[2:] + (user.user_id, book.book_id)
                )

            tag_ids = tuple(book.tag_ids)
            if is_new or tag_ids != snapshot.book_tag_ids.get(book.book_id):
                if not is_new:
                    cursor.execute(
                        "DELETE FROM book_tags WHERE user_id = ? AND book_id = ?",
                        (user.user_id, book.book_id)
                    )
                for position, tag_id in enumerate(tag_ids):
                    cursor.execute(
                        "INSERT INTO book_tags (user_id, book_id, tag_id, position) VALUES (?, ?, ?, ?)",
                        (user.user_id, book.book_id, tag_id, position)
                    )

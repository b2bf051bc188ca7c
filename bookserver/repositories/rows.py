"""Row <-> entity mapping shared by the repositories and the data context."""

import sqlite3
from typing import Dict, List, Tuple

from bookserver.database import get_row_value
from bookserver.domain import Book, Tag, User
from bookserver.utils import from_iso, to_iso

BOOK_COLUMNS = (
    "book_id",
    "user_id",
    "title",
    "authors",
    "creator",
    "format",
    "language",
    "document_size",
    "pages",
    "current_page",
    "file_hash",
    "project_gutenberg_id",
    "size_in_bytes",
    "has_cover",
    "cover_size",
    "added_to_library",
    "last_opened",
    "last_modified",
    "cover_last_modified",
)

BOOK_DATETIME_COLUMNS = ("added_to_library", "last_opened", "last_modified", "cover_last_modified")

USER_MUTABLE_COLUMNS = ("name", "password_hash", "api_key", "book_storage_limit", "key_updated_at")


def book_to_row(book: Book) -> Tuple:
    values = []
    for column in BOOK_COLUMNS:
        value = getattr(book, column)
        if column in BOOK_DATETIME_COLUMNS:
            value = to_iso(value)
        elif column == "has_cover":
            value = int(value)
        values.append(value)
    return tuple(values)


def book_from_row(row: sqlite3.Row) -> Book:
    return Book(
        book_id=row["book_id"],
        user_id=row["user_id"],
        title=row["title"],
        authors=row["authors"],
        creator=row["creator"],
        format=row["format"],
        language=row["language"],
        document_size=row["document_size"],
        pages=row["pages"],
        current_page=row["current_page"],
        file_hash=row["file_hash"],
        project_gutenberg_id=row["project_gutenberg_id"],
        size_in_bytes=row["size_in_bytes"],
        has_cover=bool(row["has_cover"]),
        cover_size=row["cover_size"],
        added_to_library=from_iso(row["added_to_library"]),
        last_opened=from_iso(row["last_opened"]),
        last_modified=from_iso(row["last_modified"]),
        cover_last_modified=from_iso(row["cover_last_modified"]),
    )


def tag_from_row(row: sqlite3.Row) -> Tag:
    return Tag(
        tag_id=row["tag_id"],
        user_id=row["user_id"],
        name=row["name"],
        created_at=from_iso(row["created_at"]),
    )


def user_from_row(row: sqlite3.Row) -> User:
    return User(
        user_id=row["user_id"],
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        book_storage_limit=row["book_storage_limit"],
        created_at=from_iso(row["created_at"]),
        api_key=get_row_value(row, "api_key"),
        key_updated_at=from_iso(get_row_value(row, "key_updated_at")),
    )


def user_to_row(user: User) -> Tuple:
    return (
        user.name,
        user.password_hash,
        user.api_key,
        user.book_storage_limit,
        to_iso(user.key_updated_at),
    )


def load_tag_arena(cursor: sqlite3.Cursor, user_id: str) -> Dict[str, Tag]:
    cursor.execute(
        "SELECT tag_id, user_id, name, created_at FROM tags WHERE user_id = ? ORDER BY created_at, tag_id",
        (user_id,)
    )
    return {row["tag_id"]: tag_from_row(row) for row in cursor.fetchall()}


def load_books(cursor: sqlite3.Cursor, user_id: str) -> List[Book]:
    """
    Load every book of a user, with its tag ids in insertion order.
    """
    cursor.execute(
        f"SELECT {', '.join(BOOK_COLUMNS)} FROM books WHERE user_id = ? ORDER BY rowid",
        (user_id,)
    )
    books = [book_from_row(row) for row in cursor.fetchall()]
    by_id = {book.book_id: book for book in books}

    cursor.execute(
        "SELECT book_id, tag_id FROM book_tags WHERE user_id = ? ORDER BY book_id, position",
        (user_id,)
    )
    for row in cursor.fetchall():
        book = by_id.get(row["book_id"])
        if book is not None:
            book.tag_ids.append(row["tag_id"])

    return books

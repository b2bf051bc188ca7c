"""Domain entities: User, Book and Tag.

A user owns a tag arena (tags keyed by id). Books hold only tag ids that point
into their owner's arena, so renaming a tag is visible on every book that
references it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


@dataclass(eq=False)
class Tag:
    tag_id: str
    user_id: str
    name: str
    created_at: datetime


@dataclass(eq=False)
class Book:
    book_id: str
    user_id: str
    title: str = ""
    authors: str = ""
    creator: str = ""
    format: str = ""
    language: str = ""
    document_size: str = ""
    pages: int = 0
    current_page: int = 0
    file_hash: str = ""
    project_gutenberg_id: int = 0
    size_in_bytes: int = 0
    has_cover: bool = False
    cover_size: int = 0
    added_to_library: Optional[datetime] = None
    last_opened: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    cover_last_modified: Optional[datetime] = None
    tag_ids: List[str] = field(default_factory=list)

    def has_tag(self, tag_id: str) -> bool:
        return tag_id in self.tag_ids

    @property
    def used_storage(self) -> int:
        return self.size_in_bytes + self.cover_size


@dataclass(eq=False)
class User:
    user_id: str
    email: str
    name: str
    password_hash: str
    book_storage_limit: int
    created_at: datetime
    api_key: Optional[str] = None
    key_updated_at: Optional[datetime] = None
    books: List[Book] = field(default_factory=list)
    tags: Dict[str, Tag] = field(default_factory=dict)

    def find_book(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.book_id == book_id:
                return book
        return None

    def tags_of(self, book: Book) -> List[Tag]:
        """Resolve a book's tag ids against this user's tag arena."""
        return [self.tags[tag_id] for tag_id in book.tag_ids if tag_id in self.tags]


@dataclass(frozen=True)
class TagSpec:
    """
    Desired tag entry sent by a client: the tag's id and display name.
    """
    tag_id: str
    name: str


@dataclass(frozen=True)
class BookView:
    """
    Read-only projection of a book with its tags resolved.
    """
    book: Book
    tags: List[Tag]


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    email: str
    name: str
    book_storage_limit: int
    used_book_storage: int
    created_at: datetime

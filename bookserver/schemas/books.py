"""Pydantic schemas for book endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from bookserver.domain import BookView, TagSpec


class TagIn(BaseModel):
    """A tag as sent by a client: its id and display name."""
    guid: UUID
    name: str

    def to_spec(self) -> TagSpec:
        return TagSpec(tag_id=str(self.guid), name=self.name)


class TagOut(BaseModel):
    guid: str
    name: str


class BookIn(BaseModel):
    """Request model for creating a book's metadata."""
    guid: UUID
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
    has_cover: bool = False
    added_to_library: Optional[datetime] = None
    last_opened: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    cover_last_modified: Optional[datetime] = None
    tags: List[TagIn] = Field(default_factory=list)

    def field_values(self) -> dict:
        """Plain book fields that were actually sent, without guid and tags."""
        return self.model_dump(exclude_unset=True, exclude={"guid", "tags"})


class BookUpdateRequest(BaseModel):
    """
    Sparse update of a book. Only fields that are present are applied; names
    a book does not have are passed through and rejected by the service.
    """
    model_config = ConfigDict(extra="allow")

    guid: UUID
    tags: Optional[List[TagIn]] = None

    def update_document(self) -> dict:
        document = self.model_dump(exclude_unset=True, exclude={"guid", "tags"})
        if "tags" in self.model_fields_set:
            document["tags"] = [tag.to_spec() for tag in self.tags or []]
        return document


class BookOut(BaseModel):
    """Response model for a book's metadata."""
    guid: str
    title: str
    authors: str
    creator: str
    format: str
    language: str
    document_size: str
    pages: int
    current_page: int
    file_hash: str
    project_gutenberg_id: int
    size_in_bytes: int
    has_cover: bool
    cover_size: int
    added_to_library: Optional[datetime] = None
    last_opened: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    cover_last_modified: Optional[datetime] = None
    tags: List[TagOut]

    @classmethod
    def from_view(cls, view: BookView) -> "BookOut":
        book = view.book
        return cls(
            guid=book.book_id,
            title=book.title,
            authors=book.authors,
            creator=book.creator,
            format=book.format,
            language=book.language,
            document_size=book.document_size,
            pages=book.pages,
            current_page=book.current_page,
            file_hash=book.file_hash,
            project_gutenberg_id=book.project_gutenberg_id,
            size_in_bytes=book.size_in_bytes,
            has_cover=book.has_cover,
            cover_size=book.cover_size,
            added_to_library=book.added_to_library,
            last_opened=book.last_opened,
            last_modified=book.last_modified,
            cover_last_modified=book.cover_last_modified,
            tags=[TagOut(guid=tag.tag_id, name=tag.name) for tag in view.tags],
        )


class ListBooksResponse(BaseModel):
    """Response model for book listing."""
    books: List[BookOut]


class DeleteBooksRequest(BaseModel):
    """Request model for deleting books."""
    guids: List[UUID]


class DeleteBooksResponse(BaseModel):
    """Response model for book deletion."""
    deleted_count: int
    book_ids: List[str]


class UploadResponse(BaseModel):
    """Response model for book content and cover uploads."""
    guid: str
    size: int


class FormatResponse(BaseModel):
    guid: str
    format: str
